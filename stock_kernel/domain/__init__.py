"""Pure domain types for the stock kernel: clock and DTOs."""
