"""
Stock Kernel - location stock ledger

Authoritative quantity-per-location records with:
- Atomic, non-negative stock adjustments
- Transactional transfers with an append-only audit trail
- Individually tracked units reconciled against bulk counts
"""

__version__ = "0.1.0"
