#!/usr/bin/env python3
"""
Print stock reports from a live database.

Usage:
    python3 scripts/stock_report.py levels [--item ITEM]
    python3 scripts/stock_report.py reconcile [--item ITEM] [--all-items]
    python3 scripts/stock_report.py low-stock [--threshold N]

The database URL comes from --database-url, else from the active ledger
settings ($STOCK_LEDGER_CONFIG / $STOCK_DATABASE_URL).
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def banner(title: str) -> None:
    print()
    print("=" * 72)
    print(f"  {title}")
    print("=" * 72)


def location_codes(session) -> dict:
    from stock_kernel.services.location_registry import LocationRegistry

    return {
        loc.id: loc.code
        for loc in LocationRegistry(session).list_locations(active_only=False)
    }


def print_levels(session, item_id) -> None:
    from stock_kernel.selectors.stock_selector import StockSelector

    codes = location_codes(session)
    selector = StockSelector(session)
    levels = selector.levels_for_item(item_id) if item_id else selector.all_levels()

    banner("STOCK LEVELS")
    if not levels:
        print("  (no stock)")
        return
    for level in levels:
        code = codes.get(level.location_id, str(level.location_id))
        print(f"  {level.item_id:<30} {code:<20} {level.quantity:>10}")


def print_reconciliation(session, item_id, tracked_only: bool) -> int:
    from stock_kernel.selectors.reconciliation_selector import ReconciliationSelector

    codes = location_codes(session)
    report = ReconciliationSelector(session).report(item_id, tracked_only=tracked_only)

    banner("BULK vs TRACKED UNITS")
    print(f"  generated_at: {report.generated_at.isoformat()}")
    for line in report.lines:
        code = codes.get(line.location_id, str(line.location_id))
        flag = "  EXCEEDS BULK" if line.exceeds_bulk else ""
        print(
            f"  {line.item_id:<30} {code:<20} bulk={line.bulk_quantity:<8} "
            f"units={line.available_units:<8} drift={line.drift}{flag}"
        )
    print()
    print(f"  [{'OK' if report.is_consistent else 'DRIFT'}] bulk counts match available units")
    if report.violations:
        print(f"  {len(report.violations)} location(s) hold more units than bulk")
    return 0 if report.is_consistent else 2


def print_low_stock(session, threshold: int) -> None:
    from stock_kernel.selectors.stock_selector import StockSelector

    codes = location_codes(session)
    alerts = StockSelector(session).low_stock_alerts(default_threshold=threshold)

    banner(f"LOW STOCK (threshold {threshold})")
    if not alerts:
        print("  (none)")
        return
    for alert in alerts:
        code = codes.get(alert.location_id, str(alert.location_id))
        marker = "CRITICAL" if alert.critical else "low"
        print(f"  {alert.item_id:<30} {code:<20} {alert.quantity:>6}  {marker}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Report stock levels, unit drift and low stock.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python3 scripts/stock_report.py levels --item DRILL-01\n"
            "  python3 scripts/stock_report.py reconcile\n"
            "  python3 scripts/stock_report.py low-stock --threshold 3\n"
        ),
    )
    parser.add_argument(
        "--database-url", type=str, default=None,
        help="Database URL (default: from ledger settings)",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Emit JSON logs at the configured log_level to stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    levels = sub.add_parser("levels", help="Quantities per item and location")
    levels.add_argument("--item", type=str, default=None, help="Restrict to one item")

    reconcile = sub.add_parser("reconcile", help="Bulk stock versus tracked units")
    reconcile.add_argument("--item", type=str, default=None, help="Restrict to one item")
    reconcile.add_argument(
        "--all-items", action="store_true",
        help="Include items that have no tracked units",
    )

    low = sub.add_parser("low-stock", help="Entries at or below a reorder threshold")
    low.add_argument("--threshold", type=int, default=None, help="Reorder threshold")

    args = parser.parse_args()

    # Suppress library logging unless asked for
    if not args.verbose:
        logging.disable(logging.CRITICAL)

    from stock_config import get_active_settings, start_up
    from stock_kernel.db.engine import get_session

    settings = get_active_settings()

    # Connect
    try:
        start_up(settings, database_url=args.database_url)
        session = get_session()
        session.connection()
    except Exception as exc:
        print(f"  ERROR: Cannot connect to database: {exc}", file=sys.stderr)
        return 1

    try:
        if args.command == "levels":
            print_levels(session, args.item)
        elif args.command == "reconcile":
            return print_reconciliation(session, args.item, not args.all_items)
        else:
            threshold = (
                args.threshold
                if args.threshold is not None
                else settings.default_reorder_threshold
            )
            print_low_stock(session, threshold)
        return 0
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
