#!/usr/bin/env python3
"""
txmatch CLI - reconcile bank statements against expense receipts.

Usage:
    txmatch import-bank statement.csv march.pdf
    txmatch import-receipts receipts.xlsx
    txmatch status
    txmatch matches
    txmatch unmatched --as-of 2024-03-01
    txmatch export --output exports --search fuel
    txmatch remove-bank bank-1704412800000-k3j9x2a1q
    txmatch clear
"""

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from txmatch.core.preferences import Preferences, get_data_root
from txmatch.core.store import SqliteStore
from txmatch.services.session import ReconciliationSession, TransactionFilter

DB_FILENAME = "txmatch.db"


def setup_logging(verbose: bool = False, debug: bool = False):
    """Configure logging."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO date (YYYY-MM-DD): {value!r}")


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")


def build_filter(args) -> Optional[TransactionFilter]:
    """Build a TransactionFilter from the filter options, or None if none were given."""
    criteria = TransactionFilter(
        search_query=getattr(args, "search", None) or "",
        min_amount=getattr(args, "min_amount", None),
        max_amount=getattr(args, "max_amount", None),
        date_from=getattr(args, "date_from", None),
        date_to=getattr(args, "date_to", None),
    )
    return criteria if criteria.active_count else None


# ============================================================================
# Command Handlers
# ============================================================================

def cmd_import_bank(args, session: ReconciliationSession):
    """Handle import-bank command."""
    result = session.import_bank_files([Path(f) for f in args.files])

    for file_result in result.file_results:
        if file_result.error_message:
            print(f"  {file_result.file_path.name}: {file_result.error_message}")

    print(result.summary_message())
    return 0 if result.total_records > 0 else 1


def cmd_import_receipts(args, session: ReconciliationSession):
    """Handle import-receipts command."""
    result = session.import_receipt_files([Path(f) for f in args.files])

    for file_result in result.file_results:
        if file_result.error_message:
            print(f"  {file_result.file_path.name}: {file_result.error_message}")

    print(result.summary_message())
    return 0 if result.total_records > 0 else 1


def cmd_status(args, session: ReconciliationSession, display):
    """Handle status command - show headline numbers."""
    stats = session.stats()

    print(f"\nBank transactions: {stats.total_bank}")
    print(f"Receipts:          {stats.total_receipts}")
    print(f"Matched:           {stats.matched} ({display.format_currency(stats.matched_amount)})")
    print(f"Unmatched bank:    {stats.unmatched_bank} ({display.format_currency(stats.unmatched_amount)})")

    if session.employees:
        print(f"\nEmployees: {', '.join(session.employees)}")
    if session.jobs:
        print(f"Jobs:      {', '.join(session.jobs)}")

    return 0


def cmd_matches(args, session: ReconciliationSession, display):
    """Handle matches command - list matched pairs."""
    pairs = session.matched_pairs
    if not pairs:
        print("No matches")
        return 0

    for pair in pairs:
        match = pair.match
        print(
            f"{display.format_currency(match.amount):>12}  "
            f"{display.format_date(pair.bank.date):<13} {pair.bank.description[:40]:<40}  "
            f"{pair.receipt.employee} / {pair.receipt.job}  "
            f"[{match.confidence.value}, {match.days_since_match}d]"
        )

    print(f"\n{len(pairs)} matches")
    return 0


def cmd_unmatched(args, session: ReconciliationSession, display):
    """Handle unmatched command - aging view of unmatched bank transactions."""
    summary = session.aging(as_of=args.as_of, criteria=build_filter(args))

    print(f"\nUnmatched as of {display.format_date(summary.as_of)}")
    print(f"  Total:       {summary.total_count} ({display.format_currency(summary.total_amount)})")
    print(f"  Average age: {summary.average_age} days")
    print(f"  Critical:    {summary.critical_count} ({display.format_currency(summary.critical_amount)})")

    for bucket in summary.buckets:
        print(f"\n{bucket.label} ({bucket.range} days): {bucket.count}")
        for txn in bucket.transactions:
            print(
                f"  {txn.id}  {display.format_date(txn.date):<13} "
                f"{txn.description[:40]:<40} {display.format_currency(txn.amount):>12}"
            )

    return 0


def cmd_export(args, session: ReconciliationSession):
    """Handle export command - write the JSON export document."""
    output_dir = Path(args.output) if args.output else Path.cwd()
    path, document = session.export_to_file(output_dir, build_filter(args))
    print(f"Exported {len(document['bankTransactions'])} bank transactions to {path}")
    return 0


def cmd_remove_bank(args, session: ReconciliationSession):
    if not session.remove_bank_transaction(args.id):
        print(f"No bank transaction with id {args.id}")
        return 1
    print(f"Removed bank transaction {args.id}")
    return 0


def cmd_remove_receipt(args, session: ReconciliationSession):
    if not session.remove_receipt(args.id):
        print(f"No receipt with id {args.id}")
        return 1
    print(f"Removed receipt {args.id}")
    return 0


def cmd_clear(args, session: ReconciliationSession):
    session.clear_all()
    print("All data cleared")
    return 0


# ============================================================================
# Main Entry Point
# ============================================================================

def _add_filter_arguments(subparser):
    subparser.add_argument('--search', '-s', help='Description contains (case-insensitive)')
    subparser.add_argument('--min-amount', type=_decimal, help='Minimum amount')
    subparser.add_argument('--max-amount', type=_decimal, help='Maximum amount')
    subparser.add_argument('--date-from', type=_iso_date, help='Earliest date (YYYY-MM-DD)')
    subparser.add_argument('--date-to', type=_iso_date, help='Latest date (YYYY-MM-DD)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='txmatch',
        description='txmatch - match bank transactions with expense receipts',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  txmatch import-bank statement.csv march.pdf
  txmatch import-receipts receipts.xlsx
  txmatch status
  txmatch unmatched --as-of 2024-03-01
  txmatch export --output exports --min-amount 100
        """
    )

    # Global arguments
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--debug', action='store_true', help='Debug output')
    parser.add_argument('--data-root', help='Data root directory')
    parser.add_argument('--preferences', help='Preferences JSON file')

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Command')

    import_bank_parser = subparsers.add_parser('import-bank', help='Import bank statement files')
    import_bank_parser.add_argument('files', nargs='+', help='CSV, Excel, PDF or text statements')

    import_receipts_parser = subparsers.add_parser('import-receipts', help='Import receipt exports')
    import_receipts_parser.add_argument('files', nargs='+', help='CSV or Excel receipt exports')

    subparsers.add_parser('status', help='Show current totals')
    subparsers.add_parser('matches', help='List matched pairs')

    unmatched_parser = subparsers.add_parser('unmatched', help='Aging view of unmatched transactions')
    unmatched_parser.add_argument('--as-of', type=_iso_date, help='Reference date (default: today, UTC)')
    _add_filter_arguments(unmatched_parser)

    export_parser = subparsers.add_parser('export', help='Export data as JSON')
    export_parser.add_argument('--output', '-o', help='Output directory (default: current)')
    _add_filter_arguments(export_parser)

    remove_bank_parser = subparsers.add_parser('remove-bank', help='Remove a bank transaction')
    remove_bank_parser.add_argument('id', help='Bank transaction id')

    remove_receipt_parser = subparsers.add_parser('remove-receipt', help='Remove a receipt')
    remove_receipt_parser.add_argument('id', help='Receipt id')

    subparsers.add_parser('clear', help='Remove all data')

    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Setup
    setup_logging(args.verbose, args.debug)

    data_root = Path(args.data_root) if args.data_root else get_data_root()
    preferences = Preferences.load(Path(args.preferences) if args.preferences else None)
    display = preferences.display

    try:
        data_root.mkdir(parents=True, exist_ok=True)
        store = SqliteStore(data_root / DB_FILENAME)
    except Exception as e:
        print(f"Database error: {e}")
        return 1

    session = ReconciliationSession(store, preferences)

    # Route to command handler
    try:
        if args.command == 'import-bank':
            return cmd_import_bank(args, session)
        elif args.command == 'import-receipts':
            return cmd_import_receipts(args, session)
        elif args.command == 'status':
            return cmd_status(args, session, display)
        elif args.command == 'matches':
            return cmd_matches(args, session, display)
        elif args.command == 'unmatched':
            return cmd_unmatched(args, session, display)
        elif args.command == 'export':
            return cmd_export(args, session)
        elif args.command == 'remove-bank':
            return cmd_remove_bank(args, session)
        elif args.command == 'remove-receipt':
            return cmd_remove_receipt(args, session)
        elif args.command == 'clear':
            return cmd_clear(args, session)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled")
        return 130
    except Exception as e:
        print(f"\nError: {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
