#!/usr/bin/env python3
"""
Intake Reconciliation - Main Entrypoint

Pairs the practice calendar with patient intake forms for the front office:
lists every appointment with its form state, ranks forms for a manual pick
and records human-confirmed links.

Inputs are either CSV exports or the live calendar and form store configured
through INTAKE_* environment variables.
"""

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .clients.calendar_feed import GoogleCalendarFeed
from .clients.csv_sources import CsvCalendarFeed, CsvFormStore
from .clients.form_store import PocketBaseFormStore, PocketBaseLinkStore, StaticFormStore
from .config import ReconciliationConfig
from .core.data_models import MergedItem
from .core.link_store import CsvLinkStore, InMemoryLinkStore
from .core.reconciliation_service import ReconciliationService, default_window
from .exceptions import ReconciliationError
from .reporting.audit_logger import ReconciliationAuditLogger, ReconciliationReportingService

ITEM_FIELDNAMES = [
    'type', 'state', 'appointment_id', 'form_id', 'form_status',
    'patient_name', 'appointment_date', 'appointment_time',
    'email', 'phone', 'dob', 'consultation_type',
    'suggested_form_id', 'match_tier', 'match_field', 'skipped'
]


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    format_str = '%(asctime)s - %(levelname)s - %(message)s'

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )


def load_config(args: argparse.Namespace) -> ReconciliationConfig:
    """Environment configuration with command line overrides applied."""
    config = ReconciliationConfig.from_env()
    return config.with_overrides(
        window_days=getattr(args, 'window_days', None),
        verify_ssl=False if getattr(args, 'no_verify_ssl', False) else None
    )


def build_service(args: argparse.Namespace, config: ReconciliationConfig) -> ReconciliationService:
    """
    Wire the service to CSV exports or to the live systems.

    CSV inputs win over the remote configuration for each source separately.
    """
    if args.forms:
        form_store = CsvFormStore(args.forms)
        pocketbase = None
    elif config.pocketbase_url:
        pocketbase = PocketBaseFormStore(
            config.pocketbase_url,
            config.pocketbase_token,
            page_size=config.page_size,
            timeout=config.request_timeout,
            verify_ssl=config.verify_ssl
        )
        form_store = pocketbase
    elif args.command == 'link':
        form_store = StaticFormStore()
        pocketbase = None
    else:
        raise ReconciliationError("No form source: pass --forms or set INTAKE_POCKETBASE_URL")

    if args.appointments:
        calendar_feed = CsvCalendarFeed(args.appointments)
    elif config.calendar_configured:
        calendar_feed = GoogleCalendarFeed(
            config.calendar_id,
            config.calendar_token,
            api_url=config.calendar_api_url,
            source_tag=config.source_tag,
            timezone=config.timezone,
            timeout=config.request_timeout,
            verify_ssl=config.verify_ssl
        )
    else:
        calendar_feed = CsvCalendarFeed()

    if args.links:
        link_store = CsvLinkStore(args.links)
    elif pocketbase is not None:
        link_store = PocketBaseLinkStore(pocketbase)
    elif args.command == 'link':
        raise ReconciliationError("No link store: pass --links or set INTAKE_POCKETBASE_URL")
    else:
        link_store = InMemoryLinkStore()

    return ReconciliationService(
        calendar_feed,
        form_store,
        link_store,
        config=config,
        audit_logger=ReconciliationAuditLogger()
    )


def write_items_csv(items: List[MergedItem], output: TextIO):
    """Write merged items as CSV rows."""
    writer = csv.DictWriter(output, fieldnames=ITEM_FIELDNAMES, restval='', extrasaction='ignore')
    writer.writeheader()
    for item in items:
        writer.writerow(item.to_dict())


def _window(args: argparse.Namespace, config: ReconciliationConfig):
    default_from, default_to = default_window(config.window_days)
    return args.date_from or default_from, args.date_to or args.date_from or default_to


def run_reconcile(args: argparse.Namespace, service: ReconciliationService, config: ReconciliationConfig):
    date_from, date_to = _window(args, config)
    result = service.reconcile(date_from, date_to, force_refresh=True)

    if not args.audit_only:
        if args.output:
            with open(args.output, 'w', newline='', encoding='utf-8') as outfile:
                write_items_csv(result.merged_items, outfile)
        else:
            write_items_csv(result.merged_items, sys.stdout)

    ReconciliationReportingService.generate_report(result)
    ReconciliationReportingService.print_session_summary(result)
    return 0


def run_candidates(args: argparse.Namespace, service: ReconciliationService, config: ReconciliationConfig):
    date_from, date_to = _window(args, config)
    result = service.reconcile(date_from, date_to, force_refresh=True)
    if result.find_appointment_item(args.appointment_id) is None:
        print(f"Error: appointment not found between {date_from} and {date_to}: {args.appointment_id}",
              file=sys.stderr)
        return 1

    pick = service.manual_candidates(args.appointment_id)
    ReconciliationReportingService.print_manual_pick(pick)
    return 0


def run_link(args: argparse.Namespace, service: ReconciliationService, config: ReconciliationConfig):
    link = service.manual_link if args.manual else service.confirm_suggestion
    result = link(args.appointment_id, args.form_id)
    if not result.ok:
        print(f"Error: link rejected: {result.error}", file=sys.stderr)
        return 1

    print(f"Linked appointment {result.appointment_id} to form {result.form_id}", file=sys.stderr)
    return 0


def _add_source_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('--appointments', help='Appointments CSV export (default: live calendar)')
    parser.add_argument('--forms', help='Forms CSV export (default: live form store)')
    parser.add_argument('--links', help='Links CSV file (default: links stored on the forms)')
    parser.add_argument('--no-verify-ssl', action='store_true',
                        help='Do not verify TLS certificates of the live systems')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose logging')


def _add_window_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('--from', dest='date_from', help='First day YYYY-MM-DD (default: today)')
    parser.add_argument('--to', dest='date_to', help='Last day YYYY-MM-DD (default: --from, or today + window)')
    parser.add_argument('--window-days', type=int,
                        help='Window length when --to is omitted (default: 30)')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='intake-reconcile',
        description="Intake Reconciliation - match calendar appointments with patient intake forms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s reconcile --appointments appointments.csv --forms forms.csv -o items.csv
  %(prog)s reconcile --from 2026-02-05 --to 2026-02-05 --audit-only
  %(prog)s candidates evt_123 --appointments appointments.csv --forms forms.csv
  %(prog)s link evt_123 abcdefghij12345 --manual
        """
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    reconcile = subparsers.add_parser('reconcile', help='List appointments and forms with their state')
    _add_source_arguments(reconcile)
    _add_window_arguments(reconcile)
    reconcile.add_argument('-o', '--output', help='Output CSV file (default: stdout)')
    reconcile.add_argument('--audit-only', action='store_true',
                           help='Generate report only, no CSV output')
    reconcile.set_defaults(handler=run_reconcile)

    candidates = subparsers.add_parser('candidates', help='Rank unlinked forms for one appointment')
    candidates.add_argument('appointment_id', help='Calendar appointment id')
    _add_source_arguments(candidates)
    _add_window_arguments(candidates)
    candidates.set_defaults(handler=run_candidates)

    link = subparsers.add_parser('link', help='Record a confirmed appointment/form link')
    link.add_argument('appointment_id', help='Calendar appointment id')
    link.add_argument('form_id', help='Form id')
    link.add_argument('--manual', action='store_true',
                      help='Record as a manual pick instead of an accepted suggestion')
    _add_source_arguments(link)
    link.set_defaults(handler=run_link)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entrypoint for intake reconciliation."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Setup logging
    setup_logging(args.verbose)

    # Validate input files
    for label, path in (('Appointments', args.appointments), ('Forms', args.forms)):
        if path and not Path(path).exists():
            print(f"Error: {label} file not found: {path}", file=sys.stderr)
            return 1

    try:
        config = load_config(args)
        service = build_service(args, config)
        return args.handler(args, service, config)
    except (ReconciliationError, ValueError, OSError) as e:
        logging.error(f"Processing failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
