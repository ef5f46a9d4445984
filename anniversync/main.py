#!/usr/bin/env python3
"""
CardDAV to CalDAV Anniversary Sync
Main entry point with scheduling and argument parsing
"""

import os
import sys
import logging
import argparse
from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from . import __version__
from .cardav_client import CardDAVClient, collect_dates
from .caldav_client import CalDAVClient
from .config import (
    SmtpConfig,
    SyncConfig,
    get_smtp_config,
    get_sync_config,
    setup_logging,
    validate_environment,
)
from .executor import ActionExecutor
from .models import Create, Delete, SyncReport, Update
from .reconciler import reconcile
from .records import build_anniversary_records, extract_calendar_records, fetch_all_contacts
from .report import send_report
from .scheduler import SchedulerService

logger = logging.getLogger(__name__)


def print_banner():
    print("Anniversary Sync - CardDAV to CalDAV")
    print(f"Version: {__version__}")
    print(f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("─" * 62)
    print()


def connect_directory(config: SyncConfig) -> CardDAVClient:
    logger.info("Connecting to CardDAV server...")
    return CardDAVClient(
        os.getenv('CARDAV_SERVER_URL'),
        os.getenv('CARDAV_USERNAME'),
        os.getenv('CARDAV_PASSWORD'),
        anniversary_label=config.anniversary_label
    )


def connect_calendar(config: SyncConfig) -> CalDAVClient:
    logger.info("Connecting to CalDAV server...")
    return CalDAVClient(
        os.getenv('CALDAV_SERVER_URL'),
        os.getenv('CALDAV_USERNAME'),
        os.getenv('CALDAV_PASSWORD'),
        calendar_id=config.calendar_id
    )


def plan_actions(directory, calendar, config: SyncConfig, current_year: int):
    """Build both record sets for the year and reconcile them"""
    contacts = fetch_all_contacts(directory)
    anniversaries = list(build_anniversary_records(contacts, config, current_year))
    logger.info(f"Built {len(anniversaries)} anniversary records from {len(contacts)} contacts")

    calendar_records = extract_calendar_records(calendar, current_year)
    return reconcile(anniversaries, calendar_records)


def run_sync(directory, calendar, config: SyncConfig, smtp: Optional[SmtpConfig] = None,
             today: Optional[date] = None) -> SyncReport:
    """One full reconciliation run against live directory and calendar"""
    today = today or date.today()
    actions = plan_actions(directory, calendar, config, today.year)

    executor = ActionExecutor(calendar, today.year, dry_run=config.dry_run)
    report = executor.apply(actions)

    if config.report_recipient and not config.dry_run:
        send_report(report, config.report_recipient, smtp or SmtpConfig(), today)
    return report


def main_sync(dry_run: bool = False) -> bool:
    """Connect using the environment and run a single sync"""
    config = get_sync_config()
    if dry_run and not config.dry_run:
        config = replace(config, dry_run=True)

    try:
        directory = connect_directory(config)
        calendar = connect_calendar(config)
    except Exception as e:
        logger.error(f"Could not connect: {e}")
        return False

    run_sync(directory, calendar, config, get_smtp_config())
    return True


def diagnose() -> bool:
    """Print what the directory holds and what a sync would do"""
    config = get_sync_config()
    try:
        directory = connect_directory(config)
        print(f"✓ Found {len(directory.addressbook_urls)} addressbooks:")
        for i, ab_url in enumerate(directory.addressbook_urls, 1):
            print(f"  {i}. {ab_url}")

        contacts = fetch_all_contacts(directory)
        print(f"✓ Contacts with dates: {len(contacts)}")
        for contact in contacts:
            dates = ', '.join(f"{label} {d.month}/{d.day}" for label, d in collect_dates(contact))
            print(f"  - {contact.display_name} ({contact.id}): {dates}")

        calendar = connect_calendar(config)
        print(f"✓ Calendar: {calendar.calendar.name}")
    except Exception as e:
        print(f"✗ Error: {e}")
        return False

    year = date.today().year
    anniversaries = list(build_anniversary_records(contacts, config, year))
    actions = reconcile(anniversaries, extract_calendar_records(calendar, year))
    print(f"Planned actions for {year}:")
    for action in actions:
        kind = {Create: 'create', Update: 'update', Delete: 'delete'}[type(action)]
        print(f"  {kind}: {action.title}")
    if not actions:
        print("  (none)")
    return True


def health_check() -> bool:
    logger.info("Performing health check...")
    try:
        import vobject  # noqa: F401
        import caldav  # noqa: F401
        import requests  # noqa: F401
        import croniter  # noqa: F401
    except ImportError as e:
        logger.error(f"Health check failed: {e}")
        return False

    if not validate_environment():
        return False

    logger.info("Health check passed")
    return True


def main():
    """Main function with argument parsing"""
    parser = argparse.ArgumentParser(description='Anniversary sync service')
    parser.add_argument('--diagnose', action='store_true', help='Show planned actions without applying them')
    parser.add_argument('--health-check', action='store_true', help='Run health check')
    parser.add_argument('--once', action='store_true', help='Run sync once and exit')
    parser.add_argument('--dry-run', action='store_true', help='Plan actions but do not touch the calendar')
    parser.add_argument('--no-banner', action='store_true', help='Skip banner')

    args = parser.parse_args()

    setup_logging()

    if not args.no_banner:
        print_banner()

    if not validate_environment():
        sys.exit(1)

    if args.health_check:
        sys.exit(0 if health_check() else 1)

    if args.diagnose:
        sys.exit(0 if diagnose() else 1)

    run_mode = os.getenv('RUN_MODE', 'daemon').lower()

    if args.once or run_mode != 'daemon':
        logger.info("Running single sync operation...")
        sys.exit(0 if main_sync(args.dry_run) else 1)

    scheduler = SchedulerService(lambda: main_sync(args.dry_run))
    try:
        scheduler.run_daemon()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    sys.exit(0)


if __name__ == "__main__":
    main()
