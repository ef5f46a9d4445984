"""
Normalization of directory contacts and calendar events into comparable records
"""

import re
import logging
from datetime import date
from typing import Iterable, Iterator, List, Optional

from .config import SyncConfig
from .description import compose
from .models import (
    AnniversaryKind,
    AnniversaryRecord,
    CalendarRecord,
    Contact,
    FetchFailure,
)

logger = logging.getLogger(__name__)

IDENTITY_TAG_PATTERN = re.compile(r'people/c\d+')


def extract_identity_tag(text: Optional[str]) -> Optional[str]:
    """Return the first people/c<digits> reference in text, if any"""
    if not text:
        return None
    match = IDENTITY_TAG_PATTERN.search(text)
    return match.group(0) if match else None


def birthday_title(config: SyncConfig, display_name: str) -> str:
    return f"{config.birthday_title_prefix} {display_name}"


def event_title(event_type: str, display_name: str) -> str:
    return f"{event_type}: {display_name}"


def build_anniversary_records(contacts: Iterable[Contact], config: SyncConfig,
                              current_year: int) -> Iterator[AnniversaryRecord]:
    """Yield one record per contact birthday or named event with a month and day"""
    for contact in contacts:
        for birthday in contact.birthdays:
            if not birthday.is_recurring:
                logger.debug(f"Skipping incomplete birthday for {contact.display_name}: {birthday}")
                continue
            yield AnniversaryRecord(
                identity_tag=contact.id,
                kind=AnniversaryKind.BIRTHDAY,
                display_name=contact.display_name,
                title=birthday_title(config, contact.display_name),
                month_day=(birthday.month, birthday.day),
                birth_year=birthday.year,
                expected_description=compose(config, contact.id, birthday.year,
                                             contact.display_name, current_year)
            )

        for event_type, when in contact.events:
            if not when.is_recurring:
                logger.debug(f"Skipping incomplete {event_type} date for {contact.display_name}: {when}")
                continue
            yield AnniversaryRecord(
                identity_tag=contact.id,
                kind=AnniversaryKind.NAMED_EVENT,
                display_name=contact.display_name,
                title=event_title(event_type, contact.display_name),
                month_day=(when.month, when.day),
                event_type=event_type,
                expected_description=compose(config, contact.id)
            )


def fetch_all_contacts(directory) -> List[Contact]:
    """Collect contacts from every page the directory returns

    A failing page ends the fetch; whatever was collected before it is returned.
    """
    contacts = []
    page_token = None
    seen_tokens = set()

    while True:
        try:
            page = directory.list_contacts(page_token)
        except Exception as e:
            failure = FetchFailure(f"Contact page {page_token or 'first'} failed: {e}")
            logger.error(f"{failure}; continuing with {len(contacts)} contacts")
            break

        contacts.extend(page.entries)
        page_token = page.next_page_token
        if not page_token:
            break
        if page_token in seen_tokens:
            logger.warning(f"Directory repeated page token {page_token}, stopping")
            break
        seen_tokens.add(page_token)

    logger.info(f"Fetched {len(contacts)} contacts from directory")
    return contacts


def extract_calendar_records(calendar, year: int) -> List[CalendarRecord]:
    """List managed events starting in the given year"""
    start = date(year, 1, 1)
    end = date(year + 1, 1, 1)

    try:
        events = calendar.list_events(start, end)
    except Exception as e:
        failure = FetchFailure(f"Listing calendar events for {year} failed: {e}")
        logger.error(str(failure))
        return []

    records = []
    seen_handles = set()
    for event in events:
        # Servers may return neighbouring occurrences around the window edges
        if not start <= event.start_date < end:
            logger.debug(f"Ignoring occurrence outside {year}: {event.title} on {event.start_date}")
            continue
        if event.id in seen_handles:
            logger.debug(f"Ignoring repeated occurrence of {event.title}")
            continue
        identity_tag = extract_identity_tag(event.description)
        if identity_tag is None:
            logger.debug(f"Ignoring unmanaged event: {event.title}")
            continue
        seen_handles.add(event.id)
        records.append(CalendarRecord(
            event_handle=event.id,
            identity_tag=identity_tag,
            title=event.title,
            month_day=(event.start_date.month, event.start_date.day),
            current_description=event.description or ''
        ))

    logger.info(f"Found {len(records)} managed events out of {len(events)} in {year}")
    return records
