"""
Diff between contact-derived anniversaries and existing calendar events

Records are bucketed by (identity tag, title). Inside a bucket two records
describe the same anniversary when month and day agree; the year never
takes part in matching.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from .models import AnniversaryRecord, CalendarRecord, Create, Delete, SyncAction, Update

logger = logging.getLogger(__name__)

RecordKey = Tuple[str, str]


def record_key(record) -> RecordKey:
    return (record.identity_tag, record.title)


def same_anniversary_date(left, right) -> bool:
    return tuple(left.month_day) == tuple(right.month_day)


def _is_match(anniversary, existing) -> bool:
    if same_anniversary_date(anniversary, existing):
        return True
    # Leap-day series occur on Feb 28 in common years
    return tuple(anniversary.month_day) == (2, 29) and tuple(existing.month_day) == (2, 28)


def _bucket(records) -> Dict[RecordKey, list]:
    buckets = defaultdict(list)
    for record in records:
        buckets[record_key(record)].append(record)
    return buckets


def reconcile(anniversaries: Iterable[AnniversaryRecord],
              calendar_records: Iterable[CalendarRecord]) -> List[SyncAction]:
    """Compute the actions that make the calendar mirror the anniversaries

    Creates and updates come first, in anniversary order, followed by deletes
    in calendar order. When several calendar events share key and date, the
    first one listed is the match and the others are left alone.
    """
    anniversaries = list(anniversaries)
    calendar_records = list(calendar_records)
    calendar_by_key = _bucket(calendar_records)
    anniversaries_by_key = _bucket(anniversaries)

    actions: List[SyncAction] = []
    claimed_handles = set()
    updates = 0

    for anniversary in anniversaries:
        candidates = calendar_by_key.get(record_key(anniversary), [])
        match = next((c for c in candidates if _is_match(anniversary, c)), None)

        if match is None:
            actions.append(Create(anniversary))
            continue
        if match.event_handle in claimed_handles:
            # Duplicate directory entries; the first one owns the event
            logger.debug(f"Event for {anniversary.title} already claimed by an earlier entry")
            continue

        claimed_handles.add(match.event_handle)
        if match.current_description == anniversary.expected_description:
            logger.debug(f"In sync: {anniversary.title}")
        else:
            updates += 1
            actions.append(Update(match.event_handle, anniversary.expected_description, match.title))

    deleted_handles = set()
    for existing in calendar_records:
        if existing.event_handle in deleted_handles:
            continue
        candidates = anniversaries_by_key.get(record_key(existing), [])
        if not any(_is_match(a, existing) for a in candidates):
            deleted_handles.add(existing.event_handle)
            actions.append(Delete(existing.event_handle, existing.title))

    creates = sum(isinstance(a, Create) for a in actions)
    logger.info(f"Planned {creates} create(s), {updates} update(s), {len(deleted_handles)} delete(s)")
    return actions
