"""
Applies planned sync actions to the calendar
"""

import calendar as civil_calendar
import logging
from datetime import date
from typing import Iterable, Tuple

from .models import ActionFailure, Create, Delete, SyncAction, SyncReport, Update

logger = logging.getLogger(__name__)

YEARLY_RULE = 'FREQ=YEARLY'
# Feb 29 anniversaries fall on the last day of February in common years
LEAP_DAY_RULE = 'FREQ=YEARLY;BYMONTH=2;BYMONTHDAY=-1'


def series_start(month: int, day: int, year: int) -> Tuple[date, str]:
    """First occurrence and recurrence rule for an anniversary in the given year"""
    if (month, day) == (2, 29):
        start_day = 29 if civil_calendar.isleap(year) else 28
        return date(year, 2, start_day), LEAP_DAY_RULE
    return date(year, month, day), YEARLY_RULE


class ActionExecutor:
    """Runs create/update/delete actions one by one, skipping failures"""

    def __init__(self, calendar, current_year: int, dry_run: bool = False):
        self.calendar = calendar
        self.current_year = current_year
        self.dry_run = dry_run

    def apply(self, actions: Iterable[SyncAction]) -> SyncReport:
        report = SyncReport()

        for action in actions:
            if self.dry_run:
                logger.info(f"[dry-run] {type(action).__name__}: {action.title}")
                continue
            try:
                if isinstance(action, Create):
                    report.created.append(self._create(action))
                elif isinstance(action, Update):
                    report.updated.append(self._update(action))
                elif isinstance(action, Delete):
                    report.deleted.append(self._delete(action))
                else:
                    raise ActionFailure(f"Unknown action {action!r}")
            except Exception as e:
                failure = e if isinstance(e, ActionFailure) else ActionFailure(str(e))
                logger.error(f"{type(action).__name__} failed for '{action.title}': {failure}")

        logger.info(f"Applied {report.total} action(s): {len(report.created)} created, "
                    f"{len(report.updated)} updated, {len(report.deleted)} deleted")
        return report

    def _create(self, action: Create) -> str:
        record = action.record
        start, rule = series_start(*record.month_day, self.current_year)
        self.calendar.create_recurring_all_day_event(
            record.title, start, record.expected_description, rrule=rule
        )
        logger.info(f"Created '{record.title}' starting {start}")
        return record.title

    def _update(self, action: Update) -> str:
        handle = self.calendar.get_event_by_id(action.event_handle)
        if handle is None:
            raise ActionFailure(f"event {action.event_handle} no longer exists")
        self.calendar.set_description(handle, action.new_description)
        logger.info(f"Updated description of '{action.title}'")
        return action.title

    def _delete(self, action: Delete) -> str:
        handle = self.calendar.get_event_by_id(action.event_handle)
        if handle is None:
            logger.info(f"'{action.title}' already gone, nothing to delete")
            return action.title
        self.calendar.delete_event(handle)
        logger.info(f"Deleted '{action.title}'")
        return action.title
