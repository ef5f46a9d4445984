"""
Data types shared by the directory, calendar and reconciliation layers
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Tuple, Union

MonthDay = Tuple[int, int]


class SyncError(Exception):
    """Base class for recoverable sync errors"""


class FetchFailure(SyncError):
    """Directory or calendar listing failed"""


class ActionFailure(SyncError):
    """A single create/update/delete against the calendar failed"""


class ReportFailure(SyncError):
    """The report email could not be sent"""


@dataclass(frozen=True)
class PartialDate:
    """A vCard date where any of the parts may be missing"""
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None

    @property
    def is_recurring(self) -> bool:
        return self.month is not None and self.day is not None


@dataclass
class Contact:
    id: str
    display_name: str
    birthdays: List[PartialDate] = field(default_factory=list)
    # (event type, date) pairs
    events: List[Tuple[str, PartialDate]] = field(default_factory=list)


@dataclass
class ContactPage:
    entries: List[Contact]
    next_page_token: Optional[str] = None


@dataclass(frozen=True)
class CalendarEvent:
    """An event as listed by the calendar service"""
    id: str
    title: str
    start_date: date
    description: str = ''


class AnniversaryKind(Enum):
    BIRTHDAY = 'birthday'
    NAMED_EVENT = 'named_event'


@dataclass(frozen=True)
class AnniversaryRecord:
    identity_tag: str
    kind: AnniversaryKind
    display_name: str
    title: str
    month_day: MonthDay
    expected_description: str
    birth_year: Optional[int] = None
    event_type: Optional[str] = None


@dataclass(frozen=True)
class CalendarRecord:
    event_handle: str
    identity_tag: str
    title: str
    month_day: MonthDay
    current_description: str


@dataclass(frozen=True)
class Create:
    record: AnniversaryRecord

    @property
    def title(self) -> str:
        return self.record.title


@dataclass(frozen=True)
class Update:
    event_handle: str
    new_description: str
    title: str = ''


@dataclass(frozen=True)
class Delete:
    event_handle: str
    title: str = ''


SyncAction = Union[Create, Update, Delete]


@dataclass
class SyncReport:
    """Titles of the calendar entries touched during one run"""
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted)
