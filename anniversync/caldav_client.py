"""
CalDAV client for listing and maintaining anniversary events
"""

import uuid
import logging
from datetime import date, datetime, timedelta
from typing import List
import vobject
import caldav
from dateutil import tz
from caldav.lib.error import NotFoundError

from .models import CalendarEvent, FetchFailure

logger = logging.getLogger(__name__)

UID_PREFIX = 'anniversync'


def build_event_ical(uid: str, title: str, start: date, description: str,
                     rrule: str = 'FREQ=YEARLY') -> str:
    """Serialize a recurring, all-day, non-blocking event"""
    cal = vobject.iCalendar()

    event = cal.add('vevent')
    event.add('uid').value = uid
    event.add('dtstamp').value = datetime.now(tz.tzutc()).replace(microsecond=0)
    event.add('dtstart').value = start
    event.add('dtend').value = start + timedelta(days=1)
    event.add('summary').value = title
    event.add('description').value = description
    event.add('transp').value = 'TRANSPARENT'
    event.add('rrule').value = rrule

    # Make it an all-day event
    event.dtstart.params['VALUE'] = ['DATE']
    event.dtend.params['VALUE'] = ['DATE']

    return cal.serialize()


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def events_from_ical(data: str) -> List[CalendarEvent]:
    """Turn the VEVENTs of a calendar object into CalendarEvent values"""
    cal = vobject.readOne(data)
    events = []
    for vevent in cal.contents.get('vevent', []):
        if not hasattr(vevent, 'uid') or not hasattr(vevent, 'dtstart'):
            continue
        events.append(CalendarEvent(
            id=vevent.uid.value,
            title=vevent.summary.value if hasattr(vevent, 'summary') else '',
            start_date=_as_date(vevent.dtstart.value),
            description=vevent.description.value if hasattr(vevent, 'description') else ''
        ))
    return events


class CalDAVClient:
    """Client for one calendar on a CalDAV server"""

    def __init__(self, server_url: str, username: str, password: str, calendar_id: str = ''):
        self.client = caldav.DAVClient(
            url=server_url,
            username=username,
            password=password
        )
        self.principal = self.client.principal()
        self.calendar = self._select_calendar(self.principal.calendars(), calendar_id)
        logger.info(f"Using calendar: {self.calendar.name}")

    @staticmethod
    def _select_calendar(calendars, calendar_id: str):
        if not calendars:
            raise FetchFailure("No calendars found")
        if not calendar_id:
            # Use first calendar by default
            return calendars[0]

        wanted = calendar_id.rstrip('/')
        for candidate in calendars:
            url = str(candidate.url).rstrip('/')
            if wanted in (candidate.name, url) or url.endswith('/' + wanted.strip('/')):
                return candidate
        raise FetchFailure(f"Calendar '{calendar_id}' not found")

    def list_events(self, start: date, end: date) -> List[CalendarEvent]:
        """List event occurrences starting within [start, end)"""
        results = self.calendar.search(
            start=datetime.combine(start, datetime.min.time()),
            end=datetime.combine(end, datetime.min.time()),
            event=True,
            expand=True
        )

        events = []
        for result in results:
            try:
                events.extend(events_from_ical(result.data))
            except Exception as e:
                logger.debug(f"Error parsing event {result.url}: {e}")
        logger.debug(f"Listed {len(events)} events between {start} and {end}")
        return events

    def create_recurring_all_day_event(self, title: str, start_date: date, description: str,
                                       rrule: str = 'FREQ=YEARLY') -> str:
        uid = f"{UID_PREFIX}-{uuid.uuid4()}"
        self.calendar.save_event(build_event_ical(uid, title, start_date, description, rrule))
        return uid

    def get_event_by_id(self, uid: str):
        """Look up the stored event series, or None once it is gone"""
        try:
            return self.calendar.event_by_uid(uid)
        except NotFoundError:
            return None

    def set_description(self, event, text: str):
        vevent = event.vobject_instance.vevent
        if hasattr(vevent, 'description'):
            vevent.description.value = text
        else:
            vevent.add('description').value = text
        event.save()

    def delete_event(self, event):
        event.delete()
