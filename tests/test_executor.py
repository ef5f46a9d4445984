from datetime import date

import pytest

from anniversync.executor import LEAP_DAY_RULE, YEARLY_RULE, ActionExecutor, series_start
from anniversync.models import AnniversaryKind, AnniversaryRecord, Create, Delete, Update


def birthday(title="Geburtstag Jane Doe", month_day=(3, 15), description="Kontakt-ID: people/c123"):
    return AnniversaryRecord("people/c123", AnniversaryKind.BIRTHDAY, "Jane Doe", title,
                             month_day, description, birth_year=1990)


@pytest.mark.parametrize("month_day, year, expected", [
    ((3, 15), 2025, (date(2025, 3, 15), YEARLY_RULE)),
    ((2, 29), 2024, (date(2024, 2, 29), LEAP_DAY_RULE)),
    ((2, 29), 2025, (date(2025, 2, 28), LEAP_DAY_RULE)),
])
def test_series_start(month_day, year, expected):
    assert series_start(*month_day, year) == expected


def test_create_adds_yearly_series(fake_calendar):
    report = ActionExecutor(fake_calendar, 2025).apply([Create(birthday())])

    assert report.created == ["Geburtstag Jane Doe"]
    (series,) = fake_calendar.events.values()
    assert series == {
        'title': "Geburtstag Jane Doe",
        'start': date(2025, 3, 15),
        'description': "Kontakt-ID: people/c123",
        'rrule': YEARLY_RULE,
    }


def test_update_changes_only_description(fake_calendar):
    uid = fake_calendar.add_series("Geburtstag Jane Doe", date(2020, 3, 15), "old")

    report = ActionExecutor(fake_calendar, 2025).apply([Update(uid, "new", "Geburtstag Jane Doe")])

    assert report.updated == ["Geburtstag Jane Doe"]
    assert fake_calendar.events[uid]['description'] == "new"
    assert fake_calendar.events[uid]['title'] == "Geburtstag Jane Doe"
    assert fake_calendar.events[uid]['start'] == date(2020, 3, 15)


def test_delete_removes_event(fake_calendar):
    uid = fake_calendar.add_series("Geburtstag Unknown", date(2020, 1, 1), "Kontakt-ID: people/c999")

    report = ActionExecutor(fake_calendar, 2025).apply([Delete(uid, "Geburtstag Unknown")])

    assert report.deleted == ["Geburtstag Unknown"]
    assert fake_calendar.events == {}


def test_delete_of_missing_event_is_noop(fake_calendar):
    report = ActionExecutor(fake_calendar, 2025).apply([Delete("gone", "Geburtstag Ghost")])
    assert report.deleted == ["Geburtstag Ghost"]


def test_failures_are_dropped_and_run_continues(fake_calendar):
    fake_calendar.fail_create.add("Geburtstag Broken")
    stale = fake_calendar.add_series("Geburtstag Stale", date(2020, 5, 5), "old")
    fake_calendar.fail_update.add(stale)

    actions = [
        Create(birthday(title="Geburtstag Broken")),
        Update(stale, "new", "Geburtstag Stale"),
        Update("missing", "new", "Geburtstag Missing"),
        Create(birthday(title="Geburtstag Fine")),
    ]
    report = ActionExecutor(fake_calendar, 2025).apply(actions)

    assert report.created == ["Geburtstag Fine"]
    assert report.updated == []
    assert fake_calendar.events[stale]['description'] == "old"


def test_dry_run_touches_nothing(fake_calendar):
    uid = fake_calendar.add_series("Geburtstag Unknown", date(2020, 1, 1), "x")

    report = ActionExecutor(fake_calendar, 2025, dry_run=True).apply(
        [Create(birthday()), Update(uid, "y", "t"), Delete(uid, "t")]
    )

    assert report.total == 0
    assert fake_calendar.events[uid]['description'] == "x"
