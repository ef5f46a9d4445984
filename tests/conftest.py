"""
Pytest configuration and shared fixtures.
"""

import pytest

from anniversync.config import SyncConfig
from anniversync.models import Contact, PartialDate

from fakes import FakeCalendar


@pytest.fixture
def config():
    """Default German templates."""
    return SyncConfig()


@pytest.fixture
def jane():
    return Contact(
        id="people/c123",
        display_name="Jane Doe",
        birthdays=[PartialDate(1990, 3, 15)],
    )


@pytest.fixture
def fake_calendar():
    return FakeCalendar()


@pytest.fixture
def jane_description_2025():
    return "Kontakt-ID: people/c123\nGeboren: 1990\nIn 2025 wird Jane Doe 35 Jahre alt."
