import dataclasses

import pytest

from anniversync.config import (
    REQUIRED_VARS,
    SyncConfig,
    get_scheduler_config,
    get_smtp_config,
    get_sync_config,
    validate_environment,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in REQUIRED_VARS + [
        'CALENDAR_ID', 'REPORT_RECIPIENT', 'BIRTHDAY_TITLE_PREFIX', 'ANNIVERSARY_LABEL',
        'DESCRIPTION_CONTACT_ID_PREFIX', 'DESCRIPTION_BORN_PREFIX', 'DESCRIPTION_AGE_START',
        'DESCRIPTION_AGE_MIDDLE', 'DESCRIPTION_AGE_END', 'DRY_RUN',
        'SMTP_HOST', 'SMTP_PORT', 'SMTP_USERNAME', 'SMTP_FROM', 'SMTP_USE_TLS',
        'SYNC_SCHEDULE', 'SYNC_INTERVAL_HOURS', 'STARTUP_DELAY',
    ]:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    assert get_sync_config() == SyncConfig()


def test_sync_config_is_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        get_sync_config().birthday_title_prefix = "Birthday"


def test_overrides_and_newline_escapes(monkeypatch):
    monkeypatch.setenv('BIRTHDAY_TITLE_PREFIX', 'Birthday')
    monkeypatch.setenv('DESCRIPTION_BORN_PREFIX', '\\nBorn: ')
    monkeypatch.setenv('REPORT_RECIPIENT', ' me@example.com ')
    monkeypatch.setenv('DRY_RUN', 'TRUE')

    config = get_sync_config()

    assert config.birthday_title_prefix == 'Birthday'
    assert config.born_prefix == '\nBorn: '
    assert config.report_recipient == 'me@example.com'
    assert config.dry_run is True


def test_smtp_sender_defaults_to_username(monkeypatch):
    monkeypatch.setenv('SMTP_USERNAME', 'bot@example.com')
    monkeypatch.setenv('SMTP_PORT', '465')

    smtp = get_smtp_config()

    assert smtp.sender == 'bot@example.com'
    assert smtp.port == 465
    assert smtp.use_tls is True


def test_scheduler_config(monkeypatch):
    monkeypatch.setenv('SYNC_INTERVAL_HOURS', '12')
    assert get_scheduler_config() == {
        'sync_schedule': '0 6 * * *',
        'sync_interval_hours': 12,
        'startup_delay': 30,
    }


def test_validate_environment(monkeypatch):
    assert validate_environment() is False
    for name in REQUIRED_VARS:
        monkeypatch.setenv(name, 'x')
    assert validate_environment() is True
