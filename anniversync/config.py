"""
Configuration management and environment validation
"""

import os
import logging
from dataclasses import dataclass

REQUIRED_VARS = [
    'CARDAV_SERVER_URL',
    'CARDAV_USERNAME',
    'CARDAV_PASSWORD',
    'CALDAV_SERVER_URL',
    'CALDAV_USERNAME',
    'CALDAV_PASSWORD'
]


@dataclass(frozen=True)
class SyncConfig:
    """Immutable settings that shape titles and descriptions"""
    calendar_id: str = ''
    report_recipient: str = ''
    birthday_title_prefix: str = 'Geburtstag'
    anniversary_label: str = 'Jahrestag'
    contact_id_prefix: str = 'Kontakt-ID: '
    born_prefix: str = '\nGeboren: '
    age_start: str = '\nIn '
    age_middle: str = ' wird '
    age_end: str = ' Jahre alt.'
    dry_run: bool = False


@dataclass(frozen=True)
class SmtpConfig:
    """Mail server settings for the sync report"""
    host: str = 'localhost'
    port: int = 587
    username: str = ''
    password: str = ''
    use_tls: bool = True
    sender: str = ''


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() == 'true'


def _env_fragment(name: str, default: str) -> str:
    # Literal "\n" in the variable becomes a line break
    value = os.getenv(name)
    if value is None:
        return default
    return value.replace('\\n', '\n')


def setup_logging():
    """Setup logging configuration from environment variables"""
    log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_to_file = _env_flag('LOG_TO_FILE')
    log_file = os.getenv('LOG_FILE', '/var/log/anniversync/sync.log')
    debug_mode = _env_flag('DEBUG')

    if debug_mode:
        log_level = 'DEBUG'

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    simple_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )

    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(simple_formatter)
    handlers.append(console_handler)

    if log_to_file:
        try:
            os.makedirs(os.path.dirname(log_file), exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(detailed_formatter)
            handlers.append(file_handler)
        except (OSError, PermissionError) as e:
            print(f"Warning: Could not create log file: {e}")

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=handlers,
        force=True
    )

    # Suppress some noisy third-party loggers unless in debug mode
    if not debug_mode:
        for name in ('requests', 'urllib3', 'caldav'):
            logging.getLogger(name).setLevel(logging.WARNING)


def validate_environment():
    """Validate required environment variables"""
    logger = logging.getLogger(__name__)

    missing_vars = [var for var in REQUIRED_VARS if not os.getenv(var)]

    if missing_vars:
        logger.error(f"Missing required environment variables: {', '.join(missing_vars)}")
        return False

    logger.info("Environment validation passed")
    return True


def get_sync_config() -> SyncConfig:
    """Get title, description and target settings from environment"""
    defaults = SyncConfig()
    return SyncConfig(
        calendar_id=os.getenv('CALENDAR_ID', defaults.calendar_id),
        report_recipient=os.getenv('REPORT_RECIPIENT', defaults.report_recipient).strip(),
        birthday_title_prefix=os.getenv('BIRTHDAY_TITLE_PREFIX', defaults.birthday_title_prefix),
        anniversary_label=os.getenv('ANNIVERSARY_LABEL', defaults.anniversary_label),
        contact_id_prefix=_env_fragment('DESCRIPTION_CONTACT_ID_PREFIX', defaults.contact_id_prefix),
        born_prefix=_env_fragment('DESCRIPTION_BORN_PREFIX', defaults.born_prefix),
        age_start=_env_fragment('DESCRIPTION_AGE_START', defaults.age_start),
        age_middle=_env_fragment('DESCRIPTION_AGE_MIDDLE', defaults.age_middle),
        age_end=_env_fragment('DESCRIPTION_AGE_END', defaults.age_end),
        dry_run=_env_flag('DRY_RUN')
    )


def get_smtp_config() -> SmtpConfig:
    """Get report mail settings from environment"""
    username = os.getenv('SMTP_USERNAME', '')
    return SmtpConfig(
        host=os.getenv('SMTP_HOST', 'localhost'),
        port=int(os.getenv('SMTP_PORT', '587')),
        username=username,
        password=os.getenv('SMTP_PASSWORD', ''),
        use_tls=_env_flag('SMTP_USE_TLS', 'true'),
        sender=os.getenv('SMTP_FROM', username)
    )


def get_scheduler_config():
    """Get scheduler configuration from environment"""
    return {
        'sync_schedule': os.getenv('SYNC_SCHEDULE', '0 6 * * *'),
        'sync_interval_hours': int(os.getenv('SYNC_INTERVAL_HOURS', '0')),
        'startup_delay': int(os.getenv('STARTUP_DELAY', '30'))
    }
