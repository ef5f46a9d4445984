"""
Anniversary Sync Package
Keeps CalDAV birthday and anniversary events in line with CardDAV contacts
"""

__version__ = "1.0.0"
__description__ = "CardDAV to CalDAV anniversary synchronization service"

from .config import SyncConfig, setup_logging, validate_environment, get_sync_config, get_scheduler_config
from .description import compose
from .reconciler import reconcile
from .records import build_anniversary_records, extract_calendar_records, extract_identity_tag, fetch_all_contacts

__all__ = [
    'SyncConfig',
    'setup_logging',
    'validate_environment',
    'get_sync_config',
    'get_scheduler_config',
    'compose',
    'reconcile',
    'build_anniversary_records',
    'extract_calendar_records',
    'extract_identity_tag',
    'fetch_all_contacts'
]
