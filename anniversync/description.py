"""
Description text for anniversary events

The exact concatenation below is what change detection compares against,
so any whitespace or punctuation change causes an update on the next run.
"""

from typing import Optional

from .config import SyncConfig


def compose(config: SyncConfig, identity_tag: str, birth_year: Optional[int] = None,
            display_name: Optional[str] = None, current_year: Optional[int] = None) -> str:
    """Build the description for an event, including the age line when the birth year is known"""
    text = f"{config.contact_id_prefix}{identity_tag}"
    if birth_year is None:
        return text

    if current_year is None:
        raise ValueError("current_year is required when birth_year is given")

    age = current_year - birth_year
    text += f"{config.born_prefix}{birth_year}"
    text += f"{config.age_start}{current_year}{config.age_middle}{display_name or ''} {age}{config.age_end}"
    return text
