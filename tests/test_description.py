import pytest

from anniversync.config import SyncConfig
from anniversync.description import compose


def test_compose_with_birth_year(config, jane_description_2025):
    assert compose(config, "people/c123", 1990, "Jane Doe", 2025) == jane_description_2025


def test_age_follows_current_year(config):
    text = compose(config, "people/c123", 1990, "Jane Doe", 2026)
    assert text.endswith("In 2026 wird Jane Doe 36 Jahre alt.")


def test_without_birth_year_only_identity_line(config):
    assert compose(config, "people/c7") == "Kontakt-ID: people/c7"
    assert compose(config, "people/c7", None, "Jane Doe", 2025) == "Kontakt-ID: people/c7"


def test_custom_fragments():
    config = SyncConfig(contact_id_prefix="ID ", born_prefix=" | born ",
                        age_start=" | ", age_middle=": ", age_end=" years")
    assert compose(config, "people/c1", 2000, "Max", 2024) == "ID people/c1 | born 2000 | 2024: Max 24 years"


def test_birth_year_requires_current_year(config):
    with pytest.raises(ValueError):
        compose(config, "people/c1", 2000, "Max")
