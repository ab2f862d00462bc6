"""
Project-wide fixtures shared by every app's tests.
"""

import pytest


@pytest.fixture(autouse=True)
def _isolated_media(settings, tmp_path):
    """Attachment uploads land in a per-test directory."""
    settings.MEDIA_ROOT = tmp_path / "uploads"


@pytest.fixture(autouse=True)
def _clear_cache():
    """Presence counters live in the cache; start every test empty."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()
