"""Pytest configuration shared by the whole suite."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Console-script pytest runs do not always put the project root on sys.path.
_REPO_ROOT = str(Path(__file__).resolve().parent.parent)
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from citycatalog.settings import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings_cache() -> Iterator[None]:
    """Keep ``get_settings`` from leaking environment overrides across tests."""

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
