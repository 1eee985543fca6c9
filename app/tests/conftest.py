import sys
from pathlib import Path

import pytest
import structlog

# Ensure the application package root is on sys.path so importing application
# modules (e.g. `infrastructure.notifications`) works during pytest collection
# regardless of the directory pytest was invoked from.
project_root = str(Path(__file__).resolve().parents[1])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from infrastructure.services.providers import get_settings  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external services")


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Each test starts from freshly loaded settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clear_log_context():
    """Drop structlog context vars left behind by a failing test."""
    yield
    structlog.contextvars.clear_contextvars()
