"""
Pytest configuration for Django app tests.
"""

import pytest

from apps.web.dispatch.runtime_config import get_runtime_config


@pytest.fixture(autouse=True)
def fresh_runtime_config():
    """Each test reads config from its own (possibly overridden) settings."""
    get_runtime_config.cache_clear()
    yield
    get_runtime_config.cache_clear()
