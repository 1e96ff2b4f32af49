"""
Shared fixtures: every test starts from the default configuration with empty
engine caches and an empty trace.
"""

import pytest

from runtime_stuff.config import configure
from runtime_stuff.core.logger import get_logger
from runtime_stuff.core.members import clear_caches


@pytest.fixture(autouse=True)
def fresh_engine():
    configure(None)
    clear_caches()
    get_logger().clear()
    yield
    configure(None)
    clear_caches()
    get_logger().clear()
