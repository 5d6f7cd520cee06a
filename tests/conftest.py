from __future__ import annotations

import pytest

from hook_harness.config import reset_config_cache
from hook_harness.logs import LOGGER


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config_cache()
    yield
    reset_config_cache()


@pytest.fixture(autouse=True)
def _detach_log_handlers():
    yield
    for handler in list(LOGGER.handlers):
        LOGGER.removeHandler(handler)
