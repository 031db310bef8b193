import os
from unittest.mock import patch

import pytest
import structlog

# Settings read by the config dataclasses; cleared so a local .env cannot leak in.
BROKER_ENV_PREFIXES = ("TB_", "LOG_")


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo structlog.configure() calls made by the code under test."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def clean_env():
    """Environment without any broker settings."""
    env = {
        key: value
        for key, value in os.environ.items()
        if not key.startswith(BROKER_ENV_PREFIXES)
    }
    with patch.dict(os.environ, env, clear=True):
        yield env
