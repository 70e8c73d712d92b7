"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest

_STOMP_ENV_PREFIX = "STOMP_"


@pytest.fixture(autouse=True)
def _isolate_stomp_environment(monkeypatch):
    """Keep developer STOMP_* and LOG_* settings out of the tests."""
    for name in list(os.environ):
        if name.startswith(_STOMP_ENV_PREFIX) or name in ("LOG_DIRECTORY", "LOG_APPEND"):
            monkeypatch.delenv(name, raising=False)
