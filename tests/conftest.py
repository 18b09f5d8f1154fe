"""Pytest hooks and fixtures."""

import os
import sys

import pytest
from loguru import logger

from apienvelope.config import clear_config_cache


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Point HOME at a temp dir so no user config leaks into tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in list(os.environ):
        if name.startswith("APIENVELOPE_"):
            monkeypatch.delenv(name)
    clear_config_cache()
    yield home
    clear_config_cache()


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test, with no other sinks."""
    messages: list[str] = []
    logger.remove()
    logger.add(messages.append, level="DEBUG", format="{level}:{message}")
    yield messages
    logger.remove()
    logger.add(sys.stderr)
