"""Shared test fixtures for the OTA assistant test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest

from ota_assistant.services.http_client import JsonHttpClient


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py picks up an offline setup:
    mock model backend, no provider keys, metrics kept in memory.
    """
    os.environ["LLM_PROVIDER"] = "mock"
    os.environ["METRICS_ENABLED"] = "false"
    for key in ("GEMINI_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "AVIATIONSTACK_API_KEY"):
        os.environ[key] = ""


@pytest.fixture
def mock_http():
    """A JsonHttpClient stand-in; set ``.get`` / ``.post`` return values per test."""
    return MagicMock(spec=JsonHttpClient)
