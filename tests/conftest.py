"""Pytest configuration and fixtures for VSS client tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

import pytest

VSS_ENV_VARS = (
    "VSS_BASE_URL",
    "VSS_TIMEOUT_SECONDS",
    "VSS_MAX_ATTEMPTS",
    "VSS_RETRY_BASE_DELAY_SECONDS",
    "VSS_RETRY_MAX_DELAY_SECONDS",
    "VSS_RETRY_MAX_JITTER_SECONDS",
    "VSS_OTEL_ENABLED",
    "VSS_OTEL_TEST_CAPTURE",
    "VSS_OTEL_EXPORTER",
)


@pytest.fixture(autouse=True)
def clean_vss_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test with no VSS_* variables set.

    Keeps developer shells from leaking configuration into tests.
    """
    for name in VSS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def base_url() -> str:
    """Return the VSS endpoint used by client tests."""
    return "https://vss.test/vss"
