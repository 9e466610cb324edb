"""
Root-level shared test fixtures.

Inherited by the package test suites and the top-level tests/ directory.
"""

from __future__ import annotations

import pytest

DVLS_ENV_VARS = [
    "DVLS_BASE_URI",
    "DVLS_APP_KEY",
    "DVLS_APP_SECRET",
    "DVLS_REQUEST_TIMEOUT",
    "DVLS_VERIFY_TLS",
    "DVLS_REQUEUE_DURATION",
    "DVLS_DEGRADED_REQUEUE_DURATION",
    "DVLS_WATCH_NAMESPACE",
    "DVLS_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove operator env vars that leak in from the host."""
    for key in DVLS_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
