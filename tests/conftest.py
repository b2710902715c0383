"""Shared test fixtures and hypothesis strategies for the edge service test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest
from hypothesis import strategies as st

from wpcloudsql.config.settings import GatewaySettings


# ---------------------------------------------------------------------------
# Ensure required env vars are set for GatewaySettings in tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set minimal env vars so GatewaySettings can be instantiated in tests."""
    defaults = {
        "WP_DB_PASSWORD": "test-password",
    }
    for key, value in defaults.items():
        if key not in os.environ:
            monkeypatch.setenv(key, value)


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> GatewaySettings:
    """Test settings with safe defaults."""
    return GatewaySettings(
        db_password="test-password",
        db_retry_attempts=2,
        db_retry_delay=0,
        health_check_timeout_seconds=2.0,
    )


@pytest.fixture
def private_settings() -> GatewaySettings:
    return GatewaySettings(
        db_password="test-password",
        db_connection_type="private",
        db_private_host="10.20.0.3",
    )


@pytest.fixture
def fake_database() -> MagicMock:
    """Stand-in for wpcloudsql.db.Database that never touches the network."""
    database = MagicMock()
    database.probe.return_value = 1
    return database


# ---------------------------------------------------------------------------
# Hypothesis strategies (reusable across property tests)
# ---------------------------------------------------------------------------

octets = st.integers(min_value=0, max_value=255)

# 10.0.0.0/8, 172.16.0.0/12 and 192.168.0.0/16 addresses
private_ipv4 = st.one_of(
    st.tuples(octets, octets, octets).map(lambda t: f"10.{t[0]}.{t[1]}.{t[2]}"),
    st.tuples(st.integers(16, 31), octets, octets).map(lambda t: f"172.{t[0]}.{t[1]}.{t[2]}"),
    st.tuples(octets, octets).map(lambda t: f"192.168.{t[0]}.{t[1]}"),
)

ports = st.integers(min_value=1, max_value=65535)

# Request paths that are not the health check path
other_paths = st.from_regex(r"/[a-z0-9\-_/]{0,30}", fullmatch=True).filter(
    lambda p: p != "/health-check" and "//" not in p
)

# Probe results other than a successful SELECT 1
failed_probe_results = st.one_of(
    st.none(),
    st.booleans(),
    st.integers().filter(lambda n: n != 1),
    st.text(max_size=10).filter(lambda s: s != "1"),
    st.floats(allow_nan=False),
)
