"""
Shared fixtures for the drop-off locator test suite.

This conftest provides:
- Settings built from a clean environment (no host DB_* leakage)
- A mock ConnectionPool whose connection returns a canned result
- Sample GeoJSON documents
"""
from __future__ import annotations

import json
import os
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

_ENV_PREFIXES = (
    "APP_", "DEBUG", "LOG_", "DB_", "DROPOFF_", "SEARCH_", "CANDIDATE_",
    "QUERY_", "STATIC_", "CORS_", "HOST", "PORT",
)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
def make_settings(**overrides):
    """Create a fresh Settings instance from a clean environment.

    ``_env_file=None`` keeps a developer's ``.env`` out of the assertions.
    """
    env = {k.upper(): str(v) for k, v in overrides.items()}
    clean_env = {
        k: v for k, v in os.environ.items()
        if not k.upper().startswith(_ENV_PREFIXES)
    }
    clean_env.update(env)
    with patch.dict(os.environ, clean_env, clear=True):
        from dropoffs.config import Settings
        return Settings(_env_file=None)


TCP_ENV = {
    "db_tcp_host": "10.0.0.5",
    "db_user": "recycler",
    "db_pass": "s3cret",
    "db_port": "5432",
    "db_name": "dropoffs",
}


@pytest.fixture()
def settings():
    return make_settings(db_verify_on_startup="false", static_dir="/nonexistent")


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------
EMPTY_COLLECTION = '{"type": "FeatureCollection", "features": []}'


def make_collection(*features: dict) -> str:
    return json.dumps({"type": "FeatureCollection", "features": list(features)})


def make_feature(fid: int, lng: float, lat: float, distance: float, **props) -> dict:
    return {
        "type": "Feature",
        "id": fid,
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
        "properties": {"distance": distance, **props},
    }


# ---------------------------------------------------------------------------
# Pool mocking
# ---------------------------------------------------------------------------
def make_result(value) -> MagicMock:
    """A result whose first row carries ``value`` (or no row if ``...``)."""
    result = MagicMock()
    result.first.return_value = None if value is ... else (value,)
    return result


def make_pool(conn: AsyncMock | None = None) -> MagicMock:
    """A ConnectionPool stand-in whose ``connect()`` yields ``conn``."""
    conn = conn or AsyncMock()
    pool = MagicMock()
    pool.conn = conn

    @asynccontextmanager
    async def connect():
        yield conn

    pool.connect = connect
    pool.status.return_value = {
        "max_idle": 5, "max_open": 7,
        "checked_in": 0, "checked_out": 0, "overflow": 0,
    }
    pool.dispose = AsyncMock()
    return pool


@pytest.fixture()
def mock_conn():
    return AsyncMock()


@pytest.fixture()
def mock_pool(mock_conn):
    return make_pool(mock_conn)
