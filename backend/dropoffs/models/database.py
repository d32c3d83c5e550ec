"""
Async SQLAlchemy connection pool for the PostGIS store.

Connection Modes
----------------
``init_connection_pool()`` branches on a single flag.  When ``DB_TCP_HOST``
is set it builds a network URL and requires ``DB_USER``, ``DB_PASS``,
``DB_TCP_HOST``, ``DB_PORT`` and ``DB_NAME``; every missing value is
reported together in one ``ConfigurationError``.  Without it the pool
connects through the unix socket directory ``DB_SOCKET_DIR`` and needs no
network credentials.

Pool Sizing
-----------
``PoolConfig`` maps Go-style idle/open/lifetime limits onto SQLAlchemy's
``QueuePool``:

- ``pool_size``    = ``max_idle``  (connections kept after check-in)
- ``max_overflow`` = ``max_open - max_idle``  (closed on check-in)
- ``pool_recycle`` = ``max_lifetime_seconds``

``max_idle`` must be at least 1.  These bounds are the only concurrency control on the store.

Lifecycle
---------
The pool is built once in the FastAPI lifespan, stored on
``app.state.pool`` and disposed at shutdown.  Handlers receive it through
the ``get_pool`` dependency; nothing here is a module-level singleton.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from dropoffs.config import Settings
from dropoffs.errors import ConfigurationError, StoreConnectionError

logger = logging.getLogger(__name__)

DRIVER = "postgresql+asyncpg"

# Setting name → environment variable, for network-endpoint mode.
_TCP_REQUIRED = {
    "db_user": "DB_USER",
    "db_pass": "DB_PASS",
    "db_tcp_host": "DB_TCP_HOST",
    "db_port": "DB_PORT",
    "db_name": "DB_NAME",
}


@dataclass(frozen=True, slots=True)
class PoolConfig:
    """Bounds applied to the connection pool."""

    max_idle: int = 5
    max_open: int = 7
    max_lifetime_seconds: int = 1800
    acquire_timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.max_open <= 0:
            raise ValueError(f"max_open must be > 0, got {self.max_open}")
        # QueuePool reads pool_size=0 as "unbounded", so zero idle is refused.
        if not 1 <= self.max_idle <= self.max_open:
            raise ValueError(
                f"max_idle must be between 1 and max_open ({self.max_open}), "
                f"got {self.max_idle}"
            )
        if self.max_lifetime_seconds <= 0:
            raise ValueError(
                f"max_lifetime_seconds must be > 0, got {self.max_lifetime_seconds}"
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> PoolConfig:
        return cls(
            max_idle=settings.db_max_idle_conns,
            max_open=settings.db_max_open_conns,
            max_lifetime_seconds=settings.db_conn_max_lifetime,
            acquire_timeout_seconds=settings.db_pool_timeout,
        )

    def engine_options(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``."""
        return {
            "pool_size": self.max_idle,
            "max_overflow": self.max_open - self.max_idle,
            "pool_recycle": self.max_lifetime_seconds,
            "pool_timeout": self.acquire_timeout_seconds,
            "pool_pre_ping": True,
        }


def build_database_url(settings: Settings) -> URL:
    """
    Assemble the asyncpg URL for the configured mode.

    Raises
    ------
    ConfigurationError
        If network mode is selected and any credential is absent.
    """
    if settings.use_tcp:
        missing = [
            env for field, env in _TCP_REQUIRED.items()
            if getattr(settings, field) in (None, "")
        ]
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} environment variable(s) not set",
                missing=missing,
            )
        return URL.create(
            DRIVER,
            username=settings.db_user,
            password=settings.db_pass,
            host=settings.db_tcp_host,
            port=settings.db_port,
            database=settings.db_name,
        )

    # asyncpg treats a directory passed as ``host`` as a unix socket path.
    return URL.create(
        DRIVER,
        username=settings.db_user or None,
        password=settings.db_pass or None,
        database=settings.db_name or None,
        query={"host": settings.db_socket_dir},
    )


class ConnectionPool:
    """
    Owns the async engine and hands out pooled connections.

    Each request checks out one connection via ``connect()`` and returns it
    on exit.  The engine's own pool is thread- and task-safe, so no extra
    locking happens here.
    """

    def __init__(self, engine: AsyncEngine, config: PoolConfig) -> None:
        self.engine = engine
        self.config = config

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        async with self.engine.connect() as conn:
            yield conn

    async def verify(self) -> str:
        """
        Open one connection and return the PostGIS version.

        Raises
        ------
        StoreConnectionError
            If the store is unreachable or PostGIS is not installed.
        """
        try:
            async with self.connect() as conn:
                result = await conn.execute(text("SELECT PostGIS_Version()"))
                version = result.scalar()
        except (SQLAlchemyError, OSError) as exc:
            raise StoreConnectionError(f"unable to connect: {exc}") from exc
        logger.info("PostGIS connected (version=%s)", version)
        return version

    def status(self) -> dict[str, int]:
        """Snapshot of the underlying ``QueuePool`` counters."""
        pool = self.engine.pool
        return {
            "max_idle": self.config.max_idle,
            "max_open": self.config.max_open,
            "checked_in": pool.checkedin(),
            "checked_out": pool.checkedout(),
            "overflow": max(pool.overflow(), 0),
        }

    async def dispose(self) -> None:
        await self.engine.dispose()


def init_connection_pool(settings: Settings, *, echo: bool | None = None) -> ConnectionPool:
    """
    Create the connection pool for the configured mode.

    Raises
    ------
    ConfigurationError
        A credential required by the selected mode is missing, or the pool
        bounds are inconsistent.
    StoreConnectionError
        The engine could not be created from the assembled URL.
    """
    url = build_database_url(settings)
    try:
        config = PoolConfig.from_settings(settings)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    try:
        engine = create_async_engine(
            url,
            echo=settings.debug if echo is None else echo,
            **config.engine_options(),
        )
    except (ArgumentError, NoSuchModuleError, ImportError) as exc:
        raise StoreConnectionError(f"create_async_engine: {exc}") from exc

    logger.info(
        "Connection pool created (mode=%s, max_idle=%d, max_open=%d, max_lifetime=%ds)",
        "tcp" if settings.use_tcp else "unix-socket",
        config.max_idle,
        config.max_open,
        config.max_lifetime_seconds,
    )
    return ConnectionPool(engine, config)


def get_pool(request: Request) -> ConnectionPool:
    """FastAPI dependency — the pool created during startup."""
    return request.app.state.pool
