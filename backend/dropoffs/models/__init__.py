"""Models subpackage — connection pool for the PostGIS store."""

from dropoffs.models.database import (
    ConnectionPool,
    PoolConfig,
    build_database_url,
    get_pool,
    init_connection_pool,
)

__all__ = [
    "ConnectionPool",
    "PoolConfig",
    "build_database_url",
    "get_pool",
    "init_connection_pool",
]
