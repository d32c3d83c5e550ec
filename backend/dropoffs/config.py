"""
Drop-off locator — Configuration via pydantic-settings.

Environment variables override defaults.  The ``DB_TCP_HOST`` flag is the
switch between a network endpoint and the local unix socket; everything else
about the connection pool and the proximity search is tunable from here.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import ClassVar

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dropoffs.errors import ConfigurationError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseSettings):
    env_path: ClassVar[str] = str(Path(__file__).resolve().parents[2] / ".env")
    model_config = SettingsConfigDict(
        env_file=env_path,
        env_file_encoding="utf-8",
        # Ignore unrelated environment variables so loading the env_file
        # does not cause validation errors for unknown keys.
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────
    app_name: str = "Recycling Drop-offs"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080

    # ── Database (PostGIS) ─────────────────────────────────────────
    # When set, connect over TCP and require the full credential set.
    # Otherwise connect through the unix socket in ``db_socket_dir``.
    db_tcp_host: str | None = None
    db_user: str | None = None
    db_pass: str | None = None
    db_port: int | None = None
    db_name: str | None = None
    db_socket_dir: str = "/var/run/postgresql"
    db_verify_on_startup: bool = True

    # ── Connection pool ────────────────────────────────────────────
    db_max_idle_conns: int = Field(default=5, gt=0)
    db_max_open_conns: int = Field(default=7, gt=0)
    db_conn_max_lifetime: int = Field(default=1800, gt=0)
    db_pool_timeout: float = Field(default=30.0, gt=0)

    # ── Proximity search ───────────────────────────────────────────
    dropoff_table: str = "austinrecycling"
    dropoff_schema: str | None = None
    dropoff_id_column: str = "ogc_fid"
    dropoff_geometry_column: str = "wkb_geometry"
    search_radius_miles: float = Field(default=10, gt=0)
    candidate_limit: int = Field(default=25, gt=0)
    query_timeout_seconds: float = Field(default=10.0, gt=0)

    # ── Front end / CORS ───────────────────────────────────────────
    static_dir: Path = Path("static")
    cors_origins: str = "*"

    @field_validator(
        "dropoff_table",
        "dropoff_schema",
        "dropoff_id_column",
        "dropoff_geometry_column",
    )
    @classmethod
    def _check_identifier(cls, value: str | None) -> str | None:
        if value is not None and not _IDENTIFIER.match(value):
            raise ValueError(f"{value!r} is not a valid SQL identifier")
        return value

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> Settings:
        if self.db_max_idle_conns > self.db_max_open_conns:
            raise ValueError(
                "DB_MAX_IDLE_CONNS must not exceed DB_MAX_OPEN_CONNS "
                f"({self.db_max_idle_conns} > {self.db_max_open_conns})"
            )
        return self

    @property
    def use_tcp(self) -> bool:
        """True when a network endpoint was configured."""
        return bool(self.db_tcp_host)

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse the comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def load_settings() -> Settings:
    """``get_settings()`` with validation failures reported as ``ConfigurationError``."""
    try:
        return get_settings()
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
