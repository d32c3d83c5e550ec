"""
Error taxonomy for the drop-off locator.

``ConfigurationError`` and ``StoreConnectionError`` are startup-fatal: the
lifespan logs them and aborts before any request is served.
``QueryError`` is per-request and becomes an HTTP 500 at the boundary.
"""

from __future__ import annotations


class DropoffError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(DropoffError):
    """A setting required by the selected connection mode is missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing = missing or []


class StoreConnectionError(DropoffError):
    """The PostGIS store could not be opened."""


class QueryError(DropoffError):
    """A proximity search failed.

    ``public_message`` is what the caller sees; the full cause stays in the
    logs.
    """

    public_message = "query failed"


class InvalidCoordinateError(QueryError):
    """``centerLat`` / ``centerLng`` is not a finite decimal number."""

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return str(self)
