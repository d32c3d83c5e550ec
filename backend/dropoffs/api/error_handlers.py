"""
Error Handlers — map package errors onto HTTP responses.

``QueryError`` becomes a plain-text 500 carrying only its public message;
the underlying store error is logged, never returned.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import PlainTextResponse

from dropoffs.errors import InvalidCoordinateError, QueryError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register the package's exception handlers on ``app``."""

    @app.exception_handler(QueryError)
    async def query_error_handler(request: Request, exc: QueryError):
        if isinstance(exc, InvalidCoordinateError):
            logger.warning("Rejected coordinates on %s: %s", request.url.path, exc)
        else:
            logger.error("Query failed on %s: %s", request.url.path, exc)
        return PlainTextResponse(
            f"Couldn't encode results: {exc.public_message}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
