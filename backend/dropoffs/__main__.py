"""Run the service with uvicorn: ``python -m dropoffs``."""

from __future__ import annotations

import sys

import uvicorn

from dropoffs.config import configure_logging, load_settings
from dropoffs.errors import ConfigurationError


def main() -> int:
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"dropoffs: {exc}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level)
    uvicorn.run(
        "dropoffs.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
