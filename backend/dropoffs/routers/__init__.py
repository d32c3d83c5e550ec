"""Routers subpackage — HTTP layer for all API endpoints."""

from dropoffs.routers import dropoffs

__all__ = ["dropoffs"]
