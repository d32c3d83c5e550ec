"""API subpackage — exception handlers shared by all routers."""

from dropoffs.api.error_handlers import register_error_handlers

__all__ = ["register_error_handlers"]
