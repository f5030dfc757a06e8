"""Middleware for the Application Intake API."""

from .error_handler import setup_exception_handlers
from .logging import LoggingMiddleware
from .security import SecurityMiddleware

__all__ = ["setup_exception_handlers", "LoggingMiddleware", "SecurityMiddleware"]
