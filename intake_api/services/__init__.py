"""Business logic services for the Application Intake API."""

from .application_service import ApplicationService
from .application_store import ApplicationStore, check_application_invariants, normalize_application
from .notifications import NotificationDispatcher
from .validation import ApplicationValidator, validate_status

__all__ = [
    "ApplicationService",
    "ApplicationStore",
    "check_application_invariants",
    "normalize_application",
    "NotificationDispatcher",
    "ApplicationValidator",
    "validate_status",
]
