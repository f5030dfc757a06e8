"""SQLAlchemy ORM models for the Application Intake API.

All models are imported here to ensure they're registered with Base.metadata
before any database operations.
"""

# Import base first
from intake_api.config.database import Base

from .applications import (
    Application,
    ApplicationSkill,
    APPLICATION_STATUSES,
    AVAILABILITY_OPTIONS,
    DEFAULT_STATUS,
    EXPERIENCE_LEVELS,
    OFFICE_WORK_OPTIONS,
    OTHER,
    PRIMARY_ROLES,
    SALARY_RANGES,
    UK_CLIENTS_OPTIONS,
    UK_HOURS_OPTIONS,
)

__all__ = [
    "Base",
    "Application",
    "ApplicationSkill",
    # Enumerations
    "APPLICATION_STATUSES",
    "AVAILABILITY_OPTIONS",
    "DEFAULT_STATUS",
    "EXPERIENCE_LEVELS",
    "OFFICE_WORK_OPTIONS",
    "OTHER",
    "PRIMARY_ROLES",
    "SALARY_RANGES",
    "UK_CLIENTS_OPTIONS",
    "UK_HOURS_OPTIONS",
]
