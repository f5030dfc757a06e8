"""Persistence for applications: normalization, invariants, queries and aggregates."""

import re
from datetime import datetime
from typing import Any, Iterable, Optional

import structlog
from humps import camelize
from pydantic import AnyUrl, TypeAdapter, ValidationError
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from intake_api.middleware.error_handler import (
    DuplicateEmailError,
    NotFoundError,
    SchemaValidationError,
    field_error,
)
from intake_api.models.applications import (
    APPLICATION_STATUSES,
    AVAILABILITY_OPTIONS,
    EXPERIENCE_LEVELS,
    INTEREST_LENGTH,
    MAX_AVAILABILITY_OTHER,
    MAX_CUSTOM_ROLE,
    MAX_FULL_NAME,
    MAX_SKILL,
    MAX_UK_CLIENTS_DETAILS,
    OFFICE_WORK_OPTIONS,
    OTHER,
    PRIMARY_ROLES,
    SALARY_RANGES,
    SUMMARY_LENGTH,
    UK_CLIENTS_OPTIONS,
    UK_HOURS_OPTIONS,
    Application,
)
from intake_api.schemas.applications import ApplicationDraft

logger = structlog.get_logger()

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

_url_adapter = TypeAdapter(AnyUrl)

TEXT_FIELDS = (
    "full_name",
    "email",
    "phone",
    "location",
    "primary_role",
    "custom_role",
    "experience",
    "availability",
    "availability_other",
    "uk_hours",
    "office_work",
    "salary_range",
    "summary",
    "uk_clients",
    "uk_clients_details",
    "interest",
)

REQUIRED_FIELDS = {
    "full_name": "Full name",
    "email": "Email",
    "phone": "Phone number",
    "location": "Location",
    "primary_role": "Primary role",
    "experience": "Experience",
    "availability": "Availability",
    "uk_hours": "UK hours preference",
    "office_work": "Office work preference",
    "salary_range": "Salary range",
    "uk_clients": "UK clients experience",
    "interest": "Interest statement",
}

ENUM_FIELDS = {
    "primary_role": PRIMARY_ROLES,
    "experience": EXPERIENCE_LEVELS,
    "availability": AVAILABILITY_OPTIONS,
    "uk_hours": UK_HOURS_OPTIONS,
    "office_work": OFFICE_WORK_OPTIONS,
    "salary_range": SALARY_RANGES,
    "uk_clients": UK_CLIENTS_OPTIONS,
    "status": APPLICATION_STATUSES,
}

MAX_LENGTHS = {
    "full_name": MAX_FULL_NAME,
    "custom_role": MAX_CUSTOM_ROLE,
    "availability_other": MAX_AVAILABILITY_OTHER,
    "uk_clients_details": MAX_UK_CLIENTS_DETAILS,
}

# (field, trigger field, trigger value)
CONDITIONAL_FIELDS = (
    ("custom_role", "primary_role", OTHER),
    ("availability_other", "availability", OTHER),
    ("uk_clients_details", "uk_clients", "Yes"),
)

# Listing filters keyed by query parameter
FILTERABLE_COLUMNS = {
    "status": Application.status,
    "role": Application.primary_role,
    "experience": Application.experience,
}

# Valid sort columns for server-side sorting
SORTABLE_COLUMNS = {
    "submissionDate": Application.submission_date,
    "fullName": Application.full_name,
    "email": Application.email,
    "status": Application.status,
    "primaryRole": Application.primary_role,
    "experience": Application.experience,
    "availability": Application.availability,
    "salaryRange": Application.salary_range,
    "createdAt": Application.created_at,
    "updatedAt": Application.updated_at,
}
DEFAULT_SORT = "submissionDate"


def _unique(values: Iterable[str]) -> list[str]:
    """Drop blanks and exact duplicates, keeping first occurrences in order."""
    seen: dict[str, None] = {}
    for value in values:
        value = value.strip() if isinstance(value, str) else value
        if value:
            seen.setdefault(value, None)
    return list(seen)


def _is_url(value: str) -> bool:
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def normalize_application(record: Application) -> Application:
    """Bring a record into canonical form before it is written."""
    for attr in TEXT_FIELDS:
        value = getattr(record, attr)
        if isinstance(value, str):
            setattr(record, attr, value.strip() or None)

    if record.email:
        record.email = record.email.lower()

    skills = _unique(record.skills)
    if skills != list(record.skills):
        record.skills = skills

    links = _unique(record.portfolio_links or [])
    if links != (record.portfolio_links or []):
        record.portfolio_links = links

    for attr, trigger, expected in CONDITIONAL_FIELDS:
        if getattr(record, trigger) != expected:
            setattr(record, attr, None)

    return record


def check_application_invariants(record: Application) -> None:
    """Verify a normalized record.

    Raises:
        SchemaValidationError: With one error per violated field
    """
    errors: list[dict[str, str]] = []

    def fail(attr: str, message: str) -> None:
        errors.append(field_error(camelize(attr), message))

    for attr, label in REQUIRED_FIELDS.items():
        if not getattr(record, attr):
            fail(attr, f"{label} is required")

    for attr, choices in ENUM_FIELDS.items():
        value = getattr(record, attr)
        if value and value not in choices:
            fail(attr, f"`{value}` is not a valid {camelize(attr)}")

    for attr, limit in MAX_LENGTHS.items():
        value = getattr(record, attr)
        if value and len(value) > limit:
            fail(attr, f"{camelize(attr)} cannot exceed {limit} characters")

    for attr, trigger, expected in CONDITIONAL_FIELDS:
        if getattr(record, trigger) == expected and not getattr(record, attr):
            fail(attr, f"{camelize(attr)} is required when {camelize(trigger)} is {expected!r}")

    if record.email and not EMAIL_PATTERN.match(record.email):
        fail("email", "Please enter a valid email address")

    if not list(record.skills):
        fail("skills", "At least one skill is required")
    elif any(len(skill) > MAX_SKILL for skill in record.skills):
        fail("skills", f"Each skill cannot exceed {MAX_SKILL} characters")

    if any(not _is_url(link) for link in record.portfolio_links or []):
        fail("portfolio_links", "All portfolio links must be valid URLs")

    low, high = SUMMARY_LENGTH
    if record.summary and not low <= len(record.summary) <= high:
        fail("summary", f"Summary must be between {low} and {high} characters")

    low, high = INTEREST_LENGTH
    if record.interest and not low <= len(record.interest) <= high:
        fail("interest", f"Interest statement must be between {low} and {high} characters")

    if record.accuracy_consent is not True:
        fail("accuracy_consent", "Accuracy consent must be accepted")
    if record.data_consent is not True:
        fail("data_consent", "Data consent must be accepted")

    if errors:
        raise SchemaValidationError(errors)


class ApplicationStore:
    """Reads and writes Application records through a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, draft: ApplicationDraft) -> Application:
        """Persist a validated draft.

        Raises:
            SchemaValidationError: If the record violates an invariant
            DuplicateEmailError: If the email is already on file
        """
        values = draft.model_dump(exclude={"skills"})
        record = Application(**values)
        record.skills = list(draft.skills)

        normalize_application(record)
        check_application_invariants(record)

        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if "email" in str(e.orig).lower():
                logger.warning("Duplicate application email", email=record.email)
                raise DuplicateEmailError() from e
            raise
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(record)
        logger.info("Application stored", application_id=record.id)
        return record

    def get(self, application_id: int) -> Application:
        """Fetch one record or raise NotFoundError."""
        record = self.db.query(Application).filter(Application.id == application_id).first()
        if not record:
            raise NotFoundError("Application", application_id)
        return record

    def find_by_email(self, email: str) -> Optional[Application]:
        return (
            self.db.query(Application)
            .filter(Application.email == email.strip().lower())
            .first()
        )

    def find(
        self,
        filters: Optional[dict[str, Any]] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Application], int]:
        """Filtered, sorted page of records plus the total match count."""
        query = self.db.query(Application)

        for key, value in (filters or {}).items():
            if value is not None and key in FILTERABLE_COLUMNS:
                query = query.filter(FILTERABLE_COLUMNS[key] == value)

        total = query.count()

        sort_column = SORTABLE_COLUMNS.get(sort_by or DEFAULT_SORT, SORTABLE_COLUMNS[DEFAULT_SORT])
        if sort_order == "asc":
            query = query.order_by(sort_column.asc(), Application.id.asc())
        else:
            query = query.order_by(sort_column.desc(), Application.id.desc())

        records = query.offset((page - 1) * limit).limit(limit).all()
        return records, total

    def update_status(self, application_id: int, status: str) -> Application:
        """Relabel a record's status."""
        record = self.get(application_id)
        previous = record.status
        record.status = status

        normalize_application(record)
        try:
            check_application_invariants(record)
        except SchemaValidationError:
            self.db.rollback()
            raise

        self.db.commit()
        self.db.refresh(record)
        logger.info(
            "Application status updated",
            application_id=application_id,
            previous_status=previous,
            status=status,
        )
        return record

    def delete(self, application_id: int) -> Application:
        """Remove a record and its skill rows."""
        record = self.get(application_id)
        self.db.delete(record)
        self.db.commit()
        logger.info("Application deleted", application_id=application_id)
        return record

    # Aggregates

    def count(self) -> int:
        return self.db.query(func.count(Application.id)).scalar() or 0

    def count_by_status(self) -> dict[str, int]:
        rows = (
            self.db.query(Application.status, func.count(Application.id))
            .group_by(Application.status)
            .all()
        )
        return {status: count for status, count in rows}

    def count_by_display_role(self) -> dict[str, int]:
        role = func.coalesce(Application.custom_role, Application.primary_role)
        rows = self.db.query(role, func.count(Application.id)).group_by(role).all()
        return {name: count for name, count in rows}

    def count_by_experience(self) -> dict[str, int]:
        rows = (
            self.db.query(Application.experience, func.count(Application.id))
            .group_by(Application.experience)
            .all()
        )
        return {level: count for level, count in rows}

    def daily_submissions(self, since: datetime) -> list[tuple[str, int]]:
        """Submission counts per UTC day from ``since``, oldest first."""
        day = func.date(Application.submission_date)
        rows = (
            self.db.query(day, func.count(Application.id))
            .filter(Application.submission_date >= since)
            .group_by(day)
            .order_by(day)
            .all()
        )
        return [(str(date), count) for date, count in rows]
