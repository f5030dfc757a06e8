"""Request validation for application submissions.

Rules are declared per payload field as a chain of checks. Each check takes
the current value (and the whole payload, for conditional rules) and returns
the normalized value or raises ``RuleFailure``. Every field is checked and
all failures are reported together.
"""

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

import structlog
from email_validator import EmailNotValidError, validate_email
from humps import decamelize
from pydantic import AnyUrl, TypeAdapter, ValidationError

from intake_api.middleware.error_handler import ValidationFailedError, field_error
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
)
from intake_api.schemas.applications import ApplicationDraft

if TYPE_CHECKING:
    from intake_api.services.application_store import ApplicationStore

logger = structlog.get_logger()

DUPLICATE_EMAIL_MESSAGE = "An application with this email already exists"

_url_adapter = TypeAdapter(AnyUrl)


class RuleFailure(Exception):
    """A check rejected the value."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class _Skip(Exception):
    """Stop the chain and keep the given value (used for optional fields)."""

    def __init__(self, value: Any = None):
        self.value = value
        super().__init__()


Check = Callable[[Any, Mapping[str, Any]], Any]


@dataclass(frozen=True)
class FieldRule:
    field: str
    checks: tuple

    def apply(self, payload: Mapping[str, Any]) -> Any:
        value = payload.get(self.field)
        try:
            for check in self.checks:
                value = check(value, payload)
        except _Skip as skip:
            return skip.value
        return value


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def _text(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    if value is None or isinstance(value, (bool, list, tuple, dict)):
        return value
    return str(value).strip()


# -- check builders -----------------------------------------------------------


def trimmed(value: Any, payload: Mapping[str, Any]) -> Any:
    return _text(value)


def required(message: str) -> Check:
    def check(value, payload):
        if _is_blank(value) or not isinstance(value, str):
            raise RuleFailure(message)
        return value

    return check


def optional(value: Any, payload: Mapping[str, Any]) -> Any:
    if _is_blank(value):
        raise _Skip(None)
    return value


def max_length(limit: int, message: str) -> Check:
    def check(value, payload):
        if len(value) > limit:
            raise RuleFailure(message)
        return value

    return check


def length_between(bounds: tuple[int, int], message: str) -> Check:
    low, high = bounds

    def check(value, payload):
        if not isinstance(value, str) or not low <= len(value) <= high:
            raise RuleFailure(message)
        return value

    return check


def one_of(choices: Sequence[str], message: str) -> Check:
    def check(value, payload):
        if value not in choices:
            raise RuleFailure(message)
        return value

    return check


def email_address(message: str) -> Check:
    def check(value, payload):
        try:
            result = validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            raise RuleFailure(message)
        return result.normalized.lower()

    return check


def string_list(message: str) -> Check:
    """Accept a JSON-encoded array or a native sequence of strings; entries are trimmed."""

    def check(value, payload):
        items = value
        if isinstance(value, str):
            try:
                items = json.loads(value)
            except ValueError:
                raise RuleFailure(message)
        if not isinstance(items, (list, tuple)):
            raise RuleFailure(message)
        if not all(isinstance(item, str) for item in items):
            raise RuleFailure(message)
        return [item.strip() for item in items]

    return check


def non_empty_entries(message: str) -> Check:
    def check(value, payload):
        if not value or any(not item for item in value):
            raise RuleFailure(message)
        return value

    return check


def entries_max_length(limit: int, message: str) -> Check:
    def check(value, payload):
        if any(len(item) > limit for item in value):
            raise RuleFailure(message)
        return value

    return check


def url_list(message: str) -> Check:
    """Drop empty entries, then require every remaining entry to be a URL."""

    def check(value, payload):
        links = [link for link in value if link]
        for link in links:
            try:
                _url_adapter.validate_python(link)
            except ValidationError:
                raise RuleFailure(message)
        return links

    return check


def accepted(message: str) -> Check:
    def check(value, payload):
        if value is True or value == "true":
            return True
        raise RuleFailure(message)

    return check


# -- rules --------------------------------------------------------------------


def rule(field: str, *checks: Check) -> FieldRule:
    return FieldRule(field, checks)


def required_if(field: str, sibling: str, expected: str, message: str, *checks: Check) -> FieldRule:
    """Field is required when ``sibling`` equals ``expected`` and dropped otherwise."""

    def gate(value, payload):
        if _text(payload.get(sibling)) != expected:
            raise _Skip(None)
        value = _text(value)
        if _is_blank(value) or not isinstance(value, str):
            raise RuleFailure(message)
        return value

    return FieldRule(field, (gate,) + checks)


SUBMISSION_RULES: tuple[FieldRule, ...] = (
    rule(
        "fullName",
        trimmed,
        required("Full name is required"),
        max_length(MAX_FULL_NAME, "Full name cannot exceed 100 characters"),
    ),
    rule(
        "email",
        trimmed,
        required("Email is required"),
        email_address("Please enter a valid email address"),
    ),
    rule("phone", trimmed, required("Phone number is required")),
    rule("location", trimmed, required("Location is required")),
    rule(
        "primaryRole",
        trimmed,
        required("Primary role is required"),
        one_of(PRIMARY_ROLES, "Invalid primary role selected"),
    ),
    required_if(
        "customRole",
        "primaryRole",
        OTHER,
        'Custom role is required when selecting "Other"',
        max_length(MAX_CUSTOM_ROLE, "Custom role cannot exceed 100 characters"),
    ),
    rule(
        "experience",
        trimmed,
        required("Experience is required"),
        one_of(EXPERIENCE_LEVELS, "Invalid experience range"),
    ),
    rule(
        "skills",
        string_list("At least one valid skill is required"),
        non_empty_entries("At least one valid skill is required"),
        entries_max_length(MAX_SKILL, "Each skill cannot exceed 200 characters"),
    ),
    rule(
        "portfolioLinks",
        optional,
        string_list("All portfolio links must be valid URLs"),
        url_list("All portfolio links must be valid URLs"),
    ),
    rule(
        "availability",
        trimmed,
        required("Availability is required"),
        one_of(AVAILABILITY_OPTIONS, "Invalid availability option"),
    ),
    required_if(
        "availabilityOther",
        "availability",
        OTHER,
        'Please specify your availability when selecting "Other"',
        max_length(MAX_AVAILABILITY_OTHER, "Availability details cannot exceed 200 characters"),
    ),
    rule(
        "ukHours",
        trimmed,
        required("UK hours preference is required"),
        one_of(UK_HOURS_OPTIONS, "Invalid UK hours option"),
    ),
    rule(
        "officeWork",
        trimmed,
        required("Office work preference is required"),
        one_of(OFFICE_WORK_OPTIONS, "Invalid office work option"),
    ),
    rule(
        "salaryRange",
        trimmed,
        required("Salary range is required"),
        one_of(SALARY_RANGES, "Invalid salary range"),
    ),
    rule(
        "summary",
        trimmed,
        optional,
        length_between(
            SUMMARY_LENGTH,
            "Summary must be between 50 and 2000 characters if you choose to provide one",
        ),
    ),
    rule(
        "ukClients",
        trimmed,
        required("UK clients experience is required"),
        one_of(UK_CLIENTS_OPTIONS, "Invalid UK clients option"),
    ),
    required_if(
        "ukClientsDetails",
        "ukClients",
        "Yes",
        "Please provide details about your UK clients experience",
        max_length(MAX_UK_CLIENTS_DETAILS, "UK clients details cannot exceed 1000 characters"),
    ),
    rule(
        "interest",
        trimmed,
        required("Interest statement is required"),
        length_between(INTEREST_LENGTH, "Interest statement must be between 50 and 1000 characters"),
    ),
    rule("accuracyConsent", accepted("Accuracy consent must be accepted")),
    rule("dataConsent", accepted("Data consent must be accepted")),
)


def check_rules(
    payload: Mapping[str, Any], rules: Sequence[FieldRule] = SUBMISSION_RULES
) -> tuple[dict[str, Any], list[dict[str, str]]]:
    """Run every rule; return the cleaned values and all field errors."""
    cleaned: dict[str, Any] = {}
    errors: list[dict[str, str]] = []
    for field_rule in rules:
        try:
            cleaned[field_rule.field] = field_rule.apply(payload)
        except RuleFailure as e:
            errors.append(field_error(field_rule.field, e.message))
    return cleaned, errors


class ApplicationValidator:
    """Validates submissions, including the email uniqueness lookup."""

    def __init__(self, store: "ApplicationStore"):
        self.store = store

    async def _email_taken(self, email: str) -> bool:
        return self.store.find_by_email(email) is not None

    async def validate(self, payload: Mapping[str, Any]) -> ApplicationDraft:
        """Validate a raw submission.

        Args:
            payload: Form or JSON fields keyed by their camelCase names

        Returns:
            Normalized draft ready for the store

        Raises:
            ValidationFailedError: With every field error found
        """
        cleaned, errors = check_rules(payload)

        email = cleaned.get("email")
        if email and await self._email_taken(email):
            errors.append(field_error("email", DUPLICATE_EMAIL_MESSAGE))

        if errors:
            logger.info(
                "Submission rejected",
                fields=[error["field"] for error in errors],
            )
            raise ValidationFailedError(errors)

        values = {decamelize(key): value for key, value in cleaned.items() if value is not None}
        return ApplicationDraft(**values)


def validate_status(value: Any) -> str:
    """Check a requested status value.

    Raises:
        ValidationFailedError: If status is missing or unknown
    """
    status = _text(value)
    if _is_blank(status):
        raise ValidationFailedError([field_error("status", "Status is required")])
    if status not in APPLICATION_STATUSES:
        raise ValidationFailedError([field_error("status", "Invalid status")])
    return status
