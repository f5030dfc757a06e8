"""Pydantic schemas for Application endpoints."""

from datetime import datetime
from typing import Any, Optional

from pydantic import field_validator

from .base import CamelModel


def _as_list(v: Any) -> list:
    """ORM collections (association proxies, JSON columns) to plain lists."""
    if v is None:
        return []
    return list(v)


class ApplicationDraft(CamelModel):
    """A validated, normalized submission that has not been persisted yet."""

    full_name: str
    email: str
    phone: str
    location: str
    primary_role: str
    custom_role: Optional[str] = None
    experience: str
    skills: list[str]
    portfolio_links: list[str] = []
    availability: str
    availability_other: Optional[str] = None
    uk_hours: str
    office_work: str
    salary_range: str
    summary: Optional[str] = None
    uk_clients: str
    uk_clients_details: Optional[str] = None
    interest: str
    accuracy_consent: bool
    data_consent: bool

    # CV reference, attached after upload
    cv_url: Optional[str] = None
    cv_public_id: Optional[str] = None
    cv_original_name: Optional[str] = None
    cv_size: int = 0
    cv_mimetype: Optional[str] = None

    # Request context
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ApplicationResponse(CamelModel):
    """Schema for full application response. The client IP is never exposed."""

    id: int
    full_name: str
    email: str
    phone: str
    location: str
    primary_role: str
    custom_role: Optional[str] = None
    experience: str
    skills: list[str] = []
    portfolio_links: list[str] = []
    cv_url: Optional[str] = None
    cv_public_id: Optional[str] = None
    cv_original_name: Optional[str] = None
    cv_size: int = 0
    cv_mimetype: Optional[str] = None
    availability: str
    availability_other: Optional[str] = None
    uk_hours: str
    office_work: str
    salary_range: str
    summary: Optional[str] = None
    uk_clients: str
    uk_clients_details: Optional[str] = None
    interest: str
    accuracy_consent: bool
    data_consent: bool
    status: str
    submission_date: datetime
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Display fields
    display_role: str
    display_availability: str
    cv_download_url: Optional[str] = None

    @field_validator("skills", "portfolio_links", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> list:
        return _as_list(v)


class SubmissionReceipt(CamelModel):
    """Returned to the applicant after a successful submission."""

    id: int
    full_name: str
    email: str
    submission_date: datetime
    status: str


class StatusUpdateRequest(CamelModel):
    """Request body for a status change; checked by the status validator."""

    status: Optional[Any] = None


class DailySubmissionCount(CamelModel):
    """Submissions received on one calendar day (UTC)."""

    date: str
    count: int


class ApplicationStatistics(CamelModel):
    """Aggregate counts for the admin overview."""

    total: int
    status: dict[str, int]
    roles: dict[str, int]
    experience: dict[str, int]
    daily_submissions: list[DailySubmissionCount]


class CvDownloadResponse(CamelModel):
    """Short-lived download link for an application's CV."""

    url: str
    filename: str
