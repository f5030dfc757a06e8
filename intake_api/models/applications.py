"""Application model for candidate submissions."""

import re
from typing import Optional
from urllib.parse import quote

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, ForeignKey
from sqlalchemy import Index, UniqueConstraint
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.orm import relationship

from intake_api.config.database import Base
from intake_api.models.base import BaseModel, utcnow

OTHER = "Other"

PRIMARY_ROLES = (
    "UI/UX Designer",
    "Front-End Developer",
    "Back-End Developer",
    "Full-Stack Developer",
    "Mobile App Developer (Flutter)",
    "Mobile App Developer (React Native)",
    "Mobile App Developer (iOS)",
    "Mobile App Developer (Android)",
    "DevOps Engineer",
    "SEO Specialist",
    "Product Manager",
    "Digital Marketer",
    "Content Writer",
    "Data Analyst",
    "Data Scientist",
    "QA / Test Engineer",
    "Game Developer",
    "Blockchain Developer",
    OTHER,
)

EXPERIENCE_LEVELS = ("0–1", "1–3", "3–5", "5+")
AVAILABILITY_OPTIONS = ("Immediate", "2 weeks", "1 month", OTHER)
UK_HOURS_OPTIONS = ("Yes", "Partially", "No")
OFFICE_WORK_OPTIONS = ("Yes", "No", "Hybrid")
UK_CLIENTS_OPTIONS = ("Yes", "No")
SALARY_RANGES = (
    "Below ₦400,000",
    "₦400,000 – ₦600,000",
    "₦600,000 – ₦900,000",
    "₦900,000 – ₦1,500,000",
    "₦1,500,000+",
)

# Flat relabeling: any status may be set from any other
APPLICATION_STATUSES = ("pending", "reviewed", "shortlisted", "rejected")
DEFAULT_STATUS = "pending"

# Field length limits shared by the request validator and the store
MAX_FULL_NAME = 100
MAX_CUSTOM_ROLE = 100
MAX_AVAILABILITY_OTHER = 200
MAX_UK_CLIENTS_DETAILS = 1000
SUMMARY_LENGTH = (50, 2000)
INTEREST_LENGTH = (50, 1000)
MAX_SKILL = 200

# Request metadata is clipped to these widths when captured
MAX_CV_ORIGINAL_NAME = 255
MAX_USER_AGENT = 512


def default_cv_filename(full_name: str, original_name: Optional[str]) -> str:
    """Filename offered when a CV is downloaded."""
    if original_name:
        return original_name
    safe_name = re.sub(r"\s+", "_", full_name or "")
    return f"CV_{safe_name}.pdf"


class ApplicationSkill(Base):
    """One skill of an application, kept in its own table so membership is indexed."""

    __tablename__ = "application_skills"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(MAX_SKILL), nullable=False)

    __table_args__ = (
        UniqueConstraint("application_id", "name", name="uq_application_skills_app_name"),
        Index("ix_application_skills_name", "name"),
    )

    application = relationship("Application", back_populates="skill_entries")

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<ApplicationSkill(application_id={self.application_id}, name={self.name})>"


class Application(BaseModel):
    """
    A candidate's submitted application.

    Normalization and invariant checks are not ORM hooks; the application
    store calls them explicitly on every write.
    """

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Personal details
    full_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(Text, nullable=False)
    location = Column(Text, nullable=False)

    # Role
    primary_role = Column(String(100), nullable=False)
    custom_role = Column(String(100), nullable=True)  # Only when primary_role == "Other"
    experience = Column(String(10), nullable=False)

    # Portfolio links stored as a JSON list of URLs
    portfolio_links = Column(JSON, nullable=False, default=list)

    # CV (set only when a file was attached)
    cv_url = Column(String(1024), nullable=True)
    cv_public_id = Column(String(512), nullable=True)
    cv_original_name = Column(String(MAX_CV_ORIGINAL_NAME), nullable=True)
    cv_size = Column(Integer, nullable=False, default=0)
    cv_mimetype = Column(String(255), nullable=True)

    # Availability and working preferences
    availability = Column(String(20), nullable=False)
    availability_other = Column(String(200), nullable=True)  # Only when availability == "Other"
    uk_hours = Column(String(20), nullable=False)
    office_work = Column(String(20), nullable=False)
    salary_range = Column(String(50), nullable=False)

    # Statements
    summary = Column(Text, nullable=True)
    uk_clients = Column(String(10), nullable=False)
    uk_clients_details = Column(Text, nullable=True)
    interest = Column(Text, nullable=False)

    # Consents (always True once persisted)
    accuracy_consent = Column(Boolean, nullable=False)
    data_consent = Column(Boolean, nullable=False)

    # Review status: pending, reviewed, shortlisted, rejected
    status = Column(String(20), nullable=False, default=DEFAULT_STATUS)
    submission_date = Column(DateTime, nullable=False, default=utcnow)

    # Request context
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(MAX_USER_AGENT), nullable=True)

    # Constraints and listing indexes
    __table_args__ = (
        UniqueConstraint("email", name="uq_applications_email"),
        Index("ix_applications_email_submission_date", "email", submission_date.desc()),
        Index("ix_applications_status_submission_date", "status", submission_date.desc()),
        Index("ix_applications_role_experience", "primary_role", "experience"),
        Index("ix_applications_availability", "availability"),
    )

    # Relationships
    skill_entries = relationship(
        "ApplicationSkill",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationSkill.id",
        lazy="selectin",
    )
    skills = association_proxy("skill_entries", "name")

    @property
    def display_role(self) -> str:
        return self.custom_role or self.primary_role

    @property
    def display_availability(self) -> str:
        if self.availability == OTHER and self.availability_other:
            return self.availability_other
        return self.availability

    @property
    def cv_download_name(self) -> Optional[str]:
        if not self.cv_url:
            return None
        return default_cv_filename(self.full_name, self.cv_original_name)

    @property
    def cv_download_url(self) -> Optional[str]:
        """CV URL with a content-disposition hint carrying the download filename."""
        if not self.cv_url:
            return None
        disposition = f'attachment; filename="{self.cv_download_name}"'
        separator = "&" if "?" in self.cv_url else "?"
        return f"{self.cv_url}{separator}response-content-disposition={quote(disposition)}"

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, email={self.email}, status={self.status})>"
