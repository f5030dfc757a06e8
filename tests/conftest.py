"""Shared fixtures: in-memory database, fake storage/mailer and an API client."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from intake_api.config.database import Base, get_db
from intake_api.integrations.s3 import StoredFile, check_cv_file, get_storage
from intake_api.integrations.ses import SESError, get_mailer
from intake_api.main import app
from intake_api.middleware.security import rate_limiter
from intake_api.schemas.applications import ApplicationDraft
from intake_api.services.application_store import ApplicationStore

INTEREST = (
    "I enjoy building reliable products for UK clients and want to grow "
    "with a remote-first team."
)
SUMMARY = (
    "Five years building web platforms with Python and React, mostly for "
    "fintech and logistics startups."
)


class FakeStorage:
    """In-memory stand-in for S3Storage."""

    def __init__(self, fail_delete: bool = False):
        self.files: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_delete = fail_delete

    async def store(self, content: bytes, original_name: str, mimetype: str) -> StoredFile:
        check_cv_file(mimetype, len(content))
        public_id = f"recruitment_applications/cv-{len(self.files) + 1}.pdf"
        self.files[public_id] = content
        return StoredFile(
            url=f"https://cdn.example.com/{public_id}",
            public_id=public_id,
            original_name=original_name,
            size=len(content),
            mimetype=mimetype,
        )

    async def delete(self, public_id: str) -> None:
        if self.fail_delete:
            raise RuntimeError("storage unavailable")
        self.files.pop(public_id, None)
        self.deleted.append(public_id)

    async def get_download_url(self, public_id: str, filename: str) -> str:
        return f"https://signed.example.com/{public_id}?filename={filename}"


class FakeMailer:
    """Records messages instead of sending them."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict] = []
        self.fail = fail

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> str:
        if self.fail:
            raise SESError("Email send failed: throttled")
        self.sent.append(
            {
                "to": to,
                "subject": subject,
                "html": html_body,
                "text": text_body,
                "reply_to": reply_to,
            }
        )
        return f"msg-{len(self.sent)}"


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def store(db_session):
    return ApplicationStore(db_session)


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def client(db_session, storage, mailer):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def payload():
    """A valid submission as the browser form sends it."""
    return {
        "fullName": "Jane Doe",
        "email": "Jane.Doe@Example.com",
        "phone": "+2348012345678",
        "location": "Lagos, Nigeria",
        "primaryRole": "Back-End Developer",
        "experience": "3–5",
        "skills": '["Python", "FastAPI"]',
        "portfolioLinks": '["https://github.com/janedoe"]',
        "availability": "2 weeks",
        "ukHours": "Yes",
        "officeWork": "Hybrid",
        "salaryRange": "₦600,000 – ₦900,000",
        "summary": SUMMARY,
        "ukClients": "No",
        "interest": INTEREST,
        "accuracyConsent": "true",
        "dataConsent": "true",
    }


@pytest.fixture
def make_draft():
    """Factory for drafts that skip request validation."""

    def factory(**overrides) -> ApplicationDraft:
        values = {
            "full_name": "Jane Doe",
            "email": "jane.doe@example.com",
            "phone": "+2348012345678",
            "location": "Lagos, Nigeria",
            "primary_role": "Back-End Developer",
            "experience": "3–5",
            "skills": ["Python", "FastAPI"],
            "portfolio_links": ["https://github.com/janedoe"],
            "availability": "2 weeks",
            "uk_hours": "Yes",
            "office_work": "Hybrid",
            "salary_range": "₦600,000 – ₦900,000",
            "summary": SUMMARY,
            "uk_clients": "No",
            "interest": INTEREST,
            "accuracy_consent": True,
            "data_consent": True,
        }
        values.update(overrides)
        return ApplicationDraft(**values)

    return factory
