"""Applicant and admin email notifications.

Templates live in ``intake_api/config/templates`` and are rendered with
Jinja2; delivery goes through the SES integration.
"""

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import jinja2
import structlog

from intake_api.config.settings import settings
from intake_api.integrations.ses import SESService
from intake_api.schemas.applications import ApplicationResponse

logger = structlog.get_logger()

TEMPLATE_DIR = Path(__file__).parent.parent / "config" / "templates"

STATUS_CONTENT = {
    "reviewed": {
        "color": "#2563eb",
        "bg_color": "#eff6ff",
        "title": "Application Reviewed",
        "message": "Your application has been carefully reviewed by our recruitment team.",
    },
    "shortlisted": {
        "color": "#1a4d1a",
        "bg_color": "#f0f7f0",
        "title": "Application Shortlisted",
        "message": (
            "We are pleased to inform you that your application has been "
            "shortlisted for further consideration."
        ),
    },
    "rejected": {
        "color": "#dc2626",
        "bg_color": "#fef2f2",
        "title": "Application Status Update",
        "message": "We appreciate your interest in joining {company}.",
    },
}

DEFAULT_STATUS_CONTENT = {
    "color": "#666666",
    "bg_color": "#f4f4f4",
    "title": "Application Status Update",
    "message": "Your application status has been updated.",
}


def format_date(value: datetime, fmt: str = "%B %d, %Y") -> str:
    """Format a datetime for display in emails."""
    if not value:
        return ""
    return value.strftime(fmt)


def application_reference(name: str) -> str:
    """Human-readable reference quoted in status emails, e.g. ``JANE_DOE_123456``."""
    return f"{'_'.join(name.split()).upper()}_{str(int(time.time() * 1000))[-6:]}"


class NotificationDispatcher:
    """Renders and sends the three notification emails."""

    def __init__(self, mailer: Optional[SESService], template_dir: Path = TEMPLATE_DIR):
        self.mailer = mailer
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["format_date"] = format_date

    def _render(self, name: str, context: dict[str, Any]) -> tuple[str, str]:
        """Render the HTML and plain text variants of a template."""
        context = {
            "company_name": settings.COMPANY_NAME,
            "logo_url": settings.LOGO_URL,
            "year": datetime.now(timezone.utc).year,
            **context,
        }
        html_body = self.env.get_template(f"{name}.html").render(context)
        text_body = self.env.get_template(f"{name}.txt").render(context)
        return html_body, text_body

    async def send_applicant_confirmation(self, email: str, name: str) -> Optional[str]:
        """Acknowledge a new submission to the applicant."""
        if self.mailer is None:
            logger.info("Email service disabled, skipping confirmation", to=email)
            return None

        html_body, text_body = self._render(
            "confirmation",
            {"applicant_name": name, "received_at": datetime.now(timezone.utc)},
        )
        return await self.mailer.send_email(
            to=email,
            subject=f"Application Acknowledgment - {settings.COMPANY_NAME}",
            html_body=html_body,
            text_body=text_body,
        )

    async def send_status_change_notice(self, email: str, name: str, status: str) -> Optional[str]:
        """Tell the applicant their application status changed."""
        if self.mailer is None:
            logger.info("Email service disabled, skipping status update", to=email, status=status)
            return None

        content = dict(STATUS_CONTENT.get(status, DEFAULT_STATUS_CONTENT))
        content["message"] = content["message"].format(company=settings.COMPANY_NAME)

        html_body, text_body = self._render(
            "status_update",
            {
                "applicant_name": name,
                "status": status,
                "content": content,
                "reference": application_reference(name),
            },
        )
        return await self.mailer.send_email(
            to=email,
            subject=f"Application Update: {content['title']} - {settings.COMPANY_NAME}",
            html_body=html_body,
            text_body=text_body,
        )

    async def send_admin_alert(self, application: ApplicationResponse) -> Optional[str]:
        """Alert the admin inbox about a new submission."""
        if self.mailer is None:
            logger.info("Email service disabled, skipping admin alert", application_id=application.id)
            return None
        if not settings.ADMIN_EMAIL:
            logger.warning("ADMIN_EMAIL not set, skipping admin alert", application_id=application.id)
            return None

        frontend_url = settings.FRONTEND_URL.rstrip("/")
        html_body, text_body = self._render(
            "admin_alert",
            {
                "application": application,
                "application_url": f"{frontend_url}/admin/applications/{application.id}",
                "applications_url": f"{frontend_url}/admin/applications",
            },
        )
        return await self.mailer.send_email(
            to=settings.ADMIN_EMAIL,
            subject=f"New Application: {application.full_name} - {application.display_role}",
            html_body=html_body,
            text_body=text_body,
            reply_to=application.email,
        )
