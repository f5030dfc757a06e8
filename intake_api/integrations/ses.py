"""SES integration for sending emails."""

from typing import Optional

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from intake_api.config.settings import settings

logger = structlog.get_logger()


class SESError(Exception):
    """Raised when SES operations fail."""
    pass


class EmailConfigError(Exception):
    """Raised when SES settings are missing or inconsistent."""
    pass


class SESService:
    """Service for sending emails via AWS SES."""

    def __init__(
        self,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        client=None,
    ):
        """Initialize SES client.

        Args:
            from_email: Override sender email (defaults to settings.SES_FROM_EMAIL)
            from_name: Override sender name (defaults to settings.SES_FROM_NAME)
            client: Preconfigured boto3 SES client
        """
        if client is None:
            # Explicitly pass credentials if configured
            client_kwargs = {"region_name": settings.SES_REGION}
            if settings.SES_ACCESS_KEY_ID and settings.SES_SECRET_ACCESS_KEY:
                client_kwargs["aws_access_key_id"] = settings.SES_ACCESS_KEY_ID
                client_kwargs["aws_secret_access_key"] = settings.SES_SECRET_ACCESS_KEY
            client = boto3.client("ses", **client_kwargs)

        self.client = client
        self.from_email = from_email or settings.SES_FROM_EMAIL
        self.from_name = from_name or settings.SES_FROM_NAME

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> str:
        """Send an email via SES.

        Args:
            to: Recipient email address
            subject: Email subject
            html_body: HTML content
            text_body: Plain text content (optional)
            reply_to: Reply-to address

        Returns:
            SES message ID
        """
        source = f"{self.from_name} <{self.from_email}>"

        body = {"Html": {"Data": html_body, "Charset": "utf-8"}}
        if text_body:
            body["Text"] = {"Data": text_body, "Charset": "utf-8"}

        params = {
            "Source": source,
            "Destination": {"ToAddresses": [to]},
            "Message": {
                "Subject": {"Data": subject, "Charset": "utf-8"},
                "Body": body,
            },
        }
        if reply_to:
            params["ReplyToAddresses"] = [reply_to]

        try:
            response = self.client.send_email(**params)
        except (ClientError, BotoCoreError) as e:
            logger.error("SES send failed", error=str(e), to=to)
            raise SESError(f"Email send failed: {str(e)}") from e

        message_id = response["MessageId"]
        logger.info(
            "Email sent",
            message_id=message_id,
            to=to,
            subject=subject,
        )
        return message_id


def validate_email_settings() -> None:
    """Check that SES can send notifications.

    Raises:
        EmailConfigError: If required settings are missing
    """
    missing = [
        name for name in ("SES_FROM_EMAIL", "SES_REGION", "ADMIN_EMAIL")
        if not getattr(settings, name)
    ]
    if missing:
        raise EmailConfigError(f"Missing email settings: {', '.join(missing)}")
    if bool(settings.SES_ACCESS_KEY_ID) != bool(settings.SES_SECRET_ACCESS_KEY):
        raise EmailConfigError("SES_ACCESS_KEY_ID and SES_SECRET_ACCESS_KEY must be set together")


# Process-wide mailer, set up at startup
_mailer: Optional[SESService] = None


def init_mailer() -> Optional[SESService]:
    """Validate settings and create the process-wide mailer.

    Raises:
        EmailConfigError: In production, when settings are invalid.
            Elsewhere the error is logged and notifications are skipped.
    """
    global _mailer
    if not settings.EMAIL_ENABLED:
        logger.info("Email notifications disabled by configuration")
        _mailer = None
        return None

    try:
        validate_email_settings()
        _mailer = SESService()
        logger.info("Email service configured", region=settings.SES_REGION)
    except EmailConfigError as e:
        if settings.is_production:
            logger.critical("Email configuration failed", error=str(e))
            raise
        logger.warning("Email service disabled", error=str(e))
        _mailer = None
    return _mailer


def get_mailer() -> Optional[SESService]:
    """Dependency returning the configured mailer, or None when disabled."""
    return _mailer
