"""S3 integration for CV storage."""

import secrets
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from intake_api.config.settings import settings
from intake_api.middleware.error_handler import FileTypeOrSizeError, StorageAdapterError

logger = structlog.get_logger()

EXTENSIONS = {
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}


class StorageConfigError(Exception):
    """Raised when S3 settings are missing or inconsistent."""
    pass


@dataclass(frozen=True)
class StoredFile:
    """Reference to a stored CV, copied onto the application record."""

    url: str
    public_id: str
    original_name: str
    size: int
    mimetype: str


def check_cv_file(mimetype: Optional[str], size: int) -> None:
    """Reject anything but PDF/Word documents within the size limit."""
    if mimetype not in settings.CV_ALLOWED_MIMETYPES:
        raise FileTypeOrSizeError("Invalid file type. Only PDF and Word documents are allowed.")
    if size > settings.CV_MAX_BYTES:
        limit_mb = settings.CV_MAX_BYTES // (1024 * 1024)
        raise FileTypeOrSizeError(f"File size too large. Maximum size is {limit_mb}MB")


def validate_storage_settings() -> None:
    """Check that S3 is configured well enough to accept uploads.

    Raises:
        StorageConfigError: If required settings are missing
    """
    missing = [name for name in ("S3_BUCKET", "S3_REGION") if not getattr(settings, name)]
    if missing:
        raise StorageConfigError(f"Missing S3 settings: {', '.join(missing)}")
    if bool(settings.S3_ACCESS_KEY_ID) != bool(settings.S3_SECRET_ACCESS_KEY):
        raise StorageConfigError("S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY must be set together")


class S3Storage:
    """Stores, deletes and links CV files in S3."""

    def __init__(self, client=None):
        """Initialize S3 client with S3-specific credentials."""
        if client is None:
            client_kwargs = {"region_name": settings.S3_REGION}
            if settings.S3_ACCESS_KEY_ID and settings.S3_SECRET_ACCESS_KEY:
                client_kwargs["aws_access_key_id"] = settings.S3_ACCESS_KEY_ID
                client_kwargs["aws_secret_access_key"] = settings.S3_SECRET_ACCESS_KEY
            client = boto3.client("s3", **client_kwargs)
        self.client = client
        self.bucket = settings.S3_BUCKET
        self.prefix = settings.S3_PREFIX

    def _new_key(self, mimetype: str) -> str:
        """Unique object key, e.g. ``recruitment_applications/cv-1700000000000-42.pdf``."""
        suffix = f"cv-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{EXTENSIONS.get(mimetype, '')}"
        if not self.prefix:
            return suffix
        return f"{self.prefix.strip('/')}/{suffix}"

    def _public_url(self, key: str) -> str:
        base = settings.S3_PUBLIC_BASE_URL or f"https://{self.bucket}.s3.{settings.S3_REGION}.amazonaws.com"
        return f"{base.rstrip('/')}/{key}"

    async def store(self, content: bytes, original_name: str, mimetype: str) -> StoredFile:
        """Upload a CV.

        Args:
            content: File content as bytes
            original_name: Filename supplied by the applicant
            mimetype: Declared MIME type

        Returns:
            StoredFile reference

        Raises:
            FileTypeOrSizeError: If the file breaks the type/size constraints
            StorageAdapterError: If the upload fails
        """
        check_cv_file(mimetype, len(content))
        key = self._new_key(mimetype)

        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content,
                ContentType=mimetype,
                ContentDisposition=f"attachment; filename*=UTF-8''{quote(original_name)}",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 upload failed", error=str(e), key=key)
            raise StorageAdapterError(f"Upload failed: {str(e)}") from e

        logger.info(
            "CV uploaded to S3",
            bucket=self.bucket,
            key=key,
            size=len(content),
        )

        return StoredFile(
            url=self._public_url(key),
            public_id=key,
            original_name=original_name,
            size=len(content),
            mimetype=mimetype,
        )

    async def delete(self, public_id: str) -> None:
        """Delete a stored CV.

        Args:
            public_id: Object key returned by store()
        """
        try:
            self.client.delete_object(Bucket=self.bucket, Key=public_id)
            logger.info("CV deleted from S3", bucket=self.bucket, key=public_id)
        except (ClientError, BotoCoreError) as e:
            logger.error("S3 delete failed", error=str(e), key=public_id)
            raise StorageAdapterError(f"Delete failed: {str(e)}") from e

    async def get_download_url(self, public_id: str, filename: str) -> str:
        """Presigned GET URL that downloads the CV under the given filename."""
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": public_id,
                    "ResponseContentDisposition": f'attachment; filename="{filename}"',
                },
                ExpiresIn=settings.CV_DOWNLOAD_EXPIRES_IN,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Presigned URL generation failed", error=str(e), key=public_id)
            raise StorageAdapterError(f"Presigned URL failed: {str(e)}") from e


# Process-wide storage, set up at startup
_storage: Optional[S3Storage] = None


def init_storage() -> Optional[S3Storage]:
    """Validate settings and create the process-wide storage client.

    Raises:
        StorageConfigError: In production, when settings are invalid.
            Elsewhere the error is logged and CV storage stays disabled.
    """
    global _storage
    try:
        validate_storage_settings()
        _storage = S3Storage()
        logger.info("CV storage configured", bucket=settings.S3_BUCKET, region=settings.S3_REGION)
    except StorageConfigError as e:
        if settings.is_production:
            logger.critical("CV storage configuration failed", error=str(e))
            raise
        logger.warning("CV storage disabled", error=str(e))
        _storage = None
    return _storage


def get_storage() -> Optional[S3Storage]:
    """Dependency returning the configured storage, or None when disabled."""
    return _storage
