"""External service integrations (S3 for CV files, SES for email)."""

from .s3 import S3Storage, StoredFile, get_storage, init_storage
from .ses import SESService, get_mailer, init_mailer

__all__ = [
    "S3Storage",
    "StoredFile",
    "get_storage",
    "init_storage",
    "SESService",
    "get_mailer",
    "init_mailer",
]
