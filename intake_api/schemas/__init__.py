"""Pydantic schemas for API request/response validation.

All schemas use CamelCase for JSON field names (via alias_generator).
"""

from .base import CamelModel, Envelope, FieldErrorItem, PaginationMeta
from .applications import (
    ApplicationDraft,
    ApplicationResponse,
    ApplicationStatistics,
    CvDownloadResponse,
    DailySubmissionCount,
    StatusUpdateRequest,
    SubmissionReceipt,
)

__all__ = [
    # Base
    "CamelModel",
    "Envelope",
    "FieldErrorItem",
    "PaginationMeta",
    # Applications
    "ApplicationDraft",
    "ApplicationResponse",
    "ApplicationStatistics",
    "CvDownloadResponse",
    "DailySubmissionCount",
    "StatusUpdateRequest",
    "SubmissionReceipt",
]
