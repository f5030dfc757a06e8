"""Application endpoints: public submission plus admin review."""

import os
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from intake_api.config.database import get_db
from intake_api.config.settings import settings
from intake_api.integrations.s3 import S3Storage, StoredFile, check_cv_file, get_storage
from intake_api.integrations.ses import SESService, get_mailer
from intake_api.middleware.error_handler import APIError, StorageAdapterError
from intake_api.middleware.security import get_client_ip
from intake_api.models.applications import MAX_CV_ORIGINAL_NAME, MAX_USER_AGENT
from intake_api.schemas.applications import (
    ApplicationResponse,
    ApplicationStatistics,
    CvDownloadResponse,
    StatusUpdateRequest,
    SubmissionReceipt,
)
from intake_api.schemas.base import Envelope
from intake_api.services.application_service import ApplicationService
from intake_api.services.notifications import NotificationDispatcher

logger = structlog.get_logger()
router = APIRouter()

CV_FIELD = "cv"

# Fields that may arrive as repeated form entries
LIST_FIELDS = {"skills", "portfolioLinks"}


@dataclass
class SubmissionInput:
    """Raw submission fields plus the attached CV, if any."""

    payload: dict[str, Any] = field(default_factory=dict)
    upload: Optional[UploadFile] = None


async def read_submission(request: Request) -> SubmissionInput:
    """Read a multipart/urlencoded form or a JSON body into a flat payload."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise APIError("Malformed JSON body", code="INVALID_REQUEST", status_code=400)
        if not isinstance(body, dict):
            raise APIError("Request body must be a JSON object", code="INVALID_REQUEST", status_code=400)
        return SubmissionInput(payload=body)

    form = await request.form()
    submission = SubmissionInput()
    for key in set(form.keys()):
        values = form.getlist(key)
        if key == CV_FIELD:
            upload = values[0]
            if isinstance(upload, UploadFile) and upload.filename:
                submission.upload = upload
            continue
        name = key[:-2] if key.endswith("[]") else key
        if name in LIST_FIELDS and (len(values) > 1 or key != name):
            submission.payload[name] = list(values)
        else:
            submission.payload[name] = values[0]
    return submission


def clip(value: Optional[str], limit: int) -> Optional[str]:
    return value[:limit] if value else value


def clip_filename(filename: str, limit: int = MAX_CV_ORIGINAL_NAME) -> str:
    """Shorten an uploaded filename to fit its column, keeping the extension."""
    if len(filename) <= limit:
        return filename
    stem, ext = os.path.splitext(filename)
    if len(ext) >= limit:
        return filename[:limit]
    return stem[: limit - len(ext)] + ext


async def store_cv(upload: Optional[UploadFile], storage: Optional[S3Storage]) -> Optional[StoredFile]:
    """Check and store an uploaded CV."""
    if upload is None:
        return None

    # One byte past the limit is enough to know the file is too large
    content = await upload.read(settings.CV_MAX_BYTES + 1)
    check_cv_file(upload.content_type, len(content))
    if storage is None:
        raise StorageAdapterError("File storage is not configured")
    return await storage.store(content, clip_filename(upload.filename), upload.content_type)


def get_application_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    storage: Optional[S3Storage] = Depends(get_storage),
    mailer: Optional[SESService] = Depends(get_mailer),
) -> ApplicationService:
    return ApplicationService(db, storage, NotificationDispatcher(mailer), background_tasks)


@router.post(
    "/submit",
    status_code=201,
    response_model=Envelope[SubmissionReceipt],
    response_model_exclude_none=True,
)
async def submit_application(
    request: Request,
    submission: SubmissionInput = Depends(read_submission),
    service: ApplicationService = Depends(get_application_service),
):
    """Submit a new application, optionally with a CV file in the ``cv`` field."""
    cv = await store_cv(submission.upload, service.storage)
    record = await service.submit(
        submission.payload,
        cv=cv,
        ip_address=get_client_ip(request),
        user_agent=clip(request.headers.get("user-agent"), MAX_USER_AGENT),
    )
    return Envelope(
        message="Application submitted successfully",
        data=SubmissionReceipt.model_validate(record),
    )


@router.get(
    "",
    response_model=Envelope[list[ApplicationResponse]],
    response_model_exclude_none=True,
)
async def list_applications(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    role: Optional[str] = Query(None),
    experience: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    service: ApplicationService = Depends(get_application_service),
):
    """List applications with filters, sorting and pagination."""
    records, pagination = service.list(
        filters={"status": status, "role": role, "experience": experience},
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return Envelope(
        data=[ApplicationResponse.model_validate(record) for record in records],
        pagination=pagination,
    )


@router.get(
    "/stats/overview",
    response_model=Envelope[ApplicationStatistics],
    response_model_exclude_none=True,
)
async def get_statistics(
    service: ApplicationService = Depends(get_application_service),
):
    """Totals by status, role and experience plus the last week's daily counts."""
    return Envelope(data=service.statistics())


@router.get(
    "/{application_id}",
    response_model=Envelope[ApplicationResponse],
    response_model_exclude_none=True,
)
async def get_application(
    application_id: int,
    service: ApplicationService = Depends(get_application_service),
):
    """Get an application by ID."""
    record = service.get(application_id)
    return Envelope(data=ApplicationResponse.model_validate(record))


@router.get(
    "/{application_id}/cv/download",
    response_model=Envelope[CvDownloadResponse],
    response_model_exclude_none=True,
)
async def download_cv(
    application_id: int,
    service: ApplicationService = Depends(get_application_service),
):
    """Presigned link that downloads the CV under its display filename."""
    return Envelope(data=await service.cv_download(application_id))


@router.patch(
    "/{application_id}/status",
    response_model=Envelope[ApplicationResponse],
    response_model_exclude_none=True,
)
async def update_application_status(
    application_id: int,
    body: Optional[StatusUpdateRequest] = Body(None),
    service: ApplicationService = Depends(get_application_service),
):
    """Set the review status and notify the applicant."""
    record = await service.update_status(application_id, body.status if body else None)
    return Envelope(
        message="Application status updated",
        data=ApplicationResponse.model_validate(record),
    )


@router.delete(
    "/{application_id}",
    response_model=Envelope,
    response_model_exclude_none=True,
)
async def delete_application(
    application_id: int,
    service: ApplicationService = Depends(get_application_service),
):
    """Delete an application and its stored CV."""
    await service.delete(application_id)
    return Envelope(message="Application deleted successfully")
