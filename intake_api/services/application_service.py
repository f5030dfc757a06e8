"""Application workflows: submit, list, review and delete."""

from datetime import timedelta
from typing import Any, Mapping, Optional

import structlog
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from intake_api.integrations.s3 import S3Storage, StoredFile
from intake_api.middleware.error_handler import NotFoundError, StorageAdapterError
from intake_api.models.applications import Application
from intake_api.models.base import utcnow
from intake_api.schemas.applications import (
    ApplicationResponse,
    ApplicationStatistics,
    CvDownloadResponse,
    DailySubmissionCount,
)
from intake_api.schemas.base import PaginationMeta
from intake_api.services.application_store import ApplicationStore
from intake_api.services.notifications import NotificationDispatcher
from intake_api.services.validation import ApplicationValidator, validate_status

logger = structlog.get_logger()

STATS_WINDOW_DAYS = 7


class ApplicationService:
    """Coordinates validation, storage, persistence and notifications.

    Notifications are best effort: they run as background tasks when a
    ``BackgroundTasks`` is supplied (inline otherwise) and their failures are
    only logged.
    """

    def __init__(
        self,
        db: Session,
        storage: Optional[S3Storage] = None,
        notifier: Optional[NotificationDispatcher] = None,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        self.store = ApplicationStore(db)
        self.validator = ApplicationValidator(self.store)
        self.storage = storage
        self.notifier = notifier
        self.background_tasks = background_tasks

    async def _notify(self, method: str, *args: Any) -> None:
        try:
            await getattr(self.notifier, method)(*args)
        except Exception as e:
            logger.error("Notification failed", notification=method, error=str(e))

    async def _schedule(self, method: str, *args: Any) -> None:
        if self.notifier is None:
            return
        if self.background_tasks is not None:
            self.background_tasks.add_task(self._notify, method, *args)
        else:
            await self._notify(method, *args)

    async def _discard_file(self, public_id: str) -> None:
        """Delete a stored CV, logging instead of raising on failure."""
        if self.storage is None:
            logger.warning("CV left in storage, no storage configured", public_id=public_id)
            return
        try:
            await self.storage.delete(public_id)
        except Exception as e:
            logger.error("Failed to delete CV", public_id=public_id, error=str(e))

    async def submit(
        self,
        payload: Mapping[str, Any],
        cv: Optional[StoredFile] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Application:
        """Validate and persist a submission, then queue the emails.

        If anything fails after the CV was stored, the file is removed
        before the error propagates.
        """
        try:
            draft = await self.validator.validate(payload)
            updates: dict[str, Any] = {"ip_address": ip_address, "user_agent": user_agent}
            if cv is not None:
                updates.update(
                    cv_url=cv.url,
                    cv_public_id=cv.public_id,
                    cv_original_name=cv.original_name,
                    cv_size=cv.size,
                    cv_mimetype=cv.mimetype,
                )
            record = self.store.create(draft.model_copy(update=updates))
        except Exception:
            if cv is not None:
                await self._discard_file(cv.public_id)
            raise

        logger.info(
            "Application submitted",
            application_id=record.id,
            role=record.display_role,
            has_cv=cv is not None,
        )

        snapshot = ApplicationResponse.model_validate(record)
        await self._schedule("send_applicant_confirmation", record.email, record.full_name)
        await self._schedule("send_admin_alert", snapshot)
        return record

    def list(
        self,
        filters: Optional[dict[str, Any]] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
    ) -> tuple[list[Application], PaginationMeta]:
        records, total = self.store.find(filters, sort_by, sort_order, page, limit)
        return records, PaginationMeta.build(page, limit, total)

    def get(self, application_id: int) -> Application:
        return self.store.get(application_id)

    async def update_status(self, application_id: int, status: Any) -> Application:
        """Validate and apply a status change, then notify the applicant."""
        status = validate_status(status)
        record = self.store.update_status(application_id, status)
        await self._schedule("send_status_change_notice", record.email, record.full_name, status)
        return record

    async def delete(self, application_id: int) -> None:
        """Delete the stored CV (best effort), then the record."""
        record = self.store.get(application_id)
        if record.cv_public_id:
            await self._discard_file(record.cv_public_id)
        self.store.delete(application_id)

    def statistics(self) -> ApplicationStatistics:
        since = utcnow() - timedelta(days=STATS_WINDOW_DAYS)
        return ApplicationStatistics(
            total=self.store.count(),
            status=self.store.count_by_status(),
            roles=self.store.count_by_display_role(),
            experience=self.store.count_by_experience(),
            daily_submissions=[
                DailySubmissionCount(date=day, count=count)
                for day, count in self.store.daily_submissions(since)
            ],
        )

    async def cv_download(self, application_id: int) -> CvDownloadResponse:
        """Short-lived link to an application's CV."""
        record = self.store.get(application_id)
        if not record.cv_public_id:
            raise NotFoundError("CV", application_id)
        if self.storage is None:
            raise StorageAdapterError("File storage is not configured")

        filename = record.cv_download_name
        url = await self.storage.get_download_url(record.cv_public_id, filename)
        return CvDownloadResponse(url=url, filename=filename)
