"""Global exception handlers for the API.

Every error leaves the API in the standard envelope:
``{"success": false, "message": ..., "errors": [{"field": ..., "message": ...}]}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


def field_error(field: str, message: str) -> dict[str, str]:
    """Build one entry of an ``errors`` list."""
    return {"field": field, "message": message}


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        message: str,
        code: str = "API_ERROR",
        status_code: int = 400,
        errors: list[dict[str, str]] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)


class ValidationFailedError(APIError):
    """Submission rejected by the request validator; carries every field error."""

    def __init__(self, errors: list[dict[str, str]]):
        super().__init__(
            message="Validation failed",
            code="VALIDATION_ERROR",
            status_code=400,
            errors=errors,
        )


class SchemaValidationError(APIError):
    """Record rejected by the store's own invariant checks."""

    def __init__(self, errors: list[dict[str, str]]):
        super().__init__(
            message="Validation Error",
            code="SCHEMA_ERROR",
            status_code=400,
            errors=errors,
        )


class DuplicateEmailError(APIError):
    """Unique index on applications.email rejected a write."""

    def __init__(self):
        super().__init__(
            message="Duplicate entry",
            code="DUPLICATE_ENTRY",
            status_code=409,
            errors=[field_error("email", "email already exists")],
        )


class NotFoundError(APIError):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str | int):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
        )


class FileTypeOrSizeError(APIError):
    """Uploaded CV has a disallowed MIME type or exceeds the size limit."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            code="INVALID_FILE",
            status_code=400,
            errors=[field_error("cv", message)],
        )


class StorageAdapterError(APIError):
    """File storage backend failed or is not configured."""

    def __init__(self, message: str = "File storage error"):
        super().__init__(
            message=message,
            code="STORAGE_ERROR",
            status_code=500,
        )


def _envelope(message: str, errors: list | None = None) -> dict:
    content = {"success": False, "message": message}
    if errors:
        content["errors"] = errors
    return content


def setup_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
        """Handle custom API errors."""
        log_method = logger.error if exc.status_code >= 500 else logger.warning
        log_method(
            "API error",
            code=exc.code,
            message=exc.message,
            path=request.url.path,
            method=request.method,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(exc.message, exc.errors),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle malformed path, query or body parameters."""
        errors = [
            field_error(
                ".".join(str(loc) for loc in error.get("loc", ())[1:]) or "request",
                error.get("msg", "Invalid value"),
            )
            for error in exc.errors()
        ]
        logger.warning(
            "Request validation error",
            errors=errors,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=400,
            content=_envelope("Invalid request", errors),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle framework HTTP errors such as unknown routes."""
        if exc.status_code == 404:
            message = f"Route not found: {request.url.path}"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Handle database errors."""
        logger.error(
            "Database error",
            error=str(exc),
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content=_envelope("A database error occurred"),
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected errors."""
        logger.exception(
            "Unexpected error",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=500,
            content=_envelope("Internal Server Error"),
        )
