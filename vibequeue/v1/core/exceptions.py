import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from vibequeue.config.logging import add_request_context, get_logger

logger = get_logger(__name__)


class VibeQueueException(Exception):
    """Base exception for the vibequeue application."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(VibeQueueException):
    """Raised when input validation fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY, details)


class NotFoundError(VibeQueueException):
    """Raised when a resource is not found."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)


class JobQueueError(VibeQueueException):
    """Base exception for AI queue failures."""


class NoHandlerError(JobQueueError):
    """No handler is registered for a job's type."""

    def __init__(self, job_type: str):
        self.job_type = job_type
        super().__init__(
            f"No handler registered for type: {job_type}",
            details={"job_type": job_type},
        )


class HandlerExecutionError(JobQueueError):
    """A handler raised while executing a job."""

    def __init__(self, job_id: int, job_type: str, error: BaseException):
        self.job_id = job_id
        self.job_type = job_type
        self.error = error
        super().__init__(
            describe_error(error),
            details={"job_id": job_id, "job_type": job_type},
        )
        self.__cause__ = error


class PreconditionError(JobQueueError):
    """A manual trigger was requested for a job that is not retryable."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_409_CONFLICT,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code, details)


class StoreError(JobQueueError):
    """Reading or writing the job store failed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE, details)


def describe_error(error: BaseException) -> str:
    """Message stored on a failed job for the given exception."""
    return str(error) or error.__class__.__name__


def create_error_response(
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response envelope."""
    return {
        "ok": False,
        "error": {
            "message": message,
            "code": status_code,
            "details": details or {},
        },
        "request_id": request_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def create_success_response(
    data: Any, message: str | None = None, request_id: str | None = None
) -> dict[str, Any]:
    """Create standardized success response envelope."""
    return {
        "ok": True,
        "data": data,
        "message": message,
        "request_id": request_id,
        "timestamp": datetime.now(UTC).isoformat(),
    }


def _error_json(
    request: Request,
    status_code: int,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(status_code, message, details, request_id),
    )


async def vibequeue_exception_handler(
    request: Request, exc: VibeQueueException
) -> JSONResponse:
    """Handle application exceptions. Client errors are logged as warnings."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "Application exception",
        exception=exc.__class__.__name__,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )
    return _error_json(request, exc.status_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions."""
    logger.warning("HTTP exception", status_code=exc.status_code, detail=exc.detail)
    return _error_json(request, exc.status_code, str(exc.detail))


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request body and parameter validation failures in the error envelope."""
    errors = [
        {"loc": list(error["loc"]), "message": error["msg"]} for error in exc.errors()
    ]
    logger.warning("Request validation failed", errors=errors)
    return _error_json(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Request validation failed",
        {"errors": errors},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "Unhandled exception",
        exception=exc.__class__.__name__,
        message=str(exc),
        exc_info=True,
    )
    return _error_json(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a correlation id to the log context and echoes it as X-Request-ID."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        add_request_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
