"""Domain exceptions and the JSON error handlers registered on the app.

Every handler answers with the same body shape::

    {"error": "<code>", "detail": ...}

Domain exceptions carry their own ``code`` and ``status_code`` so a single
handler can translate all of them.
"""

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette import status
import logging

logger = logging.getLogger("field_expenses.errors")


class ExpenseDomainError(Exception):
    code = "domain_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class EmptyBatchError(ExpenseDomainError):
    """Add at least one expense entry."""

    code = "empty_batch"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidTransitionError(ExpenseDomainError):
    """Status transition not allowed from the current state."""

    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current: str, action: str):
        self.current = current
        self.action = action
        super().__init__(f"cannot {action} an expense that is {current}")


class MissingReasonError(ExpenseDomainError):
    """A rejection reason is required."""

    code = "missing_reason"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class StaleTransitionError(ExpenseDomainError):
    """Expense status changed while the transition was being applied."""

    code = "stale_transition"
    status_code = status.HTTP_409_CONFLICT


class UploadFailedError(ExpenseDomainError):
    """Upload failed."""

    code = "upload_failed"
    status_code = status.HTTP_502_BAD_GATEWAY


class UnknownActorError(ExpenseDomainError):
    """Unknown or missing actor."""

    code = "unknown_actor"
    status_code = status.HTTP_401_UNAUTHORIZED


class NotAuthorizedError(ExpenseDomainError):
    """Administrative capability required."""

    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class RecordNotFoundError(ExpenseDomainError):
    """Record not found."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class MissionConflictError(ExpenseDomainError):
    code = "mission_conflict"
    status_code = status.HTTP_409_CONFLICT


class ActiveMissionExistsError(MissionConflictError):
    """An active mission already exists for this owner."""


class MissionNotActiveError(MissionConflictError):
    """Mission is not active."""


def not_found_handler(request: Request, exc):  # type: ignore
    if exc.status_code != status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "http_error", "detail": exc.detail},
        )
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "not_found",
            "detail": exc.detail
            if exc.detail and exc.detail != "Not Found"
            else f"No route for {request.method} {request.url.path}",
        },
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def domain_error_handler(request: Request, exc: ExpenseDomainError):  # type: ignore
    if isinstance(exc, InvalidTransitionError):
        # Admin endpoints only offer legal actions; reaching this is a defect upstream.
        logger.error(
            "invalid transition attempted",
            extra={"fields": {"path": request.url.path, "detail": exc.detail}},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail},
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
