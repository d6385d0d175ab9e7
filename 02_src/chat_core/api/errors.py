"""Mapping of chat failures to HTTP errors."""

from fastapi import HTTPException

from ..errors import ChatError, NotAuthenticated, NotFound, PermissionDenied, ValidationFailure
from ..models import Result

STATUS_BY_ERROR = (
    (ValidationFailure, 400),
    (NotAuthenticated, 401),
    (PermissionDenied, 403),
    (NotFound, 404),
)


def status_for(error: Exception | None) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


def http_error(error: Exception) -> HTTPException:
    detail = error.message if isinstance(error, ChatError) else str(error)
    return HTTPException(status_code=status_for(error), detail=detail)


def raise_for_result(result: Result) -> None:
    """Raise the HTTP error matching a failed operation result."""
    if result.ok or result.skipped:
        return
    if result.exception is not None:
        raise http_error(result.exception)
    raise HTTPException(status_code=500, detail=result.error or "Operation failed")
