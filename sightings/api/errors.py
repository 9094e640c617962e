"""
HTTP translation of kernel errors.

The kernel raises transport-free exceptions; this module is the single
place that turns them (and request validation failures) into JSON error
responses.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sightings.kernel.errors import (
    ConflictError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
    RevisionStoreError,
)
from sightings.logging_config import get_logger

logger = get_logger(__name__)

# Most specific class first: ConflictError is an InvalidStateError
STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidStateError, status.HTTP_400_BAD_REQUEST),
    (NotAuthorizedError, status.HTTP_403_FORBIDDEN),
)


def status_for(request: Request, exc: RevisionStoreError) -> int:
    """
    Status code for a kernel error.

    A denial is 401 when the request carried no identity and 403 when it
    did; only this layer knows which.
    """
    if isinstance(exc, NotAuthorizedError):
        context = getattr(request.state, "auth_context", None)
        if context is None or not context.is_authenticated:
            return status.HTTP_401_UNAUTHORIZED
    for error_class, code in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(request: Request, status_code: int, content: Dict[str, Any]) -> JSONResponse:
    """JSON error body with the correlation id echoed back."""
    headers = {}
    request_id: Optional[str] = getattr(request.state, "request_id", None)
    if request_id:
        headers["X-Request-ID"] = request_id
        if status_code >= 500:
            content["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI, *, debug: bool = False) -> None:
    """Install the handlers on the application."""

    @app.exception_handler(RevisionStoreError)
    async def revision_store_exception_handler(request: Request, exc: RevisionStoreError):
        status_code = status_for(request, exc)
        if isinstance(exc, ConflictError):
            logger.warning(
                "Write conflict: %s", exc.message,
                extra={"item_id": exc.item_id, "revision_id": exc.revision_id},
            )
        content: Dict[str, Any] = {"detail": exc.message, "code": type(exc).__name__}
        if exc.item_id is not None:
            content["item_id"] = exc.item_id
        if exc.revision_id is not None:
            content["revision_id"] = exc.revision_id
        return error_response(request, status_code, content)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return error_response(request, exc.status_code, {"detail": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """422 with one entry per offending field."""
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        return error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"detail": "Validation error", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        if debug:
            content = {"detail": str(exc), "type": type(exc).__name__}
        else:
            content = {"detail": "Internal server error"}
        return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, content)
