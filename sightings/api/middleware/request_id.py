"""
Request correlation middleware.

Every request gets an id (the caller's X-Request-ID when it is usable, a
fresh UUID otherwise). The id is echoed on the response, stored on
request.state for the error handlers and bound to the logging context.
"""

import re
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from sightings.logging_config import get_logger, request_id_var, user_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Ids from upstream proxies are logged verbatim, so keep them tame
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def _accept_request_id(incoming: Optional[str]) -> str:
    if incoming and _VALID_REQUEST_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Bind a correlation id (and, once known, the caller's user id) to the
    logging context for the lifetime of one request.

    Requests slower than ``slow_request_ms`` are logged at WARNING.
    """

    def __init__(self, app: ASGIApp, slow_request_ms: float = 1000.0):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        request_token = request_id_var.set(request_id)
        # The identity dependency fills this in after resolving the caller
        user_token = user_id_var.set(None)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
            user_id_var.reset(user_token)
            request_id_var.reset(request_token)

        response.headers[REQUEST_ID_HEADER] = request_id

        details = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": elapsed_ms,
            "request_id": request_id,
        }
        if elapsed_ms > self.slow_request_ms:
            logger.warning("Slow request", extra=details)
        else:
            logger.debug("Request handled", extra=details)
        return response
