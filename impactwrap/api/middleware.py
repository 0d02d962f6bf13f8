# impactwrap/api/middleware.py
import re
import time
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ..core.log_config import get_logger

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request id, method and path to every log line of a request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        # 1) reuse the caller's request id when it looks sane
        request_id = request.headers.get(REQUEST_ID_HEADER) or ""
        if not REQUEST_ID_RE.fullmatch(request_id):
            request_id = uuid.uuid4().hex

        # 2) bind context for handlers and loggers further down
        start = time.monotonic()
        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        ):
            response = await call_next(request)
            duration_ms = (time.monotonic() - start) * 1000

            level = "warning" if response.status_code >= 400 else "info"
            if response.status_code >= 500:
                level = "error"
            getattr(logger, level)(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

        # 3) echo the id so clients can correlate
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
