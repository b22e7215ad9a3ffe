import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from paintops.common.logging import get_logger

logger = get_logger("middleware")

REQUEST_ID_HEADER = "X-Request-ID"


class AuditMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id, bind it to the log context and time the call."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("%s %s failed", request.method, request.url.path)
            raise
        duration_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "%s %s %d %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        return response
