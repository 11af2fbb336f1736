from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from logdrain.request_context import new_request_id, reset_request_id, set_request_id

logger = logging.getLogger("logdrain.access")


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    One log line per request. The request id is logplex's frame id when the
    drain sends one, a random id otherwise, and is echoed in x-request-id.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        request_id = request.headers.get("logplex-frame-id") or new_request_id()
        token = set_request_id(request_id)
        status = 500
        try:
            resp = await call_next(request)
            status = resp.status_code
            resp.headers["x-request-id"] = request_id
            return resp
        finally:
            dur_ms = (time.time() - start) * 1000.0
            logger.info(
                '%s "%s %s" %d %.1fms',
                request.client.host if request.client else "-",
                request.method,
                request.url.path,
                status,
                dur_ms,
            )
            reset_request_id(token)
