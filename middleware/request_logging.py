"""
Per-request access log with a request id.

The id comes from the caller's X-Request-ID header or is generated, is
bound to config.logging_config.request_id_var for the duration of the
request and echoed back on the response. Bodies, headers and query
strings are never logged (bodies carry raw reports and passwords).
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from config.logging_config import request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = (request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12])[:64]
        token = request_id_var.set(request_id)
        request.state.request_id = request_id
        path = request.scope.get("path", "")
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed method=%s path=%s duration_ms=%.1f",
                request.method, path, (time.perf_counter() - started) * 1000,
            )
            raise
        else:
            logger.log(
                _level_for(response.status_code),
                "request_finished method=%s path=%s status=%s duration_ms=%.1f",
                request.method, path, response.status_code, (time.perf_counter() - started) * 1000,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)
