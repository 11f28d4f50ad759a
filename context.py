import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

request_id_context: ContextVar[str] = ContextVar("request_id", default="-")

logger = logging.getLogger(__name__)


def install_request_id_factory():
    """
    Give every log record a request_id attribute, "-" outside a request

    Works at record creation, so any handler or formatter can use %(request_id)s.
    """
    base_factory = logging.getLogRecordFactory()
    if getattr(base_factory, "adds_request_id", False):
        return

    def record_factory(*args, **kwargs) -> logging.LogRecord:
        record = base_factory(*args, **kwargs)
        record.request_id = request_id_context.get()
        return record

    record_factory.adds_request_id = True
    logging.setLogRecordFactory(record_factory)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tag each request with a short id that log records and the response carry
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        token = request_id_context.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "%s %s -> %s (%.1fms)",
                request.method, request.url.path, response.status_code, elapsed_ms
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_context.reset(token)
