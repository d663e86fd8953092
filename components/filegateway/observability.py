from __future__ import annotations
import logging
import time, uuid
from typing import Callable, Optional
from fastapi import Request, Response
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("filegateway")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # boto is chatty at INFO
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)

def _otel_trace_id() -> Optional[str]:
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        return format(ctx.trace_id, "032x")
    return None

class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags every request with x-request-id / x-trace-id and logs its start and end."""

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.perf_counter()
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        trace_id = request.headers.get("x-trace-id") or _otel_trace_id() or uuid.uuid4().hex

        request.state.request_id = request_id
        request.state.trace_id = trace_id
        ctx = {"request_id": request_id, "trace_id": trace_id}

        logger.info("request.start %s %s", request.method, request.url.path, extra=ctx)
        try:
            response: Response = await call_next(request)
        except Exception:
            logger.exception(
                "request.exception %s duration_ms=%s",
                request.url.path, int((time.perf_counter() - start) * 1000), extra=ctx,
            )
            raise
        # for streamed bodies this is time-to-headers, not time-to-last-byte
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers["x-request-id"] = request_id
        response.headers["x-trace-id"] = trace_id
        logger.info(
            "request.end %s status=%s duration_ms=%s",
            request.url.path, response.status_code, duration_ms, extra=ctx,
        )
        return response
