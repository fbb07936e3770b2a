"""Request ID middleware — tags every request's logs with its id and credential source."""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger("starlens.api")

API_KEY_HEADER = "x-github-api-key"


def _is_valid_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def api_key_source(request: Request) -> str:
    """Where the GitHub credential for this request comes from; never the key itself."""
    return "header" if request.headers.get(API_KEY_HEADER) else "server"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind request_id and api_key_source into structlog contextvars.

    Analyses run inside a streaming body, so "request completed" marks the
    start of the NDJSON stream; the pipeline's own events carry the same
    request_id until the stream ends.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        raw_id = request.headers.get("x-request-id", "")
        request_id = raw_id if _is_valid_uuid(raw_id) else str(uuid.uuid4())

        tokens = structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            api_key_source=api_key_source(request),
        )
        start = time.perf_counter()
        try:
            log.info("request.started")
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 1)
            log.info(
                "request.completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
                streaming=response.headers.get("content-type", "").startswith(
                    "application/x-ndjson"
                ),
            )
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception:
            duration_ms = round((time.perf_counter() - start) * 1000, 1)
            log.exception("request.failed", duration_ms=duration_ms)
            raise
        finally:
            structlog.contextvars.reset_contextvars(**tokens)
