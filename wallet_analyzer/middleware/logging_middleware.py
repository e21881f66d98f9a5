"""
HTTP request logging middleware.

One ``http_request`` event per call with the endpoint, status, latency, the
queried wallet and, when present, the rate limit headroom left for it. Query
strings are never logged verbatim.
"""

import time
import uuid
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("http")

REQUEST_ID_HEADER = "x-request-id"


def _wallet_param(request: Request) -> Optional[str]:
    wallet = request.query_params.get("address")
    if wallet is None:
        return None
    wallet = wallet.strip().lower()
    return wallet or None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log wallet API calls and tag downstream logs with request and wallet."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        wallet = _wallet_param(request)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, wallet=wallet)

        started = time.perf_counter()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            status_code = response.status_code if response is not None else 500
            remaining = response.headers.get("X-RateLimit-Remaining") if response is not None else None
            fields = {
                "method": request.method,
                "path": request.url.path,
                "status": status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                "rate_limit_remaining": int(remaining) if remaining is not None else None,
            }
            if status_code >= 500:
                logger.error("http_request", **fields)
            elif status_code in (400, 429):
                logger.info("http_request_rejected", **fields)
            elif status_code >= 400:
                logger.warning("http_request", **fields)
            else:
                logger.info("http_request", **fields)
