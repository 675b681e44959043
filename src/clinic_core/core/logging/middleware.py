"""Request correlation and access logging middleware."""

import re
import time
import uuid
from typing import Any

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint


logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

# Caller-supplied IDs end up in every log line of the request
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# Health checks and docs are not access-logged
QUIET_PATHS = ("/health/", "/docs", "/redoc", "/openapi.json")


def get_client_ip(request: Request) -> str | None:
    """Extract the real client IP from a request.

    Prefers the first ``X-Forwarded-For`` hop, then ``X-Real-IP``, then
    the socket peer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return None


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Gives every request a correlation ID.

    A well-formed inbound ``X-Request-ID`` is reused, anything else is
    replaced by a fresh UUID. The ID is stored on ``request.state``
    (``trace_id`` is what error bodies report), bound into the structlog
    context for the lifetime of the request, and echoed on the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        inbound = request.headers.get(REQUEST_ID_HEADER, "")
        request_id = inbound if _REQUEST_ID_PATTERN.match(inbound) else str(uuid.uuid4())

        request.state.request_id = request_id
        request.state.trace_id = request_id

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "staff_id")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Emits ``request_started`` / ``request_completed`` for each request.

    Completion is logged at warning level for 4xx and error level for
    5xx responses, with the resolved tenant when there is one.
    """

    def __init__(
        self,
        app: Any,
        quiet_paths: tuple[str, ...] = QUIET_PATHS,
    ) -> None:
        super().__init__(app)
        self.quiet_paths = quiet_paths

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        path = request.url.path
        if path.startswith(self.quiet_paths):
            return await call_next(request)

        start_time = time.perf_counter()
        method = request.method

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_ip=get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_failed",
                method=method,
                path=path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        completion: dict[str, Any] = {
            "method": method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
        }
        tenant = getattr(request.state, "tenant", None)
        if tenant is not None:
            completion["tenant_id"] = str(tenant.tenant_id)
            completion["tenant_slug"] = tenant.slug

        if response.status_code >= 500:
            logger.error("request_completed", **completion)
        elif response.status_code >= 400:
            logger.warning("request_completed", **completion)
        else:
            logger.info("request_completed", **completion)

        return response
