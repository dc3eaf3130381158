"""Correlation ID middleware.

Tags every request with an ``X-Correlation-ID`` (taken from the request
or generated) so that dispatch and escalation log lines emitted while
handling it can be tied together. Written as pure ASGI rather than
BaseHTTPMiddleware to stay clear of asyncpg event loop issues.
"""

import time
import uuid

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from alertroute.logging_config import correlation_id_ctx, get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"

# Probe endpoints are hit constantly; keep them out of request logs
_QUIET_PATH_PREFIXES = ("/health",)


def _correlation_id_from_scope(scope: Scope) -> str:
    for name, value in scope.get("headers", []):
        if name == CORRELATION_ID_HEADER.lower().encode():
            decoded = value.decode("latin-1").strip()
            if decoded:
                return decoded[:128]
    return str(uuid.uuid4())


class CorrelationIdMiddleware:
    """Sets the correlation ID context and echoes it on the response."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = _correlation_id_from_scope(scope)
        token = correlation_id_ctx.set(correlation_id)

        method = scope.get("method", "")
        path = scope.get("path", "")
        quiet = path.startswith(_QUIET_PATH_PREFIXES)
        start_time = time.perf_counter()
        status_code: int | None = None

        async def send_with_header(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                MutableHeaders(scope=message).append(
                    CORRELATION_ID_HEADER, correlation_id
                )
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        except Exception:
            logger.exception(
                "Request failed",
                method=method,
                path=path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise
        else:
            if not quiet:
                logger.info(
                    "Request completed",
                    method=method,
                    path=path,
                    status_code=status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
        finally:
            correlation_id_ctx.reset(token)
