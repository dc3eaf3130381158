"""Per-client rate limiting for alert creation (slowapi).

Counters live in Redis when ``REDIS_URL`` is set so that every API
replica shares them; otherwise, and always under tests, in process memory.
The limiter is disabled under tests unless a test switches it on.
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from alertroute.config import settings


def _storage_uri() -> str:
    if settings.testing or not settings.redis_url:
        return "memory://"
    return settings.redis_url


def client_ip(request: Request) -> str:
    """Best guess at the caller's address behind a reverse proxy.

    Prefers the leftmost ``X-Forwarded-For`` entry, then ``X-Real-IP``,
    then the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop

    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


limiter = Limiter(
    key_func=client_ip,
    storage_uri=_storage_uri(),
    enabled=not settings.testing,
)


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """429 in the same ``{"detail": ...}`` shape as other API errors."""
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )
