"""Middleware package for the AlertRoute API."""

from alertroute.middleware.correlation import CORRELATION_ID_HEADER, CorrelationIdMiddleware
from alertroute.middleware.rate_limit import limiter, rate_limit_exceeded_handler

__all__ = [
    "CORRELATION_ID_HEADER",
    "CorrelationIdMiddleware",
    "limiter",
    "rate_limit_exceeded_handler",
]
