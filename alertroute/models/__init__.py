# Database Models
from alertroute.models.alert import (
    ALLOWED_TRANSITIONS,
    Alert,
    AlertStatus,
)
from alertroute.models.base import Base, TimestampMixin
from alertroute.models.responder import DEFAULT_COVERAGE_RADIUS_KM, Responder
from alertroute.models.routing_history import AlertRoutingHistory
from alertroute.models.user import User

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Alert",
    "AlertRoutingHistory",
    "AlertStatus",
    "Base",
    "DEFAULT_COVERAGE_RADIUS_KM",
    "Responder",
    "TimestampMixin",
    "User",
]
