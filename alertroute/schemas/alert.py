"""Alert request/response schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from alertroute.models.alert import AlertStatus


class AlertResponse(BaseModel):
    """Single alert."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    security_company_id: uuid.UUID
    latitude: float
    longitude: float
    audio_url: str | None
    user_name: str | None
    user_phone: str | None
    status: AlertStatus
    created_at: datetime
    dispatched_at: datetime | None
    resolved_at: datetime | None
    cancelled_at: datetime | None

    @classmethod
    def from_alert(cls, alert) -> "AlertResponse":
        """Build the API representation of an Alert row."""
        return cls(
            id=alert.id,
            user_id=alert.user_id,
            security_company_id=alert.responder_id,
            latitude=alert.latitude,
            longitude=alert.longitude,
            audio_url=alert.audio_url,
            user_name=alert.requester_name,
            user_phone=alert.requester_phone,
            status=alert.status,
            created_at=alert.created_at,
            dispatched_at=alert.dispatched_at,
            resolved_at=alert.resolved_at,
            cancelled_at=alert.cancelled_at,
        )


class AssignedResponderSummary(BaseModel):
    """Responder chosen for a new alert."""

    name: str
    distance: str  # e.g. "2.04 km"


class AlertCreatedResponse(BaseModel):
    """Response for a newly created alert."""

    alert: AlertResponse
    message: str
    security_company: AssignedResponderSummary


class AlertStatusUpdateRequest(BaseModel):
    """Responder status change.

    Kept as a plain string so unknown values are reported as 400.
    """

    status: str | None = None
