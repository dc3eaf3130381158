"""Responder request/response schemas."""

import uuid

from pydantic import BaseModel, ConfigDict, StrictBool


class ResponderResponse(BaseModel):
    """Responder profile as seen by the responder."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    company_name: str
    phone_number: str | None
    address: str | None
    latitude: float | None
    longitude: float | None
    coverage_radius_km: float
    is_available: bool


class AvailabilityUpdateRequest(BaseModel):
    """Availability toggle; must be a real boolean."""

    is_available: StrictBool
