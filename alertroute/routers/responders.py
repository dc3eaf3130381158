"""Responder-facing endpoints: assigned alerts and availability."""

from fastapi import APIRouter, Depends, Query

from alertroute.core.auth import ResponderPrincipal
from alertroute.core.errors import NotFoundError
from alertroute.dependencies import get_store
from alertroute.logging_config import get_logger
from alertroute.schemas.alert import AlertResponse
from alertroute.schemas.responder import AvailabilityUpdateRequest, ResponderResponse
from alertroute.services.dispatch import parse_status
from alertroute.stores.base import DispatchStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/responders", tags=["responders"])


@router.get("/alerts", response_model=list[AlertResponse])
async def get_assigned_alerts(
    principal: ResponderPrincipal,
    status_filter: str | None = Query(default=None, alias="status"),
    store: DispatchStore = Depends(get_store),
) -> list[AlertResponse]:
    """Get alerts currently assigned to the responder, newest first."""
    alert_status = parse_status(status_filter) if status_filter else None
    alerts = await store.list_alerts_for_responder(principal.id, alert_status)
    return [AlertResponse.from_alert(a) for a in alerts]


@router.patch("/availability", response_model=ResponderResponse)
async def update_availability(
    body: AvailabilityUpdateRequest,
    principal: ResponderPrincipal,
    store: DispatchStore = Depends(get_store),
) -> ResponderResponse:
    """Mark the responder available or unavailable for new dispatches.

    Alerts already assigned are unaffected.
    """
    responder = await store.set_responder_availability(principal.id, body.is_available)
    if responder is None:
        raise NotFoundError("Security company not found")

    logger.info(
        "Responder availability changed",
        responder_id=str(principal.id),
        is_available=body.is_available,
    )
    return ResponderResponse.model_validate(responder)
