"""Alerts router.

Requesters raise alerts and read their history; the assigned responder
reads an alert and moves it through its status lifecycle.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status

from alertroute.config import settings
from alertroute.core.auth import (
    CurrentPrincipal,
    PrincipalRole,
    RequesterPrincipal,
    ResponderPrincipal,
)
from alertroute.core.errors import AuthorizationError, NotFoundError
from alertroute.dependencies import get_dispatch_engine, get_store
from alertroute.logging_config import get_logger
from alertroute.middleware.rate_limit import limiter
from alertroute.schemas.alert import (
    AlertCreatedResponse,
    AlertResponse,
    AlertStatusUpdateRequest,
    AssignedResponderSummary,
)
from alertroute.services.dispatch import DispatchEngine
from alertroute.services.media import MediaUpload
from alertroute.stores.base import DispatchStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/alerts", tags=["alerts"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=AlertCreatedResponse,
)
@limiter.limit(settings.alert_create_rate_limit)
async def create_alert(
    request: Request,
    principal: RequesterPrincipal,
    latitude: Annotated[str | None, Form()] = None,
    longitude: Annotated[str | None, Form()] = None,
    audio: Annotated[UploadFile | None, File()] = None,
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> AlertCreatedResponse:
    """Raise an alert and route it to the nearest available responder.

    Accepts form fields ``latitude`` and ``longitude`` and an optional
    ``audio`` recording. The responder's name and distance are returned
    alongside the alert.
    """
    media = None
    if audio is not None:
        data = await audio.read()
        if data:
            media = MediaUpload(
                data=data,
                content_type=audio.content_type or "audio/m4a",
            )

    result = await engine.create_alert(principal.id, latitude, longitude, media)

    return AlertCreatedResponse(
        alert=AlertResponse.from_alert(result.alert),
        message="Alert sent successfully",
        security_company=AssignedResponderSummary(
            name=result.responder.company_name,
            distance=f"{result.distance_km:.2f} km",
        ),
    )


@router.get("/user/history", response_model=list[AlertResponse])
async def get_alert_history(
    principal: RequesterPrincipal,
    store: DispatchStore = Depends(get_store),
) -> list[AlertResponse]:
    """Get the requester's alerts, newest first."""
    alerts = await store.list_alerts_for_requester(principal.id)
    return [AlertResponse.from_alert(a) for a in alerts]


@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(
    alert_id: uuid.UUID,
    principal: CurrentPrincipal,
    store: DispatchStore = Depends(get_store),
) -> AlertResponse:
    """Get a single alert.

    Visible to the requester who raised it and to its current assignee.
    """
    alert = await store.get_alert(alert_id)
    if alert is None:
        raise NotFoundError("Alert not found")

    if principal.role == PrincipalRole.REQUESTER:
        allowed = alert.user_id == principal.id
    else:
        allowed = alert.responder_id == principal.id

    if not allowed:
        logger.warning(
            "Alert access denied",
            alert_id=str(alert_id),
            principal_id=str(principal.id),
            principal_role=principal.role.value,
        )
        raise AuthorizationError("Unauthorized")

    return AlertResponse.from_alert(alert)


@router.patch("/{alert_id}/status", response_model=AlertResponse)
async def update_alert_status(
    alert_id: uuid.UUID,
    body: AlertStatusUpdateRequest,
    principal: ResponderPrincipal,
    engine: DispatchEngine = Depends(get_dispatch_engine),
) -> AlertResponse:
    """Move an alert through its lifecycle (assigned responder only)."""
    alert = await engine.update_status(alert_id, body.status, principal.id)
    return AlertResponse.from_alert(alert)
