"""Alert creation and responder status updates.

``DispatchEngine`` routes a new alert to the nearest available responder,
records the first routing attempt and arms the escalation timer. It also
applies responder-driven status changes using the same conditional-write
discipline as escalation, so whichever of the two lands first wins.
"""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from alertroute.config import settings
from alertroute.core.errors import (
    AuthorizationError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from alertroute.core.geo import Coordinate
from alertroute.logging_config import get_logger
from alertroute.models.alert import ALLOWED_TRANSITIONS, Alert, AlertStatus
from alertroute.models.responder import Responder
from alertroute.services.escalation import EscalationScheduler, utcnow
from alertroute.services.media import (
    LocalMediaStorage,
    MediaStorage,
    MediaUpload,
    MediaUploadError,
)
from alertroute.services.notifications import (
    PushNotifier,
    get_push_notifier,
    notify_assignment_safely,
)
from alertroute.services.responder_directory import find_nearest
from alertroute.stores.base import StoreFactory

logger = get_logger(__name__)


@dataclass
class DispatchResult:
    """A newly created alert and the responder it was routed to."""

    alert: Alert
    responder: Responder
    distance_km: float


def parse_status(value: str | None) -> AlertStatus:
    """Parse a client-supplied status string.

    Raises:
        ValidationError: If the value is not a known status.
    """
    try:
        return AlertStatus(value)
    except ValueError:
        raise ValidationError("Invalid status")


class DispatchEngine:
    """Creates alerts and applies responder status transitions."""

    def __init__(
        self,
        store_factory: StoreFactory,
        escalation: EscalationScheduler,
        notifier: PushNotifier,
        media_storage: MediaStorage,
        enforce_coverage_radius: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store_factory = store_factory
        self.escalation = escalation
        self._notifier = notifier
        self._media_storage = media_storage
        self.enforce_coverage_radius = enforce_coverage_radius
        self._clock = clock

    async def create_alert(
        self,
        requester_id: uuid.UUID,
        latitude: object,
        longitude: object,
        media: MediaUpload | None = None,
    ) -> DispatchResult:
        """Create an alert and route it to the nearest available responder.

        Args:
            requester_id: Requester raising the alert.
            latitude: Raw latitude from the request.
            longitude: Raw longitude from the request.
            media: Optional audio recording.

        Returns:
            The persisted alert, its responder and the distance in km.

        Raises:
            ValidationError: Coordinates missing or invalid.
            NotFoundError: Unknown requester.
            ServiceUnavailableError: No eligible responder; nothing persisted.
        """
        origin = Coordinate.parse(latitude, longitude)

        async with self._store_factory() as store:
            requester = await store.get_requester(requester_id)
            if requester is None:
                raise NotFoundError("User not found")

            candidate = await find_nearest(
                store,
                origin,
                enforce_coverage_radius=self.enforce_coverage_radius,
            )
            if candidate is None:
                logger.warning(
                    "No available responder for alert",
                    user_id=str(requester_id),
                    latitude=origin.latitude,
                    longitude=origin.longitude,
                )
                raise ServiceUnavailableError(
                    "No available security companies in your area"
                )

        # Recordings are written between units of work, never inside one
        audio_url = None
        if media is not None:
            audio_url = await self._store_media(requester_id, media)

        now = self._clock()
        alert = Alert(
            id=uuid.uuid4(),
            user_id=requester.id,
            responder_id=candidate.responder.id,
            latitude=origin.latitude,
            longitude=origin.longitude,
            audio_url=audio_url,
            requester_name=requester.full_name,
            requester_phone=requester.phone_number,
            status=AlertStatus.PENDING,
            created_at=now,
        )
        try:
            async with self._store_factory() as store:
                alert = await store.create_alert(alert, notified_at=now)
        except Exception:
            if audio_url is not None:
                await self._discard_media(audio_url)
            raise

        logger.info(
            "Alert dispatched",
            alert_id=str(alert.id),
            user_id=str(requester_id),
            responder_id=str(candidate.responder.id),
            distance_km=round(candidate.distance_km, 2),
        )

        self.escalation.arm(alert.id, attempt=1)
        await notify_assignment_safely(self._notifier, candidate.responder, alert)

        return DispatchResult(
            alert=alert,
            responder=candidate.responder,
            distance_km=candidate.distance_km,
        )

    async def update_status(
        self,
        alert_id: uuid.UUID,
        new_status: str | AlertStatus,
        acting_responder_id: uuid.UUID,
    ) -> Alert:
        """Apply a responder's status change to an alert.

        A change that loses the race against escalation (the alert was
        reassigned or moved on between read and write) is a no-op and the
        alert is returned as it now stands.

        Raises:
            ValidationError: Unknown status or disallowed transition.
            NotFoundError: Unknown alert.
            AuthorizationError: Caller is not the current assignee.
        """
        target = parse_status(new_status)

        async with self._store_factory() as store:
            alert = await store.get_alert(alert_id)
            if alert is None:
                raise NotFoundError("Alert not found")

            if alert.responder_id != acting_responder_id:
                raise AuthorizationError(
                    "Only the assigned responder can update this alert"
                )

            current = alert.status
            if target == current:
                return alert

            if target not in ALLOWED_TRANSITIONS[current]:
                raise ValidationError(
                    f"Cannot change status from {current.value} to {target.value}"
                )

            applied = await store.transition_status(
                alert_id,
                expected_status=current,
                expected_responder_id=acting_responder_id,
                new_status=target,
                at=self._clock(),
            )
            alert = await store.get_alert(alert_id)

        if not applied:
            logger.info(
                "Status update superseded by concurrent change",
                alert_id=str(alert_id),
                responder_id=str(acting_responder_id),
                requested_status=target.value,
            )
            return alert

        logger.info(
            "Alert status updated",
            alert_id=str(alert_id),
            responder_id=str(acting_responder_id),
            from_status=current.value,
            to_status=target.value,
        )

        if current == AlertStatus.PENDING:
            self.escalation.cancel(alert_id)

        return alert

    async def _store_media(
        self,
        requester_id: uuid.UUID,
        media: MediaUpload,
    ) -> str | None:
        try:
            return await self._media_storage.store(requester_id, media)
        except MediaUploadError:
            logger.warning(
                "Error uploading alert recording",
                user_id=str(requester_id),
                exc_info=True,
            )
            return None

    async def _discard_media(self, audio_url: str) -> None:
        try:
            await self._media_storage.delete(audio_url)
        except OSError:
            logger.warning(
                "Failed to remove recording of unsaved alert",
                audio_url=audio_url,
                exc_info=True,
            )


def build_dispatch_engine(
    store_factory: StoreFactory,
    notifier: PushNotifier | None = None,
    media_storage: MediaStorage | None = None,
) -> DispatchEngine:
    """Wire a DispatchEngine and its EscalationScheduler from settings."""
    notifier = notifier or get_push_notifier()
    escalation = EscalationScheduler(
        store_factory,
        notifier,
        timeout=timedelta(minutes=settings.alert_timeout_minutes),
        max_attempts=settings.max_escalation_attempts,
        enforce_coverage_radius=settings.enforce_coverage_radius,
    )
    return DispatchEngine(
        store_factory,
        escalation,
        notifier,
        media_storage or LocalMediaStorage(),
        enforce_coverage_radius=settings.enforce_coverage_radius,
    )
