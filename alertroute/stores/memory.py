"""In-process dispatch store.

Used by the test suite and for running the API without a database.
Mutations run under a single asyncio lock, which makes the conditional
writes atomic with respect to other coroutines on the same loop.
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator, Collection
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from alertroute.models.alert import Alert, AlertStatus
from alertroute.models.responder import DEFAULT_COVERAGE_RADIUS_KM, Responder
from alertroute.models.routing_history import AlertRoutingHistory
from alertroute.models.user import User
from alertroute.stores.base import STATUS_TIMESTAMP_FIELDS, DispatchStore


class MemoryDispatchStore(DispatchStore):
    """Dictionary-backed store; one instance holds the whole dataset."""

    def __init__(self) -> None:
        self.users: dict[uuid.UUID, User] = {}
        self.responders: dict[uuid.UUID, Responder] = {}
        self.alerts: dict[uuid.UUID, Alert] = {}
        self.routing_history: list[AlertRoutingHistory] = []
        self._lock = asyncio.Lock()

    # -- Seeding helpers --

    def add_requester(
        self,
        full_name: str = "Test Requester",
        phone_number: str | None = "+27000000000",
        user_id: uuid.UUID | None = None,
    ) -> User:
        user_id = user_id or uuid.uuid4()
        now = datetime.now(UTC)
        user = User(
            id=user_id,
            email=f"{user_id.hex[:8]}@example.com",
            full_name=full_name,
            phone_number=phone_number,
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        return user

    def add_responder(
        self,
        latitude: float | None,
        longitude: float | None,
        company_name: str = "Test Security",
        is_available: bool = True,
        coverage_radius_km: float = DEFAULT_COVERAGE_RADIUS_KM,
        expo_push_token: str | None = None,
        responder_id: uuid.UUID | None = None,
    ) -> Responder:
        responder_id = responder_id or uuid.uuid4()
        now = datetime.now(UTC)
        responder = Responder(
            id=responder_id,
            email=f"{responder_id.hex[:8]}@responders.example.com",
            company_name=company_name,
            latitude=latitude,
            longitude=longitude,
            is_available=is_available,
            coverage_radius_km=coverage_radius_km,
            expo_push_token=expo_push_token,
            created_at=now,
            updated_at=now,
        )
        self.responders[responder.id] = responder
        return responder

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncGenerator[DispatchStore, None]:
        """StoreFactory-compatible context manager yielding this store."""
        yield self

    # -- Requesters & responders --

    async def get_requester(self, user_id: uuid.UUID) -> User | None:
        return self.users.get(user_id)

    async def get_responder(self, responder_id: uuid.UUID) -> Responder | None:
        return self.responders.get(responder_id)

    async def list_available_responders(
        self,
        exclude: Collection[uuid.UUID] = (),
    ) -> list[Responder]:
        excluded = set(exclude)
        return [
            r
            for r in self.responders.values()
            if r.is_available
            and r.latitude is not None
            and r.longitude is not None
            and r.id not in excluded
        ]

    async def set_responder_availability(
        self,
        responder_id: uuid.UUID,
        is_available: bool,
    ) -> Responder | None:
        async with self._lock:
            responder = self.responders.get(responder_id)
            if responder is None:
                return None
            responder.is_available = is_available
            responder.updated_at = datetime.now(UTC)
            return responder

    # -- Alerts --

    async def create_alert(self, alert: Alert, notified_at: datetime) -> Alert:
        async with self._lock:
            self.alerts[alert.id] = alert
            self._append_history(alert.id, alert.responder_id, 1, notified_at)
            return alert

    async def get_alert(self, alert_id: uuid.UUID) -> Alert | None:
        return self.alerts.get(alert_id)

    async def list_alerts_for_requester(self, user_id: uuid.UUID) -> list[Alert]:
        alerts = [a for a in self.alerts.values() if a.user_id == user_id]
        return sorted(alerts, key=lambda a: a.created_at, reverse=True)

    async def list_alerts_for_responder(
        self,
        responder_id: uuid.UUID,
        status: AlertStatus | None = None,
    ) -> list[Alert]:
        alerts = [
            a
            for a in self.alerts.values()
            if a.responder_id == responder_id and (status is None or a.status == status)
        ]
        return sorted(alerts, key=lambda a: a.created_at, reverse=True)

    async def list_pending_alerts(self) -> list[Alert]:
        alerts = [
            a
            for a in self.alerts.values()
            if a.status == AlertStatus.PENDING and a.escalation_exhausted_at is None
        ]
        return sorted(alerts, key=lambda a: a.created_at)

    async def mark_escalation_exhausted(
        self,
        alert_id: uuid.UUID,
        expected_responder_id: uuid.UUID,
        at: datetime,
    ) -> bool:
        async with self._lock:
            alert = self.alerts.get(alert_id)
            if (
                alert is None
                or alert.status != AlertStatus.PENDING
                or alert.responder_id != expected_responder_id
                or alert.escalation_exhausted_at is not None
            ):
                return False

            alert.escalation_exhausted_at = at
            return True

    async def reassign_alert(
        self,
        alert_id: uuid.UUID,
        expected_responder_id: uuid.UUID,
        new_responder_id: uuid.UUID,
        attempt: int,
        notified_at: datetime,
    ) -> bool:
        async with self._lock:
            alert = self.alerts.get(alert_id)
            if (
                alert is None
                or alert.status != AlertStatus.PENDING
                or alert.responder_id != expected_responder_id
            ):
                return False
            if any(
                e.alert_id == alert_id and e.responder_id == new_responder_id
                for e in self.routing_history
            ):
                return False

            alert.responder_id = new_responder_id
            self._append_history(alert_id, new_responder_id, attempt, notified_at)
            return True

    async def transition_status(
        self,
        alert_id: uuid.UUID,
        expected_status: AlertStatus,
        expected_responder_id: uuid.UUID,
        new_status: AlertStatus,
        at: datetime,
    ) -> bool:
        async with self._lock:
            alert = self.alerts.get(alert_id)
            if (
                alert is None
                or alert.status != expected_status
                or alert.responder_id != expected_responder_id
            ):
                return False

            alert.status = new_status
            timestamp_field = STATUS_TIMESTAMP_FIELDS.get(new_status)
            if timestamp_field:
                setattr(alert, timestamp_field, at)

            if new_status == AlertStatus.DISPATCHED:
                for entry in self.routing_history:
                    if (
                        entry.alert_id == alert_id
                        and entry.responder_id == expected_responder_id
                    ):
                        entry.responded = True
                        entry.responded_at = at
            return True

    # -- Routing history --

    async def get_routing_history(
        self,
        alert_id: uuid.UUID,
    ) -> list[AlertRoutingHistory]:
        entries = [e for e in self.routing_history if e.alert_id == alert_id]
        return sorted(entries, key=lambda e: e.attempt)

    def _append_history(
        self,
        alert_id: uuid.UUID,
        responder_id: uuid.UUID,
        attempt: int,
        notified_at: datetime,
    ) -> None:
        self.routing_history.append(
            AlertRoutingHistory(
                id=uuid.uuid4(),
                alert_id=alert_id,
                responder_id=responder_id,
                attempt=attempt,
                notified_at=notified_at,
                responded=False,
                responded_at=None,
            )
        )
