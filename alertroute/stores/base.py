"""Storage interface for dispatch and escalation.

The dispatch engine and escalation scheduler never touch a session
directly; they open a unit of work through a ``StoreFactory`` and call
the operations below. Every alert mutation is a conditional write that
returns whether it was applied, so a responder action and an escalation
timer racing on the same alert can never both win.
"""

import abc
import uuid
from collections.abc import Callable, Collection
from contextlib import AbstractAsyncContextManager
from datetime import datetime

from alertroute.models.alert import Alert, AlertStatus
from alertroute.models.responder import Responder
from alertroute.models.routing_history import AlertRoutingHistory
from alertroute.models.user import User

# Timestamp column stamped when an alert enters each status
STATUS_TIMESTAMP_FIELDS: dict[AlertStatus, str] = {
    AlertStatus.DISPATCHED: "dispatched_at",
    AlertStatus.RESOLVED: "resolved_at",
    AlertStatus.CANCELLED: "cancelled_at",
}


class DispatchStore(abc.ABC):
    """Persistence operations used by dispatch, escalation and the API."""

    # -- Requesters & responders --

    @abc.abstractmethod
    async def get_requester(self, user_id: uuid.UUID) -> User | None:
        """Look up the requester who is raising an alert."""

    @abc.abstractmethod
    async def get_responder(self, responder_id: uuid.UUID) -> Responder | None:
        """Look up a responder by id."""

    @abc.abstractmethod
    async def list_available_responders(
        self,
        exclude: Collection[uuid.UUID] = (),
    ) -> list[Responder]:
        """List responders that are available and have coordinates.

        Args:
            exclude: Responder ids to leave out.

        Returns:
            Candidates in no particular order, read fresh on every call.
        """

    @abc.abstractmethod
    async def set_responder_availability(
        self,
        responder_id: uuid.UUID,
        is_available: bool,
    ) -> Responder | None:
        """Flip a responder's availability flag; None if unknown."""

    # -- Alerts --

    @abc.abstractmethod
    async def create_alert(self, alert: Alert, notified_at: datetime) -> Alert:
        """Persist a new alert and its first routing history entry atomically."""

    @abc.abstractmethod
    async def get_alert(self, alert_id: uuid.UUID) -> Alert | None:
        """Load the current state of an alert."""

    @abc.abstractmethod
    async def list_alerts_for_requester(self, user_id: uuid.UUID) -> list[Alert]:
        """All alerts raised by a requester, newest first."""

    @abc.abstractmethod
    async def list_alerts_for_responder(
        self,
        responder_id: uuid.UUID,
        status: AlertStatus | None = None,
    ) -> list[Alert]:
        """Alerts currently assigned to a responder, newest first."""

    @abc.abstractmethod
    async def list_pending_alerts(self) -> list[Alert]:
        """Pending alerts whose escalation chain is still running.

        Alerts marked by ``mark_escalation_exhausted`` are left out.
        """

    @abc.abstractmethod
    async def mark_escalation_exhausted(
        self,
        alert_id: uuid.UUID,
        expected_responder_id: uuid.UUID,
        at: datetime,
    ) -> bool:
        """Record that no further escalation will happen for an alert.

        Applied only if the alert is still ``pending``, still assigned to
        ``expected_responder_id`` and not already marked. The status is
        left untouched, so the current assignee can still accept.

        Returns:
            True if applied, False if the predicate failed.
        """

    @abc.abstractmethod
    async def reassign_alert(
        self,
        alert_id: uuid.UUID,
        expected_responder_id: uuid.UUID,
        new_responder_id: uuid.UUID,
        attempt: int,
        notified_at: datetime,
    ) -> bool:
        """Move a pending alert to another responder.

        Applied only if the alert is still ``pending`` and still assigned to
        ``expected_responder_id``; the routing history entry is appended in
        the same transaction.

        Returns:
            True if applied, False if the predicate failed.
        """

    @abc.abstractmethod
    async def transition_status(
        self,
        alert_id: uuid.UUID,
        expected_status: AlertStatus,
        expected_responder_id: uuid.UUID,
        new_status: AlertStatus,
        at: datetime,
    ) -> bool:
        """Change an alert's status if status and assignee are as expected.

        Stamps the timestamp column for ``new_status``. Entering
        ``dispatched`` also marks the responder's routing history entry as
        responded.

        Returns:
            True if applied, False if the predicate failed.
        """

    # -- Routing history --

    @abc.abstractmethod
    async def get_routing_history(
        self,
        alert_id: uuid.UUID,
    ) -> list[AlertRoutingHistory]:
        """Routing history for an alert, oldest attempt first."""


StoreFactory = Callable[[], AbstractAsyncContextManager[DispatchStore]]
