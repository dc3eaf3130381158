"""Timer-based escalation of unanswered alerts.

Each pending alert owns at most one APScheduler job, ``escalation:<id>``.
When it fires the alert is reloaded; if it is still pending and attempts
remain, it is conditionally reassigned to the nearest responder not yet
tried and the job is re-armed for the next attempt. Leaving ``pending``
cancels the job, and the status check on firing covers any job that
slips through. A chain that runs out of attempts or candidates is marked
with ``escalation_exhausted_at`` so that it stays ended across restarts.
"""

import enum
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from alertroute.core.geo import Coordinate
from alertroute.logging_config import get_logger
from alertroute.models.alert import Alert, AlertStatus
from alertroute.services.notifications import (
    PushNotifier,
    notify_assignment_safely,
    notify_exhausted_safely,
)
from alertroute.services.responder_directory import find_nearest
from alertroute.stores.base import DispatchStore, StoreFactory

logger = get_logger(__name__)

JOB_ID_PREFIX = "escalation:"


class EscalationOutcome(str, enum.Enum):
    """What a timer firing did."""

    REASSIGNED = "reassigned"
    NOT_PENDING = "not_pending"  # Responder acted or alert cancelled
    EXHAUSTED = "exhausted"  # Attempts used up or nobody left to try
    SUPERSEDED = "superseded"  # Lost the conditional write to a concurrent update
    ALERT_MISSING = "alert_missing"


def utcnow() -> datetime:
    return datetime.now(UTC)


class EscalationScheduler:
    """Owns the per-alert escalation timers."""

    def __init__(
        self,
        store_factory: StoreFactory,
        notifier: PushNotifier,
        timeout: timedelta,
        max_attempts: int,
        enforce_coverage_radius: bool = False,
        scheduler: AsyncIOScheduler | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._store_factory = store_factory
        self._notifier = notifier
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.enforce_coverage_radius = enforce_coverage_radius
        self._scheduler = scheduler if scheduler is not None else AsyncIOScheduler()
        self._clock = clock

    @staticmethod
    def job_id(alert_id: uuid.UUID) -> str:
        return f"{JOB_ID_PREFIX}{alert_id}"

    # -- Lifecycle --

    def start(self) -> None:
        """Start the underlying scheduler."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Escalation scheduler started")

    def shutdown(self) -> None:
        """Stop the scheduler, dropping all armed timers."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Escalation scheduler stopped")

    # -- Timer handles --

    def arm(self, alert_id: uuid.UUID, attempt: int) -> datetime:
        """Arm (or re-arm) the escalation timer for an alert.

        Args:
            alert_id: Alert to check when the timer fires.
            attempt: Number of assignments made so far.

        Returns:
            When the timer will fire.
        """
        run_date = self._clock() + self.timeout
        self._scheduler.add_job(
            self._run_job,
            trigger=DateTrigger(run_date=run_date),
            args=[alert_id, attempt],
            id=self.job_id(alert_id),
            name=f"Escalation check for alert {alert_id}",
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )
        logger.debug(
            "Escalation timer armed",
            alert_id=str(alert_id),
            attempt=attempt,
            run_date=run_date.isoformat(),
        )
        return run_date

    def cancel(self, alert_id: uuid.UUID) -> bool:
        """Cancel an alert's timer.

        Returns:
            True if a timer was armed and has been removed.
        """
        try:
            self._scheduler.remove_job(self.job_id(alert_id))
        except JobLookupError:
            return False

        logger.debug("Escalation timer cancelled", alert_id=str(alert_id))
        return True

    def is_armed(self, alert_id: uuid.UUID) -> bool:
        return self._scheduler.get_job(self.job_id(alert_id)) is not None

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def armed_count(self) -> int:
        """Number of escalation timers currently armed."""
        return sum(
            1 for job in self._scheduler.get_jobs() if job.id.startswith(JOB_ID_PREFIX)
        )

    async def resume_pending(self) -> int:
        """Re-arm timers for pending alerts, e.g. after a restart.

        Alerts whose chain already ended are skipped. The attempt count is
        taken from the alert's routing history.

        Returns:
            Number of timers armed.
        """
        async with self._store_factory() as store:
            alerts = await store.list_pending_alerts()
            attempts = {}
            for alert in alerts:
                history = await store.get_routing_history(alert.id)
                attempts[alert.id] = max(len(history), 1)

        for alert_id, attempt in attempts.items():
            self.arm(alert_id, attempt)

        logger.info("Escalation timers resumed", alert_count=len(attempts))
        return len(attempts)

    # -- Firing --

    async def _run_job(self, alert_id: uuid.UUID, attempt: int) -> None:
        # APScheduler only logs job errors at its own level; surface them here
        try:
            await self.fire(alert_id, attempt)
        except Exception:
            logger.exception(
                "Escalation check failed",
                alert_id=str(alert_id),
                attempt=attempt,
            )

    async def fire(self, alert_id: uuid.UUID, attempt: int) -> EscalationOutcome:
        """Evaluate an alert whose timer for ``attempt`` has expired.

        Args:
            alert_id: Alert to evaluate.
            attempt: Number of assignments made when the timer was armed.

        Returns:
            The outcome of the check.
        """
        async with self._store_factory() as store:
            alert = await store.get_alert(alert_id)
            if alert is None:
                logger.warning("Escalation fired for unknown alert", alert_id=str(alert_id))
                return EscalationOutcome.ALERT_MISSING

            if alert.status != AlertStatus.PENDING:
                logger.debug(
                    "Alert no longer pending, escalation chain ends",
                    alert_id=str(alert_id),
                    status=alert.status.value,
                )
                return EscalationOutcome.NOT_PENDING

            if alert.escalation_exhausted_at is not None:
                logger.debug("Escalation already exhausted", alert_id=str(alert_id))
                return EscalationOutcome.EXHAUSTED

            if attempt >= self.max_attempts:
                return await self._exhaust(
                    store, alert, attempt, "maximum attempts reached"
                )

            history = await store.get_routing_history(alert_id)
            tried = frozenset(entry.responder_id for entry in history)

            candidate = await find_nearest(
                store,
                Coordinate(alert.latitude, alert.longitude),
                exclude=tried,
                enforce_coverage_radius=self.enforce_coverage_radius,
            )
            if candidate is None:
                return await self._exhaust(
                    store, alert, attempt, "no untried responder available"
                )

            previous_responder_id = alert.responder_id
            next_attempt = attempt + 1
            reassigned = await store.reassign_alert(
                alert_id,
                expected_responder_id=previous_responder_id,
                new_responder_id=candidate.responder.id,
                attempt=next_attempt,
                notified_at=self._clock(),
            )
            if not reassigned:
                self._log_superseded(alert_id, attempt)
                return EscalationOutcome.SUPERSEDED

            alert = await store.get_alert(alert_id)

        logger.info(
            "Alert escalated to next responder",
            alert_id=str(alert_id),
            previous_responder_id=str(previous_responder_id),
            responder_id=str(candidate.responder.id),
            distance_km=round(candidate.distance_km, 2),
            attempt=next_attempt,
        )

        await notify_assignment_safely(self._notifier, candidate.responder, alert)
        self.arm(alert_id, next_attempt)
        return EscalationOutcome.REASSIGNED

    async def _exhaust(
        self,
        store: DispatchStore,
        alert: Alert,
        attempts: int,
        reason: str,
    ) -> EscalationOutcome:
        # Only the firing that sets the marker runs the exhaustion hook
        marked = await store.mark_escalation_exhausted(
            alert.id,
            expected_responder_id=alert.responder_id,
            at=self._clock(),
        )
        if not marked:
            self._log_superseded(alert.id, attempts)
            return EscalationOutcome.SUPERSEDED

        logger.warning(
            "Escalation exhausted, alert left pending",
            alert_id=str(alert.id),
            responder_id=str(alert.responder_id),
            attempts=attempts,
            reason=reason,
        )
        await notify_exhausted_safely(self._notifier, alert, attempts, reason)
        return EscalationOutcome.EXHAUSTED

    @staticmethod
    def _log_superseded(alert_id: uuid.UUID, attempt: int) -> None:
        logger.info(
            "Escalation superseded by concurrent update",
            alert_id=str(alert_id),
            attempt=attempt,
        )
