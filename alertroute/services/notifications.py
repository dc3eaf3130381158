"""Push notifications to responders.

Delivery is best effort: callers go through ``notify_assignment_safely``
and ``notify_exhausted_safely``, which log failures instead of raising, so
a notification problem never fails alert creation or escalation.
"""

import abc
import re

import httpx

from alertroute.config import settings
from alertroute.logging_config import get_logger
from alertroute.models.alert import Alert
from alertroute.models.responder import Responder

logger = get_logger(__name__)

ALERT_TITLE = "\U0001f6a8 Emergency Alert"  # 🚨

_EXPO_TOKEN_PATTERN = re.compile(r"^Expo(nent)?PushToken\[.+\]$")


class PushNotificationError(Exception):
    """Error delivering a push notification."""


class PushNotifier(abc.ABC):
    """Delivery channel for dispatch notifications."""

    @abc.abstractmethod
    async def notify_assignment(self, responder: Responder, alert: Alert) -> None:
        """Tell a responder an alert has been assigned to them."""

    @abc.abstractmethod
    async def notify_escalation_exhausted(
        self,
        alert: Alert,
        attempts: int,
        reason: str,
    ) -> None:
        """Report that automatic escalation gave up on an alert."""


def is_expo_push_token(token: str | None) -> bool:
    """Check whether a string looks like an Expo push token."""
    return bool(token) and bool(_EXPO_TOKEN_PATTERN.match(token))


def build_assignment_message(responder: Responder, alert: Alert) -> dict:
    """Build the Expo push payload for a new assignment."""
    requester = alert.requester_name or "a requester"
    return {
        "to": responder.expo_push_token,
        "sound": "default",
        "title": ALERT_TITLE,
        "body": f"New alert from {requester}",
        "data": {"alertId": str(alert.id)},
        "priority": "high",
    }


class ExpoPushNotifier(PushNotifier):
    """Sends notifications through the Expo push service."""

    def __init__(
        self,
        push_url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._push_url = push_url or settings.expo_push_url
        self._timeout = timeout_seconds or settings.expo_push_timeout_seconds

    async def notify_assignment(self, responder: Responder, alert: Alert) -> None:
        if not responder.expo_push_token:
            logger.debug(
                "Responder has no push token, skipping notification",
                responder_id=str(responder.id),
                alert_id=str(alert.id),
            )
            return

        if not is_expo_push_token(responder.expo_push_token):
            logger.warning(
                "Invalid Expo push token",
                responder_id=str(responder.id),
                alert_id=str(alert.id),
            )
            return

        await self._send([build_assignment_message(responder, alert)])
        logger.info(
            "Push notification sent",
            responder_id=str(responder.id),
            alert_id=str(alert.id),
        )

    async def notify_escalation_exhausted(
        self,
        alert: Alert,
        attempts: int,
        reason: str,
    ) -> None:
        # No operator device is registered with Expo; the log line is the signal
        logger.warning(
            "Alert requires manual intervention",
            alert_id=str(alert.id),
            attempts=attempts,
            reason=reason,
        )

    async def _send(self, messages: list[dict]) -> None:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._push_url,
                    json=messages,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise PushNotificationError(f"Expo push request failed: {e}") from e

        if response.status_code != 200:
            raise PushNotificationError(
                f"Expo push error: {response.status_code} {response.text}"
            )

        tickets = response.json().get("data", [])
        errors = [t for t in tickets if t.get("status") == "error"]
        if errors:
            raise PushNotificationError(
                f"Expo push ticket error: {errors[0].get('message', 'Unknown')}"
            )


class LoggingNotifier(PushNotifier):
    """Notifier used when push delivery is disabled; only logs."""

    async def notify_assignment(self, responder: Responder, alert: Alert) -> None:
        logger.info(
            "Push disabled, assignment not delivered",
            responder_id=str(responder.id),
            alert_id=str(alert.id),
        )

    async def notify_escalation_exhausted(
        self,
        alert: Alert,
        attempts: int,
        reason: str,
    ) -> None:
        logger.warning(
            "Alert requires manual intervention",
            alert_id=str(alert.id),
            attempts=attempts,
            reason=reason,
        )


def get_push_notifier() -> PushNotifier:
    """Build the notifier selected by configuration."""
    if settings.push_notifications_enabled:
        return ExpoPushNotifier()
    return LoggingNotifier()


async def notify_assignment_safely(
    notifier: PushNotifier,
    responder: Responder,
    alert: Alert,
) -> bool:
    """Notify a responder, logging instead of raising on failure.

    Returns:
        True if the notifier completed without error.
    """
    try:
        await notifier.notify_assignment(responder, alert)
        return True
    except Exception:
        logger.warning(
            "Failed to notify responder",
            responder_id=str(responder.id),
            alert_id=str(alert.id),
            exc_info=True,
        )
        return False


async def notify_exhausted_safely(
    notifier: PushNotifier,
    alert: Alert,
    attempts: int,
    reason: str,
) -> bool:
    """Run the exhaustion hook, logging instead of raising on failure."""
    try:
        await notifier.notify_escalation_exhausted(alert, attempts, reason)
        return True
    except Exception:
        logger.warning(
            "Escalation exhaustion hook failed",
            alert_id=str(alert.id),
            exc_info=True,
        )
        return False
