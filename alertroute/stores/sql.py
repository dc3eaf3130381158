"""SQLAlchemy implementation of the dispatch store."""

import uuid
from collections.abc import AsyncGenerator, Collection
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from alertroute.core.errors import InternalError
from alertroute.database import get_db_session
from alertroute.logging_config import get_logger
from alertroute.models.alert import Alert, AlertStatus
from alertroute.models.responder import Responder
from alertroute.models.routing_history import AlertRoutingHistory
from alertroute.models.user import User
from alertroute.stores.base import STATUS_TIMESTAMP_FIELDS, DispatchStore

logger = get_logger(__name__)


class SqlDispatchStore(DispatchStore):
    """Dispatch store bound to a single AsyncSession."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_requester(self, user_id: uuid.UUID) -> User | None:
        result = await self._db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_responder(self, responder_id: uuid.UUID) -> Responder | None:
        result = await self._db.execute(
            select(Responder).where(Responder.id == responder_id)
        )
        return result.scalar_one_or_none()

    async def list_available_responders(
        self,
        exclude: Collection[uuid.UUID] = (),
    ) -> list[Responder]:
        query = (
            select(Responder)
            .where(
                Responder.is_available.is_(True),
                Responder.latitude.is_not(None),
                Responder.longitude.is_not(None),
            )
            .execution_options(populate_existing=True)
        )
        if exclude:
            query = query.where(Responder.id.not_in(list(exclude)))

        result = await self._db.execute(query)
        return list(result.scalars().all())

    async def set_responder_availability(
        self,
        responder_id: uuid.UUID,
        is_available: bool,
    ) -> Responder | None:
        responder = await self.get_responder(responder_id)
        if responder is None:
            return None

        responder.is_available = is_available
        await self._db.commit()
        await self._db.refresh(responder)
        return responder

    async def create_alert(self, alert: Alert, notified_at: datetime) -> Alert:
        self._db.add(alert)
        self._db.add(
            AlertRoutingHistory(
                alert_id=alert.id,
                responder_id=alert.responder_id,
                attempt=1,
                notified_at=notified_at,
                responded=False,
            )
        )

        try:
            await self._db.commit()
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.error(
                "Failed to persist alert",
                alert_id=str(alert.id),
                error=str(e),
            )
            raise InternalError("Failed to create alert") from e

        await self._db.refresh(alert)
        return alert

    async def get_alert(self, alert_id: uuid.UUID) -> Alert | None:
        # Conditional writes bypass the identity map, so always re-read
        result = await self._db.execute(
            select(Alert)
            .where(Alert.id == alert_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_alerts_for_requester(self, user_id: uuid.UUID) -> list[Alert]:
        result = await self._db.execute(
            select(Alert)
            .where(Alert.user_id == user_id)
            .order_by(Alert.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_alerts_for_responder(
        self,
        responder_id: uuid.UUID,
        status: AlertStatus | None = None,
    ) -> list[Alert]:
        query = select(Alert).where(Alert.responder_id == responder_id)
        if status is not None:
            query = query.where(Alert.status == status)

        result = await self._db.execute(query.order_by(Alert.created_at.desc()))
        return list(result.scalars().all())

    async def list_pending_alerts(self) -> list[Alert]:
        result = await self._db.execute(
            select(Alert)
            .where(
                Alert.status == AlertStatus.PENDING,
                Alert.escalation_exhausted_at.is_(None),
            )
            .order_by(Alert.created_at)
        )
        return list(result.scalars().all())

    async def mark_escalation_exhausted(
        self,
        alert_id: uuid.UUID,
        expected_responder_id: uuid.UUID,
        at: datetime,
    ) -> bool:
        result = await self._db.execute(
            update(Alert)
            .where(
                Alert.id == alert_id,
                Alert.status == AlertStatus.PENDING,
                Alert.responder_id == expected_responder_id,
                Alert.escalation_exhausted_at.is_(None),
            )
            .values(escalation_exhausted_at=at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self._db.rollback()
            return False

        await self._db.commit()
        return True

    async def reassign_alert(
        self,
        alert_id: uuid.UUID,
        expected_responder_id: uuid.UUID,
        new_responder_id: uuid.UUID,
        attempt: int,
        notified_at: datetime,
    ) -> bool:
        result = await self._db.execute(
            update(Alert)
            .where(
                Alert.id == alert_id,
                Alert.status == AlertStatus.PENDING,
                Alert.responder_id == expected_responder_id,
            )
            .values(responder_id=new_responder_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self._db.rollback()
            return False

        self._db.add(
            AlertRoutingHistory(
                alert_id=alert_id,
                responder_id=new_responder_id,
                attempt=attempt,
                notified_at=notified_at,
                responded=False,
            )
        )

        try:
            await self._db.commit()
        except IntegrityError:
            # Responder already recorded for this alert by a concurrent escalation
            await self._db.rollback()
            logger.debug(
                "Routing history entry already exists (race condition)",
                alert_id=str(alert_id),
                responder_id=str(new_responder_id),
            )
            return False

        return True

    async def transition_status(
        self,
        alert_id: uuid.UUID,
        expected_status: AlertStatus,
        expected_responder_id: uuid.UUID,
        new_status: AlertStatus,
        at: datetime,
    ) -> bool:
        values: dict = {"status": new_status}
        timestamp_field = STATUS_TIMESTAMP_FIELDS.get(new_status)
        if timestamp_field:
            values[timestamp_field] = at

        result = await self._db.execute(
            update(Alert)
            .where(
                Alert.id == alert_id,
                Alert.status == expected_status,
                Alert.responder_id == expected_responder_id,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self._db.rollback()
            return False

        if new_status == AlertStatus.DISPATCHED:
            await self._db.execute(
                update(AlertRoutingHistory)
                .where(
                    AlertRoutingHistory.alert_id == alert_id,
                    AlertRoutingHistory.responder_id == expected_responder_id,
                )
                .values(responded=True, responded_at=at)
                .execution_options(synchronize_session=False)
            )

        await self._db.commit()
        return True

    async def get_routing_history(
        self,
        alert_id: uuid.UUID,
    ) -> list[AlertRoutingHistory]:
        result = await self._db.execute(
            select(AlertRoutingHistory)
            .where(AlertRoutingHistory.alert_id == alert_id)
            .order_by(AlertRoutingHistory.attempt)
        )
        return list(result.scalars().all())


@asynccontextmanager
async def sql_store_session() -> AsyncGenerator[DispatchStore, None]:
    """Open a SQL-backed store on a fresh session (one unit of work)."""
    async with get_db_session() as db:
        yield SqlDispatchStore(db)
