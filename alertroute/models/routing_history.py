"""Alert routing history model.

Append-only audit trail with one row per assignment attempt. The
responders recorded here form the exclusion set for escalation.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from alertroute.models.base import Base


class AlertRoutingHistory(Base):
    """Records a responder being assigned (notified) for an alert.

    The unique constraint on (alert_id, responder_id) guarantees a
    responder is never tried twice for the same alert.
    """

    __tablename__ = "alert_routing_history"
    __table_args__ = (
        UniqueConstraint(
            "alert_id",
            "responder_id",
            name="uq_alert_routing_history_alert_responder",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    alert_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("alerts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    responder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("responders.id"),
        nullable=False,
        index=True,
    )

    # 1 for the initial dispatch, +1 per escalation
    attempt: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    notified_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    responded: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    alert = relationship("Alert", back_populates="routing_history")

    def __repr__(self) -> str:
        return (
            f"<AlertRoutingHistory(alert={self.alert_id}, "
            f"responder={self.responder_id}, attempt={self.attempt})>"
        )
