"""Emergency alert model."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, Float, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from alertroute.models.base import Base


class AlertStatus(str, enum.Enum):
    """Lifecycle status of an alert.

    pending -> dispatched -> resolved
    pending -> cancelled
    """

    PENDING = "pending"
    DISPATCHED = "dispatched"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


# Allowed status changes; anything else is rejected
ALLOWED_TRANSITIONS: dict[AlertStatus, frozenset[AlertStatus]] = {
    AlertStatus.PENDING: frozenset({AlertStatus.DISPATCHED, AlertStatus.CANCELLED}),
    AlertStatus.DISPATCHED: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.RESOLVED: frozenset(),
    AlertStatus.CANCELLED: frozenset(),
}


class Alert(Base):
    """A single emergency request routed to one responder at a time.

    ``responder_id`` always matches the responder of the latest
    routing history entry; both are written in the same transaction.
    """

    __tablename__ = "alerts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Current assignee
    responder_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("responders.id"),
        nullable=False,
        index=True,
    )

    latitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
    )

    longitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
    )

    # Public URL of the uploaded audio recording, if any
    audio_url: Mapped[str | None] = mapped_column(
        String(1024),
        nullable=True,
    )

    # Requester contact details at the time of the alert
    requester_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    requester_phone: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    status: Mapped[AlertStatus] = mapped_column(
        Enum(
            AlertStatus,
            name="alertstatus",
            create_type=False,
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=AlertStatus.PENDING,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    dispatched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Set when the escalation chain ends with the alert still pending;
    # such alerts are not re-armed on restart
    escalation_exhausted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    user = relationship("User", back_populates="alerts")
    responder = relationship("Responder", back_populates="alerts")
    routing_history = relationship(
        "AlertRoutingHistory",
        back_populates="alert",
        order_by="AlertRoutingHistory.attempt",
    )

    def __repr__(self) -> str:
        return (
            f"<Alert(id={self.id}, status={self.status.value}, "
            f"responder={self.responder_id})>"
        )
