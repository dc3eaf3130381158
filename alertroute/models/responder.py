"""Responder organization model."""

import uuid

from sqlalchemy import Boolean, Float, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from alertroute.models.base import Base, TimestampMixin

DEFAULT_COVERAGE_RADIUS_KM = 10.0


class Responder(Base, TimestampMixin):
    """An organization that can be dispatched to alerts.

    Only responders with ``is_available`` set and known coordinates are
    dispatch candidates. ``coverage_radius_km`` is only enforced when the
    service runs with ``ENFORCE_COVERAGE_RADIUS``.
    """

    __tablename__ = "responders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    company_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    phone_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    address: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    latitude: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
    )

    longitude: Mapped[float | None] = mapped_column(
        Float,
        nullable=True,
    )

    coverage_radius_km: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=DEFAULT_COVERAGE_RADIUS_KM,
    )

    is_available: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
    )

    # Expo push token registered by the responder's mobile app
    expo_push_token: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    alerts = relationship("Alert", back_populates="responder")

    def __repr__(self) -> str:
        return (
            f"<Responder(name={self.company_name!r}, "
            f"available={self.is_available})>"
        )
