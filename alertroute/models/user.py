"""Requester account model.

Accounts are registered and edited by the identity service; dispatch only
reads them to resolve who raised an alert.
"""

import uuid

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from alertroute.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """Requester account.

    Attributes:
        id: Unique requester identifier (UUID)
        email: Login email (unique)
        full_name: Display name copied onto alerts
        phone_number: Contact number copied onto alerts
    """

    __tablename__ = "users"

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
    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    phone_number: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )

    alerts = relationship("Alert", back_populates="user")

    def __repr__(self) -> str:
        return f"<User {self.email}>"
