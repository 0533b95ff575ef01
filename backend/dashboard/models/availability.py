"""Availability model - time slots a registrant offers."""

import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Date, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dashboard.models.base import Base

if TYPE_CHECKING:
    from dashboard.models.user import User


class Availability(Base):
    """A date range and daily time window submitted at registration.

    Attributes:
        id: UUID primary key.
        user_id: Owning user.
        start_date: First day of the slot.
        end_date: Last day of the slot.
        start_time: Daily start, "HH:MM".
        end_time: Daily end, "HH:MM".
        day_of_week: Optional weekday restriction, e.g. "monday".
        notes: Optional free text.
    """

    __tablename__ = "availability_slots"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_date: Mapped[date] = mapped_column(Date(), nullable=False)
    end_date: Mapped[date] = mapped_column(Date(), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    day_of_week: Mapped[str | None] = mapped_column(String(10), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text(), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="availability")
