"""Verification token model - one-time setup-password tokens.

Single-use and time-limited. Only the SHA-256 hash of the token is stored;
the plain value exists in the emailed link and nowhere else.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dashboard.models.base import Base

if TYPE_CHECKING:
    from dashboard.models.user import User

TOKEN_TYPE_REGISTRATION = "registration"


class VerificationToken(Base):
    """One-time token tied to a user and a purpose.

    ``used`` moves from False to True exactly once and never back. Once
    used or expired the row is permanently inert.

    Attributes:
        id: UUID primary key.
        user_id: Owning user.
        token_hash: SHA-256 hex digest of the plain token.
        type: Token purpose, e.g. ``"registration"``.
        expires_at: Absolute expiry (issued-at + 24 hours).
        used: Whether the token has been consumed.
        created_at: Issue timestamp.
    """

    __tablename__ = "verification_tokens"
    __table_args__ = (
        Index("idx_verification_tokens_user_id_type", "user_id", "type"),
        Index("idx_verification_tokens_expires_at", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=TOKEN_TYPE_REGISTRATION,
    )
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="verification_tokens")
