"""User model - identity and credentials.

An identity is created unverified and without a password at registration.
It becomes usable for login only once a password is set through the
setup-password flow, which also sets is_verified.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, CheckConstraint, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dashboard.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from dashboard.models.availability import Availability
    from dashboard.models.verification_token import VerificationToken

_CASCADE_ALL_DELETE_ORPHAN = "all, delete-orphan"

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(Base, TimestampMixin):
    """User account for authentication.

    Attributes:
        id: UUID primary key.
        email: Unique email address, matched exactly as stored.
        first_name: Given name.
        last_name: Family name.
        password_hash: bcrypt hash. NULL until the password is set.
        is_verified: True once the setup-password link has been used.
        role: "user" or "admin".
        phone_number: Optional contact number from registration.
        experience_field: Optional field of expertise from registration.
        about_yourself: Optional free-text introduction.
        facebook: Optional social profile URL.
        twitter: Optional social profile URL.
        instagram: Optional social profile URL.
        linkedin: Optional social profile URL.
        other_links: Optional list of further URLs.
        bio: Optional profile biography.
        avatar: Optional avatar image URL.
        last_login_at: Timestamp of the last successful login.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            f"role IN ('{ROLE_USER}', '{ROLE_ADMIN}')", name="ck_users_role"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=ROLE_USER,
        default=ROLE_USER,
    )

    # Optional profile fields
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    experience_field: Mapped[str | None] = mapped_column(String(255), nullable=True)
    about_yourself: Mapped[str | None] = mapped_column(Text(), nullable=True)
    facebook: Mapped[str | None] = mapped_column(Text(), nullable=True)
    twitter: Mapped[str | None] = mapped_column(Text(), nullable=True)
    instagram: Mapped[str | None] = mapped_column(Text(), nullable=True)
    linkedin: Mapped[str | None] = mapped_column(Text(), nullable=True)
    other_links: Mapped[list[str] | None] = mapped_column(JSON(), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text(), nullable=True)
    avatar: Mapped[str | None] = mapped_column(Text(), nullable=True)

    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Relationships
    verification_tokens: Mapped[list["VerificationToken"]] = relationship(
        "VerificationToken",
        back_populates="user",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
    )
    availability: Mapped[list["Availability"]] = relationship(
        "Availability",
        back_populates="user",
        cascade=_CASCADE_ALL_DELETE_ORPHAN,
    )

    @property
    def full_name(self) -> str:
        """Display name built from first and last name."""
        return f"{self.first_name} {self.last_name}"
