"""Repository for User CRUD operations.

Provides database access for the users table. Every write flushes but
never commits: the caller owns the transaction boundary, so several writes
can be committed (or rolled back) together.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard.models.availability import Availability
from dashboard.models.user import ROLE_ADMIN, ROLE_USER, User

# Profile fields accepted by UserRepository.create().
# Security: Credentials and role have dedicated methods so they cannot
# be mass-assigned from request data.
_PROFILE_FIELDS: frozenset[str] = frozenset(
    {
        "first_name",
        "last_name",
        "phone_number",
        "experience_field",
        "about_yourself",
        "facebook",
        "twitter",
        "instagram",
        "linkedin",
        "other_links",
        "bio",
        "avatar",
    }
)

_VALID_ROLES: frozenset[str] = frozenset({ROLE_USER, ROLE_ADMIN})


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static with no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch a user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found, None otherwise.
        """
        return await db.get(User, user_id)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch a user by email address.

        The match is exact: emails are stored and compared as given.

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        first_name: str,
        last_name: str,
        **profile: Any,
    ) -> User:
        """Create a new, unverified user without a password.

        Args:
            db: Async database session.
            email: User email address.
            first_name: Given name.
            last_name: Family name.
            **profile: Optional profile fields (see _PROFILE_FIELDS).

        Returns:
            Created User with database-generated fields populated.

        Raises:
            ValueError: If an unknown profile field is passed.
            sqlalchemy.exc.IntegrityError: If email already exists.
        """
        unknown = set(profile) - _PROFILE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            password_hash=None,
            is_verified=False,
            **profile,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def set_password(
        db: AsyncSession, user_id: uuid.UUID, password_hash: str
    ) -> None:
        """Store a new password hash. Idempotent.

        Args:
            db: Async database session.
            user_id: UUID of the user.
            password_hash: bcrypt hash, never a plain password.
        """
        await db.execute(
            update(User).where(User.id == user_id).values(password_hash=password_hash)
        )

    @staticmethod
    async def mark_verified(db: AsyncSession, user_id: uuid.UUID) -> None:
        """Set is_verified. Idempotent.

        Args:
            db: Async database session.
            user_id: UUID of the user.
        """
        await db.execute(
            update(User).where(User.id == user_id).values(is_verified=True)
        )

    @staticmethod
    async def update_last_login(
        db: AsyncSession, user_id: uuid.UUID, when: datetime
    ) -> None:
        """Record a successful login time.

        Args:
            db: Async database session.
            user_id: UUID of the user.
            when: Login timestamp (timezone-aware).
        """
        await db.execute(
            update(User).where(User.id == user_id).values(last_login_at=when)
        )

    @staticmethod
    async def set_role(
        db: AsyncSession, user_id: uuid.UUID, *, role: str
    ) -> User | None:
        """Set the role for a user.

        Kept apart from create() to prevent mass-assignment
        privilege escalation. Only call from explicit promotion paths.

        Args:
            db: Async database session.
            user_id: UUID of the user.
            role: "user" or "admin".

        Returns:
            Updated User if found, None if user does not exist.

        Raises:
            ValueError: If role is not a known role.
        """
        if role not in _VALID_ROLES:
            msg = f"Unknown role: {role}"
            raise ValueError(msg)
        user = await db.get(User, user_id)
        if user is None:
            return None
        user.role = role
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def add_availability(
        db: AsyncSession,
        user_id: uuid.UUID,
        slots: list[dict[str, Any]],
    ) -> list[Availability]:
        """Attach availability slots to a user.

        Args:
            db: Async database session.
            user_id: Owning user.
            slots: Dicts with start_date, end_date, start_time, end_time and
                optional day_of_week, notes.

        Returns:
            Created Availability rows.
        """
        rows = [Availability(user_id=user_id, **slot) for slot in slots]
        db.add_all(rows)
        await db.flush()
        return rows
