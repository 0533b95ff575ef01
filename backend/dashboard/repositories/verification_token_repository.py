"""Repository for VerificationToken operations.

Single-use setup tokens stored as SHA-256 hashes with an absolute expiry.
Consumption is a conditional UPDATE so that two requests racing on the
same token cannot both succeed.
"""

import uuid
from datetime import UTC, datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from dashboard.models.verification_token import VerificationToken


class VerificationTokenRepository:
    """Stateless repository for VerificationToken table operations.

    All methods are static with no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        token_hash: str,
        token_type: str,
        expires_at: datetime,
    ) -> VerificationToken:
        """Store a new, unused token.

        Args:
            db: Async database session.
            user_id: Owning user.
            token_hash: SHA-256 hash of the plain token.
            token_type: Token purpose, e.g. "registration".
            expires_at: Absolute expiry.

        Returns:
            Created VerificationToken.
        """
        vt = VerificationToken(
            user_id=user_id,
            token_hash=token_hash,
            type=token_type,
            expires_at=expires_at,
            used=False,
        )
        db.add(vt)
        await db.flush()
        return vt

    @staticmethod
    async def get_by_hash(
        db: AsyncSession,
        token_hash: str,
    ) -> VerificationToken | None:
        """Look up a token by its hash, with its user loaded.

        Always reloads from the database, overwriting any copy already in
        the session, because consume() and invalidate_outstanding() update
        rows without touching loaded instances.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the presented token.

        Returns:
            VerificationToken if found, None otherwise.
        """
        stmt = (
            select(VerificationToken)
            .options(joinedload(VerificationToken.user))
            .where(VerificationToken.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def consume(
        db: AsyncSession,
        token_id: uuid.UUID,
        *,
        now: datetime,
    ) -> bool:
        """Mark a token used if, and only if, it is still usable.

        Test-and-set in one statement: the row is updated only while
        ``used`` is false and it has not expired. Concurrent callers on the
        same token see exactly one success.

        Args:
            db: Async database session.
            token_id: Token primary key.
            now: Current server time.

        Returns:
            True if this call consumed the token, False if it was already
            used or expired by the time the update ran.
        """
        stmt = (
            update(VerificationToken)
            .where(
                VerificationToken.id == token_id,
                VerificationToken.used.is_(False),
                VerificationToken.expires_at > now,
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def invalidate_outstanding(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        token_type: str,
    ) -> int:
        """Mark every unused token of a purpose for a user as used.

        Args:
            db: Async database session.
            user_id: Owning user.
            token_type: Token purpose to invalidate.

        Returns:
            Number of tokens invalidated.
        """
        stmt = (
            update(VerificationToken)
            .where(
                VerificationToken.user_id == user_id,
                VerificationToken.type == token_type,
                VerificationToken.used.is_(False),
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_expired(db: AsyncSession) -> int:
        """Delete all expired tokens (periodic cleanup).

        Args:
            db: Async database session.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(VerificationToken).where(
            VerificationToken.expires_at <= datetime.now(UTC),
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
