"""Set a password with a one-time verification token.

Steps, each a hard precondition:
    1. Password strength (before any lookup or write)
    2. Token exists, is not expired, is not used
    3. bcrypt hash (cost 12)
    4. One transaction: consume the token with a conditional UPDATE, set
       the password hash, mark the user verified, commit

If the conditional UPDATE matches no row another request consumed the
token first; the transaction is rolled back and the caller gets
TokenAlreadyUsedError. No failure leaves a verified user without a
password, or a consumed token without the password it paid for.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from dashboard.core.auth import hash_password, validate_password_strength
from dashboard.core.errors import TokenAlreadyUsedError
from dashboard.models.user import User
from dashboard.repositories.user_repository import UserRepository
from dashboard.repositories.verification_token_repository import (
    VerificationTokenRepository,
)
from dashboard.services.verification_tokens import verify_token

logger = logging.getLogger(__name__)


async def set_password_with_token(
    db: AsyncSession,
    token: str,
    new_password: str,
    *,
    now: datetime | None = None,
) -> User:
    """Verify a token, set the user's password, and consume the token.

    Args:
        db: Async database session. Committed on success, rolled back on
            any failure after the token checks.
        token: Plain token from the emailed link.
        new_password: Password chosen by the user.
        now: Current time. Defaults to the server clock.

    Returns:
        The user whose password was set.

    Raises:
        WeakPasswordError: Password fails strength rules.
        InvalidTokenError: No such token.
        TokenExpiredError: Token expired.
        TokenAlreadyUsedError: Token consumed, including by a concurrent
            request that won the race.
    """
    validate_password_strength(new_password)

    current = now or datetime.now(UTC)
    user, vt = await verify_token(db, token, now=current)
    user_id = user.id

    password_hash = hash_password(new_password)

    try:
        if not await VerificationTokenRepository.consume(db, vt.id, now=current):
            raise TokenAlreadyUsedError()
        await UserRepository.set_password(db, user_id, password_hash)
        await UserRepository.mark_verified(db, user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Password set and email verified for user %s", user_id)
    return user
