"""Issue and verify one-time verification tokens.

Tokens come from ``secrets`` (CSPRNG, 256 bits) and expire a fixed 24
hours after issue. Only the SHA-256 hash is persisted; the plain token is
returned once, to be emailed.

Verification is a read-only probe. A client may verify the same token
several times (on page load, then again on submit) without burning it;
consumption belongs to the password-setup workflow.

Check order, first failure wins:
    1. no row for the token        -> InvalidTokenError (404)
    2. now >= expires_at            -> TokenExpiredError (410)
    3. used                         -> TokenAlreadyUsedError (410)
"""

import hashlib
import logging
import secrets
import uuid
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from dashboard.core.errors import (
    InvalidTokenError,
    TokenAlreadyUsedError,
    TokenExpiredError,
)
from dashboard.models.user import User
from dashboard.models.verification_token import (
    TOKEN_TYPE_REGISTRATION,
    VerificationToken,
)
from dashboard.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

logger = logging.getLogger(__name__)

# Fixed policy: setup links are valid for 24 hours
TOKEN_TTL = timedelta(hours=24)

_TOKEN_BYTES = 32


def hash_token(plain: str) -> str:
    """SHA-256 hex digest used as the stored token value."""
    return hashlib.sha256(plain.encode()).hexdigest()


def generate_token() -> tuple[str, str]:
    """Generate a verification token and its SHA-256 hash.

    Returns:
        (plain_token, token_hash): plain for email, hash for DB storage.
    """
    plain = secrets.token_urlsafe(_TOKEN_BYTES)
    return plain, hash_token(plain)


def check_token_usable(vt: VerificationToken, now: datetime) -> None:
    """Raise if a found token can no longer be honored.

    Expiry is strict: a token whose expires_at equals now is expired.

    Args:
        vt: Token row.
        now: Current server time (timezone-aware).

    Raises:
        TokenExpiredError: If now >= expires_at.
        TokenAlreadyUsedError: If the token was consumed.
    """
    if now >= vt.expires_at:
        raise TokenExpiredError()
    if vt.used:
        raise TokenAlreadyUsedError()


async def issue_token(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    purpose: str = TOKEN_TYPE_REGISTRATION,
    now: datetime | None = None,
) -> tuple[str, VerificationToken]:
    """Mint and store a new token for a user.

    Earlier tokens for the same user stay valid; see reissue_token() for
    the variant that retires them.

    Args:
        db: Async database session (caller commits).
        user_id: Owning user.
        purpose: Token type tag.
        now: Issue time. Defaults to the server clock.

    Returns:
        (plain_token, stored_row).
    """
    issued_at = now or datetime.now(UTC)
    plain, token_hash = generate_token()
    vt = await VerificationTokenRepository.create(
        db,
        user_id=user_id,
        token_hash=token_hash,
        token_type=purpose,
        expires_at=issued_at + TOKEN_TTL,
    )
    logger.info("Issued %s token for user %s", purpose, user_id)
    return plain, vt


async def reissue_token(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    purpose: str = TOKEN_TYPE_REGISTRATION,
    now: datetime | None = None,
) -> tuple[str, VerificationToken]:
    """Retire a user's outstanding tokens of a purpose, then issue a new one.

    Used by the resend flow so only the most recent emailed link works.

    Args:
        db: Async database session (caller commits).
        user_id: Owning user.
        purpose: Token type tag.
        now: Issue time. Defaults to the server clock.

    Returns:
        (plain_token, stored_row).
    """
    retired = await VerificationTokenRepository.invalidate_outstanding(
        db, user_id=user_id, token_type=purpose
    )
    if retired:
        logger.info("Retired %d outstanding %s token(s)", retired, purpose)
    return await issue_token(db, user_id, purpose=purpose, now=now)


async def find_token(db: AsyncSession, token: str) -> VerificationToken:
    """Load the row for a presented token, with its user.

    Raises:
        InvalidTokenError: If no row matches.
    """
    vt = await VerificationTokenRepository.get_by_hash(db, hash_token(token))
    if vt is None:
        raise InvalidTokenError()
    return vt


async def verify_token(
    db: AsyncSession,
    token: str,
    *,
    now: datetime | None = None,
) -> tuple[User, VerificationToken]:
    """Check a presented token without consuming it.

    Args:
        db: Async database session.
        token: Plain token from the client.
        now: Current time. Defaults to the server clock; never taken from
            the client.

    Returns:
        (user, token_row) for a usable token.

    Raises:
        InvalidTokenError: No such token.
        TokenExpiredError: Token expired.
        TokenAlreadyUsedError: Token already consumed.
    """
    vt = await find_token(db, token)
    check_token_usable(vt, now or datetime.now(UTC))
    return vt.user, vt
