"""Email/password authentication and session issuance.

Sessions are stateless: a signed JWT carrying the user id and role, held
in an httpOnly cookie. Nothing is written server-side except the
best-effort last-login timestamp.

Failure modes seen by the client:
- unknown email, no password set yet, wrong password: INVALID_CREDENTIALS,
  one generic message for all three
- correct password on an unverified account: EMAIL_NOT_VERIFIED, so the
  user knows to check their inbox
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard.core.auth import check_password, create_session_token
from dashboard.core.config import settings
from dashboard.core.errors import EmailNotVerifiedError, InvalidCredentialsError
from dashboard.models.user import User
from dashboard.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    """A freshly minted session and the identity it belongs to.

    Attributes:
        user_id: Identity id (the JWT ``sub``).
        email: Identity email.
        name: Display name.
        role: Identity role (the JWT ``role``).
        token: Encoded JWT for the session cookie.
        expires_at: When the JWT stops being accepted.
    """

    user_id: uuid.UUID
    email: str
    name: str
    role: str
    token: str
    expires_at: datetime


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Check an email/password pair.

    Args:
        db: Async database session.
        email: Email as typed; matched exactly.
        password: Plain-text password.

    Returns:
        The authenticated user.

    Raises:
        InvalidCredentialsError: Unknown email, no password set, or wrong
            password.
        EmailNotVerifiedError: Password correct but account not verified.
    """
    user = await UserRepository.get_by_email(db, email)

    # check_password runs bcrypt even without a stored hash (timing safety)
    if user is None or not check_password(password, user.password_hash):
        raise InvalidCredentialsError()

    if not user.is_verified:
        raise EmailNotVerifiedError()

    return user


async def _record_login(db: AsyncSession, user_id: uuid.UUID, when: datetime) -> None:
    """Update last_login_at without letting a failure block the login."""
    try:
        await UserRepository.update_last_login(db, user_id, when)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.warning("Could not record last login for user %s", user_id, exc_info=True)


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    *,
    now: datetime | None = None,
) -> IssuedSession:
    """Authenticate and mint a session.

    Args:
        db: Async database session.
        email: Email as typed.
        password: Plain-text password.
        now: Login time. Defaults to the server clock.

    Returns:
        IssuedSession with the signed token.

    Raises:
        InvalidCredentialsError: See authenticate().
        EmailNotVerifiedError: See authenticate().
    """
    user = await authenticate(db, email, password)

    # Snapshot before the last-login write: a rollback expires the instance
    user_id, user_email, name, role = user.id, user.email, user.full_name, user.role

    # JWT time claims are whole seconds
    issued_at = (now or datetime.now(UTC)).replace(microsecond=0)
    await _record_login(db, user_id, issued_at)

    lifetime = timedelta(hours=settings.session_max_age_hours)
    token = create_session_token(
        user_id=str(user_id),
        role=role,
        secret=settings.auth_secret.get_secret_value(),
        expires_delta=lifetime,
        issued_at=issued_at,
    )
    logger.info("User %s signed in", user_id)
    return IssuedSession(
        user_id=user_id,
        email=user_email,
        name=name,
        role=role,
        token=token,
        expires_at=issued_at + lifetime,
    )
