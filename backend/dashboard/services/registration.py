"""Registration and verification-email resend.

Registration creates an unverified, password-less user, stores any
availability slots, and issues a setup token, all in one commit. Sending
the email is the caller's job and happens after the commit; a failed send
never undoes a registration.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard.core.errors import ConflictError
from dashboard.models.user import User
from dashboard.repositories.user_repository import UserRepository
from dashboard.schemas.auth import RegisterRequest
from dashboard.services.verification_tokens import issue_token, reissue_token

logger = logging.getLogger(__name__)


def _email_taken() -> ConflictError:
    return ConflictError(
        code="EMAIL_ALREADY_EXISTS",
        message="User with this email already exists",
    )


async def register_identity(
    db: AsyncSession,
    data: RegisterRequest,
    *,
    now: datetime | None = None,
) -> tuple[User, str]:
    """Create a user from registration data and issue a setup token.

    Args:
        db: Async database session. Committed on success.
        data: Validated registration body.
        now: Token issue time. Defaults to the server clock.

    Returns:
        (user, plain_token). The token is for the email link only.

    Raises:
        ConflictError: Email already registered. No row is created.
    """
    if await UserRepository.get_by_email(db, data.email) is not None:
        raise _email_taken()

    try:
        user = await UserRepository.create(
            db,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            **data.profile_fields(),
        )
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise _email_taken() from exc

    if data.availability:
        await UserRepository.add_availability(
            db,
            user.id,
            [slot.model_dump() for slot in data.availability],
        )

    plain_token, _ = await issue_token(db, user.id, now=now)
    await db.commit()

    logger.info("Registered user %s", user.id)
    return user, plain_token


async def resend_verification(
    db: AsyncSession,
    email: str,
    *,
    now: datetime | None = None,
) -> tuple[User, str] | None:
    """Issue a fresh setup token for a user still awaiting verification.

    Outstanding tokens for the user are retired so only the newest link
    works.

    Args:
        db: Async database session. Committed when a token is issued.
        email: Address the user registered with.
        now: Token issue time. Defaults to the server clock.

    Returns:
        (user, plain_token), or None when there is no such user or the user
        is already verified. Callers must not reveal which.
    """
    user = await UserRepository.get_by_email(db, email)
    if user is None or user.is_verified:
        return None

    plain_token, _ = await reissue_token(db, user.id, now=now)
    await db.commit()
    return user, plain_token
