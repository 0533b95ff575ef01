"""Shared dependencies for API endpoints.

Authentication dependencies read the session JWT from the httpOnly cookie.
Validation is claims-based: signature, exp, aud and iss are checked and
no session table is consulted.
"""

import uuid
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dashboard.core.auth import decode_session_token
from dashboard.core.config import settings
from dashboard.core.database import get_db
from dashboard.core.errors import AdminRequiredError, UnauthorizedError
from dashboard.models import ROLE_ADMIN, User
from dashboard.repositories.user_repository import UserRepository


def get_session_claims(request: Request) -> dict:
    """Decode the session cookie.

    Security: Never says WHY auth failed (missing, expired, bad signature).

    Args:
        request: HTTP request (injected by FastAPI).

    Returns:
        Verified JWT claims.

    Raises:
        UnauthorizedError: 401 for any auth failure.
    """
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise UnauthorizedError()

    claims = decode_session_token(token)
    if claims is None:
        raise UnauthorizedError()
    return claims


def get_current_user_id(
    claims: Annotated[dict, Depends(get_session_claims)],
) -> uuid.UUID:
    """Get current user ID from the session claims.

    Raises:
        UnauthorizedError: If sub is not a UUID.
    """
    try:
        return uuid.UUID(str(claims["sub"]))
    except (KeyError, ValueError) as exc:
        raise UnauthorizedError() from exc


async def get_current_user(
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get full User object for current user.

    Raises:
        UnauthorizedError: 401 if user not found (deleted account, invalid ID).
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise UnauthorizedError()
    return user


def require_admin(
    claims: Annotated[dict, Depends(get_session_claims)],
) -> None:
    """Reject sessions whose role claim is not admin.

    Raises:
        AdminRequiredError: 403 for non-admin sessions.
    """
    if claims.get("role") != ROLE_ADMIN:
        raise AdminRequiredError()


# Reusable type aliases for dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
AdminOnly = Annotated[None, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
