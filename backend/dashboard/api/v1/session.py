"""Session endpoints.

Endpoints:
- POST /auth/login: email + password, sets the session cookie
- POST /auth/logout: clears the session cookie
- GET /auth/me: current user info

Sessions are stateless signed JWTs; logout only removes the cookie.
"""

from fastapi import APIRouter, Request, Response

from dashboard.api.deps import CurrentUser, DbSession
from dashboard.core.auth import clear_auth_cookie, resolve_redirect, set_auth_cookie
from dashboard.core.config import settings
from dashboard.core.errors import RateLimitedError
from dashboard.core.rate_limiting import RateLimitConfig, RateLimits, limiter
from dashboard.core.responses import DataResponse
from dashboard.models.user import User
from dashboard.schemas.auth import LoginRequest
from dashboard.services.session_authority import login as login_user

router = APIRouter()


def _user_to_response(user: User) -> dict:
    """Build standard user response payload for /me."""
    return {
        "id": str(user.id),
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "name": user.full_name,
        "role": user.role,
        "bio": user.bio,
        "avatar": user.avatar,
        "isVerified": user.is_verified,
        "createdAt": user.created_at.isoformat(),
        "lastLoginAt": user.last_login_at.isoformat() if user.last_login_at else None,
    }


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit("10/minute")
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    response: Response,
    db: DbSession,
    rate_limits: RateLimits,
) -> DataResponse[dict]:
    """Verify email + password and issue the session cookie.

    The response carries ``redirectUrl``: where the client should navigate
    next, resolved from ``callbackUrl`` without allowing open redirects.

    Rate limits: 10 per minute per IP, plus RATE_LIMIT_LOGIN per account.
    """
    result = rate_limits.check(
        f"login:{body.email}",
        RateLimitConfig.from_string(settings.rate_limit_login),
    )
    if not result.allowed:
        raise RateLimitedError(retry_after=result.retry_after)

    session = await login_user(db, body.email, body.password)
    set_auth_cookie(response, session.token)

    return DataResponse(
        data={
            "id": str(session.user_id),
            "email": session.email,
            "name": session.name,
            "role": session.role,
            "expiresAt": session.expires_at.isoformat(),
            "redirectUrl": resolve_redirect(
                body.callback_url,
                base_url=settings.base_url,
                landing_path=settings.default_landing_path,
            ),
        }
    )


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(response: Response) -> DataResponse[dict]:
    """Clear auth cookie.

    No auth required; clears cookie regardless.
    """
    clear_auth_cookie(response)
    return DataResponse(data={"message": "Signed out"})


# ===================================================================
# GET /auth/me
# ===================================================================


@router.get("/me")
async def get_me(user: CurrentUser) -> DataResponse[dict]:
    """Return current user info.

    Returns 401 if no valid session cookie.
    """
    return DataResponse(data=_user_to_response(user))
