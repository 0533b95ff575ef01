"""Registration and password-setup endpoints.

Endpoints:
- POST /auth/register: create an unverified user, email a setup link
- GET /auth/setup-password: check a setup token without consuming it
- POST /auth/setup-password: set the password and consume the token
- POST /auth/resend-verification: email a fresh setup link

Security considerations:
- Tokens are never echoed in responses or logs
- Email is sent as a background task after commit; delivery failure does
  not fail registration
- resend-verification answers identically whether or not the email exists
"""

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Query, Request

from dashboard.api.deps import DbSession
from dashboard.core.email import send_registration_email
from dashboard.core.rate_limiting import limiter
from dashboard.core.responses import DataResponse
from dashboard.schemas.auth import (
    RegisterRequest,
    ResendVerificationRequest,
    SetupPasswordRequest,
)
from dashboard.services.password_setup import set_password_with_token
from dashboard.services.registration import register_identity, resend_verification
from dashboard.services.verification_tokens import verify_token

router = APIRouter()


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register", status_code=201)
@limiter.limit("3/hour")
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: DbSession,
) -> DataResponse[dict]:
    """Register a new user.

    Creates the user without a password, issues a 24-hour setup token and
    emails the setup link.

    Rate limit: 3 per hour per IP.
    """
    user, plain_token = await register_identity(db, body)

    background_tasks.add_task(
        send_registration_email,
        to_email=user.email,
        first_name=user.first_name,
        token=plain_token,
    )

    return DataResponse(
        data={
            "userId": str(user.id),
            "message": (
                "Registration successful! Please check your email to "
                "complete setup."
            ),
        }
    )


# ===================================================================
# GET /auth/setup-password
# ===================================================================


@router.get("/setup-password")
@limiter.limit("20/minute")
async def check_setup_token(
    request: Request,  # noqa: ARG001
    token: Annotated[str, Query(min_length=1, max_length=256)],
    db: DbSession,
) -> DataResponse[dict]:
    """Check a setup token so the page can show the form.

    Read-only: the token stays usable.

    Rate limit: 20 per minute per IP.
    """
    user, _ = await verify_token(db, token)
    return DataResponse(
        data={
            "valid": True,
            "user": {
                "id": str(user.id),
                "firstName": user.first_name,
                "lastName": user.last_name,
                "email": user.email,
            },
        }
    )


# ===================================================================
# POST /auth/setup-password
# ===================================================================


@router.post("/setup-password")
@limiter.limit("10/minute")
async def setup_password(
    request: Request,  # noqa: ARG001
    body: SetupPasswordRequest,
    db: DbSession,
) -> DataResponse[dict]:
    """Set the password for a registered user and consume the token.

    Rate limit: 10 per minute per IP.
    """
    await set_password_with_token(db, body.token, body.password)
    return DataResponse(
        data={
            "success": True,
            "message": "Password set successfully! You can now log in.",
        }
    )


# ===================================================================
# POST /auth/resend-verification
# ===================================================================


@router.post("/resend-verification")
@limiter.limit("3/hour")
async def resend_verification_email(
    request: Request,  # noqa: ARG001
    body: ResendVerificationRequest,
    background_tasks: BackgroundTasks,
    db: DbSession,
) -> DataResponse[dict]:
    """Email a fresh setup link to a user who has not finished setup.

    Earlier links stop working. Always returns the same message
    (enumeration defense).

    Rate limit: 3 per hour per IP.
    """
    issued = await resend_verification(db, body.email)
    if issued is not None:
        user, plain_token = issued
        background_tasks.add_task(
            send_registration_email,
            to_email=user.email,
            first_name=user.first_name,
            token=plain_token,
        )

    return DataResponse(
        data={
            "message": (
                "If an account is awaiting setup, a new link has been sent"
            )
        }
    )
