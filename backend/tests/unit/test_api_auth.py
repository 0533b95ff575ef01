"""Tests for registration and password-setup endpoints.

POST /auth/register, GET/POST /auth/setup-password,
POST /auth/resend-verification.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pydantic import SecretStr
from sqlalchemy import select

from dashboard.core.config import settings
from dashboard.core.rate_limiting import limiter
from dashboard.models import User
from dashboard.services.verification_tokens import issue_token
from tests.conftest import TEST_EMAIL, TEST_USER_ID

_PATCH_SEND_EMAIL = "dashboard.api.v1.auth.send_registration_email"
_REGISTER_URL = "/api/v1/auth/register"
_SETUP_URL = "/api/v1/auth/setup-password"
_RESEND_URL = "/api/v1/auth/resend-verification"
_LOGIN_URL = "/api/v1/auth/login"

_NEW_PASSWORD = "n3w-Passw0rd"  # nosec B105

_REGISTRATION = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "email": "ada@example.com",
}


@pytest.fixture
def mock_send_email():
    with patch(_PATCH_SEND_EMAIL, new_callable=AsyncMock) as mock_send:
        yield mock_send


async def _issue_committed(db_session, *, now: datetime | None = None) -> str:
    plain, _ = await issue_token(db_session, TEST_USER_ID, now=now)
    await db_session.commit()
    return plain


# ===================================================================
# POST /auth/register
# ===================================================================


class TestRegister:
    """Tests for POST /api/v1/auth/register."""

    async def test_returns_201_with_user_id(self, client, mock_send_email):  # noqa: ARG002
        response = await client.post(_REGISTER_URL, json=_REGISTRATION)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["userId"]
        assert "check your email" in data["message"]

    async def test_sends_setup_email_with_usable_token(self, client, mock_send_email):
        response = await client.post(_REGISTER_URL, json=_REGISTRATION)
        assert response.status_code == 201

        mock_send_email.assert_awaited_once()
        kwargs = mock_send_email.call_args.kwargs
        assert kwargs["to_email"] == "ada@example.com"
        assert kwargs["first_name"] == "Ada"

        check = await client.get(_SETUP_URL, params={"token": kwargs["token"]})
        assert check.status_code == 200
        assert check.json()["data"]["user"]["id"] == response.json()["data"]["userId"]

    async def test_token_is_not_in_response(self, client, mock_send_email):
        response = await client.post(_REGISTER_URL, json=_REGISTRATION)
        assert mock_send_email.call_args.kwargs["token"] not in response.text

    async def test_creates_unverified_user(
        self,
        client,
        db_session,
        mock_send_email,  # noqa: ARG002
    ):
        await client.post(_REGISTER_URL, json=_REGISTRATION)

        row = (
            await db_session.execute(
                select(User.is_verified, User.password_hash).where(
                    User.email == "ada@example.com"
                )
            )
        ).one()
        assert row.is_verified is False
        assert row.password_hash is None

    async def test_accepts_optional_profile_and_availability(
        self,
        client,
        mock_send_email,  # noqa: ARG002
    ):
        body = {
            **_REGISTRATION,
            "phoneNumber": "+1 555 0100",
            "aboutYourself": "I write.",
            "otherLinks": ["https://ada.example"],
            "availability": [
                {
                    "startDate": "2026-11-01",
                    "endDate": "2026-11-02",
                    "startTime": "09:00",
                    "endTime": "17:00",
                    "dayOfWeek": "monday",
                }
            ],
        }
        response = await client.post(_REGISTER_URL, json=body)
        assert response.status_code == 201

    async def test_duplicate_email_returns_409(
        self,
        client,
        unverified_user,  # noqa: ARG002
        mock_send_email,
    ):
        response = await client.post(
            _REGISTER_URL, json={**_REGISTRATION, "email": TEST_EMAIL}
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "EMAIL_ALREADY_EXISTS"
        mock_send_email.assert_not_called()

    async def test_email_is_stored_exactly_as_typed(
        self,
        client,
        db_session,
        mock_send_email,  # noqa: ARG002
    ):
        mixed = await client.post(
            _REGISTER_URL, json={**_REGISTRATION, "email": "ada@Example.COM"}
        )
        lower = await client.post(
            _REGISTER_URL, json={**_REGISTRATION, "email": "ada@example.com"}
        )

        assert mixed.status_code == 201
        assert lower.status_code == 201
        stored = await db_session.scalars(select(User.email).order_by(User.email))
        assert sorted(stored.all()) == ["ada@Example.COM", "ada@example.com"]

    @pytest.mark.parametrize("missing", ["firstName", "lastName", "email"])
    async def test_missing_required_field_returns_400(
        self,
        client,
        mock_send_email,  # noqa: ARG002
        missing,
    ):
        body = {k: v for k, v in _REGISTRATION.items() if k != missing}
        response = await client.post(_REGISTER_URL, json=body)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_invalid_email_returns_400(self, client, mock_send_email):  # noqa: ARG002
        response = await client.post(
            _REGISTER_URL, json={**_REGISTRATION, "email": "not-an-email"}
        )
        assert response.status_code == 400

    async def test_blank_name_returns_400(self, client, mock_send_email):  # noqa: ARG002
        response = await client.post(
            _REGISTER_URL, json={**_REGISTRATION, "firstName": "   "}
        )
        assert response.status_code == 400

    async def test_unknown_field_returns_400(self, client, mock_send_email):  # noqa: ARG002
        response = await client.post(
            _REGISTER_URL, json={**_REGISTRATION, "role": "admin"}
        )
        assert response.status_code == 400

    async def test_availability_ending_before_start_returns_400(
        self,
        client,
        mock_send_email,  # noqa: ARG002
    ):
        body = {
            **_REGISTRATION,
            "availability": [
                {
                    "startDate": "2026-11-02",
                    "endDate": "2026-11-01",
                    "startTime": "09:00",
                    "endTime": "17:00",
                }
            ],
        }
        response = await client.post(_REGISTER_URL, json=body)
        assert response.status_code == 400

    async def test_email_failure_does_not_fail_registration(self, client):
        """Delivery errors are absorbed by send_registration_email()."""
        original_key = settings.resend_api_key
        settings.resend_api_key = SecretStr("re_test_key")
        try:
            with patch(
                "dashboard.core.email.httpx.AsyncClient",
                side_effect=httpx.ConnectError("provider down"),
            ):
                response = await client.post(_REGISTER_URL, json=_REGISTRATION)
        finally:
            settings.resend_api_key = original_key

        assert response.status_code == 201

    async def test_register_is_rate_limited_per_ip(self, client, mock_send_email):  # noqa: ARG002
        limiter.enabled = True
        try:
            statuses = [
                (
                    await client.post(
                        _REGISTER_URL,
                        json={**_REGISTRATION, "email": f"user{i}@example.com"},
                    )
                ).status_code
                for i in range(4)
            ]
        finally:
            limiter.reset()

        assert statuses == [201, 201, 201, 429]


# ===================================================================
# GET /auth/setup-password
# ===================================================================


class TestCheckSetupToken:
    """Tests for GET /api/v1/auth/setup-password."""

    async def test_valid_token_returns_user(self, client, db_session, unverified_user):
        plain = await _issue_committed(db_session)

        response = await client.get(_SETUP_URL, params={"token": plain})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["valid"] is True
        assert data["user"] == {
            "id": str(unverified_user.id),
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": TEST_EMAIL,
        }

    async def test_check_is_repeatable(self, client, db_session, unverified_user):  # noqa: ARG002
        plain = await _issue_committed(db_session)

        for _ in range(3):
            response = await client.get(_SETUP_URL, params={"token": plain})
            assert response.status_code == 200

    async def test_missing_token_returns_400(self, client):
        response = await client.get(_SETUP_URL)
        assert response.status_code == 400

    async def test_unknown_token_returns_404(self, client):
        response = await client.get(_SETUP_URL, params={"token": "nope"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_expired_token_returns_410(self, client, db_session, unverified_user):  # noqa: ARG002
        plain = await _issue_committed(
            db_session, now=datetime.now(UTC) - timedelta(hours=25)
        )

        response = await client.get(_SETUP_URL, params={"token": plain})

        assert response.status_code == 410
        assert response.json()["error"]["code"] == "TOKEN_EXPIRED"

    async def test_used_token_returns_410(self, client, db_session, unverified_user):  # noqa: ARG002
        plain = await _issue_committed(db_session)
        await client.post(_SETUP_URL, json={"token": plain, "password": _NEW_PASSWORD})

        response = await client.get(_SETUP_URL, params={"token": plain})

        assert response.status_code == 410
        assert response.json()["error"]["code"] == "TOKEN_ALREADY_USED"


# ===================================================================
# POST /auth/setup-password
# ===================================================================


class TestSetupPassword:
    """Tests for POST /api/v1/auth/setup-password."""

    async def test_sets_password_then_login_succeeds(
        self,
        client,
        db_session,
        unverified_user,  # noqa: ARG002
    ):
        plain = await _issue_committed(db_session)

        response = await client.post(
            _SETUP_URL, json={"token": plain, "password": _NEW_PASSWORD}
        )
        assert response.status_code == 200
        assert response.json()["data"]["success"] is True

        login = await client.post(
            _LOGIN_URL, json={"email": TEST_EMAIL, "password": _NEW_PASSWORD}
        )
        assert login.status_code == 200

    async def test_second_submission_returns_410(
        self,
        client,
        db_session,
        unverified_user,  # noqa: ARG002
    ):
        plain = await _issue_committed(db_session)
        body = {"token": plain, "password": _NEW_PASSWORD}
        await client.post(_SETUP_URL, json=body)

        response = await client.post(_SETUP_URL, json=body)

        assert response.status_code == 410
        assert response.json()["error"]["code"] == "TOKEN_ALREADY_USED"

    async def test_short_password_returns_400(
        self,
        client,
        db_session,
        unverified_user,  # noqa: ARG002
    ):
        plain = await _issue_committed(db_session)

        response = await client.post(
            _SETUP_URL, json={"token": plain, "password": "1234567"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "WEAK_PASSWORD"
        assert "1234567" not in response.text

    async def test_short_password_with_bad_token_is_still_weak(self, client):
        response = await client.post(
            _SETUP_URL, json={"token": "nope", "password": "short"}
        )
        assert response.status_code == 400

    async def test_unknown_token_returns_404(self, client):
        response = await client.post(
            _SETUP_URL, json={"token": "nope", "password": _NEW_PASSWORD}
        )
        assert response.status_code == 404

    async def test_expired_token_returns_410(
        self,
        client,
        db_session,
        unverified_user,  # noqa: ARG002
    ):
        plain = await _issue_committed(
            db_session, now=datetime.now(UTC) - timedelta(hours=24, seconds=1)
        )

        response = await client.post(
            _SETUP_URL, json={"token": plain, "password": _NEW_PASSWORD}
        )

        assert response.status_code == 410
        assert response.json()["error"]["code"] == "TOKEN_EXPIRED"

    async def test_missing_fields_return_400(self, client):
        response = await client.post(_SETUP_URL, json={"token": "abc"})
        assert response.status_code == 400

    async def test_validation_error_does_not_echo_password(self, client):
        response = await client.post(
            _SETUP_URL, json={"token": "", "password": "hunter2hunter2"}
        )
        assert response.status_code == 400
        assert "hunter2hunter2" not in response.text


# ===================================================================
# POST /auth/resend-verification
# ===================================================================


class TestResendVerification:
    """Tests for POST /api/v1/auth/resend-verification."""

    async def test_pending_user_gets_new_email(
        self,
        client,
        unverified_user,  # noqa: ARG002
        mock_send_email,
    ):
        response = await client.post(_RESEND_URL, json={"email": TEST_EMAIL})

        assert response.status_code == 200
        mock_send_email.assert_awaited_once()
        assert mock_send_email.call_args.kwargs["to_email"] == TEST_EMAIL

    async def test_unknown_email_gets_same_response_and_no_email(
        self,
        client,
        unverified_user,  # noqa: ARG002
        mock_send_email,
    ):
        known = await client.post(_RESEND_URL, json={"email": TEST_EMAIL})
        mock_send_email.reset_mock()

        unknown = await client.post(_RESEND_URL, json={"email": "nobody@example.com"})

        assert unknown.status_code == known.status_code == 200
        assert unknown.json() == known.json()
        mock_send_email.assert_not_called()

    async def test_verified_user_gets_no_email(
        self,
        client,
        verified_user,  # noqa: ARG002
        mock_send_email,
    ):
        response = await client.post(_RESEND_URL, json={"email": TEST_EMAIL})

        assert response.status_code == 200
        mock_send_email.assert_not_called()
