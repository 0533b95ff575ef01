"""Auth API request schemas.

Request bodies use camelCase on the wire (``firstName``, ``callbackUrl``)
to match the web client; snake_case names are accepted too.
All schemas use extra="forbid" to reject unexpected fields.
"""

from datetime import date
from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
_MAX_URL_LENGTH = 2048
_MAX_EMAIL_LENGTH = 254


def _check_email_format(value: str) -> str:
    """Reject malformed addresses but keep the value exactly as typed.

    Emails are case-sensitive identity keys, so the normalized form that
    email-validator computes is discarded.
    """
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        msg = "value is not a valid email address"
        raise ValueError(msg) from exc
    return value


EmailAddress = Annotated[
    str,
    Field(min_length=3, max_length=_MAX_EMAIL_LENGTH),
    AfterValidator(_check_email_format),
]


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AvailabilitySlot(_CamelModel):
    """A date range and daily time window offered at registration."""

    start_date: date
    end_date: date
    start_time: str = Field(pattern=_TIME_PATTERN)
    end_time: str = Field(pattern=_TIME_PATTERN)
    day_of_week: str | None = Field(None, max_length=10)
    notes: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def check_range(self) -> "AvailabilitySlot":
        """Reject slots that end before they start."""
        if self.end_date < self.start_date:
            msg = "endDate must not be before startDate"
            raise ValueError(msg)
        return self


class RegisterRequest(_CamelModel):
    """Request body for POST /auth/register.

    No password here: it is chosen later through the emailed setup link.
    """

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailAddress
    phone_number: str | None = Field(None, max_length=50)
    experience_field: str | None = Field(None, max_length=255)
    about_yourself: str | None = Field(None, max_length=5000)
    facebook: str | None = Field(None, max_length=_MAX_URL_LENGTH)
    twitter: str | None = Field(None, max_length=_MAX_URL_LENGTH)
    instagram: str | None = Field(None, max_length=_MAX_URL_LENGTH)
    linkedin: str | None = Field(None, max_length=_MAX_URL_LENGTH)
    other_links: list[str] | None = Field(None, max_length=20)
    availability: list[AvailabilitySlot] | None = Field(None, max_length=50)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        """Trim names and reject whitespace-only values."""
        stripped = value.strip()
        if not stripped:
            msg = "must not be blank"
            raise ValueError(msg)
        return stripped

    def profile_fields(self) -> dict:
        """Optional profile columns that were supplied, blank values dropped."""
        fields = self.model_dump(
            exclude={"first_name", "last_name", "email", "availability"},
            exclude_none=True,
        )
        return {k: v for k, v in fields.items() if v not in ("", [])}


class SetupPasswordRequest(_CamelModel):
    """Request body for POST /auth/setup-password.

    Length rules are enforced by the password-setup workflow so a short
    password yields WEAK_PASSWORD rather than a generic validation error.
    """

    token: str = Field(min_length=1, max_length=256)
    password: str = Field(min_length=1, max_length=128)


class ResendVerificationRequest(_CamelModel):
    """Request body for POST /auth/resend-verification."""

    email: EmailAddress


class LoginRequest(_CamelModel):
    """Request body for POST /auth/login."""

    email: EmailAddress
    password: str = Field(min_length=1, max_length=128)
    callback_url: str | None = Field(None, max_length=_MAX_URL_LENGTH)
