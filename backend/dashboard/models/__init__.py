"""SQLAlchemy ORM models for Articles Dashboard.

All models are exported from this module for convenient imports:
    from dashboard.models import User, VerificationToken, ...

Models are organized by domain:
- user.py: User (identity and credentials)
- verification_token.py: VerificationToken (one-time setup tokens)
- availability.py: Availability (registration time slots)
"""

from dashboard.models.availability import Availability
from dashboard.models.base import Base, TimestampMixin, UTCDateTime
from dashboard.models.user import ROLE_ADMIN, ROLE_USER, User
from dashboard.models.verification_token import (
    TOKEN_TYPE_REGISTRATION,
    VerificationToken,
)

__all__ = [
    "ROLE_ADMIN",
    "ROLE_USER",
    "TOKEN_TYPE_REGISTRATION",
    "Availability",
    "Base",
    "TimestampMixin",
    "UTCDateTime",
    "User",
    "VerificationToken",
]
