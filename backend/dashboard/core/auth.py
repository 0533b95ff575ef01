"""Authentication helpers for password hashing, session JWTs, and redirects.

Shared utilities used by the auth services, endpoints and middleware.

Pipeline:
- validate_password_strength: Format rules (sync, no network)
- hash_password / check_password: bcrypt with a fixed cost factor
- create_session_token / decode_session_token: signed, stateless sessions
- set_auth_cookie / clear_auth_cookie: httpOnly cookie transport
- resolve_redirect: post-login navigation without open redirects
- DUMMY_HASH: Timing-safe constant for user enumeration defense
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlsplit

import bcrypt
import jwt
from fastapi import Response

from dashboard.core.config import settings
from dashboard.core.errors import WeakPasswordError

logger = logging.getLogger(__name__)

# bcrypt cost factor for password hashing
BCRYPT_ROUNDS = 12

MIN_PASSWORD_LENGTH = 8

# bcrypt only looks at the first 72 bytes of its input
_MAX_PASSWORD_BYTES = 72

_JWT_ALGORITHM = "HS256"

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
# Pre-generated to avoid ~300ms bcrypt computation on every app startup.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


def validate_password_strength(password: str) -> None:
    """Validate password meets the minimum requirements.

    Args:
        password: Plain-text password to validate.

    Raises:
        WeakPasswordError: If password is too short or too long for bcrypt.
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if len(password.encode()) > _MAX_PASSWORD_BYTES:
        raise WeakPasswordError(
            f"Password must be at most {_MAX_PASSWORD_BYTES} bytes long"
        )


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Args:
        password: Plain-text password, already validated.

    Returns:
        bcrypt hash as a str, safe to store.
    """
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def check_password(password: str, password_hash: str | None) -> bool:
    """Compare a password against a stored hash.

    Always performs a bcrypt comparison, against DUMMY_HASH when there is no
    stored hash, so callers take the same time whether or not the identity
    exists.

    Args:
        password: Plain-text password supplied by the client.
        password_hash: Stored bcrypt hash, or None.

    Returns:
        True only if a stored hash exists and matches.
    """
    if not password_hash:
        bcrypt.checkpw(password.encode(), DUMMY_HASH)
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed hash in storage, or input bcrypt refuses
        logger.warning("bcrypt rejected password comparison")
        return False


def create_session_token(
    *,
    user_id: str,
    role: str,
    secret: str,
    expires_delta: timedelta | None = None,
    issued_at: datetime | None = None,
) -> str:
    """Create a signed session JWT.

    Args:
        user_id: User UUID string for the sub claim.
        role: Identity role carried as a claim ("user" or "admin").
        secret: HMAC signing secret.
        expires_delta: Time until expiration. Defaults to the configured
            session lifetime.
        issued_at: The iat claim; exp is counted from it. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    now = issued_at or datetime.now(UTC)
    lifetime = expires_delta or timedelta(hours=settings.session_max_age_hours)
    payload = {
        "sub": user_id,
        "role": role,
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + lifetime,
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALGORITHM)


def decode_session_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a session JWT.

    Verifies signature, exp, aud and iss. Claims are trusted only after this
    returns; no database lookup is involved.

    Args:
        token: Encoded JWT from the session cookie.

    Returns:
        Claims dict, or None for any invalid, expired or malformed token.
    """
    try:
        return jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=[_JWT_ALGORITHM],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.InvalidTokenError:
        return None


def set_auth_cookie(response: Response, token: str) -> None:
    """Set httpOnly JWT cookie on response.

    Security: httpOnly prevents XSS cookie theft. Secure flag and SameSite
    are configured via settings for environment-appropriate security.

    Args:
        response: FastAPI response object.
        token: JWT token string.
    """
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=settings.session_max_age_hours * 3600,
        domain=settings.auth_cookie_domain or None,
    )


def clear_auth_cookie(response: Response) -> None:
    """Delete the session cookie.

    Cookie attributes must match set_auth_cookie() for browser to delete.
    """
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        domain=settings.auth_cookie_domain or None,
    )


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def resolve_redirect(
    url: str | None,
    *,
    base_url: str,
    landing_path: str,
) -> str:
    """Pick where to send the browser after a successful login.

    Rules, in order:
    - no URL, or the site's own base URL: the default landing page
    - a relative path ("/articles"): that path on the site
    - an absolute URL on the same origin: honored as-is
    - anything else (other origins, "//host", "/\\host"): the base URL

    Args:
        url: Requested return URL (callbackUrl), possibly None.
        base_url: The application's public origin.
        landing_path: Default landing route, e.g. "/profile".

    Returns:
        Absolute URL on the application's own origin.
    """
    base = base_url.rstrip("/")
    if not url or url.rstrip("/") == base:
        return f"{base}{landing_path}"

    # Browsers treat "//host" and "/\host" as protocol-relative URLs
    if url.startswith("/") and not url.startswith(("//", "/\\")):
        return f"{base}{url}"

    try:
        same_origin = _origin(url) == _origin(base)
    except ValueError:
        # urlsplit rejects malformed netlocs such as unbalanced IPv6 brackets
        same_origin = False
    return url if same_origin else base
