"""Rate limiting configuration using slowapi and limits.

Security: Throttles the unauthenticated auth endpoints (register, login,
setup-password) against brute force and email flooding.

Two layers share the same storage backend:
- ``limiter``: slowapi decorator limits keyed per client (per-IP, or
  per-user when a valid session cookie is present)
- ``RateLimitService``: an injectable ``check(key, config)`` call for
  limits keyed on something other than the client, e.g. the account email
  a login attempt targets

Storage defaults to in-process memory. Point RATE_LIMIT_STORAGE_URI at
redis:// for multi-instance deployments; callers do not change.

Usage in routers:
    from dashboard.core.rate_limiting import limiter

    @router.post("/register")
    @limiter.limit("3/hour")
    async def register(request: Request, ...):
        ...
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Annotated

from fastapi import Depends, Request, Response
from limits import RateLimitItem, RateLimitItemPerSecond, parse
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from dashboard.core.auth import decode_session_token
from dashboard.core.config import settings


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - valid session cookie: "user:{sub}"
    - no/invalid cookie: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        claims = decode_session_token(token)
        # Defense-in-depth: a UUID sub is 36 chars
        if claims is not None and len(str(claims["sub"])) <= 36:
            return f"user:{claims['sub']}"

    return f"unauth:{get_remote_address(request)}"


# Global limiter instance
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
    storage_uri=settings.rate_limit_storage_uri,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Security: Returns 429 Too Many Requests with standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "10 per 1 minute")
    # Fallback to 60 seconds if parsing fails
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )


# ===================================================================
# Keyed check() service
# ===================================================================


@dataclass(frozen=True)
class RateLimitConfig:
    """Fixed-window limit: at most ``max_requests`` per ``window_seconds``."""

    max_requests: int
    window_seconds: int

    @classmethod
    def from_string(cls, limit: str) -> "RateLimitConfig":
        """Build from slowapi-style notation such as "5/15minute"."""
        item = parse(limit)
        return cls(max_requests=item.amount, window_seconds=item.get_expiry())

    def to_item(self) -> RateLimitItem:
        return RateLimitItemPerSecond(self.max_requests, self.window_seconds)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single check().

    Attributes:
        allowed: Whether this request fits in the current window.
        remaining: Requests left in the current window.
        reset_at: When the current window ends.
    """

    allowed: bool
    remaining: int
    reset_at: datetime

    @property
    def retry_after(self) -> int:
        """Whole seconds until reset_at, never negative."""
        delta = (self.reset_at - datetime.now(UTC)).total_seconds()
        return max(0, int(delta) + 1)


class RateLimitService:
    """Keyed fixed-window rate limiter.

    Counts one hit per check() call. Expired windows are dropped by the
    storage backend itself, so there is no cleanup task.
    """

    def __init__(self, storage: Storage, *, enabled: bool = True) -> None:
        self._storage = storage
        self._strategy = FixedWindowRateLimiter(storage)
        self.enabled = enabled

    def check(self, key: str, config: RateLimitConfig) -> RateLimitResult:
        """Record a hit for ``key`` and report whether it is allowed.

        Args:
            key: Caller-chosen identifier, e.g. "login:a@b.com".
            config: Window size and request budget.

        Returns:
            RateLimitResult for this hit.
        """
        item = config.to_item()
        if not self.enabled:
            return RateLimitResult(
                allowed=True,
                remaining=config.max_requests,
                reset_at=datetime.now(UTC),
            )

        allowed = self._strategy.hit(item, key)
        stats = self._strategy.get_window_stats(item, key)
        return RateLimitResult(
            allowed=allowed,
            remaining=stats.remaining,
            reset_at=datetime.fromtimestamp(stats.reset_time, UTC),
        )

    def reset(self) -> None:
        """Clear all counters (test helper)."""
        self._storage.reset()


_rate_limit_service = RateLimitService(
    storage_from_string(settings.rate_limit_storage_uri),
    enabled=settings.rate_limit_enabled,
)


def get_rate_limit_service() -> RateLimitService:
    """Dependency that provides the shared RateLimitService."""
    return _rate_limit_service


RateLimits = Annotated[RateLimitService, Depends(get_rate_limit_service)]
