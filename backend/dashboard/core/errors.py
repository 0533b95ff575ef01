"""API error classes.

Every error carries a machine-readable code, a human-readable message and
the HTTP status the exception handler in main.py returns.

Token errors use 410 Gone: an expired or consumed token is permanently
inert, unlike a retryable validation failure.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, query param errors, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class WeakPasswordError(ValidationError):
    """Password does not meet the minimum requirements (400)."""

    def __init__(self, message: str) -> None:
        APIError.__init__(
            self,
            code="WEAK_PASSWORD",
            message=message,
            status_code=400,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid auth credentials provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class InvalidCredentialsError(UnauthorizedError):
    """Email/password pair rejected (401).

    The message is identical for unknown email, missing password and wrong
    password so responses cannot be used to enumerate accounts.
    """

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="INVALID_CREDENTIALS",
            message="Invalid credentials",
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to access resource (403).

    Use when auth is valid but user lacks permission.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class EmailNotVerifiedError(ForbiddenError):
    """Credentials are on an identity that has not finished verification (403)."""

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="EMAIL_NOT_VERIFIED",
            message=(
                "Please verify your email before signing in. "
                "Check your inbox for the verification link."
            ),
            status_code=403,
        )


class AdminRequiredError(ForbiddenError):
    """Admin access required (403)."""

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="ADMIN_REQUIRED",
            message="Admin access required",
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class InvalidTokenError(NotFoundError):
    """No verification token matches the presented string (404).

    The token itself is never echoed back.
    """

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="NOT_FOUND",
            message="Invalid token",
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class TokenExpiredError(APIError):
    """Verification token is past its expiry (410)."""

    def __init__(self) -> None:
        super().__init__(
            code="TOKEN_EXPIRED",
            message="Token has expired",
            status_code=410,
        )


class TokenAlreadyUsedError(APIError):
    """Verification token has already been consumed (410)."""

    def __init__(self) -> None:
        super().__init__(
            code="TOKEN_ALREADY_USED",
            message="Token has already been used",
            status_code=410,
        )


class RateLimitedError(APIError):
    """Too many attempts for a key (429).

    Args:
        retry_after: Seconds until the current window resets.
    """

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(
            code="RATE_LIMITED",
            message="Too many attempts. Please try again later.",
            status_code=429,
            details=[{"retry_after": retry_after}],
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
