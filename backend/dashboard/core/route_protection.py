"""Route protection middleware.

Gates page routes on a valid session cookie. The check is stateless: the
JWT signature, expiry and claims decide; no database is consulted.

Patterns use the ":path*" suffix for "this path and everything below it":
    "/profile/:path*"  matches /profile, /profile/, /profile/settings/x
    "/admin"           matches /admin and /admin/ only

Unauthenticated requests to a protected path are redirected to the login
page with the original path as ``callbackUrl``.
"""

import re
from collections.abc import Iterable
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from dashboard.core.auth import decode_session_token
from dashboard.core.config import settings

_CATCH_ALL_SUFFIX = "/:path*"


def compile_route_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a route pattern into an anchored regex.

    Args:
        pattern: Literal path, optionally ending in "/:path*".

    Returns:
        Compiled regex matching request paths.
    """
    if pattern.endswith(_CATCH_ALL_SUFFIX):
        prefix = pattern[: -len(_CATCH_ALL_SUFFIX)]
        return re.compile(rf"^{re.escape(prefix)}(?:/.*)?$")
    return re.compile(rf"^{re.escape(pattern.rstrip('/'))}/?$")


def _compile_all(patterns: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    return tuple(compile_route_pattern(p) for p in patterns)


class RouteProtectionMiddleware(BaseHTTPMiddleware):
    """Redirect unauthenticated requests away from protected paths."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        protected_patterns: Iterable[str],
        admin_patterns: Iterable[str] = (),
        login_path: str,
    ) -> None:
        super().__init__(app)
        self._protected = _compile_all(protected_patterns)
        self._admin = _compile_all(admin_patterns)
        self._login_path = login_path

    def _requires(self, path: str) -> tuple[bool, bool]:
        needs_admin = any(p.match(path) for p in self._admin)
        needs_session = needs_admin or any(p.match(path) for p in self._protected)
        return needs_session, needs_admin

    def _login_redirect(self, request: Request) -> RedirectResponse:
        callback = request.url.path
        if request.url.query:
            callback = f"{callback}?{request.url.query}"
        query = urlencode({"callbackUrl": callback})
        return RedirectResponse(url=f"{self._login_path}?{query}", status_code=307)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Let the request through or redirect it to the login page."""
        needs_session, needs_admin = self._requires(request.url.path)
        if not needs_session:
            return await call_next(request)

        token = request.cookies.get(settings.auth_cookie_name)
        claims = decode_session_token(token) if token else None
        if claims is None:
            return self._login_redirect(request)
        if needs_admin and claims.get("role") != "admin":
            return self._login_redirect(request)

        return await call_next(request)
