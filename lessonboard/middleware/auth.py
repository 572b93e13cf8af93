"""Session authentication middleware and dependencies.

The signed session cookie holds the principal returned by the identity
provider. Page routes are gated by AuthGateMiddleware, which redirects
anonymous visitors to the login page. JSON routes use the require_user
dependency, which answers 401 instead of redirecting.
"""

from typing import Any, FrozenSet, Optional, Set
from urllib.parse import urlencode, urlsplit

import structlog
from fastapi import HTTPException, Request, status
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from lessonboard.core.logging import hash_subject
from lessonboard.models.user import Principal

logger = structlog.get_logger(__name__)

SESSION_USER_KEY = "user"
SESSION_TOKEN_KEY = "access_token"

LOGIN_PATH = "/login"
HOME_PATH = "/dashboard"
CALLBACK_PARAM = "callbackUrl"

ANONYMOUS_PRINCIPAL = Principal(id="anonymous", name="Guest")


def safe_callback_url(url: Optional[str], base_url: str) -> str:
    """
    Restrict a post-login redirect target to this application.

    Relative paths are kept, absolute URLs are kept only on the same origin
    (reduced to path and query). Everything else falls back to the dashboard.
    """
    if not url:
        return HOME_PATH

    if url.startswith("/") and not url.startswith("//") and "\\" not in url:
        return url

    target = urlsplit(url)
    base = urlsplit(base_url)
    if target.scheme in ("http", "https") and (target.scheme, target.netloc) == (
        base.scheme,
        base.netloc,
    ):
        path = target.path or "/"
        return f"{path}?{target.query}" if target.query else path

    return HOME_PATH


class SessionAuth:
    """Session-based authentication handler.

    Decides which paths are public and reads the principal from the session.
    With allow_anonymous every request is treated as signed in as a guest,
    which is only meant for local development.
    """

    # Paths that don't require authentication
    DEFAULT_PUBLIC_PATHS: FrozenSet[str] = frozenset(
        {
            "/",
            "/login",
            "/auth",
            "/health",
            "/liveness",
            "/readiness",
            "/metrics",
            "/docs",
            "/redoc",
            "/openapi.json",
            "/static",
            "/favicon.ico",
            "/api",
        }
    )

    def __init__(
        self,
        allow_anonymous: bool = False,
        public_paths: Optional[Set[str]] = None,
    ):
        """
        Initialize session authentication.

        Args:
            allow_anonymous: Treat every request as signed in as a guest.
            public_paths: Paths that don't require a session. "/" only matches itself,
                          other entries also match their sub-paths.
        """
        self._allow_anonymous = allow_anonymous
        self._public_paths = public_paths or self.DEFAULT_PUBLIC_PATHS

        if self._allow_anonymous:
            logger.warning(
                "Anonymous access enabled, authentication is disabled",
                component="auth",
            )

    @property
    def allow_anonymous(self) -> bool:
        return self._allow_anonymous

    @property
    def public_paths(self) -> Set[str]:
        return set(self._public_paths)

    def is_path_public(self, path: str) -> bool:
        """
        Check if a path is reachable without a session.

        Args:
            path: Request path to check

        Returns:
            True if path is public, False otherwise
        """
        path = path.rstrip("/") or "/"

        for public in self._public_paths:
            if public == "/":
                if path == "/":
                    return True
                continue
            if path == public or path.startswith(public + "/"):
                return True
        return False

    def get_principal(self, request: Request) -> Optional[Principal]:
        """
        Read the signed-in principal from the session.

        Returns:
            The principal, or None when nobody is signed in
        """
        if self._allow_anonymous:
            return ANONYMOUS_PRINCIPAL

        data: Any = request.session.get(SESSION_USER_KEY) if "session" in request.scope else None
        if not isinstance(data, dict) or not data.get("id"):
            return None

        try:
            return Principal.from_session(data)
        except (KeyError, TypeError):
            logger.warning("session_principal_malformed")
            return None

    def login_redirect(self, request: Request) -> RedirectResponse:
        """Redirect to the login page, remembering where the visitor wanted to go."""
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        query = urlencode({CALLBACK_PARAM: target})
        return RedirectResponse(f"{LOGIN_PATH}?{query}", status_code=status.HTTP_303_SEE_OTHER)


def sign_in(request: Request, principal: Principal, access_token: Optional[str] = None) -> None:
    """Store the principal in the session."""
    request.session[SESSION_USER_KEY] = principal.to_session()
    if access_token:
        request.session[SESSION_TOKEN_KEY] = access_token
    else:
        request.session.pop(SESSION_TOKEN_KEY, None)


def sign_out(request: Request) -> None:
    """Remove everything from the session."""
    request.session.clear()


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Route-level authentication gate.

    Must run inside SessionMiddleware so that request.session is available.
    """

    def __init__(self, app: ASGIApp, auth: Optional[SessionAuth] = None):
        super().__init__(app)
        self._auth = auth

    @property
    def auth(self) -> SessionAuth:
        return self._auth or get_auth()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        auth = self.auth
        path = request.url.path
        principal = auth.get_principal(request)
        request.state.principal = principal

        if auth.is_path_public(path):
            # Signed-in users have no business on the login page
            if principal is not None and path.rstrip("/") == LOGIN_PATH:
                return RedirectResponse(HOME_PATH, status_code=status.HTTP_303_SEE_OTHER)
            return await call_next(request)

        if principal is None:
            logger.info(
                "unauthenticated_request_redirected",
                path=path,
                client_ip=request.client.host if request.client else "unknown",
            )
            return auth.login_redirect(request)

        logger.debug("session_authenticated", path=path, subject=hash_subject(principal.id))
        return await call_next(request)


# Global auth instance (configured at startup)
_auth_instance: Optional[SessionAuth] = None


def configure_auth(allow_anonymous: bool = False) -> SessionAuth:
    """
    Configure the global auth instance.

    Args:
        allow_anonymous: Disable authentication (development only)

    Returns:
        Configured SessionAuth instance
    """
    global _auth_instance
    _auth_instance = SessionAuth(allow_anonymous=allow_anonymous)
    return _auth_instance


def get_auth() -> SessionAuth:
    """
    Get the global auth instance.

    Returns:
        SessionAuth instance, a default one if not configured
    """
    if _auth_instance is None:
        return SessionAuth()
    return _auth_instance


async def get_current_user(request: Request) -> Optional[Principal]:
    """Dependency: the signed-in principal, or None."""
    # The gate has already resolved the principal for this request
    if hasattr(request.state, "principal"):
        return request.state.principal
    return get_auth().get_principal(request)


async def require_user(request: Request) -> Principal:
    """Dependency: the signed-in principal; 401 for anonymous requests.

    Use this on JSON routes, which are not redirected by the gate.
    """
    principal = await get_current_user(request)
    if principal is None:
        logger.warning(
            "session_authentication_failed",
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign-in required",
        )
    return principal
