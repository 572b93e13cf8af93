"""Sign-in pages and the OpenID Connect callback.

- /login: login page
- /auth/signin: redirect to the identity provider's hosted login page
- /auth/callback: code exchange, ID token verification, session creation
- /auth/signout: clear the session
"""

import secrets
from typing import Optional
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import RedirectResponse
from starlette.responses import Response

from lessonboard.core.errors import APIError, ErrorCode
from lessonboard.core.metrics import MetricsCollector
from lessonboard.core.rendering import render
from lessonboard.middleware.auth import (
    CALLBACK_PARAM,
    HOME_PATH,
    LOGIN_PATH,
    safe_callback_url,
    sign_in,
    sign_out,
)
from lessonboard.providers.base import IdentityProvider
from lessonboard.providers.exceptions import CallbackError, IdentityError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["auth"], include_in_schema=False)

# Session keys for the pending sign-in
STATE_KEY = "oauth_state"
NONCE_KEY = "oauth_nonce"
RETURN_KEY = "oauth_return_to"

# Messages shown on the login page, keyed by the "error" query value
LOGIN_ERRORS = {
    "AccessDenied": "登录被拒绝",
    "Callback": "登录回调失败，请重试",
    "Configuration": "登录服务未配置",
    "Signin": "登录失败，请重试",
}


# Dependency placeholder for the identity provider
async def get_identity_provider() -> Optional[IdentityProvider]:
    """Get identity provider instance, None when sign-in is not configured."""
    raise NotImplementedError("Identity provider dependency not configured")


def _login_error_redirect(error: str) -> RedirectResponse:
    return RedirectResponse(
        f"{LOGIN_PATH}?{urlencode({'error': error})}", status_code=status.HTTP_303_SEE_OTHER
    )


@router.get(LOGIN_PATH)
async def login_page(
    request: Request,
    callback_url: Optional[str] = Query(None, alias=CALLBACK_PARAM),  # noqa: B008
    error: Optional[str] = Query(None),  # noqa: B008
    provider: Optional[IdentityProvider] = Depends(get_identity_provider),  # noqa: B008
) -> Response:
    """Render the login page."""
    return render(
        request,
        "login.html",
        {
            "callback_url": safe_callback_url(callback_url, str(request.base_url)),
            "error_message": LOGIN_ERRORS.get(error, LOGIN_ERRORS["Signin"]) if error else None,
            "provider_name": provider.name if provider else None,
        },
    )


@router.get("/auth/signin")
async def signin(
    request: Request,
    callback_url: Optional[str] = Query(None, alias=CALLBACK_PARAM),  # noqa: B008
    provider: Optional[IdentityProvider] = Depends(get_identity_provider),  # noqa: B008
) -> Response:
    """Start the authorization code flow."""
    if provider is None:
        raise APIError(ErrorCode.AUTH_NOT_CONFIGURED, "Sign-in is not configured")

    state = secrets.token_urlsafe(24)
    nonce = secrets.token_urlsafe(24)
    request.session[STATE_KEY] = state
    request.session[NONCE_KEY] = nonce
    request.session[RETURN_KEY] = safe_callback_url(callback_url, str(request.base_url))

    redirect_uri = str(request.url_for("auth_callback"))
    MetricsCollector.record_auth_event("signin_started")
    logger.info("signin_started", provider=provider.name)
    return RedirectResponse(
        provider.authorization_url(redirect_uri, state, nonce),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get("/auth/callback", name="auth_callback")
async def callback(
    request: Request,
    code: Optional[str] = Query(None),  # noqa: B008
    state: Optional[str] = Query(None),  # noqa: B008
    error: Optional[str] = Query(None),  # noqa: B008
    provider: Optional[IdentityProvider] = Depends(get_identity_provider),  # noqa: B008
) -> Response:
    """
    Finish the authorization code flow.

    Provider-side errors and failed verification send the user back to the
    login page with an error message. The pending state is consumed in
    every case.
    """
    if provider is None:
        raise APIError(ErrorCode.AUTH_NOT_CONFIGURED, "Sign-in is not configured")

    expected_state = request.session.pop(STATE_KEY, None)
    nonce = request.session.pop(NONCE_KEY, None)
    return_to = request.session.pop(RETURN_KEY, HOME_PATH)

    if error:
        logger.warning("signin_denied_by_provider", error=error)
        MetricsCollector.record_auth_event("signin_denied")
        return _login_error_redirect("AccessDenied" if error == "access_denied" else "Callback")

    try:
        if not code or not state or not expected_state:
            raise CallbackError("Missing code or state")
        if not secrets.compare_digest(state, expected_state):
            raise CallbackError("State mismatch")

        result = await provider.complete_signin(code, str(request.url_for("auth_callback")), nonce)
    except IdentityError as e:
        logger.warning("signin_failed", error_type=type(e).__name__, error=str(e))
        MetricsCollector.record_auth_event("signin_failed")
        return _login_error_redirect("Callback")

    sign_in(request, result.principal, result.access_token)
    MetricsCollector.record_auth_event("signin_completed")
    return RedirectResponse(
        safe_callback_url(return_to, str(request.base_url)),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.api_route("/auth/signout", methods=["GET", "POST"])
async def signout(
    request: Request,
    provider: Optional[IdentityProvider] = Depends(get_identity_provider),  # noqa: B008
) -> Response:
    """Clear the session and end the provider session when supported."""
    sign_out(request)
    MetricsCollector.record_auth_event("signout")

    login_url = str(request.base_url).rstrip("/") + LOGIN_PATH
    target = provider.logout_url(login_url) if provider else None
    return RedirectResponse(target or LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)
