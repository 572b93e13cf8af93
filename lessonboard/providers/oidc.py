"""OpenID Connect identity provider (Auth0-style endpoints).

Implements the relying-party side of the authorization code flow: building
the hosted login URL, exchanging the code and verifying the ID token against
the issuer's JWKS.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import jwt
import requests
import structlog
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from lessonboard.core.logging import hash_subject
from lessonboard.models.user import Principal
from lessonboard.providers.base import IdentityProvider, SignInResult
from lessonboard.providers.exceptions import (
    AuthenticationError,
    ConfigurationError,
    TokenExchangeError,
)

logger = structlog.get_logger(__name__)


class OIDCProvider(IdentityProvider):
    """Authorization code flow against an Auth0-compatible issuer."""

    AUTHORIZE_PATH = "/authorize"
    TOKEN_PATH = "/oauth/token"
    JWKS_PATH = "/.well-known/jwks.json"
    LOGOUT_PATH = "/v2/logout"

    def __init__(
        self,
        issuer: str,
        client_id: str,
        client_secret: str,
        scope: str = "openid email profile",
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the provider.

        Args:
            issuer: Issuer base URL, e.g. https://tenant.eu.auth0.com
            client_id: OAuth client id
            client_secret: OAuth client secret
            scope: Requested scopes
            timeout: HTTP timeout in seconds
            session: Optional requests session, injectable for tests

        Raises:
            ConfigurationError: If issuer, client_id or client_secret is empty
        """
        if not all([issuer, client_id, client_secret]):
            raise ConfigurationError("issuer, client_id and client_secret are required")

        self.issuer = issuer.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "auth0"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}{self.JWKS_PATH}"

    def authorization_url(self, redirect_uri: str, state: str, nonce: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "scope": self.scope,
            "state": state,
            "nonce": nonce,
        }
        return f"{self.issuer}{self.AUTHORIZE_PATH}?{urlencode(params)}"

    def logout_url(self, return_to: str) -> Optional[str]:
        params = {"client_id": self.client_id, "returnTo": return_to}
        return f"{self.issuer}{self.LOGOUT_PATH}?{urlencode(params)}"

    def _exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """Blocking token endpoint call."""
        try:
            response = self._session.post(
                f"{self.issuer}{self.TOKEN_PATH}",
                data={
                    "grant_type": "authorization_code",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TokenExchangeError(f"Token endpoint unreachable: {e}") from e

        if response.status_code != 200:
            logger.warning(
                "token_exchange_rejected",
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise TokenExchangeError(f"Token endpoint returned {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenExchangeError("Token endpoint returned invalid JSON") from e

        if not isinstance(payload, dict) or "id_token" not in payload:
            raise TokenExchangeError("Token response has no id_token")
        return payload

    def _verify_id_token(self, token: str, nonce: Optional[str]) -> Mapping[str, Any]:
        """Blocking ID token verification against the issuer's JWKS."""
        try:
            claims = google_id_token.verify_token(
                token,
                google_requests.Request(session=self._session),
                audience=self.client_id,
                certs_url=self.jwks_url,
            )
        except (ValueError, jwt.PyJWTError, google_auth_exceptions.GoogleAuthError) as e:
            raise AuthenticationError(f"ID token verification failed: {e}") from e

        if claims.get("iss", "").rstrip("/") != self.issuer:
            raise AuthenticationError("ID token issuer mismatch")
        if nonce is not None and claims.get("nonce") != nonce:
            raise AuthenticationError("ID token nonce mismatch")
        if not claims.get("sub"):
            raise AuthenticationError("ID token has no subject")
        return claims

    async def complete_signin(
        self, code: str, redirect_uri: str, nonce: Optional[str]
    ) -> SignInResult:
        tokens = await asyncio.to_thread(self._exchange_code, code, redirect_uri)
        claims = await asyncio.to_thread(self._verify_id_token, tokens["id_token"], nonce)

        principal = Principal.from_claims(claims)
        logger.info("signin_completed", provider=self.name, subject=hash_subject(principal.id))
        return SignInResult(principal=principal, access_token=tokens.get("access_token"))

    def close(self) -> None:
        """Release pooled HTTP connections."""
        self._session.close()
