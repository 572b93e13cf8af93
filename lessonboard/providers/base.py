"""Abstract base class for identity providers."""

from abc import ABC, abstractmethod
from typing import Optional

from lessonboard.models.user import Principal


class IdentityProvider(ABC):
    """Abstract base class for third-party sign-in providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provider name used in logs and on the login page."""
        pass

    @abstractmethod
    def authorization_url(self, redirect_uri: str, state: str, nonce: str) -> str:
        """
        Build the hosted login page URL.

        Args:
            redirect_uri: Absolute callback URL on this application
            state: Opaque value echoed back on the callback
            nonce: Value the ID token must carry

        Returns:
            URL to redirect the browser to
        """
        pass

    @abstractmethod
    async def complete_signin(
        self, code: str, redirect_uri: str, nonce: Optional[str]
    ) -> "SignInResult":
        """
        Exchange an authorization code and verify the returned ID token.

        Args:
            code: Authorization code from the callback
            redirect_uri: The same callback URL used for authorization_url
            nonce: Nonce stored when the sign-in started

        Returns:
            SignInResult with the principal and access token

        Raises:
            TokenExchangeError: If the token endpoint rejects the code
            AuthenticationError: If the ID token is invalid
        """
        pass

    @abstractmethod
    def logout_url(self, return_to: str) -> Optional[str]:
        """
        Build the provider's logout URL.

        Returns:
            URL to end the provider session, or None if not supported
        """
        pass


class SignInResult:
    """Outcome of a completed sign-in."""

    def __init__(self, principal: Principal, access_token: Optional[str] = None):
        self.principal = principal
        self.access_token = access_token
