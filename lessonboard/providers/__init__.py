"""Identity provider implementations."""

from lessonboard.providers.base import IdentityProvider, SignInResult
from lessonboard.providers.exceptions import (
    AuthenticationError,
    CallbackError,
    ConfigurationError,
    IdentityError,
    TokenExchangeError,
)
from lessonboard.providers.oidc import OIDCProvider

__all__ = [
    "IdentityProvider",
    "SignInResult",
    "OIDCProvider",
    "IdentityError",
    "ConfigurationError",
    "CallbackError",
    "TokenExchangeError",
    "AuthenticationError",
]
