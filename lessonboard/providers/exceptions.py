"""Identity provider exceptions."""


class IdentityError(Exception):
    """Base exception for identity provider errors."""

    pass


class ConfigurationError(IdentityError):
    """Raised when the identity provider is not configured."""

    pass


class CallbackError(IdentityError):
    """Raised when the authorization callback is malformed or its state does not match."""

    pass


class TokenExchangeError(IdentityError):
    """Raised when the authorization code cannot be exchanged for tokens."""

    pass


class AuthenticationError(IdentityError):
    """Raised when the ID token cannot be verified."""

    pass
