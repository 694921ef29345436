"""spotbridge exception hierarchy.

All spotbridge-specific exceptions inherit from SpotBridgeException, enabling
catch-all handling while supporting specific error types.
"""

from __future__ import annotations

from typing import Any


class SpotBridgeException(Exception):
    """Base exception for all spotbridge errors."""

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize spotbridge exception.

        Parameters
        ----------
        message : str
            Human-readable error message.
        **context : Any
            Additional context (status_code, error_code, etc.).
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Format exception with context."""
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ConfigurationError(SpotBridgeException):
    """Required configuration is missing or invalid.

    Raised at startup when the client credentials are not set.
    The process must not serve requests after this error.
    """


class AuthenticationError(SpotBridgeException):
    """Base exception for all authentication failures.

    Each subclass carries a machine-readable ``error_code`` used as the
    ``#error=`` fragment when the browser is redirected after a failure.
    """

    error_code: str = "authentication_failed"

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        **context: Any,
    ) -> None:
        """Initialize authentication error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        provider : str, optional
            The OAuth2 provider name.
        **context : Any
            Additional context.
        """
        super().__init__(message, provider=provider, **context)
        self.provider = provider


class StateMismatchError(AuthenticationError):
    """Anti-forgery state check failed on the OAuth2 callback.

    Recoverable: the user is sent back to retry the login.
    """

    error_code = "state_mismatch"


class AuthorizationDeniedError(AuthenticationError):
    """The provider redirected back with an ``error`` parameter.

    Typically ``access_denied`` when the user declines consent.
    """

    def __init__(self, message: str, error_code: str, **context: Any) -> None:
        """Initialize with the provider's error code."""
        super().__init__(message, **context)
        self.error_code = error_code


class NotAuthenticatedError(AuthenticationError):
    """The session holds no access token.

    Surfaced as HTTP 401; no session state changes.
    """

    error_code = "not_authenticated"


class TokenError(AuthenticationError):
    """Base exception for token-related failures.

    Raised when token operations (exchange, refresh) fail.
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
        **context: Any,
    ) -> None:
        """Initialize token error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        provider : str, optional
            The OAuth2 provider name.
        status_code : int, optional
            HTTP status returned by the token endpoint, if any.
        **context : Any
            Additional context.
        """
        super().__init__(message, provider=provider, status_code=status_code, **context)
        self.status_code = status_code


class TokenExchangeError(TokenError):
    """Exchanging the authorization code for tokens failed."""

    error_code = "token_exchange_failed"


class MissingCodeError(TokenExchangeError):
    """The callback carried no authorization code."""

    error_code = "missing_code"


class NoRefreshTokenError(TokenError):
    """The access token is stale and no refresh token is stored.

    The session is unrecoverable and must be destroyed.
    """

    error_code = "no_refresh_token"


class TokenRefreshError(TokenError):
    """Token refresh failed.

    The session is unrecoverable and must be destroyed.
    """

    error_code = "refresh_failed"


class UpstreamApiError(SpotBridgeException):
    """A provider Web API call failed.

    The provider's status code and payload are propagated unchanged
    to the caller when available.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
        **context: Any,
    ) -> None:
        """Initialize upstream API error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        status_code : int, optional
            The provider's HTTP status (None for transport failures).
        payload : Any, optional
            The provider's error body.
        **context : Any
            Additional context.
        """
        super().__init__(message, status_code=status_code, **context)
        self.status_code = status_code
        self.payload = payload
