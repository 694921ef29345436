"""Type definitions for spotbridge.

Shared types used across the session layer, the auth flow and the API
forwarder.
"""

from __future__ import annotations

import asyncio
import time

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .exceptions import UpstreamApiError


class AuthFlowState(str, Enum):
    """Logical state of the authorization flow for one session.

    ``FAILED`` is never stored; a failed callback leaves the session
    ``IDLE`` again.
    """

    IDLE = "idle"
    AWAITING_CALLBACK = "awaiting_callback"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass
class SessionRecord:
    """Server-side state for one browser session.

    Attributes
    ----------
    session_id : str
        Random session identifier (carried in a signed cookie).
    pending_auth_state : str or None
        Anti-forgery token issued by the last login redirect.
    access_token : str or None
        Bearer credential for provider API calls.
    refresh_token : str or None
        Credential used to mint new access tokens.
    access_token_expiry : int or None
        Epoch milliseconds after which ``access_token`` is invalid.
    created_at : float
        Unix timestamp when the session was created.
    last_seen : float
        Unix timestamp of the last request on this session.
    """

    session_id: str
    pending_auth_state: str | None = None
    access_token: str | None = None
    refresh_token: str | None = None
    access_token_expiry: int | None = None
    created_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)
    refresh_lock: asyncio.Lock = field(
        default_factory=asyncio.Lock, repr=False, compare=False
    )

    @property
    def flow_state(self) -> AuthFlowState:
        """Derive the authorization flow state from the stored fields."""
        if self.pending_auth_state is not None:
            return AuthFlowState.AWAITING_CALLBACK
        if self.access_token is not None:
            return AuthFlowState.AUTHENTICATED
        return AuthFlowState.IDLE


@dataclass
class OAuthTokenSet:
    """Token set returned by the provider's token endpoint.

    Attributes
    ----------
    access_token : str
        The access token for API requests.
    token_type : str
        Token type, typically "Bearer".
    refresh_token : str or None
        Refresh token; providers may omit it on refresh.
    expires_in : int
        Token lifetime in seconds from issuance.
    scope : str
        Space-separated list of granted scopes.
    raw : dict[str, Any]
        The raw token response from the provider.
    """

    access_token: str
    token_type: str = "Bearer"  # noqa: S105
    refresh_token: str | None = None
    expires_in: int = 3600
    scope: str = ""
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ApiSuccess:
    """A 2xx response from the provider.

    ``payload`` is None when the provider returned an empty body
    (e.g. ``204 No Content`` from the player endpoints).
    """

    status_code: int
    payload: Any = None


@dataclass(frozen=True)
class ApiFailure:
    """A failed provider call.

    Attributes
    ----------
    status_code : int or None
        The provider's HTTP status, or None for transport failures.
    error : Any
        The provider's error payload, or None when there is none.
    message : str
        Short description of what failed.
    """

    status_code: int | None
    error: Any = None
    message: str = ""

    def to_error(self) -> UpstreamApiError:
        """Convert to an ``UpstreamApiError`` for the HTTP layer."""
        return UpstreamApiError(
            self.message or "Provider API call failed",
            status_code=self.status_code,
            payload=self.error,
        )


ApiResult = Union[ApiSuccess, ApiFailure]
