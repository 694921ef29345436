"""OAuth2 authorization-code flow for the Spotify accounts service.

Provides the provider client, the per-session token store, the
login/callback flow, on-demand refresh and the request gate.
"""

from __future__ import annotations

from .flow import AuthorizationFlow
from .gate import AuthenticationGate, authenticated_session
from .provider import SpotifyProvider
from .refresher import TokenRefresher
from .state import generate_random_state
from .token_store import SessionTokenStore, TokenSnapshot


__all__ = [
    "AuthenticationGate",
    "AuthorizationFlow",
    "SessionTokenStore",
    "SpotifyProvider",
    "TokenRefresher",
    "TokenSnapshot",
    "authenticated_session",
    "generate_random_state",
]
