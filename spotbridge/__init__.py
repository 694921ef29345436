"""spotbridge - server-side Spotify OAuth2 bridge and Web API proxy."""

from __future__ import annotations

from .app import create_app
from .config import BridgeSettings, get_settings
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    SpotBridgeException,
    UpstreamApiError,
)


__version__ = "0.1.0"

__all__ = [
    "AuthenticationError",
    "BridgeSettings",
    "ConfigurationError",
    "SpotBridgeException",
    "UpstreamApiError",
    "__version__",
    "create_app",
    "get_settings",
]
