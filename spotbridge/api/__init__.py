"""Forwarding of playback and search calls to the Spotify Web API."""

from __future__ import annotations

from .forwarder import ProviderApiForwarder
from .routes import PlayRequest, create_api_router


__all__ = ["PlayRequest", "ProviderApiForwarder", "create_api_router"]
