"""FastAPI application factory."""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import log
from .api.forwarder import ProviderApiForwarder
from .api.routes import create_api_router
from .auth.flow import AuthorizationFlow
from .auth.provider import SpotifyProvider
from .auth.refresher import TokenRefresher
from .auth.routes import create_auth_router
from .config import get_settings
from .exceptions import NotAuthenticatedError, UpstreamApiError
from .session.memory import MemorySessionStore
from .session.middleware import SessionMiddleware


if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .config import BridgeSettings
    from .session.base import SessionStore


logger = logging.getLogger("spotbridge")


def create_app(
    settings: BridgeSettings | None = None,
    *,
    provider: SpotifyProvider | None = None,
    forwarder: ProviderApiForwarder | None = None,
    session_store: SessionStore | None = None,
) -> FastAPI:
    """Build the bridge application.

    Parameters
    ----------
    settings : BridgeSettings, optional
        Configuration; defaults to ``get_settings()``.
    provider : SpotifyProvider, optional
        Accounts-service client; built from settings when omitted.
    forwarder : ProviderApiForwarder, optional
        Web API client; built from settings when omitted.
    session_store : SessionStore, optional
        Session storage; an in-memory store when omitted.

    Returns
    -------
    FastAPI
        The configured application.

    Raises
    ------
    ConfigurationError
        If the client credentials are missing.
    """
    settings = settings or get_settings()
    spotify = settings.spotify
    spotify.require_credentials()
    log.set_level(settings.log.level)

    if settings.session.secret_generated:
        logger.warning(
            "No session secret configured; generated one for this process. "
            "Set SPOTBRIDGE_SESSION__SECRET to keep sessions across restarts."
        )

    if provider is None:
        provider = SpotifyProvider(
            client_id=spotify.client_id,
            client_secret=spotify.client_secret,
            scopes=spotify.scope_list,
            authorize_url=spotify.authorize_url,
            token_url=spotify.token_url,
            timeout=spotify.http_timeout,
        )
    if forwarder is None:
        forwarder = ProviderApiForwarder(
            base_url=spotify.api_base_url,
            timeout=spotify.http_timeout,
        )
    if session_store is None:
        session_store = MemorySessionStore(ttl=settings.session.ttl)

    flow = AuthorizationFlow(
        provider,
        redirect_uri=spotify.redirect_uri,
        state_length=spotify.state_length,
    )
    refresher = TokenRefresher(provider)

    @asynccontextmanager
    async def _lifespan(
        app: FastAPI,  # pylint: disable=unused-argument
    ) -> AsyncIterator[None]:
        logger.info("Redirect URI configured as %s", spotify.redirect_uri)
        yield
        await provider.close()
        await forwarder.close()

    app = FastAPI(title="spotbridge", lifespan=_lifespan)
    app.add_middleware(
        SessionMiddleware,
        session_store=session_store,
        secret=settings.session.secret,
        cookie_name=settings.session.cookie_name,
        cookie_secure=settings.session.cookie_secure,
        max_age=settings.session.ttl,
    )

    @app.exception_handler(NotAuthenticatedError)
    async def _not_authenticated(
        request: Request,  # pylint: disable=unused-argument
        exc: NotAuthenticatedError,
    ) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": exc.message})

    @app.exception_handler(UpstreamApiError)
    async def _upstream_error(
        request: Request,  # pylint: disable=unused-argument
        exc: UpstreamApiError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code or 500,
            content={
                "error": exc.payload if exc.payload is not None else "Internal server error",
                "message": exc.message,
            },
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness check."""
        return {"status": "healthy"}

    app.include_router(create_auth_router(flow, refresher, session_store, settings.session))
    app.include_router(
        create_api_router(
            forwarder,
            refresher,
            session_store,
            settings.session,
            search_limit=spotify.search_limit,
        )
    )

    return app
