"""FastAPI routes for the Spotify login flow.

Provides the landing page, login, callback, dashboard, logout and
access-token endpoints on top of the session middleware.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from typing import TYPE_CHECKING
from urllib.parse import urlencode

from fastapi import APIRouter, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from ..exceptions import AuthenticationError, NoRefreshTokenError, TokenError
from ..session.middleware import destroy_session, get_session_record
from ..templates import render_dashboard, render_index
from .token_store import SessionTokenStore


if TYPE_CHECKING:
    from ..config import SessionSettings
    from ..session.base import SessionStore
    from .flow import AuthorizationFlow
    from .refresher import TokenRefresher


logger = logging.getLogger("spotbridge.auth")

REFRESH_FAILED_MESSAGE = "Session expired or refresh failed. Please re-login."


def _error_redirect(error_code: str) -> RedirectResponse:
    return RedirectResponse(url="/#" + urlencode({"error": error_code}), status_code=302)


async def session_expired_response(
    request: Request,
    exc: TokenError,
    session_store: SessionStore,
    cookie_name: str,
) -> JSONResponse:
    """Destroy the session after a failed refresh and build the 401 reply."""
    message = exc.message if isinstance(exc, NoRefreshTokenError) else REFRESH_FAILED_MESSAGE
    response = JSONResponse(status_code=401, content={"error": message})
    await destroy_session(request, response, session_store, cookie_name)
    return response


def create_auth_router(
    flow: AuthorizationFlow,
    refresher: TokenRefresher,
    session_store: SessionStore,
    session_settings: SessionSettings,
    title: str = "SpotBridge",
) -> APIRouter:
    """Create a FastAPI router with the login flow routes.

    Parameters
    ----------
    flow : AuthorizationFlow
        Drives login and callback for a session.
    refresher : TokenRefresher
        Refreshes stale access tokens for ``/get_access_token``.
    session_store : SessionStore
        Store holding the session records.
    session_settings : SessionSettings
        Cookie configuration.
    title : str
        Page title for the HTML pages.

    Returns
    -------
    APIRouter
        Router with ``/``, ``/login``, ``/callback``, ``/dashboard``,
        ``/logout`` and ``/get_access_token``.
    """
    router = APIRouter(tags=["authentication"])
    cookie_name = session_settings.cookie_name

    @router.get("/")
    async def index() -> Response:
        """Serve the landing page."""
        return HTMLResponse(render_index(title))

    @router.get("/login")
    async def login(request: Request) -> Response:
        """Redirect the browser to the provider's authorization page."""
        record = get_session_record(request)
        return RedirectResponse(url=flow.begin_login(record), status_code=302)

    @router.get("/callback")
    async def callback(
        request: Request,
        code: str | None = None,
        state: str | None = None,
        error: str | None = None,
    ) -> Response:
        """Handle the provider redirect and store the session's tokens."""
        record = get_session_record(request)
        redirect_uri = str(request.url.replace(query=""))
        try:
            await flow.handle_callback(
                record,
                code=code,
                state=state,
                redirect_uri=redirect_uri,
                error=error,
            )
        except AuthenticationError as exc:
            logger.warning("Callback failed: %s", exc)
            return _error_redirect(exc.error_code)
        return RedirectResponse(url="/dashboard", status_code=302)

    @router.get("/dashboard")
    async def dashboard(request: Request) -> Response:
        """Serve the dashboard, or send anonymous sessions to ``/login``."""
        if not get_session_record(request).access_token:
            return RedirectResponse(url="/login", status_code=302)
        return HTMLResponse(render_dashboard(title))

    @router.post("/logout")
    async def logout(request: Request) -> Response:
        """Destroy the session and return to the landing page."""
        response = RedirectResponse(url="/", status_code=303)
        await destroy_session(request, response, session_store, cookie_name)
        return response

    @router.get("/get_access_token")
    async def get_access_token(request: Request) -> Response:
        """Return a valid access token, refreshing it if stale."""
        store = SessionTokenStore(get_session_record(request))
        try:
            access_token = await refresher.ensure_valid_token(store)
        except TokenError as exc:
            return await session_expired_response(request, exc, session_store, cookie_name)
        return JSONResponse(content={"access_token": access_token})

    return router
