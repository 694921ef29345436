"""FastAPI routes forwarding playback and search calls to the provider."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..auth.gate import authenticated_session
from ..auth.routes import session_expired_response
from ..auth.token_store import SessionTokenStore
from ..exceptions import TokenError
from ..types import ApiFailure, SessionRecord


if TYPE_CHECKING:
    from ..auth.refresher import TokenRefresher
    from ..config import SessionSettings
    from ..session.base import SessionStore
    from ..types import ApiResult
    from .forwarder import ProviderApiForwarder


class PlayRequest(BaseModel):
    """Body of ``PUT /api/play``."""

    device_id: str | None = None
    uris: list[str] | None = None
    context_uri: str | None = None


def _render(result: ApiResult) -> Response:
    """Turn a provider result into an HTTP response.

    Failures are raised as ``UpstreamApiError`` for the app's exception
    handler.
    """
    if isinstance(result, ApiFailure):
        raise result.to_error()
    if result.payload is None:
        return Response(status_code=204)
    return JSONResponse(status_code=result.status_code, content=result.payload)


def create_api_router(
    forwarder: ProviderApiForwarder,
    refresher: TokenRefresher,
    session_store: SessionStore,
    session_settings: SessionSettings,
    search_limit: int = 10,
) -> APIRouter:
    """Create a FastAPI router with the ``/api/*`` routes.

    Every route requires an access token in the session. Stale tokens
    are refreshed first; a failed refresh destroys the session and
    answers 401.

    Parameters
    ----------
    forwarder : ProviderApiForwarder
        Client for the provider API.
    refresher : TokenRefresher
        Refreshes stale access tokens.
    session_store : SessionStore
        Store holding the session records.
    session_settings : SessionSettings
        Cookie configuration.
    search_limit : int
        ``limit`` sent with search requests.

    Returns
    -------
    APIRouter
        Router with ``/api/*`` routes.
    """
    router = APIRouter(prefix="/api", tags=["api"])
    cookie_name = session_settings.cookie_name

    async def _call(
        request: Request,
        record: SessionRecord,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> Response:
        try:
            token = await refresher.ensure_valid_token(SessionTokenStore(record))
        except TokenError as exc:
            return await session_expired_response(request, exc, session_store, cookie_name)
        return _render(await forwarder.forward(token, method, endpoint, **kwargs))

    @router.get("/devices")
    async def devices(
        request: Request,
        record: SessionRecord = Depends(authenticated_session),
    ) -> Response:
        """List the user's available playback devices."""
        return await _call(request, record, "GET", "/me/player/devices")

    @router.put("/play")
    async def play(
        request: Request,
        body: PlayRequest | None = Body(None),
        record: SessionRecord = Depends(authenticated_session),
    ) -> Response:
        """Transfer playback to a device and start playing.

        Without a body, playback resumes on the active device.
        """
        if body is None:
            body = PlayRequest()
        try:
            token = await refresher.ensure_valid_token(SessionTokenStore(record))
        except TokenError as exc:
            return await session_expired_response(request, exc, session_store, cookie_name)
        result = await forwarder.start_playback(
            token,
            device_id=body.device_id,
            uris=body.uris,
            context_uri=body.context_uri,
        )
        return _render(result)

    @router.put("/pause")
    async def pause(
        request: Request,
        record: SessionRecord = Depends(authenticated_session),
    ) -> Response:
        """Pause playback."""
        return await _call(request, record, "PUT", "/me/player/pause")

    @router.post("/next")
    async def next_track(
        request: Request,
        record: SessionRecord = Depends(authenticated_session),
    ) -> Response:
        """Skip to the next track."""
        return await _call(request, record, "POST", "/me/player/next")

    @router.post("/previous")
    async def previous_track(
        request: Request,
        record: SessionRecord = Depends(authenticated_session),
    ) -> Response:
        """Skip to the previous track."""
        return await _call(request, record, "POST", "/me/player/previous")

    @router.get("/search")
    async def search(
        request: Request,
        q: str | None = None,
        search_type: str = Query("track", alias="type"),
        record: SessionRecord = Depends(authenticated_session),
    ) -> Response:
        """Search the catalogue."""
        if not q:
            return JSONResponse(status_code=400, content={"error": "Search query 'q' is required"})
        return await _call(
            request,
            record,
            "GET",
            "/search",
            params={"q": q, "type": search_type, "limit": search_limit},
        )

    return router
