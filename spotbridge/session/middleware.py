"""ASGI middleware binding a server-side session to every HTTP request.

Sessions are created implicitly on a browser's first request and the
signed cookie is re-issued on every response. The record is exposed to
handlers as ``request.scope["session_record"]``.
"""

from __future__ import annotations

import logging

from typing import TYPE_CHECKING, Any

from .cookies import sign_session_id, unsign_session_id


if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from ..types import SessionRecord
    from .base import SessionStore


logger = logging.getLogger("spotbridge.session")

SCOPE_KEY = "session_record"


class SessionMiddleware:
    """ASGI middleware for cookie-bound server-side sessions.

    Parameters
    ----------
    app : ASGI application
        The wrapped application.
    session_store : SessionStore
        Store holding the session records.
    secret : str
        Secret used to sign the session cookie.
    cookie_name : str
        Name of the session cookie.
    cookie_secure : bool
        Only send the cookie over HTTPS.
    max_age : int
        Cookie lifetime in seconds, renewed on every response.
    """

    def __init__(
        self,
        app: Any,
        session_store: SessionStore,
        secret: str,
        cookie_name: str = "spotbridge_session",
        cookie_secure: bool = False,
        max_age: int = 86400,
    ) -> None:
        """Initialize the middleware."""
        self.app = app
        self.session_store = session_store
        self.secret = secret
        self.cookie_name = cookie_name
        self.cookie_secure = cookie_secure
        self.max_age = max_age

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        """Handle ASGI request."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        record: SessionRecord | None = None
        raw_value = _read_cookie(scope, self.cookie_name)
        if raw_value:
            session_id = unsign_session_id(raw_value, self.secret)
            if session_id is not None:
                record = await self.session_store.get(session_id)

        if record is None:
            record = await self.session_store.create()
            logger.debug("Created session for %s", scope.get("path", ""))

        scope[SCOPE_KEY] = record

        async def send_wrapper(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                # Re-sent on every response so Max-Age tracks the idle TTL;
                # skipped when the handler destroyed the session.
                if await self.session_store.get(record.session_id) is not None:
                    headers = list(message.get("headers", []))
                    headers.append((b"set-cookie", self._cookie_header(record).encode("latin-1")))
                    message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)

    def _cookie_header(self, record: SessionRecord) -> str:
        value = sign_session_id(record.session_id, self.secret)
        header = (
            f"{self.cookie_name}={value}; path=/; Max-Age={self.max_age}; httponly; samesite=lax"
        )
        if self.cookie_secure:
            header += "; secure"
        return header


def _read_cookie(scope: dict[str, Any], name: str) -> str | None:
    """Extract a cookie value from raw ASGI headers."""
    for key, value in scope.get("headers", []):
        if key != b"cookie":
            continue
        for part in value.decode("latin-1").split(";"):
            if "=" in part:
                k, v = part.strip().split("=", 1)
                if k == name:
                    return v
    return None


def get_session_record(request: Request) -> SessionRecord:
    """Return the session bound to *request* by ``SessionMiddleware``.

    Raises
    ------
    RuntimeError
        If the middleware is not installed.
    """
    record = request.scope.get(SCOPE_KEY)
    if record is None:
        msg = "SessionMiddleware is not installed"
        raise RuntimeError(msg)
    return record  # type: ignore[no-any-return]


async def destroy_session(
    request: Request,
    response: Response,
    session_store: SessionStore,
    cookie_name: str,
) -> None:
    """Destroy the request's session and delete its cookie on *response*."""
    record = get_session_record(request)
    await session_store.destroy(record.session_id)
    response.delete_cookie(key=cookie_name, path="/")
    logger.info("Session destroyed")
