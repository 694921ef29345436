"""Server-side browser sessions.

Provides the session store, signed cookie helpers and the ASGI
middleware that binds one ``SessionRecord`` to each browser.
"""

from __future__ import annotations

from .base import SessionStore
from .cookies import sign_session_id, unsign_session_id
from .memory import MemorySessionStore
from .middleware import SessionMiddleware, destroy_session, get_session_record


__all__ = [
    "MemorySessionStore",
    "SessionMiddleware",
    "SessionStore",
    "destroy_session",
    "get_session_record",
    "sign_session_id",
    "unsign_session_id",
]
