"""In-memory session store.

Default (and only) backend: tokens live in process memory for the
lifetime of the browser session.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time

from ..types import SessionRecord
from .base import SessionStore


logger = logging.getLogger("spotbridge.session")


class MemorySessionStore(SessionStore):
    """In-memory session store with idle expiry.

    Thread-safe via asyncio.Lock.

    Parameters
    ----------
    ttl : int or None
        Idle lifetime in seconds. A session not used for longer than
        this is discarded. None disables expiry.
    max_sessions : int
        Hard capacity. When it is reached, anonymous sessions are
        evicted before ones mid-login, and those before logged-in
        ones; least recently used first within each group.
    """

    def __init__(self, ttl: int | None = 86400, max_sessions: int = 10000) -> None:
        """Initialize the memory session store."""
        self._sessions: dict[str, SessionRecord] = {}
        self._ttl = ttl
        self._max_sessions = max_sessions
        self._lock = asyncio.Lock()

    async def create(self) -> SessionRecord:
        """Create a new empty session."""
        async with self._lock:
            self._evict_expired()
            if len(self._sessions) >= self._max_sessions:
                victim = min(
                    self._sessions.values(),
                    key=lambda r: (_eviction_tier(r), r.last_seen),
                )
                del self._sessions[victim.session_id]
                logger.warning(
                    "Session capacity reached, evicted least recently used %s session",
                    _TIER_NAMES[_eviction_tier(victim)],
                )

            session_id = secrets.token_urlsafe(32)
            while session_id in self._sessions:
                session_id = secrets.token_urlsafe(32)
            record = SessionRecord(session_id=session_id)
            self._sessions[session_id] = record
            return record

    async def get(self, session_id: str) -> SessionRecord | None:
        """Get a session by ID."""
        async with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return None

            now = time.time()
            if self._is_expired(record, now):
                del self._sessions[session_id]
                return None

            record.last_seen = now
            return record

    async def destroy(self, session_id: str) -> bool:
        """Destroy a session."""
        async with self._lock:
            return self._sessions.pop(session_id, None) is not None

    async def cleanup(self) -> int:
        """Remove expired sessions. Returns count removed."""
        async with self._lock:
            before = len(self._sessions)
            self._evict_expired()
            return before - len(self._sessions)

    async def count(self) -> int:
        """Return the number of live sessions."""
        async with self._lock:
            return len(self._sessions)

    def _is_expired(self, record: SessionRecord, now: float) -> bool:
        return self._ttl is not None and now - record.last_seen > self._ttl

    def _evict_expired(self) -> None:
        """Remove all expired entries (caller must hold lock)."""
        now = time.time()
        expired = [k for k, v in self._sessions.items() if self._is_expired(v, now)]
        for k in expired:
            del self._sessions[k]


_TIER_NAMES = ("anonymous", "pending-login", "authenticated")


def _eviction_tier(record: SessionRecord) -> int:
    """Rank a session for eviction; lower tiers are dropped first."""
    if record.access_token or record.refresh_token:
        return 2
    if record.pending_auth_state:
        return 1
    return 0
