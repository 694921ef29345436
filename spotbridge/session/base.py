"""Abstract base class for pluggable session storage."""

# pylint: disable=unnecessary-ellipsis

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from ..types import SessionRecord


class SessionStore(ABC):
    """Abstract session storage interface.

    Holds one ``SessionRecord`` per browser client. Records are mutated
    in place by request handlers; the store only owns their lifetime.
    """

    @abstractmethod
    async def create(self) -> SessionRecord:
        """Create a new empty session with a fresh random ID.

        Returns
        -------
        SessionRecord
            The created session.
        """
        ...

    @abstractmethod
    async def get(self, session_id: str) -> SessionRecord | None:
        """Get a session by ID and mark it as recently used.

        Parameters
        ----------
        session_id : str
            The session ID.

        Returns
        -------
        SessionRecord or None
            The session if found and not expired, None otherwise.
        """
        ...

    @abstractmethod
    async def destroy(self, session_id: str) -> bool:
        """Destroy a session and everything stored in it.

        Parameters
        ----------
        session_id : str
            The session ID.

        Returns
        -------
        bool
            True if deleted, False if it didn't exist.
        """
        ...

    @abstractmethod
    async def cleanup(self) -> int:
        """Remove expired sessions.

        Returns
        -------
        int
            Number of sessions removed.
        """
        ...
