"""Request guard for provider-API-forwarding routes."""

from __future__ import annotations

from fastapi import Request

from ..exceptions import NotAuthenticatedError
from ..session.middleware import get_session_record
from ..types import SessionRecord


class AuthenticationGate:
    """Rejects sessions that hold no access token.

    Expiry is not checked here; the forwarding path refreshes stale
    tokens itself.
    """

    @staticmethod
    def check(record: SessionRecord) -> SessionRecord:
        """Return *record* if it holds an access token.

        Raises
        ------
        NotAuthenticatedError
            If no access token is stored, whatever else the session
            contains.
        """
        if not record.access_token:
            raise NotAuthenticatedError("Not authenticated. Please log in.")
        return record


async def authenticated_session(request: Request) -> SessionRecord:
    """FastAPI dependency applying ``AuthenticationGate`` to a route."""
    return AuthenticationGate.check(get_session_record(request))
