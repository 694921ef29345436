"""Session-bound storage for the provider's OAuth2 tokens."""

from __future__ import annotations

import time

from dataclasses import dataclass
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable

    from ..types import SessionRecord


def _now_ms(clock: Callable[[], float]) -> int:
    return int(clock() * 1000)


@dataclass(frozen=True)
class TokenSnapshot:
    """Immutable view of the tokens held by one session.

    Attributes
    ----------
    access_token : str
        The bearer credential.
    refresh_token : str or None
        The refresh credential, if the provider issued one.
    access_token_expiry : int or None
        Epoch milliseconds after which the access token is invalid.
    """

    access_token: str
    refresh_token: str | None
    access_token_expiry: int | None


class SessionTokenStore:
    """Token holder scoped to one ``SessionRecord``.

    Parameters
    ----------
    record : SessionRecord
        The session whose token fields are read and written.
    clock : callable, optional
        Returns the current wall-clock time in seconds (default
        ``time.time``).
    """

    def __init__(
        self,
        record: SessionRecord,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.record = record
        self._clock = clock

    @property
    def access_token(self) -> str | None:
        return self.record.access_token

    @property
    def refresh_token(self) -> str | None:
        return self.record.refresh_token

    @property
    def access_token_expiry(self) -> int | None:
        return self.record.access_token_expiry

    def get(self) -> TokenSnapshot | None:
        """Return the stored tokens, or None if no access token is held."""
        if self.record.access_token is None:
            return None
        return TokenSnapshot(
            access_token=self.record.access_token,
            refresh_token=self.record.refresh_token,
            access_token_expiry=self.record.access_token_expiry,
        )

    def set_tokens(
        self,
        access_token: str,
        refresh_token: str | None,
        expires_in_seconds: int,
    ) -> None:
        """Store a new access token and its absolute expiry.

        ``refresh_token`` replaces the stored one only when it is not
        None, since the provider may omit it on refresh.
        """
        self.record.access_token = access_token
        self.record.access_token_expiry = _now_ms(self._clock) + int(expires_in_seconds) * 1000
        if refresh_token:
            self.record.refresh_token = refresh_token

    def is_expired(self) -> bool:
        """Whether the access token is absent or past its expiry."""
        if self.record.access_token is None or self.record.access_token_expiry is None:
            return True
        return _now_ms(self._clock) >= self.record.access_token_expiry

    def clear(self) -> None:
        """Forget all tokens held by the session."""
        self.record.access_token = None
        self.record.refresh_token = None
        self.record.access_token_expiry = None
