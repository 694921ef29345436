"""OAuth2 authorization-code flow bound to a browser session.

``AuthorizationFlow`` drives one session through
Idle -> AwaitingCallback -> Authenticated. A failed callback leaves the
session Idle; the pending state is always kept on the session record.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import hmac
import logging

from typing import TYPE_CHECKING

from ..exceptions import AuthorizationDeniedError, MissingCodeError, StateMismatchError
from .provider import PROVIDER_NAME
from .state import generate_random_state
from .token_store import SessionTokenStore


if TYPE_CHECKING:
    from collections.abc import Callable

    from ..types import OAuthTokenSet, SessionRecord
    from .provider import SpotifyProvider


logger = logging.getLogger("spotbridge.auth")


class AuthorizationFlow:
    """Coordinates the login redirect and the callback code exchange.

    Parameters
    ----------
    provider : SpotifyProvider
        Client for the provider's accounts service.
    redirect_uri : str
        The callback URL registered with the provider.
    state_length : int
        Length of generated anti-forgery tokens.
    clock : callable, optional
        Wall-clock source passed to ``SessionTokenStore``.
    """

    def __init__(
        self,
        provider: SpotifyProvider,
        redirect_uri: str,
        state_length: int = 16,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.provider = provider
        self.redirect_uri = redirect_uri
        self.state_length = state_length
        self._clock = clock

    def _token_store(self, record: SessionRecord) -> SessionTokenStore:
        if self._clock is None:
            return SessionTokenStore(record)
        return SessionTokenStore(record, clock=self._clock)

    def begin_login(self, record: SessionRecord) -> str:
        """Start a login and return the provider authorization URL.

        A new state replaces any previous pending one, so a session
        has at most one outstanding login.
        """
        state = generate_random_state(self.state_length)
        record.pending_auth_state = state
        logger.info("Login redirect issued, redirect_uri=%s", self.redirect_uri)
        return self.provider.build_authorize_url(redirect_uri=self.redirect_uri, state=state)

    def validate_state(self, record: SessionRecord, received_state: str | None) -> None:
        """Check and consume the pending anti-forgery state.

        Raises
        ------
        StateMismatchError
            If no state was received, none is pending, or they differ.
            The pending state is left untouched in that case.
        """
        expected = record.pending_auth_state
        if (
            not received_state
            or expected is None
            or not hmac.compare_digest(received_state.encode(), expected.encode())
        ):
            logger.warning(
                "State mismatch on callback: received=%s pending=%s",
                "present" if received_state else "missing",
                "present" if expected else "missing",
            )
            raise StateMismatchError(
                "Callback state does not match the pending login",
                provider=PROVIDER_NAME,
            )
        # Single use: a replayed callback must fail.
        record.pending_auth_state = None

    async def handle_callback(
        self,
        record: SessionRecord,
        code: str | None,
        state: str | None,
        redirect_uri: str,
        error: str | None = None,
    ) -> OAuthTokenSet:
        """Validate the callback and exchange the code for tokens.

        Parameters
        ----------
        record : SessionRecord
            The browser's session.
        code : str or None
            The ``code`` query parameter.
        state : str or None
            The ``state`` query parameter.
        redirect_uri : str
            The inbound callback URL without query string. Sent as
            ``redirect_uri`` in the exchange.
        error : str or None
            The ``error`` query parameter, if the provider sent one.

        Returns
        -------
        OAuthTokenSet
            The tokens, already written into the session.

        Raises
        ------
        StateMismatchError
            If the anti-forgery check fails.
        AuthorizationDeniedError
            If the provider reported an error instead of a code.
        TokenExchangeError
            If the code is missing or the exchange fails.
        """
        self.validate_state(record, state)

        if error:
            logger.warning("Provider returned error on callback: %s", error)
            raise AuthorizationDeniedError(
                f"Authorization was not granted: {error}",
                error_code=error,
                provider=PROVIDER_NAME,
            )

        if not code:
            raise MissingCodeError("Authorization code not provided", provider=PROVIDER_NAME)

        if redirect_uri != self.redirect_uri:
            logger.warning(
                "Callback URL %s differs from configured redirect URI %s; "
                "the provider will reject the exchange",
                redirect_uri,
                self.redirect_uri,
            )

        tokens = await self.provider.exchange_code(code=code, redirect_uri=redirect_uri)
        self._token_store(record).set_tokens(
            tokens.access_token,
            tokens.refresh_token,
            tokens.expires_in,
        )
        logger.info(
            "Tokens received: access_token=%s refresh_token=%s expires_in=%s",
            "present" if tokens.access_token else "missing",
            "present" if tokens.refresh_token else "missing",
            tokens.expires_in,
        )
        return tokens
