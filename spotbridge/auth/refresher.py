"""On-demand access token refresh."""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from typing import TYPE_CHECKING

from ..exceptions import NoRefreshTokenError, TokenRefreshError
from .provider import PROVIDER_NAME


if TYPE_CHECKING:
    from .provider import SpotifyProvider
    from .token_store import SessionTokenStore


logger = logging.getLogger("spotbridge.auth")


class TokenRefresher:
    """Returns a valid access token, refreshing it when stale.

    Concurrent calls for the same session share one refresh: callers
    serialise on the session's lock and re-check the token after
    acquiring it.

    Parameters
    ----------
    provider : SpotifyProvider
        Client for the provider's token endpoint.
    """

    def __init__(self, provider: SpotifyProvider) -> None:
        self.provider = provider

    async def ensure_valid_token(self, store: SessionTokenStore) -> str:
        """Return a non-expired access token for the session.

        Parameters
        ----------
        store : SessionTokenStore
            The session's token store; updated in place on refresh.

        Returns
        -------
        str
            The cached token if still valid, otherwise a fresh one.

        Raises
        ------
        NoRefreshTokenError
            If the token is stale and no refresh token is stored.
        TokenRefreshError
            If the provider rejects the refresh. The caller must
            destroy the session in both cases.
        """
        if not store.is_expired():
            return store.access_token  # type: ignore[return-value]

        async with store.record.refresh_lock:
            # Another request may have refreshed while we waited.
            if not store.is_expired():
                return store.access_token  # type: ignore[return-value]

            refresh_token = store.refresh_token
            if not refresh_token:
                logger.warning("Access token stale and no refresh token stored")
                raise NoRefreshTokenError(
                    "No refresh token. Please re-login.",
                    provider=PROVIDER_NAME,
                )

            try:
                tokens = await self.provider.refresh_tokens(refresh_token)
            except TokenRefreshError:
                raise
            except Exception as exc:
                logger.exception("Unexpected error during token refresh")
                raise TokenRefreshError(
                    f"Token refresh failed: {exc}",
                    provider=PROVIDER_NAME,
                ) from exc

            store.set_tokens(tokens.access_token, tokens.refresh_token, tokens.expires_in)
            logger.info(
                "Access token refreshed, refresh_token rotated=%s",
                tokens.refresh_token is not None,
            )
            return tokens.access_token
