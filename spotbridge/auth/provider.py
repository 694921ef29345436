"""Spotify accounts service client.

Builds the authorization URL and talks to the token endpoint with
client-credentials Basic authentication.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from typing import Any
from urllib.parse import urlencode

import httpx

from ..exceptions import TokenExchangeError, TokenRefreshError
from ..log import redact_sensitive_data
from ..types import ApiFailure, ApiResult, ApiSuccess, OAuthTokenSet


logger = logging.getLogger("spotbridge.auth")

PROVIDER_NAME = "spotify"


class SpotifyProvider:
    """OAuth2 authorization-code client for the Spotify accounts service.

    Parameters
    ----------
    client_id : str
        The application's client ID.
    client_secret : str
        The application's client secret.
    scopes : list[str]
        Requested OAuth2 scopes.
    authorize_url : str
        The authorization endpoint.
    token_url : str
        The token endpoint.
    timeout : float
        Timeout for token endpoint calls in seconds.
    http_client : httpx.AsyncClient, optional
        Client to use instead of creating one lazily.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        scopes: list[str] | None = None,
        authorize_url: str = "https://accounts.spotify.com/authorize",
        token_url: str = "https://accounts.spotify.com/api/token",  # noqa: S107
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the provider."""
        self.client_id = client_id
        self.client_secret = client_secret
        self.scopes = scopes or []
        self.authorize_url = authorize_url
        self.token_url = token_url
        self.timeout = timeout
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client. Call from app shutdown lifecycle."""
        if self._http_client is not None and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None

    def build_authorize_url(self, redirect_uri: str, state: str) -> str:
        """Build the full authorization URL.

        Parameters
        ----------
        redirect_uri : str
            The registered callback URL.
        state : str
            Anti-forgery nonce.

        Returns
        -------
        str
            The full authorization URL.
        """
        params = {
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "scope": " ".join(self.scopes),
            "client_id": self.client_id,
            "state": state,
        }
        return f"{self.authorize_url}?{urlencode(params)}"

    async def _post_token_endpoint(self, data: dict[str, str]) -> ApiResult:
        """POST a grant to the token endpoint."""
        try:
            client = await self._get_client()
            resp = await client.post(
                self.token_url,
                data=data,
                auth=(self.client_id, self.client_secret),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            return ApiFailure(status_code=None, error=None, message=f"Request failed: {exc}")

        payload = _json_or_none(resp)
        if not resp.is_success:
            return ApiFailure(
                status_code=resp.status_code,
                error=payload,
                message=f"Token endpoint returned {resp.status_code}",
            )
        if not isinstance(payload, dict) or "access_token" not in payload:
            return ApiFailure(
                status_code=resp.status_code,
                error=payload,
                message="Token endpoint response has no access_token",
            )
        try:
            payload["expires_in"] = int(payload.get("expires_in", 3600))
        except (TypeError, ValueError):
            return ApiFailure(
                status_code=resp.status_code,
                error=payload,
                message=f"Token endpoint returned invalid expires_in: {payload['expires_in']!r}",
            )
        return ApiSuccess(status_code=resp.status_code, payload=payload)

    async def exchange_code(self, code: str, redirect_uri: str) -> OAuthTokenSet:
        """Exchange an authorization code for tokens.

        Parameters
        ----------
        code : str
            The authorization code from the callback.
        redirect_uri : str
            Must be byte-identical to the redirect URI used in the
            authorization request.

        Returns
        -------
        OAuthTokenSet
            The token set from the provider.

        Raises
        ------
        TokenExchangeError
            If the request fails or the provider rejects the code.
        """
        result = await self._post_token_endpoint(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            }
        )
        if isinstance(result, ApiFailure):
            logger.error(
                "Token exchange failed: status=%s payload=%s message=%s",
                result.status_code,
                redact_sensitive_data(result.error),
                result.message,
            )
            raise TokenExchangeError(
                f"Token exchange failed: {result.message}",
                provider=PROVIDER_NAME,
                status_code=result.status_code,
            )
        return _token_set(result.payload)

    async def refresh_tokens(self, refresh_token: str) -> OAuthTokenSet:
        """Mint a new access token from a refresh token.

        The returned ``refresh_token`` is None when the provider did
        not rotate it.

        Raises
        ------
        TokenRefreshError
            If the request fails or the provider rejects the token.
        """
        result = await self._post_token_endpoint(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )
        if isinstance(result, ApiFailure):
            logger.error(
                "Token refresh failed: status=%s payload=%s message=%s",
                result.status_code,
                redact_sensitive_data(result.error),
                result.message,
            )
            raise TokenRefreshError(
                f"Token refresh failed: {result.message}",
                provider=PROVIDER_NAME,
                status_code=result.status_code,
            )
        return _token_set(result.payload)


def _json_or_none(resp: httpx.Response) -> Any:
    """Decode a JSON body, returning None for empty or non-JSON bodies."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None


def _token_set(raw: dict[str, Any]) -> OAuthTokenSet:
    return OAuthTokenSet(
        access_token=raw["access_token"],
        token_type=raw.get("token_type", "Bearer"),
        refresh_token=raw.get("refresh_token"),
        expires_in=raw["expires_in"],
        scope=raw.get("scope", ""),
        raw=raw,
    )
