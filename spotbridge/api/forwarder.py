"""Authenticated pass-through to the Spotify Web API.

Every call returns an ``ApiResult``; nothing here raises for provider
errors or transport failures.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from typing import Any

import httpx

from ..log import redact_sensitive_data
from ..types import ApiFailure, ApiResult, ApiSuccess


logger = logging.getLogger("spotbridge.api")

_PLAYBACK_OK = (200, 204)


class ProviderApiForwarder:
    """Forwards requests to the provider API with a bearer token.

    Parameters
    ----------
    base_url : str
        The API root, e.g. ``https://api.spotify.com/v1``.
    timeout : float
        Request timeout in seconds.
    http_client : httpx.AsyncClient, optional
        Client to use instead of creating one lazily.
    """

    def __init__(
        self,
        base_url: str = "https://api.spotify.com/v1",
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the forwarder."""
        self.base_url = base_url.rstrip("/")
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

    async def forward(
        self,
        token: str,
        method: str,
        endpoint: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> ApiResult:
        """Call ``base_url + endpoint`` with ``Authorization: Bearer <token>``.

        Parameters
        ----------
        token : str
            A valid access token.
        method : str
            HTTP method.
        endpoint : str
            Path below the API root, starting with ``/``.
        body : dict, optional
            JSON body.
        params : dict, optional
            Query parameters.

        Returns
        -------
        ApiResult
            ``ApiSuccess`` with the decoded body (None when empty) for
            2xx responses, ``ApiFailure`` otherwise. Transport errors give
            ``ApiFailure`` with ``status_code=None``.
        """
        url = f"{self.base_url}{endpoint}"
        try:
            client = await self._get_client()
            resp = await client.request(
                method.upper(),
                url,
                headers={"Authorization": f"Bearer {token}"},
                json=body,
                params=params,
            )
        except httpx.HTTPError as exc:
            logger.error("Error calling provider API (%s): %s", endpoint, exc)
            return ApiFailure(status_code=None, error=None, message=str(exc))

        payload = _json_or_none(resp)
        if not resp.is_success:
            logger.error(
                "Provider API %s %s returned %s: %s",
                method.upper(),
                endpoint,
                resp.status_code,
                redact_sensitive_data(payload),
            )
            return ApiFailure(
                status_code=resp.status_code,
                error=payload,
                message=f"Request failed with status code {resp.status_code}",
            )
        logger.debug("Provider API %s %s -> %s", method.upper(), endpoint, resp.status_code)
        return ApiSuccess(status_code=resp.status_code, payload=payload)

    async def start_playback(
        self,
        token: str,
        device_id: str | None = None,
        uris: list[str] | None = None,
        context_uri: str | None = None,
    ) -> ApiResult:
        """Transfer playback to a device and start playing.

        With ``device_id`` playback is first transferred there. The play
        call is made when ``uris`` or ``context_uri`` is given, or when no
        device was named. A failed play does not undo a completed
        transfer.

        Returns
        -------
        ApiResult
            ``ApiSuccess`` with ``{"message": "Playback initiated"}``, or
            the failure of the first step that did not return 200/204.
        """
        if device_id:
            result = await self.forward(
                token,
                "PUT",
                "/me/player",
                body={"device_ids": [device_id], "play": True},
            )
            failure = _step_failure(result, "Failed to transfer playback")
            if failure is not None:
                return failure

        play_body: dict[str, Any] = {}
        if uris:
            play_body["uris"] = uris
        if context_uri:
            play_body["context_uri"] = context_uri

        if play_body or not device_id:
            result = await self.forward(token, "PUT", "/me/player/play", body=play_body)
            failure = _step_failure(result, "Failed to start playback")
            if failure is not None:
                if device_id:
                    logger.warning("Playback transferred to %s but play failed", device_id)
                return failure

        return ApiSuccess(status_code=200, payload={"message": "Playback initiated"})


def _step_failure(result: ApiResult, message: str) -> ApiFailure | None:
    """Return an ``ApiFailure`` unless *result* is a 200/204 success."""
    if isinstance(result, ApiSuccess) and result.status_code in _PLAYBACK_OK:
        return None
    if isinstance(result, ApiFailure) and result.status_code is None:
        return result
    return ApiFailure(
        status_code=result.status_code,
        error=_details(result),
        message=message,
    )


def _details(result: ApiResult) -> Any:
    if isinstance(result, ApiFailure):
        return result.error
    return result.payload


def _json_or_none(resp: httpx.Response) -> Any:
    """Decode a JSON body, returning None for empty or non-JSON bodies."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return None
