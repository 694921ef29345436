"""Tests for the provider API forwarder."""

from __future__ import annotations

import asyncio
import json

import httpx

from spotbridge.api.forwarder import ProviderApiForwarder
from spotbridge.types import ApiFailure, ApiSuccess


BASE_URL = "https://api.example/v1"


def _run(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def _make_forwarder(handler) -> ProviderApiForwarder:
    return ProviderApiForwarder(
        base_url=BASE_URL + "/",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class _Recorder:
    """MockTransport handler replaying canned responses in order."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)


class TestForward:
    """Tests for ProviderApiForwarder.forward."""

    def test_success_with_bearer(self) -> None:
        recorder = _Recorder(httpx.Response(200, json={"devices": []}))
        result = _run(_make_forwarder(recorder).forward("AT1", "get", "/me/player/devices"))

        assert result == ApiSuccess(status_code=200, payload={"devices": []})
        request = recorder.requests[0]
        assert request.method == "GET"
        assert str(request.url) == f"{BASE_URL}/me/player/devices"
        assert request.headers["authorization"] == "Bearer AT1"

    def test_query_params(self) -> None:
        recorder = _Recorder(httpx.Response(200, json={"tracks": {}}))
        _run(
            _make_forwarder(recorder).forward(
                "AT1", "GET", "/search", params={"q": "daft punk", "type": "track", "limit": 10}
            )
        )
        params = recorder.requests[0].url.params
        assert params["q"] == "daft punk"
        assert params["type"] == "track"
        assert params["limit"] == "10"

    def test_empty_body_is_none(self) -> None:
        recorder = _Recorder(httpx.Response(204))
        result = _run(_make_forwarder(recorder).forward("AT1", "PUT", "/me/player/pause"))
        assert result == ApiSuccess(status_code=204, payload=None)

    def test_provider_error(self) -> None:
        error = {"error": {"status": 404, "message": "No active device found"}}
        recorder = _Recorder(httpx.Response(404, json=error))
        result = _run(_make_forwarder(recorder).forward("AT1", "PUT", "/me/player/pause"))

        assert isinstance(result, ApiFailure)
        assert result.status_code == 404
        assert result.error == error

    def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        result = _run(_make_forwarder(handler).forward("AT1", "POST", "/me/player/next"))
        assert isinstance(result, ApiFailure)
        assert result.status_code is None
        assert result.error is None


class TestStartPlayback:
    """Tests for the transfer-then-play sequence."""

    def test_device_only_transfers(self) -> None:
        recorder = _Recorder(httpx.Response(204))
        result = _run(_make_forwarder(recorder).start_playback("AT1", device_id="dev1"))

        assert result == ApiSuccess(status_code=200, payload={"message": "Playback initiated"})
        assert len(recorder.requests) == 1
        assert recorder.requests[0].url.path == "/v1/me/player"
        assert json.loads(recorder.requests[0].content) == {
            "device_ids": ["dev1"],
            "play": True,
        }

    def test_device_and_uris(self) -> None:
        recorder = _Recorder(httpx.Response(204), httpx.Response(204))
        result = _run(
            _make_forwarder(recorder).start_playback(
                "AT1", device_id="dev1", uris=["spotify:track:1"]
            )
        )

        assert isinstance(result, ApiSuccess)
        assert [r.url.path for r in recorder.requests] == ["/v1/me/player", "/v1/me/player/play"]
        assert json.loads(recorder.requests[1].content) == {"uris": ["spotify:track:1"]}

    def test_no_device_plays_with_empty_body(self) -> None:
        recorder = _Recorder(httpx.Response(204))
        result = _run(_make_forwarder(recorder).start_playback("AT1"))

        assert isinstance(result, ApiSuccess)
        assert recorder.requests[0].url.path == "/v1/me/player/play"
        assert json.loads(recorder.requests[0].content) == {}

    def test_context_uri(self) -> None:
        recorder = _Recorder(httpx.Response(204))
        _run(_make_forwarder(recorder).start_playback("AT1", context_uri="spotify:album:1"))
        assert json.loads(recorder.requests[0].content) == {"context_uri": "spotify:album:1"}

    def test_transfer_failure_stops(self) -> None:
        recorder = _Recorder(httpx.Response(404, json={"error": {"status": 404}}))
        result = _run(
            _make_forwarder(recorder).start_playback(
                "AT1", device_id="dev1", uris=["spotify:track:1"]
            )
        )

        assert isinstance(result, ApiFailure)
        assert result.status_code == 404
        assert result.message == "Failed to transfer playback"
        assert result.error == {"error": {"status": 404}}
        assert len(recorder.requests) == 1

    def test_play_failure_keeps_transfer(self) -> None:
        recorder = _Recorder(
            httpx.Response(204),
            httpx.Response(403, json={"error": {"status": 403, "reason": "PREMIUM_REQUIRED"}}),
        )
        result = _run(
            _make_forwarder(recorder).start_playback(
                "AT1", device_id="dev1", uris=["spotify:track:1"]
            )
        )

        assert isinstance(result, ApiFailure)
        assert result.status_code == 403
        assert result.message == "Failed to start playback"
        assert len(recorder.requests) == 2

    def test_unexpected_success_status_fails(self) -> None:
        recorder = _Recorder(httpx.Response(202, json={"queued": True}))
        result = _run(_make_forwarder(recorder).start_playback("AT1"))

        assert isinstance(result, ApiFailure)
        assert result.status_code == 202
        assert result.error == {"queued": True}
