"""Integration tests for the /api forwarding routes."""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import login, session_record
from spotbridge.exceptions import TokenRefreshError


PROTECTED = [
    ("GET", "/api/devices"),
    ("PUT", "/api/play"),
    ("PUT", "/api/pause"),
    ("POST", "/api/next"),
    ("POST", "/api/previous"),
    ("GET", "/api/search?q=x"),
]


class TestGate:
    """Every /api route rejects sessions without an access token."""

    @pytest.mark.parametrize(("method", "path"), PROTECTED)
    def test_rejects_anonymous(self, client, upstream, method: str, path: str) -> None:
        kwargs = {"json": {}} if path == "/api/play" else {}
        resp = client.request(method, path, **kwargs)
        assert resp.status_code == 401
        assert resp.json() == {"error": "Not authenticated. Please log in."}
        assert upstream.requests == []


class TestForwarding:
    """Tests for the pass-through routes."""

    def test_devices(self, client, upstream) -> None:
        devices = {"devices": [{"id": "dev1", "name": "Kitchen"}]}
        upstream.add("GET", "/v1/me/player/devices", httpx.Response(200, json=devices))
        login(client)

        resp = client.get("/api/devices")
        assert resp.status_code == 200
        assert resp.json() == devices
        assert upstream.requests[0].headers["authorization"] == "Bearer AT1"

    @pytest.mark.parametrize(
        ("method", "path", "upstream_path"),
        [
            ("PUT", "/api/pause", "/v1/me/player/pause"),
            ("POST", "/api/next", "/v1/me/player/next"),
            ("POST", "/api/previous", "/v1/me/player/previous"),
        ],
    )
    def test_player_controls(
        self, client, upstream, method: str, path: str, upstream_path: str
    ) -> None:
        upstream.add(method, upstream_path, httpx.Response(204))
        login(client)

        resp = client.request(method, path)
        assert resp.status_code == 204
        assert upstream.requests[0].method == method
        assert upstream.requests[0].url.path == upstream_path

    def test_upstream_error_passed_through(self, client, upstream) -> None:
        error = {"error": {"status": 404, "message": "Player command failed: No active device"}}
        upstream.add("PUT", "/v1/me/player/pause", httpx.Response(404, json=error))
        login(client)

        resp = client.put("/api/pause")
        assert resp.status_code == 404
        assert resp.json() == {
            "error": error,
            "message": "Request failed with status code 404",
        }

    def test_network_error_is_500(self, client, upstream) -> None:
        upstream.add(
            "GET",
            "/v1/me/player/devices",
            httpx.ConnectError("connection refused"),
        )
        login(client)

        resp = client.get("/api/devices")
        assert resp.status_code == 500
        assert resp.json()["error"] == "Internal server error"


class TestSearch:
    """Tests for GET /api/search."""

    def test_requires_query(self, client, upstream) -> None:
        login(client)
        resp = client.get("/api/search")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Search query 'q' is required"}
        assert upstream.requests == []

    def test_defaults(self, client, upstream) -> None:
        upstream.add("GET", "/v1/search", httpx.Response(200, json={"tracks": {"items": []}}))
        login(client)

        resp = client.get("/api/search", params={"q": "daft punk"})
        assert resp.status_code == 200
        params = upstream.requests[0].url.params
        assert params["q"] == "daft punk"
        assert params["type"] == "track"
        assert params["limit"] == "10"

    def test_type(self, client, upstream) -> None:
        upstream.add("GET", "/v1/search", httpx.Response(200, json={"albums": {"items": []}}))
        login(client)

        client.get("/api/search", params={"q": "discovery", "type": "album"})
        assert upstream.requests[0].url.params["type"] == "album"


class TestPlay:
    """Tests for PUT /api/play."""

    def test_transfer_and_play(self, client, upstream) -> None:
        upstream.add("PUT", "/v1/me/player", httpx.Response(204))
        upstream.add("PUT", "/v1/me/player/play", httpx.Response(204))
        login(client)

        resp = client.put("/api/play", json={"device_id": "dev1", "uris": ["spotify:track:1"]})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Playback initiated"}
        assert [r.url.path for r in upstream.requests] == ["/v1/me/player", "/v1/me/player/play"]
        assert json.loads(upstream.requests[0].content) == {"device_ids": ["dev1"], "play": True}

    def test_without_body_resumes_active_device(self, client, upstream) -> None:
        upstream.add("PUT", "/v1/me/player/play", httpx.Response(204))
        login(client)

        resp = client.put("/api/play")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Playback initiated"}
        assert [r.url.path for r in upstream.requests] == ["/v1/me/player/play"]
        assert json.loads(upstream.requests[0].content) == {}

    def test_transfer_failure(self, client, upstream) -> None:
        error = {"error": {"status": 404, "message": "Device not found"}}
        upstream.add("PUT", "/v1/me/player", httpx.Response(404, json=error))
        login(client)

        resp = client.put("/api/play", json={"device_id": "gone"})
        assert resp.status_code == 404
        assert resp.json() == {"error": error, "message": "Failed to transfer playback"}

    def test_play_failure(self, client, upstream) -> None:
        upstream.add("PUT", "/v1/me/player", httpx.Response(204))
        upstream.add(
            "PUT",
            "/v1/me/player/play",
            httpx.Response(403, json={"error": {"status": 403, "reason": "PREMIUM_REQUIRED"}}),
        )
        login(client)

        resp = client.put("/api/play", json={"device_id": "dev1", "context_uri": "spotify:album:1"})
        assert resp.status_code == 403
        assert resp.json()["message"] == "Failed to start playback"


class TestRefreshOnForward:
    """Stale tokens are refreshed before forwarding."""

    def test_refreshes_then_forwards(self, client, upstream, mock_provider, session_store) -> None:
        upstream.add("GET", "/v1/me/player/devices", httpx.Response(200, json={"devices": []}))
        login(client)
        session_record(client, session_store).access_token_expiry = 0

        resp = client.get("/api/devices")
        assert resp.status_code == 200
        assert upstream.requests[0].headers["authorization"] == "Bearer AT2"
        mock_provider.refresh_tokens.assert_awaited_once_with("RT1")

    def test_refresh_failure_destroys_session(
        self, client, upstream, mock_provider, session_store
    ) -> None:
        mock_provider.refresh_tokens.side_effect = TokenRefreshError(
            "Token refresh failed", provider="spotify", status_code=400
        )
        login(client)
        record = session_record(client, session_store)
        record.access_token_expiry = 0

        resp = client.get("/api/devices")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Session expired or refresh failed. Please re-login."}
        assert record.session_id not in session_store._sessions
        assert upstream.requests == []
