"""Shared fixtures for spotbridge tests."""

# pylint: disable=redefined-outer-name

from __future__ import annotations

import asyncio
import os

from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from spotbridge.api.forwarder import ProviderApiForwarder
from spotbridge.app import create_app
from spotbridge.auth.provider import SpotifyProvider
from spotbridge.config import BridgeSettings, SessionSettings, SpotifySettings, clear_settings
from spotbridge.session import MemorySessionStore, unsign_session_id
from spotbridge.types import OAuthTokenSet, SessionRecord


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Run every test away from user config files and SPOTBRIDGE_* variables."""
    for key in list(os.environ):
        if key.startswith("SPOTBRIDGE"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("APPDATA", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    clear_settings()
    yield
    clear_settings()


@pytest.fixture()
def settings() -> BridgeSettings:
    """Settings with credentials and a redirect URI on the test host."""
    return BridgeSettings(
        spotify=SpotifySettings(
            client_id="test-client-id",
            client_secret="test-client-secret",
            redirect_uri="http://testserver/callback",
        ),
        session=SessionSettings(secret="test-session-secret", cookie_secure=False),
    )


def make_tokens(
    access_token: str = "AT1",
    refresh_token: str | None = "RT1",
    expires_in: int = 3600,
) -> OAuthTokenSet:
    """Build a token set as returned by the token endpoint."""
    raw = {"access_token": access_token, "token_type": "Bearer", "expires_in": expires_in}
    if refresh_token is not None:
        raw["refresh_token"] = refresh_token
    return OAuthTokenSet(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
        raw=raw,
    )


@pytest.fixture()
def mock_provider() -> MagicMock:
    """A SpotifyProvider whose network calls are mocked."""
    provider = MagicMock(spec=SpotifyProvider)
    provider.build_authorize_url.side_effect = (
        lambda redirect_uri, state: f"https://accounts.example/authorize?state={state}"
    )
    provider.exchange_code = AsyncMock(return_value=make_tokens())
    provider.refresh_tokens = AsyncMock(return_value=make_tokens("AT2", None))
    provider.close = AsyncMock()
    return provider


class FakeClock:
    """Settable wall clock in seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    """A fake clock starting at a fixed instant."""
    return FakeClock()


class Upstream:
    """MockTransport handler standing in for the provider Web API.

    Responses are registered per ``(method, path)``; every request is
    recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], httpx.Response | Exception] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, response: httpx.Response | Exception) -> None:
        self.routes[(method, path)] = response

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(404, json={"error": {"status": 404, "message": "no route"}})
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def upstream() -> Upstream:
    """Fake provider Web API."""
    return Upstream()


@pytest.fixture()
def session_store() -> MemorySessionStore:
    """In-memory session store shared with the app under test."""
    return MemorySessionStore()


@pytest.fixture()
def app(settings, mock_provider, upstream, session_store) -> FastAPI:
    """The bridge app wired to the mocked provider and fake Web API."""
    forwarder = ProviderApiForwarder(
        base_url="https://api.example/v1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(upstream)),
    )
    return create_app(
        settings,
        provider=mock_provider,
        forwarder=forwarder,
        session_store=session_store,
    )


@pytest.fixture()
def client(app) -> TestClient:
    """Test client that does not follow redirects."""
    return TestClient(app, follow_redirects=False)


def login(client: TestClient, code: str = "abc") -> str:
    """Run ``/login`` and a matching ``/callback``; return the state used."""
    resp = client.get("/login")
    assert resp.status_code == 302
    state = parse_qs(urlparse(resp.headers["location"]).query)["state"][0]
    resp = client.get("/callback", params={"code": code, "state": state})
    assert resp.status_code == 302
    assert resp.headers["location"] == "/dashboard"
    return state


def session_record(client: TestClient, store: MemorySessionStore) -> SessionRecord | None:
    """Look up the server-side record behind the client's session cookie."""
    session_id = unsign_session_id(client.cookies["spotbridge_session"], "test-session-secret")
    if session_id is None:
        return None
    return asyncio.run(store.get(session_id))
