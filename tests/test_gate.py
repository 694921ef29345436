"""Tests for the authentication gate."""

from __future__ import annotations

import pytest

from spotbridge.auth.gate import AuthenticationGate
from spotbridge.exceptions import NotAuthenticatedError
from spotbridge.types import SessionRecord


class TestAuthenticationGate:
    """Tests for AuthenticationGate.check."""

    def test_passes_with_access_token(self) -> None:
        record = SessionRecord(session_id="s1", access_token="AT1")
        assert AuthenticationGate.check(record) is record

    def test_expired_token_still_passes(self) -> None:
        record = SessionRecord(session_id="s1", access_token="AT1", access_token_expiry=0)
        assert AuthenticationGate.check(record) is record

    @pytest.mark.parametrize(
        "record",
        [
            SessionRecord(session_id="s1"),
            SessionRecord(session_id="s1", refresh_token="RT1"),
            SessionRecord(session_id="s1", pending_auth_state="abc"),
        ],
    )
    def test_rejects_without_access_token(self, record: SessionRecord) -> None:
        with pytest.raises(NotAuthenticatedError, match="Not authenticated. Please log in."):
            AuthenticationGate.check(record)
