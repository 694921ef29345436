"""Tests for anti-forgery state generation."""

from __future__ import annotations

import re

import pytest

from spotbridge.auth.state import generate_random_state


class TestGenerateRandomState:
    """Tests for generate_random_state."""

    def test_default_length(self) -> None:
        assert len(generate_random_state()) == 16

    @pytest.mark.parametrize("length", [1, 7, 16, 33, 128])
    def test_exact_length_and_hex(self, length: int) -> None:
        state = generate_random_state(length)
        assert len(state) == length
        assert re.fullmatch(r"[0-9a-f]+", state)

    def test_unique(self) -> None:
        states = {generate_random_state() for _ in range(1000)}
        assert len(states) == 1000

    @pytest.mark.parametrize("length", [0, -5])
    def test_rejects_non_positive(self, length: int) -> None:
        with pytest.raises(ValueError, match="positive"):
            generate_random_state(length)
