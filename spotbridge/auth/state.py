"""Anti-forgery state tokens for the authorization redirect."""

from __future__ import annotations

import secrets


def generate_random_state(length: int = 16) -> str:
    """Generate an unguessable hex token of exactly *length* characters.

    Parameters
    ----------
    length : int
        Number of characters (default 16).

    Returns
    -------
    str
        Lowercase hex string from the OS CSPRNG.

    Raises
    ------
    ValueError
        If *length* is less than 1.
    """
    if length < 1:
        msg = f"State length must be positive, got {length}"
        raise ValueError(msg)
    return secrets.token_hex((length + 1) // 2)[:length]
