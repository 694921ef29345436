"""Signed session cookie values.

The cookie carries only the session ID and an HMAC-SHA256 signature;
all session data stays on the server.
"""

from __future__ import annotations

import hashlib
import hmac


def sign_session_id(session_id: str, secret: str) -> str:
    """Sign a session ID for use as a cookie value.

    Parameters
    ----------
    session_id : str
        The session ID.
    secret : str
        Secret key for signing.

    Returns
    -------
    str
        ``<session_id>.<signature>``
    """
    signature = hmac.new(
        secret.encode(),
        session_id.encode(),
        hashlib.sha256,
    ).hexdigest()
    return f"{session_id}.{signature}"


def unsign_session_id(value: str, secret: str) -> str | None:
    """Verify a signed cookie value and extract the session ID.

    Parameters
    ----------
    value : str
        The raw cookie value.
    secret : str
        Secret key for verification.

    Returns
    -------
    str or None
        The session ID, or None if the value is malformed or the
        signature does not match.
    """
    session_id, sep, signature = value.rpartition(".")
    if not sep or not session_id or not signature:
        return None

    expected_sig = hmac.new(
        secret.encode(),
        session_id.encode(),
        hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(signature, expected_sig):
        return None
    return session_id
