"""
Cryptographic helpers for API key handling.

Raw API keys are shown once and never persisted; the database only holds
their SHA-256 digest.
"""

from __future__ import annotations

import hashlib


def hash_api_key(raw_key: str) -> str:
    """Return the hex-encoded SHA-256 digest of *raw_key*.

    Args:
        raw_key: The plaintext API key as presented by a client.

    Returns:
        64-character lowercase hex string.
    """
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()

