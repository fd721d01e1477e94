"""
Identifier and secret generators - pure, side-effect-free functions.

All generators use cryptographically secure sources (``secrets`` / ``uuid4``).
"""

from __future__ import annotations

import secrets
import uuid

API_KEY_PREFIX = "img_"
KEY_DISPLAY_PREFIX_LENGTH = 12


def generate_image_id() -> str:
    """Generate a globally unique image identifier (UUID4, canonical form)."""
    return str(uuid.uuid4())


def generate_api_key(num_bytes: int = 32) -> str:
    """Generate a raw API key: ``img_`` followed by *num_bytes* of hex.

    Args:
        num_bytes: Number of random bytes (default 32, i.e. 64 hex chars).

    Returns:
        The plaintext key. Callers must hash it before storage.
    """
    return f"{API_KEY_PREFIX}{secrets.token_hex(num_bytes)}"


def key_display_prefix(raw_key: str) -> str:
    """First characters of *raw_key*, safe to store and show in listings."""
    return raw_key[:KEY_DISPLAY_PREFIX_LENGTH]
