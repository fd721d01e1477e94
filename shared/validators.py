"""
Input validators and normalizers for uploads and tenant names.

Pure functions: they either return a normalized value or raise
errors.ValidationError.
"""

from __future__ import annotations

import json
import os
import re
from typing import Iterable, Optional

from errors import ValidationError

MIME_EXTENSIONS: dict[str, str] = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
}

ALLOWED_MIME_TYPES = frozenset(MIME_EXTENSIONS)

FALLBACK_EXTENSION = ".bin"

_EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,10}$")
_TENANT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")


def validate_mime_type(mime_type: Optional[str]) -> str:
    """Return the MIME type if it is on the allow-list, else raise."""
    normalized = (mime_type or "").split(";", 1)[0].strip().lower()
    if normalized not in ALLOWED_MIME_TYPES:
        raise ValidationError(
            f"Unsupported file type: {mime_type or 'unknown'}. "
            f"Supported: {', '.join(sorted(ALLOWED_MIME_TYPES))}",
            field="file",
        )
    return normalized


def normalize_extension(original_file_name: Optional[str], mime_type: str) -> str:
    """Pick the stored file extension.

    The original filename's suffix wins when it looks like a real extension;
    otherwise the MIME type decides, and ``.bin`` is the last resort.
    """
    _, ext = os.path.splitext(os.path.basename(original_file_name or ""))
    ext = ext.lower()
    if _EXTENSION_RE.match(ext):
        return ext
    return MIME_EXTENSIONS.get(mime_type, FALLBACK_EXTENSION)


def validate_tenant_name(name: Optional[str]) -> str:
    """Tenant names double as directory names, so keep them path-safe."""
    value = (name or "").strip()
    if not value:
        raise ValidationError("app name is required", field="app_name")
    if ".." in value or not _TENANT_RE.match(value):
        raise ValidationError(
            "app name may only contain letters, digits, '.', '_' and '-' "
            "(max 64 chars, no '..')",
            field="app_name",
        )
    return value


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Strip, drop empties and de-duplicate while keeping first-seen order."""
    if tags is None:
        return []
    seen: dict[str, None] = {}
    for tag in tags:
        if not isinstance(tag, str):
            raise ValidationError("tags must be strings", field="tags")
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def parse_tags_json(raw: Optional[str]) -> list[str]:
    """Parse the multipart ``tags`` field: a JSON-encoded array of strings."""
    if raw is None or not raw.strip():
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError("tags must be a JSON array of strings", field="tags") from exc
    if not isinstance(data, list):
        raise ValidationError("tags must be a JSON array of strings", field="tags")
    return normalize_tags(data)


def parse_tags_csv(raw: Optional[str]) -> Optional[list[str]]:
    """Parse the list endpoint's comma-separated ``tags`` query parameter."""
    if raw is None:
        return None
    tags = normalize_tags(raw.split(","))
    return tags or None
