"""
API key document model.

Maps to the `api-keys` MongoDB collection.

key_hash stores SHA-256(raw_key) - the raw key is shown once at creation
and never stored. key_prefix (first 12 chars) is stored for display purposes.
api_key_id is the stable numeric handle used by the provisioning CLI.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from schemas.models.base import MongoBaseModel


class ApiKeyDoc(MongoBaseModel):
    """Document model for the `api-keys` collection."""

    api_key_id: int
    app_name: str
    key_hash: str
    key_prefix: str = ""
    permissions: int = 0
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
