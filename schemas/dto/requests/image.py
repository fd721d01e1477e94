"""
Request DTOs for image endpoints.

UpdateImageRequest - PATCH /image/{id}

Uploads arrive as multipart form data and are parsed in the route itself.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from shared.validators import normalize_tags


class UpdateImageRequest(BaseModel):
    """Request body for partially updating image metadata.

    All fields are optional; only provided (non-null) fields are updated.
    Send ``""`` or ``[]`` to clear a field.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tags: Optional[list[str]] = None
    description: Optional[str] = None
    alt: Optional[str] = None

    @field_validator("tags", mode="after")
    @classmethod
    def _normalize_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return None if v is None else normalize_tags(v)
