"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Services are built once in the app lifespan and
stored on app.state; these providers only hand them out.

Authorization goes through a single provider, require_operation(), which
looks the operation up in shared.permissions.OPERATION_PERMISSIONS.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from pymongo.database import Database

from config import AppSettings
from schemas.models.api_key import ApiKeyDoc
from services.image_service import ImageService
from services.key_authority import KeyAuthority
from shared.permissions import OPERATION_PERMISSIONS, Operation, Permission

API_KEY_HEADER = "X-API-Key"

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_db(request: Request) -> Database:
    """Return the MongoDB database from app.state."""
    return request.app.state.db


def get_key_authority(request: Request) -> KeyAuthority:
    return request.app.state.key_authority


def get_image_service(request: Request) -> ImageService:
    return request.app.state.image_service


def required_permission(
    operation: Operation, settings: AppSettings
) -> Optional[Permission]:
    """Permission needed for *operation*; None when no credential is needed."""
    required = OPERATION_PERMISSIONS[operation]
    if operation is Operation.GET_FILE and not settings.storage.storage_public_file_access:
        return Permission.READ
    return required


def require_operation(operation: Operation) -> Callable[..., Optional[ApiKeyDoc]]:
    """Build the dependency that authenticates and authorizes *operation*.

    The dependency yields the caller's key record, or None for operations
    that take no credential.
    """

    def dependency(
        request: Request,
        raw_key: Optional[str] = Depends(api_key_header),
        settings: AppSettings = Depends(get_settings),
        authority: KeyAuthority = Depends(get_key_authority),
    ) -> Optional[ApiKeyDoc]:
        required = required_permission(operation, settings)
        if required is None:
            return None
        record = authority.authenticate(raw_key)
        authority.authorize(record, required)
        request.state.api_key_id = record.api_key_id
        request.state.app_name = record.app_name
        return record

    dependency.__name__ = f"require_{operation.name.lower()}"
    return dependency


def tenant_scope(key: Optional[ApiKeyDoc]) -> Optional[str]:
    """Tenant an authenticated caller is confined to; ADMIN keys see all tenants."""
    if key is None or key.permissions & Permission.ADMIN:
        return None
    return key.app_name
