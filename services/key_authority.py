"""
Key Authority - API key authentication, authorization and provisioning.

authenticate() and authorize() run on every protected request.
The provisioning methods (create_key, list_keys, update_permissions, revoke)
are administrative and only reachable from the manage_keys CLI.
"""

from __future__ import annotations

from typing import Optional

from pymongo.errors import DuplicateKeyError

from errors import AuthenticationError, ConflictError, ForbiddenError, NotFoundError
from repositories.api_key_repository import ApiKeyRepository
from schemas.models.api_key import ApiKeyDoc
from shared.crypto import hash_api_key
from shared.datetime_utils import utc_now
from shared.generators import generate_api_key, key_display_prefix
from shared.logging import get_logger
from shared.permissions import (
    DEFAULT_KEY_PERMISSIONS,
    describe_permissions,
    has_permission,
)
from shared.validators import validate_tenant_name

log = get_logger(__name__)


def _active_key_conflict(app_name: str) -> ConflictError:
    return ConflictError(
        f'An active API key already exists for "{app_name}". Revoke it first.',
        field="app_name",
    )


class KeyAuthority:
    def __init__(self, keys: ApiKeyRepository) -> None:
        self._keys = keys

    # ── Request path ─────────────────────────────────────────────────────────

    def authenticate(self, raw_key: Optional[str]) -> ApiKeyDoc:
        """Resolve *raw_key* to its active key record.

        Raises:
            AuthenticationError: key missing, unknown, or deactivated.
        """
        if not raw_key:
            raise AuthenticationError("Missing X-API-Key header")

        record = self._keys.find_by_hash(hash_api_key(raw_key))
        if record is None:
            log.warning("api_key_rejected", reason="unknown_key")
            raise AuthenticationError("Invalid or inactive API key")
        if not record.active:
            log.warning(
                "api_key_rejected", reason="inactive_key", api_key_id=record.api_key_id
            )
            raise AuthenticationError("Invalid or inactive API key")
        return record

    def authorize(self, record: ApiKeyDoc, required: int) -> None:
        """Check that *record* holds at least one bit of *required*.

        Raises:
            ForbiddenError: insufficient permissions.
        """
        if has_permission(record.permissions, required):
            return
        log.warning(
            "api_key_access_denied",
            reason="missing_permission",
            api_key_id=record.api_key_id,
            app_name=record.app_name,
            required=describe_permissions(required),
            granted=describe_permissions(record.permissions),
        )
        raise ForbiddenError("Insufficient permissions")

    # ── Provisioning ─────────────────────────────────────────────────────────

    def create_key(
        self, app_name: str, permissions: int = DEFAULT_KEY_PERMISSIONS
    ) -> tuple[ApiKeyDoc, str]:
        """Create a key for *app_name*; returns the record and the raw key.

        The raw key is returned exactly once and never stored.

        Raises:
            ValidationError: app name not usable as a tenant directory.
            ConflictError: an active key already exists for the app.
        """
        app_name = validate_tenant_name(app_name)
        if self._keys.find_active_by_app_name(app_name) is not None:
            raise _active_key_conflict(app_name)

        raw_key = generate_api_key()
        record = ApiKeyDoc(
            api_key_id=self._keys.next_id(),
            app_name=app_name,
            key_hash=hash_api_key(raw_key),
            key_prefix=key_display_prefix(raw_key),
            permissions=int(permissions),
            active=True,
            created_at=utc_now(),
        )
        try:
            self._keys.insert(record)
        except DuplicateKeyError as exc:
            # lost a race with a concurrent create for the same app
            raise _active_key_conflict(app_name) from exc

        log.info(
            "api_key_created",
            api_key_id=record.api_key_id,
            app_name=app_name,
            key_prefix=record.key_prefix,
            permissions=describe_permissions(record.permissions),
        )
        return record, raw_key

    def list_keys(self) -> list[ApiKeyDoc]:
        return self._keys.list_all()

    def update_permissions(self, api_key_id: int, permissions: int) -> ApiKeyDoc:
        record = self._keys.update_fields(
            api_key_id, {"permissions": int(permissions)}, updated_at=utc_now()
        )
        if record is None:
            raise NotFoundError(f"API key {api_key_id} not found.")
        log.info(
            "api_key_permissions_updated",
            api_key_id=api_key_id,
            permissions=describe_permissions(record.permissions),
        )
        return record

    def revoke(self, api_key_id: int) -> ApiKeyDoc:
        record = self._keys.update_fields(
            api_key_id, {"active": False}, updated_at=utc_now()
        )
        if record is None:
            raise NotFoundError(f"API key {api_key_id} not found.")
        log.info("api_key_revoked", api_key_id=api_key_id, app_name=record.app_name)
        return record
