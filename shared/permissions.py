"""
API key permission bits and the per-operation requirement table.

Permissions are independent bits combined with ``|`` so a single key can
hold several capabilities. Every HTTP operation looks its requirement up in
OPERATION_PERMISSIONS; ``None`` means the operation takes no credential.
"""

from __future__ import annotations

import enum
from typing import Iterable, Optional

from errors import ValidationError


class Permission(enum.IntFlag):
    NONE = 0
    READ = 1
    WRITE = 2
    DELETE = 4
    ADMIN = 8


PERMISSION_NAMES: dict[str, Permission] = {
    "read": Permission.READ,
    "write": Permission.WRITE,
    "delete": Permission.DELETE,
    "admin": Permission.ADMIN,
}

DEFAULT_KEY_PERMISSIONS = Permission.READ | Permission.WRITE


class Operation(str, enum.Enum):
    UPLOAD = "image.upload"
    GET_METADATA = "image.get"
    GET_FILE = "image.file"
    LIST = "image.list"
    UPDATE_METADATA = "image.update"
    DELETE = "image.delete"


OPERATION_PERMISSIONS: dict[Operation, Optional[Permission]] = {
    Operation.UPLOAD: Permission.WRITE,
    Operation.GET_METADATA: Permission.READ,
    # Public so uploaded images can be hotlinked; see StorageSettings
    Operation.GET_FILE: None,
    Operation.LIST: Permission.READ,
    Operation.UPDATE_METADATA: Permission.WRITE,
    Operation.DELETE: Permission.DELETE,
}


def has_permission(granted: int, required: int) -> bool:
    """True when *required* is zero or shares at least one bit with *granted*."""
    if not required:
        return True
    return (int(granted) & int(required)) != 0


def parse_permissions(names: Iterable[str]) -> Permission:
    """Combine permission names (case-insensitive) into one mask.

    Raises:
        ValidationError: for an unknown name.
    """
    mask = Permission.NONE
    for name in names:
        value = PERMISSION_NAMES.get(name.strip().lower())
        if value is None:
            raise ValidationError(
                f"Unknown permission: {name}",
                field="permissions",
                details={"valid": sorted(PERMISSION_NAMES)},
            )
        mask |= value
    return mask


def describe_permissions(mask: int) -> list[str]:
    """Upper-case names of the bits set in *mask*, in bit order."""
    return [
        name.upper()
        for name, value in PERMISSION_NAMES.items()
        if int(mask) & int(value)
    ]
