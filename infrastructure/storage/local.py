"""Local filesystem image storage.

Layout: ``{root}/{app_id}/{file_name}``. The root and each tenant directory
are created on first write. Every path is resolved and checked to stay
inside the root before it is touched.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from errors import ValidationError
from shared.logging import get_logger

log = get_logger(__name__)


def _check_segment(value: str, field: str) -> str:
    if (
        not value
        or value in (".", "..")
        or "/" in value
        or "\\" in value
        or "\x00" in value
    ):
        raise ValidationError(f"invalid {field} for storage path", field=field)
    return value


class LocalImageStorage:
    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).resolve()

    def ensure_root(self) -> Path:
        if not self.root.exists():
            self.root.mkdir(parents=True, exist_ok=True)
            log.info("storage_root_created", root=str(self.root))
        return self.root

    def path_for(self, app_id: str, file_name: str) -> Path:
        _check_segment(app_id, "app_id")
        _check_segment(file_name, "file_name")
        path = (self.root / app_id / file_name).resolve()
        if self.root not in path.parents:
            raise ValidationError("storage path escapes the storage root", field="app_id")
        return path

    def write(self, app_id: str, file_name: str, content: bytes) -> Path:
        """Write *content* as a whole file, creating the tenant directory if needed.

        Data goes to a temporary sibling first and is renamed into place, so a
        concurrent reader never sees a half-written file.
        """
        path = self.path_for(app_id, file_name)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            tmp_path.write_bytes(content)
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        return path

    def read(self, app_id: str, file_name: str) -> bytes:
        """Return the whole file. Raises FileNotFoundError when it is absent."""
        return self.path_for(app_id, file_name).read_bytes()

    def exists(self, app_id: str, file_name: str) -> bool:
        return self.path_for(app_id, file_name).is_file()

    def delete(self, app_id: str, file_name: str) -> bool:
        """Remove the file; returns False if there was nothing to remove."""
        try:
            self.path_for(app_id, file_name).unlink()
        except FileNotFoundError:
            return False
        return True
