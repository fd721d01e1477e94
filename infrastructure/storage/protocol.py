"""ImageStorage protocol - services depend on this, not the concrete implementation."""

from pathlib import Path
from typing import Protocol


class ImageStorage(Protocol):
    def ensure_root(self) -> Path: ...

    def path_for(self, app_id: str, file_name: str) -> Path: ...

    def write(self, app_id: str, file_name: str, content: bytes) -> Path: ...

    def read(self, app_id: str, file_name: str) -> bytes: ...

    def exists(self, app_id: str, file_name: str) -> bool: ...

    def delete(self, app_id: str, file_name: str) -> bool: ...
