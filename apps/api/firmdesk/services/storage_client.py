"""File storage boundary - local filesystem backend for document bytes."""

from __future__ import annotations

import os
from typing import BinaryIO

from firmdesk.core.config import settings
from firmdesk.core.errors import ValidationError


def _get_local_storage_path() -> str:
    """Get local storage directory path."""
    path = settings.LOCAL_STORAGE_PATH
    os.makedirs(path, exist_ok=True)
    return path


def _resolve(storage_key: str) -> str:
    root = os.path.realpath(_get_local_storage_path())
    path = os.path.realpath(os.path.join(root, storage_key))
    if os.path.commonpath([root, path]) != root:
        raise ValidationError(f"Storage key escapes storage root: {storage_key!r}")
    return path


def store_file(storage_key: str, file: BinaryIO, content_type: str | None = None) -> None:
    """Store file bytes under storage_key."""
    path = _resolve(storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    file.seek(0)
    with open(path, "wb") as f:
        for chunk in iter(lambda: file.read(8192), b""):
            f.write(chunk)
    file.seek(0)


def read_file(storage_key: str) -> bytes:
    """Return stored file bytes."""
    with open(_resolve(storage_key), "rb") as f:
        return f.read()


def delete_file(storage_key: str) -> None:
    """Delete file from storage (no-op if it is already gone)."""
    path = _resolve(storage_key)
    if os.path.exists(path):
        os.remove(path)
