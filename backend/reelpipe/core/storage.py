"""
Durable Artifact Storage

Filesystem-backed object store for finished renders:
- Project-scoped object keys
- Path traversal prevention
- Public URL derivation for stored objects
"""

import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

import aiofiles

from .config import get_settings


# Object keys are relative POSIX paths made of these characters only
_KEY_PATTERN = re.compile(r"^[A-Za-z0-9._\-/]+$")


@dataclass(frozen=True)
class StoredArtifact:
    """Location of an object written to durable storage."""

    key: str
    path: Path
    url: str


def get_storage_root() -> Path:
    """
    Get the storage root path from configuration.

    Raises:
        ValueError: If storage path is not configured
    """
    storage_path = get_settings().storage_path

    if not storage_path:
        raise ValueError("STORAGE_PATH environment variable not set")

    return Path(storage_path).resolve()


def validate_project_id(project_id: str) -> bool:
    """
    Validate that a project ID is a valid UUID.

    Example:
        >>> validate_project_id("550e8400-e29b-41d4-a716-446655440000")
        True
        >>> validate_project_id("../malicious")
        False
    """
    try:
        UUID(project_id)
        return True
    except (ValueError, TypeError):
        return False


def build_render_key(user_id: str, project_id: str, extension: str = ".mp4") -> str:
    """
    Build the object key for a finished render.

    Layout: reels/{user_id}/{project_id}/{epoch_ms}{extension}

    Raises:
        ValueError: If project_id is not a UUID
    """
    if not validate_project_id(project_id):
        raise ValueError("Invalid project ID: must be a valid UUID")

    return f"reels/{user_id}/{project_id}/{int(time.time() * 1000)}{extension}"


def resolve_key(key: str) -> Path:
    """
    Resolve an object key to an absolute path inside the storage root.

    Raises:
        ValueError: If the key is malformed or escapes the storage root
    """
    if not key or not _KEY_PATTERN.match(key) or key.startswith("/"):
        raise ValueError(f"Invalid storage key: {key!r}")

    storage_root = get_storage_root()
    resolved_path = (storage_root / key).resolve()

    if not str(resolved_path).startswith(str(storage_root) + os.sep):
        raise ValueError("Path traversal detected: key escapes storage root")

    return resolved_path


def public_url_for(key: str) -> str:
    """Public URL of a stored object."""
    return f"{get_settings().storage_public_url.rstrip('/')}/{key}"


async def save_artifact(key: str, data: bytes) -> StoredArtifact:
    """
    Write bytes under key and return the stored location.

    The object is written to a temporary sibling and renamed into place,
    so readers never see a partially written file.
    """
    path = resolve_key(key)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.with_name(f".{path.name}.part")
    async with aiofiles.open(tmp_path, "wb") as f:
        await f.write(data)
    os.replace(tmp_path, path)

    return StoredArtifact(key=key, path=path, url=public_url_for(key))
