"""Named profiles kept in a directory on disk."""

import logging
import re
from pathlib import Path
from typing import Any

from ..errors import ProfileNotFoundError, ValidationError
from .serializer import MAX_PROFILE_BYTES, load_profile_file, save_profile_file

logger = logging.getLogger(__name__)

PROFILE_SUFFIX = ".json"


def sanitize_name(name: str) -> str:
    """Reduce a profile name to a safe file stem."""
    safe = re.sub(r"[^A-Za-z0-9._-]", "_", name.strip())
    if safe.endswith(PROFILE_SUFFIX):
        safe = safe[: -len(PROFILE_SUFFIX)]
    safe = safe.strip(".")
    if not safe:
        raise ValidationError(f"Invalid profile name: {name!r}")
    return safe


class ProfileLibrary:
    """Save, list, load and delete profile documents by name."""

    def __init__(self, directory: str | Path, max_bytes: int = MAX_PROFILE_BYTES):
        self.directory = Path(directory)
        self.max_bytes = max_bytes

    def _path(self, name: str) -> Path:
        return self.directory / f"{sanitize_name(name)}{PROFILE_SUFFIX}"

    def save(self, profile: dict[str, Any], name: str) -> Path:
        """Write a profile, replacing any existing one with the same name."""
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(name)
        save_profile_file(profile, path, self.max_bytes)
        logger.info(f"Saved profile '{name}' to {path}")
        return path

    def list(self) -> list[str]:
        if not self.directory.is_dir():
            return []
        return sorted(path.stem for path in self.directory.glob(f"*{PROFILE_SUFFIX}"))

    def load(self, name: str) -> dict[str, Any]:
        path = self._path(name)
        if not path.is_file():
            raise ProfileNotFoundError(f"Profile not found: {name}")
        return load_profile_file(path)

    def delete(self, name: str) -> bool:
        path = self._path(name)
        if not path.is_file():
            return False
        path.unlink()
        logger.info(f"Deleted profile '{name}'")
        return True
