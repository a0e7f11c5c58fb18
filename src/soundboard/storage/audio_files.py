"""Storage for raw clip audio, keyed by the clip's unique filename."""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class AudioStore(ABC):
    """Byte storage for uploaded audio payloads."""

    @abstractmethod
    def write(self, key: str, data: bytes) -> None: ...

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Return the payload; raises FileNotFoundError when missing."""

    @abstractmethod
    def delete(self, key: str) -> bool: ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...


class MemoryAudioStore(AudioStore):
    """Keeps payloads in a dict."""

    def __init__(self):
        self._blobs: dict[str, bytes] = {}

    def write(self, key: str, data: bytes) -> None:
        self._blobs[key] = bytes(data)

    def read(self, key: str) -> bytes:
        try:
            return self._blobs[key]
        except KeyError:
            raise FileNotFoundError(f"Audio payload not found: {key}") from None

    def delete(self, key: str) -> bool:
        return self._blobs.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        return key in self._blobs


class DirectoryAudioStore(AudioStore):
    """Writes payloads as files in an uploads directory."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        # Keys are flat filenames; never allow escaping the uploads directory
        name = os.path.basename(key)
        if not name or name in (".", ".."):
            raise ValueError(f"Invalid audio key: {key!r}")
        return self.root / name

    def write(self, key: str, data: bytes) -> None:
        self._path(key).write_bytes(data)

    def read(self, key: str) -> bytes:
        return self._path(key).read_bytes()

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Deleted file: {path}")
        return True

    def exists(self, key: str) -> bool:
        return self._path(key).exists()
