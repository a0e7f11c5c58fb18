"""Storage - repository, entity backends and audio payload stores."""

from .audio_files import AudioStore, DirectoryAudioStore, MemoryAudioStore
from .backends import EntityStore, MemoryEntityStore, SqliteEntityStore
from .repository import ALLOWED_FORMATS, Repository

__all__ = [
    "ALLOWED_FORMATS",
    "AudioStore",
    "DirectoryAudioStore",
    "EntityStore",
    "MemoryAudioStore",
    "MemoryEntityStore",
    "Repository",
    "SqliteEntityStore",
]
