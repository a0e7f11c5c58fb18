"""Shared fixtures: an in-memory repository and a recording playback sink."""

import pytest

from soundboard.storage import MemoryAudioStore, MemoryEntityStore, Repository


class RecordingSink:
    """Playback sink that remembers every play request."""

    def __init__(self):
        self.played: list[tuple[int, float]] = []

    def play(self, clip_id, volume):
        self.played.append((clip_id, volume))

    @property
    def clip_ids(self):
        return [clip_id for clip_id, _ in self.played]


@pytest.fixture()
def repository():
    repo = Repository(MemoryEntityStore(), MemoryAudioStore())
    yield repo
    repo.close()


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def make_clip(repository):
    """Create a clip with a small WAV-named payload."""

    def _make(name, data=None):
        return repository.create_clip(
            data or f"RIFF-{name}".encode(), original_filename=f"{name.lower()}.wav", name=name
        )

    return _make
