"""Playback consumer - resolves play commands to audio and hands them to a speaker."""

import logging
from typing import Protocol

from ..errors import NotFoundError
from ..storage import Repository

logger = logging.getLogger(__name__)


class Speaker(Protocol):
    def play_clip(self, audio_data: bytes, volume: float, name: str = "clip") -> None: ...


class PlaybackConsumer:
    """Playback sink for the matching engine.

    Looks the clip up in the repository, reads its payload and passes it to
    the speaker. Missing clips or payloads are logged and skipped.
    """

    def __init__(self, repository: Repository, speaker: Speaker):
        """Initialize playback consumer.

        Args:
            repository: Repository to resolve clip ids
            speaker: Output device wrapper
        """
        self.repository = repository
        self.speaker = speaker
        self.played = 0

        logger.info("PlaybackConsumer initialized")

    def play(self, clip_id: int, volume: float):
        """Play a clip by id (fire-and-forget)."""
        clip = self.repository.get_clip(clip_id)
        if clip is None:
            logger.warning(f"Sound clip {clip_id} not found, skipping playback")
            return

        try:
            audio_data = self.repository.read_clip_audio(clip)
        except (NotFoundError, OSError) as e:
            logger.error(f"Audio file not found for clip {clip_id} ({clip.filename}): {e}")
            return

        logger.info(f"Playing '{clip.name}' (clip {clip_id}) at volume {volume:.2f}")
        self.speaker.play_clip(audio_data, volume, name=clip.name)
        self.played += 1
