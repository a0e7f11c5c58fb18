"""Speaker service for clip playback with device selection support."""

import io
import logging
from typing import Optional

import pygame

logger = logging.getLogger(__name__)


class SpeakerService:
    """Plays encoded clips (MP3, WAV, OGG) through the pygame mixer.

    Each play gets its own mixer channel, so clips triggered by the same
    transcript overlap instead of cutting each other off.
    """

    def __init__(
        self,
        preferred_device_name: Optional[str] = None,
        master_volume: float = 1.0,
        channels: int = 16,
    ):
        """Initialize speaker service.

        Args:
            preferred_device_name: Output device name passed to the mixer.
                If None, the system default is used.
            master_volume: Master gain applied to every clip (0-1)
            channels: Number of mixer channels (simultaneous clips)
        """
        self.preferred_device_name = preferred_device_name
        self.master_volume = master_volume
        self.channels = channels
        self.running = False

        logger.info(
            f"SpeakerService initialized: preferred_device='{preferred_device_name or 'default'}'"
        )

    def start(self):
        """Initialize the mixer."""
        if self.running:
            logger.warning("Speaker service already started")
            return

        try:
            pygame.mixer.init(devicename=self.preferred_device_name)
        except pygame.error as e:
            if not self.preferred_device_name:
                raise
            logger.warning(
                f"Preferred device '{self.preferred_device_name}' not available ({e}), "
                "falling back to default"
            )
            pygame.mixer.init()

        pygame.mixer.set_num_channels(self.channels)
        self.running = True
        logger.info("Speaker service started")

    def play_clip(self, audio_data: bytes, volume: float, name: str = "clip"):
        """Decode and play a clip.

        Args:
            audio_data: Encoded audio payload
            volume: Clip volume relative to the master volume (0-1)
            name: Label used in log messages
        """
        if not self.running:
            logger.warning("Speaker service not started, cannot play audio")
            return

        try:
            sound = pygame.mixer.Sound(file=io.BytesIO(audio_data))
        except pygame.error as e:
            logger.error(f"Could not decode {name}: {e}")
            return

        sound.set_volume(max(0.0, min(1.0, volume * self.master_volume)))
        channel = sound.play()
        if channel is None:
            logger.warning(f"No free mixer channel for {name}")
        else:
            logger.debug(f"Playing {name} at volume {volume:.2f}")

    def stop_all(self):
        """Stop every playing clip."""
        if self.running:
            pygame.mixer.stop()

    def cleanup(self):
        """Shut the mixer down."""
        if not self.running:
            return
        pygame.mixer.stop()
        pygame.mixer.quit()
        self.running = False
        logger.info("SpeakerService cleaned up")
