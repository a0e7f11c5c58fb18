"""Consumers - receive play commands and drive output devices."""

from .playback_consumer import PlaybackConsumer

__all__ = [
    "PlaybackConsumer",
]
