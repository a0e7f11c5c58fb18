"""Core components - event bus, matching engine, speech session."""

from .cooldown import CooldownSet
from .event_bus import (
    DefaultResponseEvent,
    EventBus,
    SessionErrorEvent,
    SessionStateEvent,
    TriggerMatchEvent,
)
from .matching import PlaybackSink, TriggerMatchingEngine
from .session import AudioInput, Recognizer, RetryPolicy, SpeechSession

# Hardware-backed modules (audio_handler: pyaudio/webrtcvad, speaker_service:
# pygame) are imported where they are used.

__all__ = [
    "AudioInput",
    "CooldownSet",
    "DefaultResponseEvent",
    "EventBus",
    "PlaybackSink",
    "Recognizer",
    "RetryPolicy",
    "SessionErrorEvent",
    "SessionStateEvent",
    "SpeechSession",
    "TriggerMatchEvent",
    "TriggerMatchingEngine",
]
