"""Data models for the soundboard."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

SETTINGS_ID = 1
DEFAULT_RESPONSE_DELAY_MS = 2000
IDLE_LEVEL_DB = -42.0


@dataclass
class SoundClip:
    """An uploaded audio clip; ``filename`` is its unique storage key."""

    id: int
    name: str
    filename: str
    format: str
    duration: float
    size: int
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "filename": self.filename,
            "format": self.format,
            "duration": self.duration,
            "size": self.size,
            "url": self.url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SoundClip":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            filename=data["filename"],
            format=data["format"],
            duration=float(data.get("duration", 0.0)),
            size=int(data.get("size", 0)),
            url=data.get("url", ""),
        )


@dataclass
class Trigger:
    """A phrase bound to a rotating list of sound clips."""

    id: int
    phrase: str
    sound_clip_ids: list[int]
    case_sensitive: bool = False
    enabled: bool = True
    current_index: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "phrase": self.phrase,
            "soundClipIds": list(self.sound_clip_ids),
            "caseSensitive": self.case_sensitive,
            "enabled": self.enabled,
            "currentIndex": self.current_index,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Trigger":
        """Build a trigger, migrating the legacy single ``soundClipId`` shape."""
        clip_ids = data.get("soundClipIds")
        if clip_ids is None and data.get("soundClipId") is not None:
            clip_ids = [data["soundClipId"]]
        return cls(
            id=int(data["id"]),
            phrase=data["phrase"],
            sound_clip_ids=[int(clip_id) for clip_id in clip_ids or []],
            case_sensitive=bool(data.get("caseSensitive") or False),
            enabled=data.get("enabled") is not False,
            current_index=int(data.get("currentIndex") or 0),
        )


@dataclass
class Settings:
    """Singleton settings row controlling the default response rotation."""

    default_response_enabled: bool = False
    default_response_sound_clip_ids: list[int] = field(default_factory=list)
    default_response_index: int = 0
    default_response_delay_ms: int = DEFAULT_RESPONSE_DELAY_MS
    id: int = SETTINGS_ID

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "defaultResponseEnabled": self.default_response_enabled,
            "defaultResponseSoundClipIds": list(self.default_response_sound_clip_ids),
            "defaultResponseIndex": self.default_response_index,
            "defaultResponseDelay": self.default_response_delay_ms,
        }


@dataclass
class TranscriptEvent:
    """Event delivered by a transcription primitive."""

    text: str
    is_final: bool
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class PlayCommand:
    """A request sent to the playback sink."""

    clip_id: int
    volume: float
    source: str  # 'trigger' or 'default'
    trigger_id: Optional[int] = None
    phrase: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class SessionState:
    """Transient state of a listening session."""

    is_listening: bool = False
    current_transcript: str = ""
    audio_level_db: float = IDLE_LEVEL_DB
    last_error: Optional[Exception] = None
