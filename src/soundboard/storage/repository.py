"""Clip, trigger and settings repository."""

import itertools
import logging
import os
import re
import threading
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence

from ..errors import NotFoundError, ValidationError
from ..models import Settings, SoundClip, Trigger
from ..rotation import RotationCursor, clamp_index
from .audio_files import AudioStore, MemoryAudioStore
from .backends import EntityStore, MemoryEntityStore

logger = logging.getLogger(__name__)

ALLOWED_FORMATS = ("mp3", "wav", "ogg")
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

# MIME types written by older browser-side profiles
_MIME_FORMATS = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/ogg": "ogg",
}

_TRIGGER_FIELDS = {"phrase", "sound_clip_ids", "case_sensitive", "enabled"}
_SETTINGS_FIELDS = {
    "default_response_enabled",
    "default_response_sound_clip_ids",
    "default_response_delay_ms",
    "default_response_index",
}


class Repository:
    """Owns the lifetime of clips, triggers and settings.

    Every operation runs under a re-entrant lock, and cross-entity cascades
    (deleting a clip that triggers and settings reference) complete inside a
    single store transaction before the call returns. ``exclusive()`` exposes
    the same lock so that profile import/export can hold it across a full
    clear and rebuild.
    """

    def __init__(
        self,
        store: Optional[EntityStore] = None,
        audio_store: Optional[AudioStore] = None,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        self.store = store if store is not None else MemoryEntityStore()
        self.audio = audio_store if audio_store is not None else MemoryAudioStore()
        self.max_upload_bytes = max_upload_bytes
        self._lock = threading.RLock()
        self._sequence = itertools.count(1)

    @contextmanager
    def exclusive(self) -> Iterator["Repository"]:
        """Hold the repository lock for a multi-step operation."""
        with self._lock:
            yield self

    def close(self):
        """Close the backing store."""
        with self._lock:
            self.store.close()

    # Sound clips

    def list_clips(self) -> list[SoundClip]:
        with self._lock:
            return self.store.list_clips()

    def get_clip(self, clip_id: int) -> Optional[SoundClip]:
        with self._lock:
            return self.store.get_clip(clip_id)

    def create_clip(
        self,
        data: bytes,
        original_filename: str,
        name: Optional[str] = None,
        format: Optional[str] = None,
        duration: float = 0.0,
    ) -> SoundClip:
        """Store an audio payload and create its clip record.

        Args:
            data: Raw audio bytes
            original_filename: Filename supplied by the uploader
            name: Display name (defaults to the filename without extension)
            format: Audio format or MIME type (defaults to the file extension)
            duration: Duration in seconds as reported by the uploader

        Returns:
            The created clip, with a fresh unique ``filename`` storage key
        """
        if len(data) > self.max_upload_bytes:
            raise ValidationError(
                f"Clip is {len(data)} bytes, above the {self.max_upload_bytes} byte limit"
            )
        if not isinstance(original_filename, str):
            raise ValidationError(f"Clip filename must be a string, got {original_filename!r}")
        if name is not None and not isinstance(name, str):
            raise ValidationError(f"Clip name must be a string, got {name!r}")
        if format is not None and not isinstance(format, str):
            raise ValidationError(f"Clip format must be a string, got {format!r}")
        if isinstance(duration, bool):
            raise ValidationError(f"Clip duration must be a number, got {duration!r}")
        try:
            clip_duration = float(duration or 0.0)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Clip duration must be a number, got {duration!r}") from e

        stem, extension = os.path.splitext(os.path.basename(original_filename))
        clip_format = self._normalize_format(format or extension)
        clip_name = name.strip() if name and name.strip() else stem
        if not clip_name:
            raise ValidationError("Clip name must not be empty")

        with self._lock:
            key = self._storage_key(original_filename)
            self.audio.write(key, data)
            try:
                clip = self.store.insert_clip(
                    name=clip_name,
                    filename=key,
                    format=clip_format,
                    duration=clip_duration,
                    size=len(data),
                    url=f"/uploads/{key}",
                )
            except Exception:
                self.audio.delete(key)
                raise

        logger.info(f"Created clip {clip.id} '{clip.name}' ({clip.size} bytes, {clip.format})")
        return clip

    def read_clip_audio(self, clip: SoundClip | int) -> bytes:
        """Return the raw audio of a clip.

        Raises:
            NotFoundError: If the clip id does not exist
            FileNotFoundError: If the payload is missing from the audio store
        """
        if isinstance(clip, int):
            found = self.get_clip(clip)
            if found is None:
                raise NotFoundError(f"Sound clip {clip} not found")
            clip = found
        return self.audio.read(clip.filename)

    def delete_clip(self, clip_id: int) -> bool:
        """Delete a clip and remove it from every trigger and the default list.

        Triggers left without clips are deleted; cursors are clamped.

        Returns:
            False if the clip did not exist
        """
        with self._lock:
            with self.store.transaction():
                clip = self.store.get_clip(clip_id)
                if clip is None:
                    return False
                self.store.delete_clip(clip_id)

                for trigger in self.store.list_triggers():
                    remaining = [i for i in trigger.sound_clip_ids if i != clip_id]
                    if not remaining:
                        self.store.delete_trigger(trigger.id)
                        logger.info(f"Deleted trigger {trigger.id} '{trigger.phrase}' (no clips left)")
                    elif len(remaining) != len(trigger.sound_clip_ids):
                        trigger.sound_clip_ids = remaining
                        trigger.current_index = clamp_index(trigger.current_index, len(remaining))
                        self.store.save_trigger(trigger)

                settings = self.get_settings()
                remaining = [i for i in settings.default_response_sound_clip_ids if i != clip_id]
                if len(remaining) != len(settings.default_response_sound_clip_ids):
                    settings.default_response_sound_clip_ids = remaining
                    settings.default_response_index = clamp_index(
                        settings.default_response_index, len(remaining)
                    )
                    self.store.save_settings(settings)

            self._discard_audio(clip)

        logger.info(f"Deleted clip {clip_id} '{clip.name}'")
        return True

    # Trigger words

    def list_triggers(self) -> list[Trigger]:
        with self._lock:
            return self.store.list_triggers()

    def get_trigger(self, trigger_id: int) -> Optional[Trigger]:
        with self._lock:
            return self.store.get_trigger(trigger_id)

    def create_trigger(
        self,
        phrase: str,
        sound_clip_ids: Optional[Sequence[int]] = None,
        case_sensitive: Optional[bool] = None,
        enabled: Optional[bool] = None,
        sound_clip_id: Optional[int] = None,
    ) -> Trigger:
        """Create a trigger.

        ``enabled`` defaults to True unless explicitly False and
        ``case_sensitive`` to False unless explicitly True. The legacy
        ``sound_clip_id`` argument is migrated to a one-element list.
        """
        if sound_clip_ids is None and sound_clip_id is not None:
            sound_clip_ids = [sound_clip_id]
        with self._lock:
            clip_ids = self._validate_clip_ids(sound_clip_ids or [])
            trigger = self.store.insert_trigger(
                phrase=self._validate_phrase(phrase),
                sound_clip_ids=clip_ids,
                case_sensitive=case_sensitive is True,
                enabled=enabled is not False,
                current_index=0,
            )
        logger.info(f"Created trigger {trigger.id} '{trigger.phrase}' -> {trigger.sound_clip_ids}")
        return trigger

    def update_trigger(self, trigger_id: int, **updates: Any) -> Optional[Trigger]:
        """Apply a partial update. Returns None if the trigger does not exist."""
        unknown = set(updates) - _TRIGGER_FIELDS
        if unknown:
            raise ValidationError(f"Unknown trigger field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            trigger = self.store.get_trigger(trigger_id)
            if trigger is None:
                return None

            if updates.get("phrase") is not None:
                trigger.phrase = self._validate_phrase(updates["phrase"])
            if updates.get("case_sensitive") is not None:
                trigger.case_sensitive = bool(updates["case_sensitive"])
            if updates.get("enabled") is not None:
                trigger.enabled = bool(updates["enabled"])
            if updates.get("sound_clip_ids") is not None:
                trigger.sound_clip_ids = self._validate_clip_ids(updates["sound_clip_ids"])
                trigger.current_index = clamp_index(
                    trigger.current_index, len(trigger.sound_clip_ids)
                )
            self.store.save_trigger(trigger)
        return trigger

    def delete_trigger(self, trigger_id: int) -> bool:
        with self._lock:
            deleted = self.store.delete_trigger(trigger_id)
        if deleted:
            logger.info(f"Deleted trigger {trigger_id}")
        return deleted

    def next_clip_for_trigger(self, trigger_id: int) -> Optional[int]:
        """Return the trigger's current clip and advance its cursor."""
        with self._lock:
            trigger = self.store.get_trigger(trigger_id)
            if trigger is None:
                return None
            cursor = RotationCursor(trigger.sound_clip_ids, trigger.current_index)
            clip_id = cursor.next()
            if clip_id is not None:
                trigger.current_index = cursor.index
                self.store.save_trigger(trigger)
            return clip_id

    # Settings

    def get_settings(self) -> Settings:
        """Return the settings row, creating the defaults if absent."""
        with self._lock:
            settings = self.store.load_settings()
            if settings is None:
                settings = Settings()
                self.store.save_settings(settings)
                logger.debug("Created default settings")
            return settings

    def update_settings(self, **updates: Any) -> Settings:
        unknown = set(updates) - _SETTINGS_FIELDS
        if unknown:
            raise ValidationError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            settings = self.get_settings()
            if updates.get("default_response_enabled") is not None:
                settings.default_response_enabled = bool(updates["default_response_enabled"])
            if updates.get("default_response_sound_clip_ids") is not None:
                settings.default_response_sound_clip_ids = self._validate_clip_ids(
                    updates["default_response_sound_clip_ids"], allow_empty=True
                )
            if updates.get("default_response_delay_ms") is not None:
                delay = int(updates["default_response_delay_ms"])
                if delay < 0:
                    raise ValidationError("Default response delay must be >= 0 ms")
                settings.default_response_delay_ms = delay
            if updates.get("default_response_index") is not None:
                settings.default_response_index = int(updates["default_response_index"])
            settings.default_response_index = clamp_index(
                settings.default_response_index, len(settings.default_response_sound_clip_ids)
            )
            self.store.save_settings(settings)
        return settings

    def next_default_response(self) -> Optional[int]:
        """Return the next default response clip and advance the cursor.

        Returns None when default responses are disabled or the list is empty.
        """
        with self._lock:
            settings = self.get_settings()
            cursor = RotationCursor(
                settings.default_response_sound_clip_ids,
                settings.default_response_index,
                enabled=settings.default_response_enabled,
            )
            clip_id = cursor.next()
            if clip_id is not None:
                settings.default_response_index = cursor.index
                self.store.save_settings(settings)
            return clip_id

    # Bulk operations

    def clear_all(self):
        """Delete every entity and uploaded audio payload."""
        with self._lock:
            clips = self.store.list_clips()
            self.store.clear()
            for clip in clips:
                self._discard_audio(clip)
        logger.info(f"Cleared repository ({len(clips)} clip(s) removed)")

    # Helpers

    def _storage_key(self, original_filename: str) -> str:
        safe = re.sub(r"[^A-Za-z0-9._-]", "_", os.path.basename(original_filename)) or "clip"
        while True:
            key = f"{int(time.time() * 1000)}-{next(self._sequence)}_{safe}"
            if not self.audio.exists(key):
                return key

    def _discard_audio(self, clip: SoundClip):
        try:
            self.audio.delete(clip.filename)
        except OSError as e:
            logger.warning(f"Could not delete file {clip.filename}: {e}")

    @staticmethod
    def _normalize_format(value: str) -> str:
        fmt = (value or "").strip().lower()
        fmt = _MIME_FORMATS.get(fmt, fmt).lstrip(".")
        if fmt not in ALLOWED_FORMATS:
            raise ValidationError(
                f"Unsupported audio format '{value}'. Only MP3, WAV, and OGG files are allowed"
            )
        return fmt

    @staticmethod
    def _validate_phrase(phrase: str) -> str:
        if not isinstance(phrase, str) or not phrase.strip():
            raise ValidationError("Trigger phrase must not be empty")
        return phrase

    def _validate_clip_ids(self, clip_ids: Sequence[int], allow_empty: bool = False) -> list[int]:
        ids = [int(clip_id) for clip_id in clip_ids]
        if not ids and not allow_empty:
            raise ValidationError("A trigger needs at least one sound clip")
        missing = sorted({i for i in ids if self.store.get_clip(i) is None})
        if missing:
            raise ValidationError(f"Unknown sound clip id(s): {missing}")
        return ids
