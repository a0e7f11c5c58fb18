"""Profile export/import.

A profile is a self-contained JSON snapshot of every clip (with its audio
embedded as base64), every trigger and the settings. Clip references are
stored by clip *name* so that a profile can be loaded into a repository whose
ids differ. Clip names are not unique, so a profile holding two clips with the
same name resolves every reference to one of them on import.
"""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..errors import (
    InvalidProfileError,
    ProfileImportError,
    ProfileTooLargeError,
    ValidationError,
)
from ..models import DEFAULT_RESPONSE_DELAY_MS
from ..storage import Repository

logger = logging.getLogger(__name__)

PROFILE_VERSION = "1.0"
MAX_PROFILE_BYTES = 10 * 1024 * 1024
REQUIRED_KEYS = ("version", "soundClips", "triggerWords", "settings")


@dataclass
class ImportReport:
    """Outcome of a profile import."""

    clips_imported: int = 0
    triggers_imported: int = 0
    skipped: list[str] = field(default_factory=list)


def to_json(profile: dict[str, Any]) -> str:
    return json.dumps(profile, indent=2)


def from_json(text: str) -> dict[str, Any]:
    try:
        profile = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidProfileError(f"Profile is not valid JSON: {e}") from e
    validate_profile(profile)
    return profile


def check_size(profile: dict[str, Any] | str, max_bytes: int = MAX_PROFILE_BYTES) -> int:
    """Return the encoded size of a profile document or its JSON text.

    Raises:
        ProfileTooLargeError: If it exceeds ``max_bytes``
    """
    text = profile if isinstance(profile, str) else to_json(profile)
    size = len(text.encode("utf-8"))
    if size > max_bytes:
        raise ProfileTooLargeError(
            f"Profile size ({size / (1024 * 1024):.2f}MB) exceeds the "
            f"{max_bytes / (1024 * 1024):.0f}MB limit"
        )
    return size


def save_profile_file(
    profile: dict[str, Any], path: str | Path, max_bytes: int = MAX_PROFILE_BYTES
) -> int:
    """Write a profile to disk after checking its size. Returns bytes written."""
    text = to_json(profile)
    size = check_size(text, max_bytes)
    Path(path).write_text(text, encoding="utf-8")
    logger.info(f"Profile written to {path} ({size} bytes)")
    return size


def load_profile_file(path: str | Path) -> dict[str, Any]:
    return from_json(Path(path).read_text(encoding="utf-8"))


def validate_profile(profile: Any):
    """Check the top-level structure of a profile document.

    Raises:
        InvalidProfileError: If a required key is missing or has the wrong type
    """
    if not isinstance(profile, dict):
        raise InvalidProfileError("Profile must be a JSON object")
    missing = [key for key in REQUIRED_KEYS if key not in profile]
    if missing:
        raise InvalidProfileError(f"Profile is missing required key(s): {', '.join(missing)}")
    for key in ("soundClips", "triggerWords"):
        if not isinstance(profile[key], list):
            raise InvalidProfileError(f"Profile '{key}' must be a list")
    if not isinstance(profile["settings"], dict):
        raise InvalidProfileError("Profile 'settings' must be an object")


def _clip_names(clip_ids, names_by_id: dict[int, str]) -> list[str]:
    return [names_by_id[clip_id] for clip_id in clip_ids if clip_id in names_by_id]


class ProfileSerializer:
    """Exports and imports the full repository state."""

    def __init__(self, repository: Repository):
        self.repository = repository

    def export(self) -> dict[str, Any]:
        """Build a profile document from the repository.

        Clips whose audio cannot be read are left out with a warning. Triggers
        with no resolvable clip are left out.
        """
        with self.repository.exclusive():
            clips = self.repository.list_clips()
            triggers = self.repository.list_triggers()
            settings = self.repository.get_settings()

            profile_clips = []
            for clip in clips:
                try:
                    audio_data = self.repository.read_clip_audio(clip)
                except (OSError, ValueError) as e:
                    logger.warning(f"Could not read audio file {clip.filename}: {e}")
                    continue
                profile_clips.append(
                    {
                        "name": clip.name,
                        "filename": clip.filename,
                        "format": clip.format,
                        "duration": clip.duration,
                        "size": clip.size,
                        "audioData": base64.b64encode(audio_data).decode("ascii"),
                    }
                )

        # Includes clips whose audio was unreadable
        names_by_id = {clip.id: clip.name for clip in clips}

        profile_triggers = []
        for trigger in triggers:
            names = _clip_names(trigger.sound_clip_ids, names_by_id)
            if not names:
                continue
            profile_triggers.append(
                {
                    "phrase": trigger.phrase,
                    "soundClipNames": names,
                    "caseSensitive": trigger.case_sensitive,
                    "enabled": trigger.enabled,
                }
            )

        profile = {
            "version": PROFILE_VERSION,
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "soundClips": profile_clips,
            "triggerWords": profile_triggers,
            "settings": {
                "defaultResponseEnabled": settings.default_response_enabled,
                "defaultResponseSoundClipNames": _clip_names(
                    settings.default_response_sound_clip_ids, names_by_id
                ),
                "defaultResponseDelay": settings.default_response_delay_ms,
            },
        }
        logger.info(
            f"Exported profile: {len(profile_clips)} clip(s), {len(profile_triggers)} trigger(s)"
        )
        return profile

    def import_profile(self, profile: dict[str, Any]) -> ImportReport:
        """Replace the repository contents with a profile.

        The repository is cleared first. Clips, triggers and settings that
        cannot be imported are logged and skipped.

        Raises:
            InvalidProfileError: The document is malformed (nothing is cleared)
            ProfileImportError: An unexpected failure after the clear; the
                previous contents are lost
        """
        validate_profile(profile)
        report = ImportReport()

        with self.repository.exclusive():
            self.repository.clear_all()
            try:
                name_to_id = self._import_clips(profile["soundClips"], report)
                self._import_triggers(profile["triggerWords"], name_to_id, report)
                self._import_settings(profile["settings"], name_to_id, report)
            except Exception as e:
                logger.error(f"Profile import failed after clearing data: {e}", exc_info=True)
                raise ProfileImportError(
                    f"Profile import failed after existing data was cleared; "
                    f"previous data was not restored: {e}"
                ) from e

        logger.info(
            f"Imported profile: {report.clips_imported} clip(s), "
            f"{report.triggers_imported} trigger(s), {len(report.skipped)} item(s) skipped"
        )
        return report

    def _import_clips(self, items: list, report: ImportReport) -> dict[str, int]:
        name_to_id: dict[str, int] = {}
        for item in items:
            label = item.get("name", "?") if isinstance(item, dict) else "?"
            try:
                name = item["name"]
                audio_data = base64.b64decode(item["audioData"], validate=True)
                clip = self.repository.create_clip(
                    audio_data,
                    original_filename=item.get("filename") or f"{name}.{item.get('format', '')}",
                    name=name,
                    format=item.get("format"),
                    duration=item.get("duration") or 0.0,
                )
            except (
                AttributeError,
                KeyError,
                OSError,
                TypeError,
                ValueError,
                binascii.Error,
                ValidationError,
            ) as e:
                logger.error(f"Error importing sound clip {label}: {e}")
                report.skipped.append(f"sound clip {label}")
                continue
            name_to_id[name] = clip.id
            report.clips_imported += 1
        return name_to_id

    def _import_triggers(self, items: list, name_to_id: dict[str, int], report: ImportReport):
        for item in items:
            phrase = item.get("phrase", "?") if isinstance(item, dict) else "?"
            try:
                names = item.get("soundClipNames")
                if names is None and item.get("soundClipName") is not None:
                    names = [item["soundClipName"]]
                clip_ids = [name_to_id[name] for name in names or [] if name in name_to_id]
                if not clip_ids:
                    logger.warning(f"Skipping trigger '{phrase}': none of its clips were imported")
                    report.skipped.append(f"trigger {phrase}")
                    continue
                self.repository.create_trigger(
                    phrase=item["phrase"],
                    sound_clip_ids=clip_ids,
                    case_sensitive=item.get("caseSensitive") is True,
                    enabled=item.get("enabled") is not False,
                )
            except (AttributeError, KeyError, TypeError, ValidationError) as e:
                logger.error(f"Error importing trigger word {phrase}: {e}")
                report.skipped.append(f"trigger {phrase}")
                continue
            report.triggers_imported += 1

    def _import_settings(
        self, settings: dict[str, Any], name_to_id: dict[str, int], report: ImportReport
    ):
        names = settings.get("defaultResponseSoundClipNames") or []
        delay: Optional[int] = settings.get("defaultResponseDelay")
        try:
            self.repository.update_settings(
                default_response_enabled=bool(settings.get("defaultResponseEnabled")),
                default_response_sound_clip_ids=[
                    name_to_id[name] for name in names if name in name_to_id
                ],
                default_response_delay_ms=DEFAULT_RESPONSE_DELAY_MS if delay is None else delay,
                default_response_index=0,
            )
        except (TypeError, ValueError, ValidationError) as e:
            logger.error(f"Error importing settings: {e}")
            report.skipped.append("settings")
