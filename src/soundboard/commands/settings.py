"""Show and change the default response settings."""

from typing import Optional, Sequence

from soundboard.config import DEFAULT_CONFIG_PATH, open_repository
from soundboard.errors import SoundboardError
from soundboard.models import Settings


def _print_settings(settings: Settings):
    print("Default Response Settings")
    print("=" * 60)
    print(f"Enabled: {settings.default_response_enabled}")
    print(f"Sound Clips: {settings.default_response_sound_clip_ids}")
    print(f"Next Index: {settings.default_response_index}")
    print(f"Delay: {settings.default_response_delay_ms} ms")
    print("=" * 60)


def show_settings(config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    try:
        with open_repository(config_path) as repository:
            settings = repository.get_settings()
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error loading settings: {e}")
        return False

    _print_settings(settings)
    return True


def set_settings(
    enabled: Optional[bool] = None,
    clip_ids: Optional[Sequence[int]] = None,
    delay_ms: Optional[int] = None,
    config_path: str = DEFAULT_CONFIG_PATH,
) -> bool:
    """Apply a partial update to the settings.

    Args:
        enabled: Turn the default response on or off
        clip_ids: Replace the default response clip list (may be empty)
        delay_ms: Delay before the default response plays
        config_path: Path to configuration file
    """
    try:
        with open_repository(config_path) as repository:
            settings = repository.update_settings(
                default_response_enabled=enabled,
                default_response_sound_clip_ids=list(clip_ids) if clip_ids is not None else None,
                default_response_delay_ms=delay_ms,
            )
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error updating settings: {e}")
        return False

    print("✓ Settings updated")
    _print_settings(settings)
    return True


def next_default(config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Print the next default response clip and advance the rotation."""
    try:
        with open_repository(config_path) as repository:
            clip_id = repository.next_default_response()
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error advancing default response: {e}")
        return False

    if clip_id is None:
        print("Default response is disabled or has no clips")
    else:
        print(f"Next default response clip: {clip_id}")
    return True
