"""Manage trigger words."""

from typing import Optional, Sequence

from soundboard.config import DEFAULT_CONFIG_PATH, open_repository
from soundboard.errors import SoundboardError
from soundboard.models import Trigger


def _describe(trigger: Trigger) -> str:
    flags = []
    if trigger.case_sensitive:
        flags.append("case-sensitive")
    if not trigger.enabled:
        flags.append("disabled")
    suffix = f"  [{', '.join(flags)}]" if flags else ""
    return (
        f"  [{trigger.id:3d}] '{trigger.phrase}' -> clips {trigger.sound_clip_ids} "
        f"(next #{trigger.current_index}){suffix}"
    )


def list_triggers(config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Print every trigger word."""
    try:
        with open_repository(config_path) as repository:
            triggers = repository.list_triggers()
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error loading trigger words: {e}")
        return False

    print(f"Trigger words ({len(triggers)})")
    print("=" * 60)
    for trigger in triggers:
        print(_describe(trigger))
    return True


def add_trigger(
    phrase: str,
    clip_ids: Sequence[int],
    case_sensitive: bool = False,
    disabled: bool = False,
    config_path: str = DEFAULT_CONFIG_PATH,
) -> bool:
    """Create a trigger word bound to one or more clips."""
    try:
        with open_repository(config_path) as repository:
            trigger = repository.create_trigger(
                phrase=phrase,
                sound_clip_ids=list(clip_ids),
                case_sensitive=case_sensitive,
                enabled=not disabled,
            )
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error adding trigger word: {e}")
        return False

    print("✓ Added trigger")
    print(_describe(trigger))
    return True


def update_trigger(
    trigger_id: int,
    phrase: Optional[str] = None,
    clip_ids: Optional[Sequence[int]] = None,
    case_sensitive: Optional[bool] = None,
    enabled: Optional[bool] = None,
    config_path: str = DEFAULT_CONFIG_PATH,
) -> bool:
    """Apply a partial update to a trigger word."""
    try:
        with open_repository(config_path) as repository:
            trigger = repository.update_trigger(
                trigger_id,
                phrase=phrase,
                sound_clip_ids=list(clip_ids) if clip_ids is not None else None,
                case_sensitive=case_sensitive,
                enabled=enabled,
            )
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error updating trigger word: {e}")
        return False

    if trigger is None:
        print(f"Trigger word {trigger_id} not found")
        return False
    print("✓ Updated trigger")
    print(_describe(trigger))
    return True


def delete_trigger(trigger_id: int, config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    try:
        with open_repository(config_path) as repository:
            deleted = repository.delete_trigger(trigger_id)
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error deleting trigger word: {e}")
        return False

    if not deleted:
        print(f"Trigger word {trigger_id} not found")
        return False
    print(f"✓ Deleted trigger {trigger_id}")
    return True


def next_clip(trigger_id: int, config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Print the trigger's next clip and advance its rotation."""
    try:
        with open_repository(config_path) as repository:
            if repository.get_trigger(trigger_id) is None:
                print(f"Trigger word {trigger_id} not found")
                return False
            clip_id = repository.next_clip_for_trigger(trigger_id)
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error advancing trigger word: {e}")
        return False

    print(f"Next clip: {clip_id}" if clip_id is not None else "No clip available")
    return True
