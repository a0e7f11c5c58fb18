"""Manage uploaded sound clips."""

from pathlib import Path
from typing import Optional

from soundboard.config import DEFAULT_CONFIG_PATH, open_repository
from soundboard.errors import SoundboardError


def list_clips(config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Print every sound clip.

    Returns:
        True if successful, False otherwise
    """
    try:
        with open_repository(config_path) as repository:
            clips = repository.list_clips()
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error loading sound clips: {e}")
        return False

    print(f"Sound clips ({len(clips)})")
    print("=" * 60)
    for clip in clips:
        print(
            f"  [{clip.id:3d}] {clip.name}  ({clip.format}, {clip.size} bytes, "
            f"{clip.duration:.1f}s)  {clip.url}"
        )
    return True


def add_clip(
    path: str,
    name: Optional[str] = None,
    duration: float = 0.0,
    config_path: str = DEFAULT_CONFIG_PATH,
) -> bool:
    """Upload an audio file as a new clip.

    Args:
        path: MP3, WAV or OGG file to upload
        name: Display name (defaults to the file name without extension)
        duration: Clip duration in seconds
        config_path: Path to configuration file
    """
    source = Path(path)
    try:
        data = source.read_bytes()
        with open_repository(config_path) as repository:
            clip = repository.create_clip(
                data, original_filename=source.name, name=name, duration=duration
            )
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error adding sound clip: {e}")
        return False

    print(f"✓ Added clip {clip.id} '{clip.name}' as {clip.filename}")
    return True


def delete_clip(clip_id: int, config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Delete a clip along with every reference to it."""
    try:
        with open_repository(config_path) as repository:
            deleted = repository.delete_clip(clip_id)
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error deleting sound clip: {e}")
        return False

    if not deleted:
        print(f"Sound clip {clip_id} not found")
        return False
    print(f"✓ Deleted clip {clip_id}")
    return True
