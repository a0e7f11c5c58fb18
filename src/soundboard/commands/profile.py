"""Export, import and manage saved profiles."""

from soundboard.config import (
    DEFAULT_CONFIG_PATH,
    build_repository,
    load_config,
    open_repository,
)
from soundboard.errors import SoundboardError
from soundboard.profile import (
    ImportReport,
    ProfileLibrary,
    ProfileSerializer,
    load_profile_file,
    save_profile_file,
)


def _print_report(report: ImportReport):
    print(f"✓ Imported {report.clips_imported} clip(s), {report.triggers_imported} trigger(s)")
    for item in report.skipped:
        print(f"  skipped: {item}")


def export_profile(path: str, config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Write the current clips, triggers and settings to a profile file."""
    try:
        config = load_config(config_path)
        repository = build_repository(config)
        try:
            profile = ProfileSerializer(repository).export()
        finally:
            repository.close()
        size = save_profile_file(profile, path, config.max_profile_bytes)
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error exporting profile: {e}")
        return False

    print(f"✓ Exported profile to {path} ({size / 1024:.1f} KB)")
    return True


def import_profile(path: str, config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Replace all clips, triggers and settings with a profile file."""
    try:
        profile = load_profile_file(path)
        with open_repository(config_path) as repository:
            report = ProfileSerializer(repository).import_profile(profile)
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error importing profile: {e}")
        return False

    _print_report(report)
    return True


def save_profile(name: str, config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Save the current state under a name in the profile library."""
    try:
        config = load_config(config_path)
        repository = build_repository(config)
        try:
            profile = ProfileSerializer(repository).export()
        finally:
            repository.close()
        path = ProfileLibrary(config.profiles_dir, config.max_profile_bytes).save(profile, name)
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error saving profile: {e}")
        return False

    print(f"✓ Saved profile '{name}' to {path}")
    return True


def list_profiles(config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    try:
        config = load_config(config_path)
        names = ProfileLibrary(config.profiles_dir, config.max_profile_bytes).list()
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error listing profiles: {e}")
        return False

    print(f"Saved profiles ({len(names)})")
    print("=" * 60)
    for name in names:
        print(f"  {name}")
    return True


def load_profile(name: str, config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Replace the current state with a profile from the library."""
    try:
        config = load_config(config_path)
        profile = ProfileLibrary(config.profiles_dir, config.max_profile_bytes).load(name)
        repository = build_repository(config)
        try:
            report = ProfileSerializer(repository).import_profile(profile)
        finally:
            repository.close()
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error loading profile: {e}")
        return False

    _print_report(report)
    return True


def delete_profile(name: str, config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    try:
        config = load_config(config_path)
        deleted = ProfileLibrary(config.profiles_dir, config.max_profile_bytes).delete(name)
    except (OSError, ValueError, SoundboardError) as e:
        print(f"Error deleting profile: {e}")
        return False

    if not deleted:
        print(f"Profile '{name}' not found")
        return False
    print(f"✓ Deleted profile '{name}'")
    return True
