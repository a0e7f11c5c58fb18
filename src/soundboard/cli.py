"""Command-line interface for the soundboard."""

import argparse
import sys

from soundboard.config import DEFAULT_CONFIG_PATH


def _bool(value: str) -> bool:
    lowered = value.lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected true/false, got '{value}'")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="soundboard",
        description="Voice Soundboard - play sound clips when trigger words are spoken",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  soundboard run                                # Listen and play clips
  soundboard clips add airhorn.mp3 --name Horn  # Upload a clip
  soundboard triggers add "hello" 1 2           # Rotate clips 1 and 2 on "hello"
  soundboard settings set --enabled true --clips 3 --delay 1500
  soundboard profile export party.json          # Export everything to a file
  soundboard profile load party                 # Replace everything with a saved profile
        """,
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )

    # Create subparsers for commands
    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # Run command
    run_parser = subparsers.add_parser("run", help="Listen for trigger words and play clips")
    run_parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides config.yaml setting)",
    )

    # Config command
    subparsers.add_parser("config", help="Show current configuration")

    # List audio devices command
    subparsers.add_parser("list-audio-devices", help="List all available audio devices")

    # Clips
    clips_parser = subparsers.add_parser("clips", help="Manage sound clips")
    clips_sub = clips_parser.add_subparsers(dest="action", required=True)
    clips_sub.add_parser("list", help="List sound clips")
    clip_add = clips_sub.add_parser("add", help="Upload an MP3, WAV or OGG file")
    clip_add.add_argument("path", help="Audio file to upload")
    clip_add.add_argument("--name", help="Display name (default: file name)")
    clip_add.add_argument("--duration", type=float, default=0.0, help="Duration in seconds")
    clip_delete = clips_sub.add_parser("delete", help="Delete a clip and its references")
    clip_delete.add_argument("id", type=int)

    # Triggers
    triggers_parser = subparsers.add_parser("triggers", help="Manage trigger words")
    triggers_sub = triggers_parser.add_subparsers(dest="action", required=True)
    triggers_sub.add_parser("list", help="List trigger words")
    trigger_add = triggers_sub.add_parser("add", help="Add a trigger word")
    trigger_add.add_argument("phrase")
    trigger_add.add_argument("clip_ids", type=int, nargs="+", help="Clip ids to rotate through")
    trigger_add.add_argument("--case-sensitive", action="store_true")
    trigger_add.add_argument("--disabled", action="store_true")
    trigger_update = triggers_sub.add_parser("update", help="Update a trigger word")
    trigger_update.add_argument("id", type=int)
    trigger_update.add_argument("--phrase")
    trigger_update.add_argument("--clips", type=int, nargs="+", dest="clip_ids")
    trigger_update.add_argument("--case-sensitive", type=_bool, default=None)
    trigger_update.add_argument("--enabled", type=_bool, default=None)
    trigger_delete = triggers_sub.add_parser("delete", help="Delete a trigger word")
    trigger_delete.add_argument("id", type=int)
    trigger_next = triggers_sub.add_parser("next", help="Advance a trigger's rotation")
    trigger_next.add_argument("id", type=int)

    # Settings
    settings_parser = subparsers.add_parser("settings", help="Default response settings")
    settings_sub = settings_parser.add_subparsers(dest="action", required=True)
    settings_sub.add_parser("show", help="Show settings")
    settings_set = settings_sub.add_parser("set", help="Update settings")
    settings_set.add_argument("--enabled", type=_bool, default=None)
    settings_set.add_argument(
        "--clips", type=int, nargs="*", dest="clip_ids", help="Clip ids (none to clear)"
    )
    settings_set.add_argument("--delay", type=int, dest="delay_ms", help="Delay in milliseconds")
    settings_sub.add_parser("next-default", help="Advance the default response rotation")

    # Profiles
    profile_parser = subparsers.add_parser("profile", help="Export, import and save profiles")
    profile_sub = profile_parser.add_subparsers(dest="action", required=True)
    profile_export = profile_sub.add_parser("export", help="Export everything to a JSON file")
    profile_export.add_argument("path")
    profile_import = profile_sub.add_parser(
        "import", help="Replace everything with a JSON file (destructive)"
    )
    profile_import.add_argument("path")
    profile_save = profile_sub.add_parser("save", help="Save everything as a named profile")
    profile_save.add_argument("name")
    profile_sub.add_parser("list", help="List saved profiles")
    profile_load = profile_sub.add_parser(
        "load", help="Replace everything with a saved profile (destructive)"
    )
    profile_load.add_argument("name")
    profile_delete = profile_sub.add_parser("delete", help="Delete a saved profile")
    profile_delete.add_argument("name")

    return parser


def dispatch(args: argparse.Namespace) -> bool:
    """Route parsed arguments to the matching command."""
    if args.command == "run":
        from soundboard.commands.run import main as run_main

        return run_main(config_path=args.config, log_level=args.log_level)

    elif args.command == "config":
        from soundboard.commands.show_config import main

        return main(config_path=args.config)

    elif args.command == "list-audio-devices":
        from soundboard.commands.list_audio_devices import main

        return main()

    elif args.command == "clips":
        from soundboard.commands import clips

        if args.action == "list":
            return clips.list_clips(config_path=args.config)
        if args.action == "add":
            return clips.add_clip(
                args.path, name=args.name, duration=args.duration, config_path=args.config
            )
        return clips.delete_clip(args.id, config_path=args.config)

    elif args.command == "triggers":
        from soundboard.commands import triggers

        if args.action == "list":
            return triggers.list_triggers(config_path=args.config)
        if args.action == "add":
            return triggers.add_trigger(
                args.phrase,
                args.clip_ids,
                case_sensitive=args.case_sensitive,
                disabled=args.disabled,
                config_path=args.config,
            )
        if args.action == "update":
            return triggers.update_trigger(
                args.id,
                phrase=args.phrase,
                clip_ids=args.clip_ids,
                case_sensitive=args.case_sensitive,
                enabled=args.enabled,
                config_path=args.config,
            )
        if args.action == "delete":
            return triggers.delete_trigger(args.id, config_path=args.config)
        return triggers.next_clip(args.id, config_path=args.config)

    elif args.command == "settings":
        from soundboard.commands import settings

        if args.action == "show":
            return settings.show_settings(config_path=args.config)
        if args.action == "set":
            return settings.set_settings(
                enabled=args.enabled,
                clip_ids=args.clip_ids,
                delay_ms=args.delay_ms,
                config_path=args.config,
            )
        return settings.next_default(config_path=args.config)

    elif args.command == "profile":
        from soundboard.commands import profile

        if args.action == "export":
            return profile.export_profile(args.path, config_path=args.config)
        if args.action == "import":
            return profile.import_profile(args.path, config_path=args.config)
        if args.action == "save":
            return profile.save_profile(args.name, config_path=args.config)
        if args.action == "list":
            return profile.list_profiles(config_path=args.config)
        if args.action == "load":
            return profile.load_profile(args.name, config_path=args.config)
        return profile.delete_profile(args.name, config_path=args.config)

    return False


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    try:
        sys.exit(0 if dispatch(args) else 1)

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}")
        import traceback

        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
