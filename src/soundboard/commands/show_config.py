"""Display current configuration."""

from soundboard.config import DEFAULT_CONFIG_PATH


def main(config_path: str = DEFAULT_CONFIG_PATH) -> bool:
    """Display current configuration.

    Returns:
        True if successful, False otherwise
    """
    from soundboard.config import Config

    try:
        config = Config(config_path)

        print("Current Configuration")
        print("=" * 60)
        print(f"Storage Backend: {config.storage_backend}")
        if config.storage_backend == "sqlite":
            print(f"Database: {config.database_path}")
        print(f"Uploads Directory: {config.uploads_dir}")
        print(f"Profiles Directory: {config.profiles_dir}")
        print(f"Max Upload Size: {config.max_upload_bytes // (1024 * 1024)} MB")
        print(f"Max Profile Size: {config.max_profile_bytes // (1024 * 1024)} MB")
        print(f"Trigger Cooldown: {config.cooldown_ms} ms")
        print(f"Playback Volume: {config.playback_volume}")
        print(f"Speech Model: {config.speech_model} ({config.speech_language or 'auto'})")
        print(f"Constrained Platform: {config.constrained_platform}")
        print(f"Max Restart Failures: {config.max_restart_failures}")
        print(f"Input Device: {config.audio_device or 'default'}")
        print(f"Output Device: {config.audio_output_device or 'default'}")
        print(f"Sample Rate: {config.audio_sample_rate} Hz")
        print(f"VAD Aggressiveness: {config.vad_aggressiveness}")

        # Mask API key
        if config.openai_api_key:
            masked_key = config.openai_api_key[:8] + "*" * 8 + config.openai_api_key[-4:]
            print(f"OpenAI API Key: {masked_key}")
        else:
            print("OpenAI API Key: Not configured")

        print("=" * 60)
        return True

    except (OSError, ValueError) as e:
        print(f"Error loading configuration: {e}")
        return False
