"""Run the voice-activated soundboard."""

import asyncio
import logging
import signal
from typing import Optional

from soundboard.config import DEFAULT_CONFIG_PATH, Config, build_repository, load_config
from soundboard.consumers import PlaybackConsumer
from soundboard.core import EventBus, RetryPolicy, SpeechSession, TriggerMatchingEngine
from soundboard.errors import SessionError
from soundboard.services import State
from soundboard.storage import Repository

logger = logging.getLogger(__name__)


def main(config_path: str = DEFAULT_CONFIG_PATH, log_level: Optional[str] = None) -> bool:
    """Run the soundboard until interrupted or the session fails.

    Args:
        config_path: Path to configuration file
        log_level: Logging level (overrides the config file setting)

    Returns:
        True if the session ended normally, False otherwise
    """
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Failed to load configuration: {e}")
        return False

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, (log_level or config.log_level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Hardware-backed modules need the audio extra
    from soundboard.core.speaker_service import SpeakerService

    logger.info("Starting soundboard...")

    repository = build_repository(config)
    speaker = SpeakerService(preferred_device_name=config.audio_output_device)

    print("=" * 70)
    print("VOICE SOUNDBOARD")
    print("=" * 70)
    print(f"  {len(repository.list_clips())} clip(s), {len(repository.list_triggers())} trigger(s)")
    print("  Press Ctrl+C to stop")
    print("=" * 70)
    print()

    try:
        speaker.start()
        return asyncio.run(_serve(config, repository, speaker))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return True
    finally:
        logger.info("Cleaning up...")
        speaker.cleanup()
        repository.close()
        print("\n✓ Soundboard stopped")


async def _serve(config: Config, repository: Repository, speaker) -> bool:
    from soundboard.core.audio_handler import MicrophoneInput
    from soundboard.services.recognizer import WhisperRecognizer

    event_bus = EventBus()
    engine = TriggerMatchingEngine(
        repository,
        PlaybackConsumer(repository, speaker),
        event_bus=event_bus,
        cooldown_ms=config.cooldown_ms,
        volume=config.playback_volume,
    )
    session = SpeechSession(
        MicrophoneInput(
            device_name=config.audio_device,
            sample_rate=config.audio_sample_rate,
            vad_aggressiveness=config.vad_aggressiveness,
        ),
        WhisperRecognizer(
            api_key=config.openai_api_key,
            model=config.speech_model,
            language=config.speech_language,
            sample_rate=config.audio_sample_rate,
            no_speech_timeout=config.silence_timeout,
        ),
        engine,
        event_bus=event_bus,
        retry_policy=RetryPolicy.for_platform(
            constrained=config.constrained_platform,
            max_failures=config.max_restart_failures,
        ),
    )

    stopped = asyncio.Event()

    def on_state(event):
        if event.new_state == State.IDLE.name:
            stopped.set()

    event_bus.subscribe("session_state", on_state)
    event_bus.subscribe("transcript", lambda event: print(f"  heard: {event.text}"))
    event_bus.subscribe(
        "trigger_matched",
        lambda event: print(f"  ♪ '{event.phrase}' -> clip {event.clip_id}"),
    )
    event_bus.subscribe(
        "default_response",
        lambda event: print(f"  ♪ default response -> clip {event.clip_id}"),
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stopped.set)

    try:
        await session.start()
    except SessionError as e:
        print(f"\nCould not start listening: {e.message}")
        return False

    print("✓ Listening for trigger words...")
    await stopped.wait()

    error = session.state.last_error
    await session.stop()
    if error is not None:
        print(f"\nListening stopped: {error}")
        return False
    return True
