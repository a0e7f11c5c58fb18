"""Configuration management for the soundboard."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

import yaml

from .storage import (
    DirectoryAudioStore,
    MemoryEntityStore,
    Repository,
    SqliteEntityStore,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/config.yaml"
STORAGE_BACKENDS = ("memory", "sqlite")


class Config:
    """Configuration manager for the soundboard."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        """Initialize configuration from YAML file.

        Args:
            config_path: Path to the configuration YAML file
        """
        self.config_path = Path(config_path)
        self.config: dict[str, Any] = {}
        self.load()

    def load(self):
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}\n"
                "Please create config/config.yaml from config/config.example.yaml."
            )

        with open(self.config_path, "r") as f:
            self.config = yaml.safe_load(f) or {}

        logger.info(f"Configuration loaded from {self.config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Args:
            key: Configuration key (supports dot notation, e.g., 'audio.sample_rate')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        value = self.config

        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    # Storage

    @property
    def storage_backend(self) -> str:
        """Get entity store backend ("memory" or "sqlite")."""
        backend = str(self.get("storage.backend", "sqlite")).lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend '{backend}' (expected one of {', '.join(STORAGE_BACKENDS)})"
            )
        return backend

    @property
    def database_path(self) -> str:
        return self.get("storage.database", "data/soundboard.db")

    @property
    def uploads_dir(self) -> str:
        return self.get("storage.uploads_dir", "data/uploads")

    @property
    def profiles_dir(self) -> str:
        return self.get("storage.profiles_dir", "data/profiles")

    @property
    def max_upload_bytes(self) -> int:
        """Get clip upload size limit in bytes."""
        return int(float(self.get("storage.max_upload_mb", 10)) * 1024 * 1024)

    @property
    def max_profile_bytes(self) -> int:
        """Get profile document size limit in bytes."""
        return int(float(self.get("profiles.max_size_mb", 10)) * 1024 * 1024)

    # Matching

    @property
    def cooldown_ms(self) -> int:
        return int(self.get("matching.cooldown_ms", 2000))

    @property
    def playback_volume(self) -> float:
        return float(self.get("matching.volume", 0.75))

    # Speech

    @property
    def constrained_platform(self) -> bool:
        """Whether the recognizer runs on a platform that needs slower restarts."""
        return bool(self.get("speech.constrained_platform", False))

    @property
    def max_restart_failures(self) -> int:
        return int(self.get("speech.max_restart_failures", 3))

    @property
    def speech_language(self) -> str | None:
        return self.get("speech.language", "en")

    @property
    def speech_model(self) -> str:
        return self.get("speech.model", "whisper-1")

    @property
    def silence_timeout(self) -> float:
        """Seconds without speech before the recognizer ends with no-speech."""
        return float(self.get("speech.silence_timeout", 8.0))

    # Audio

    @property
    def openai_api_key(self) -> str:
        """Get OpenAI API key."""
        return self.get("openai.api_key", "")

    @property
    def audio_device(self) -> str | None:
        """Get input device name (None for default)."""
        return self.get("audio.device", None)

    @property
    def audio_sample_rate(self) -> int:
        """Get audio sample rate."""
        return self.get("audio.sample_rate", 16000)

    @property
    def audio_output_device(self) -> str | None:
        """Get preferred output device name (None for default)."""
        return self.get("audio.output_device", None)

    @property
    def vad_aggressiveness(self) -> int:
        """Get VAD aggressiveness level (0-3)."""
        return self.get("audio.vad_aggressiveness", 2)

    @property
    def log_level(self) -> str:
        return str(self.get("logging.level", "INFO")).upper()


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Config:
    """Load configuration from file.

    Args:
        config_path: Path to configuration file

    Returns:
        Config instance
    """
    return Config(config_path)


def build_repository(config: Config) -> Repository:
    """Create a repository backed by the configured stores.

    The caller owns the repository and must close it.
    """
    if config.storage_backend == "memory":
        store = MemoryEntityStore()
    else:
        Path(config.database_path).parent.mkdir(parents=True, exist_ok=True)
        store = SqliteEntityStore(config.database_path)

    audio_store = DirectoryAudioStore(config.uploads_dir)
    logger.debug(
        f"Repository using {config.storage_backend} store, uploads in {config.uploads_dir}"
    )
    return Repository(store, audio_store, max_upload_bytes=config.max_upload_bytes)


@contextmanager
def open_repository(config_path: str = DEFAULT_CONFIG_PATH) -> Iterator[Repository]:
    """Load configuration and yield a repository, closing it afterwards."""
    repository = build_repository(load_config(config_path))
    try:
        yield repository
    finally:
        repository.close()
