"""Tests for configuration loading and repository construction."""

import pytest
import yaml

from soundboard.config import Config, build_repository, load_config
from soundboard.storage import MemoryEntityStore, SqliteEntityStore


@pytest.fixture()
def write_config(tmp_path):
    def _write(data):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(data))
        return str(path)

    return _write


class TestConfig:
    def test_dot_notation_and_properties(self, write_config):
        config = load_config(
            write_config(
                {
                    "matching": {"cooldown_ms": 500, "volume": 0.5},
                    "speech": {"constrained_platform": True, "max_restart_failures": 5},
                    "profiles": {"max_size_mb": 2},
                    "openai": {"api_key": "sk-test"},
                }
            )
        )

        assert config.get("matching.cooldown_ms") == 500
        assert config.cooldown_ms == 500
        assert config.playback_volume == 0.5
        assert config.constrained_platform is True
        assert config.max_restart_failures == 5
        assert config.max_profile_bytes == 2 * 1024 * 1024
        assert config.openai_api_key == "sk-test"

    def test_defaults(self, write_config):
        config = Config(write_config({}))

        assert config.get("missing.key", "fallback") == "fallback"
        assert config.storage_backend == "sqlite"
        assert config.cooldown_ms == 2000
        assert config.playback_volume == 0.75
        assert config.max_upload_bytes == 10 * 1024 * 1024
        assert config.speech_model == "whisper-1"
        assert config.audio_device is None
        assert config.log_level == "INFO"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert Config(str(path)).config == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config(str(tmp_path / "nope.yaml"))

    def test_unknown_backend(self, write_config):
        config = Config(write_config({"storage": {"backend": "redis"}}))
        with pytest.raises(ValueError):
            config.storage_backend


class TestBuildRepository:
    def test_memory_backend(self, write_config, tmp_path):
        config = Config(
            write_config({"storage": {"backend": "memory", "uploads_dir": str(tmp_path / "up")}})
        )
        repo = build_repository(config)
        try:
            assert isinstance(repo.store, MemoryEntityStore)
            clip = repo.create_clip(b"x", original_filename="x.ogg")
            assert (tmp_path / "up" / clip.filename).exists()
        finally:
            repo.close()

    def test_sqlite_backend(self, write_config, tmp_path):
        db = tmp_path / "data" / "soundboard.db"
        config = Config(
            write_config(
                {
                    "storage": {
                        "backend": "sqlite",
                        "database": str(db),
                        "uploads_dir": str(tmp_path / "up"),
                        "max_upload_mb": 1,
                    }
                }
            )
        )
        repo = build_repository(config)
        try:
            assert isinstance(repo.store, SqliteEntityStore)
            assert repo.max_upload_bytes == 1024 * 1024
            assert db.exists()
        finally:
            repo.close()
