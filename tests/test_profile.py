"""Tests for profile export/import and the profile library."""

import base64

import pytest

from soundboard.errors import (
    InvalidProfileError,
    ProfileNotFoundError,
    ProfileTooLargeError,
    ValidationError,
)
from soundboard.profile import (
    PROFILE_VERSION,
    ProfileLibrary,
    ProfileSerializer,
    check_size,
    from_json,
    sanitize_name,
    to_json,
)
from soundboard.storage import (
    DirectoryAudioStore,
    MemoryAudioStore,
    MemoryEntityStore,
    Repository,
)


@pytest.fixture()
def other_repository():
    repo = Repository(MemoryEntityStore(), MemoryAudioStore())
    yield repo
    repo.close()


@pytest.fixture()
def populated(repository, make_clip):
    ding = make_clip("Ding", b"ding-audio")
    huh = make_clip("Huh", b"huh-audio")
    repository.create_trigger("hi", [ding.id], case_sensitive=True)
    repository.update_settings(
        default_response_enabled=True,
        default_response_sound_clip_ids=[huh.id],
        default_response_delay_ms=1500,
    )
    return repository


class TestExport:
    def test_document_shape(self, populated):
        profile = ProfileSerializer(populated).export()

        assert profile["version"] == PROFILE_VERSION
        assert "exportDate" in profile
        assert [clip["name"] for clip in profile["soundClips"]] == ["Ding", "Huh"]
        assert base64.b64decode(profile["soundClips"][0]["audioData"]) == b"ding-audio"
        assert profile["triggerWords"] == [
            {"phrase": "hi", "soundClipNames": ["Ding"], "caseSensitive": True, "enabled": True}
        ]
        assert profile["settings"] == {
            "defaultResponseEnabled": True,
            "defaultResponseSoundClipNames": ["Huh"],
            "defaultResponseDelay": 1500,
        }

    def test_unreadable_audio_is_skipped(self, populated):
        ding = populated.list_clips()[0]
        populated.audio.delete(ding.filename)

        profile = ProfileSerializer(populated).export()

        assert [clip["name"] for clip in profile["soundClips"]] == ["Huh"]

    def test_invalid_storage_key_is_skipped(self, tmp_path):
        repo = Repository(MemoryEntityStore(), DirectoryAudioStore(tmp_path / "uploads"))
        repo.create_clip(b"ok-audio", original_filename="ok.wav", name="Ok")
        repo.store.insert_clip(
            name="Broken", filename="..", format="wav", duration=0.0, size=3, url="/uploads/.."
        )

        profile = ProfileSerializer(repo).export()

        assert [clip["name"] for clip in profile["soundClips"]] == ["Ok"]
        repo.close()


class TestImport:
    def test_round_trip_by_name(self, populated, other_repository):
        stale = other_repository.create_clip(b"old", original_filename="old.wav")
        text = to_json(ProfileSerializer(populated).export())

        report = ProfileSerializer(other_repository).import_profile(from_json(text))

        assert report.clips_imported == 2
        assert report.triggers_imported == 1
        assert report.skipped == []

        clips = {clip.name: clip for clip in other_repository.list_clips()}
        assert set(clips) == {"Ding", "Huh"}
        assert not other_repository.audio.exists(stale.filename)
        assert other_repository.read_clip_audio(clips["Ding"]) == b"ding-audio"

        trigger = other_repository.list_triggers()[0]
        assert trigger.phrase == "hi"
        assert trigger.sound_clip_ids == [clips["Ding"].id]
        assert trigger.case_sensitive is True
        assert trigger.current_index == 0

        settings = other_repository.get_settings()
        assert settings.default_response_enabled is True
        assert settings.default_response_sound_clip_ids == [clips["Huh"].id]
        assert settings.default_response_delay_ms == 1500
        assert settings.default_response_index == 0

    def test_import_is_destructive(self, populated):
        profile = {
            "version": PROFILE_VERSION,
            "soundClips": [],
            "triggerWords": [],
            "settings": {},
        }

        ProfileSerializer(populated).import_profile(profile)

        assert populated.list_clips() == []
        assert populated.list_triggers() == []
        settings = populated.get_settings()
        assert settings.default_response_enabled is False
        assert settings.default_response_delay_ms == 2000

    def test_missing_keys_rejected_before_clearing(self, populated):
        with pytest.raises(InvalidProfileError):
            ProfileSerializer(populated).import_profile({"version": PROFILE_VERSION})

        assert len(populated.list_clips()) == 2

    def test_legacy_single_clip_name(self, other_repository):
        profile = {
            "version": PROFILE_VERSION,
            "soundClips": [
                {
                    "name": "Ding",
                    "filename": "ding.wav",
                    "format": "wav",
                    "audioData": base64.b64encode(b"ding").decode(),
                }
            ],
            "triggerWords": [{"phrase": "yo", "soundClipName": "Ding"}],
            "settings": {"defaultResponseDelay": 0},
        }

        ProfileSerializer(other_repository).import_profile(profile)

        ding = other_repository.list_clips()[0]
        trigger = other_repository.list_triggers()[0]
        assert trigger.sound_clip_ids == [ding.id]
        assert trigger.enabled is True
        assert trigger.case_sensitive is False
        assert other_repository.get_settings().default_response_delay_ms == 0

    def test_bad_items_are_skipped(self, other_repository):
        profile = {
            "version": PROFILE_VERSION,
            "soundClips": [
                {"name": "Broken", "format": "wav", "audioData": "***not base64***"},
                {"name": "Ok", "format": "wav", "audioData": base64.b64encode(b"ok").decode()},
            ],
            "triggerWords": [
                {"phrase": "lost", "soundClipNames": ["Broken"]},
                {"phrase": "found", "soundClipNames": ["Broken", "Ok"]},
            ],
            "settings": {"defaultResponseSoundClipNames": ["Broken"]},
        }

        report = ProfileSerializer(other_repository).import_profile(profile)

        assert report.clips_imported == 1
        assert report.triggers_imported == 1
        assert "sound clip Broken" in report.skipped
        assert "trigger lost" in report.skipped
        ok = other_repository.list_clips()[0]
        assert other_repository.list_triggers()[0].sound_clip_ids == [ok.id]
        assert other_repository.get_settings().default_response_sound_clip_ids == []

    @pytest.mark.parametrize(
        "bad_fields",
        [
            {"name": 5},
            {"name": "Bad", "format": 7},
            {"name": "Bad", "duration": "abc"},
        ],
    )
    def test_badly_typed_clip_is_skipped(self, other_repository, bad_fields):
        bad = {"format": "wav", "audioData": base64.b64encode(b"bad").decode()}
        bad.update(bad_fields)
        profile = {
            "version": PROFILE_VERSION,
            "soundClips": [
                bad,
                {"name": "Ok", "format": "wav", "audioData": base64.b64encode(b"ok").decode()},
            ],
            "triggerWords": [{"phrase": "found", "soundClipNames": ["Ok"]}],
            "settings": {},
        }

        report = ProfileSerializer(other_repository).import_profile(profile)

        assert report.clips_imported == 1
        assert report.triggers_imported == 1
        assert f"sound clip {bad_fields['name']}" in report.skipped
        assert [clip.name for clip in other_repository.list_clips()] == ["Ok"]


class TestJson:
    def test_invalid_json(self):
        with pytest.raises(InvalidProfileError):
            from_json("{not json")

    def test_non_object(self):
        with pytest.raises(InvalidProfileError):
            from_json("[]")

    def test_size_cap(self):
        assert check_size("x" * 10, max_bytes=10) == 10
        assert check_size({"version": "1.0"}) == len(to_json({"version": "1.0"}))
        with pytest.raises(ProfileTooLargeError):
            check_size("x" * 11, max_bytes=10)


class TestProfileLibrary:
    def test_save_list_load_delete(self, tmp_path, populated):
        library = ProfileLibrary(tmp_path / "profiles")
        profile = ProfileSerializer(populated).export()

        path = library.save(profile, "party night")

        assert path.name == "party_night.json"
        assert library.list() == ["party_night"]
        assert library.load("party night")["triggerWords"] == profile["triggerWords"]
        assert library.delete("party night") is True
        assert library.list() == []
        assert library.delete("party night") is False

    def test_oversized_profile_not_written(self, tmp_path, populated):
        library = ProfileLibrary(tmp_path, max_bytes=100)

        with pytest.raises(ProfileTooLargeError):
            library.save(ProfileSerializer(populated).export(), "big")

        assert not (tmp_path / "big.json").exists()

    def test_load_missing(self, tmp_path):
        with pytest.raises(ProfileNotFoundError):
            ProfileLibrary(tmp_path).load("nope")

    def test_list_without_directory(self, tmp_path):
        assert ProfileLibrary(tmp_path / "missing").list() == []

    def test_sanitize_name(self):
        assert sanitize_name("../etc/passwd") == "_etc_passwd"
        assert sanitize_name("mix.json") == "mix"
        with pytest.raises(ValidationError):
            sanitize_name("..")
