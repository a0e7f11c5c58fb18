"""Tests for audio level metering and error classification."""

import numpy as np

from soundboard.core.metering import FLOOR_DB, level_db
from soundboard.errors import (
    ERROR_MESSAGES,
    CaptureError,
    DeviceNotFound,
    ErrorKind,
    RecognitionError,
)


def _pcm16(samples):
    return (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2").tobytes()


class TestLevelDb:
    def test_silence_is_floor(self):
        assert level_db(_pcm16(np.zeros(1280))) == FLOOR_DB

    def test_empty_frame_is_floor(self):
        assert level_db(b"") == FLOOR_DB

    def test_noise_is_above_floor(self):
        noise = np.random.default_rng(0).normal(0.0, 0.3, 1280)
        level = level_db(_pcm16(noise))
        assert FLOOR_DB < level <= 0.0

    def test_louder_input_reads_higher(self):
        rng = np.random.default_rng(1)
        quiet = level_db(_pcm16(rng.normal(0.0, 0.01, 1280)))
        loud = level_db(_pcm16(rng.normal(0.0, 0.5, 1280)))
        assert loud > quiet

    def test_short_frame_is_padded(self):
        noise = np.random.default_rng(2).normal(0.0, 0.3, 100)
        assert FLOOR_DB < level_db(_pcm16(noise)) <= 0.0


class TestErrorKinds:
    def test_transient_kinds(self):
        assert ErrorKind.TRANSIENT_NO_SPEECH.is_transient
        assert ErrorKind.ABORTED.is_transient
        assert not ErrorKind.NETWORK_ERROR.is_transient
        assert not ErrorKind.PERMISSION_DENIED.is_transient

    def test_every_kind_has_a_message(self):
        assert set(ERROR_MESSAGES) == set(ErrorKind)

    def test_session_error_defaults(self):
        error = DeviceNotFound()
        assert error.kind is ErrorKind.NO_MICROPHONE
        assert error.message == ERROR_MESSAGES[ErrorKind.NO_MICROPHONE]

    def test_capture_error_takes_kind(self):
        error = CaptureError(kind=ErrorKind.NETWORK_ERROR)
        assert error.kind is ErrorKind.NETWORK_ERROR
        assert str(error) == ERROR_MESSAGES[ErrorKind.NETWORK_ERROR]

    def test_recognition_error_message(self):
        assert str(RecognitionError(ErrorKind.ABORTED, "reset")) == "aborted: reset"
