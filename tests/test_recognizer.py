"""Tests for the Whisper recognizer with a mocked OpenAI client."""

import io
import time
import wave
from unittest.mock import Mock

import httpx
import openai
import pytest

from soundboard.errors import ErrorKind, RecognitionError
from soundboard.services.recognizer import WhisperRecognizer

SPEECH = b"\x10\x00" * 4
SILENCE = b"\x00\x00" * 4


class ScriptedAudio:
    """Audio handle that serves a fixed list of frames, then nothing."""

    def __init__(self, frames):
        self.frames = list(frames)

    def read_frame(self, timeout):
        if self.frames:
            frame = self.frames.pop(0)
            if isinstance(frame, Exception):
                raise frame
            return frame
        time.sleep(0.01)
        return None

    def is_speech(self, frame):
        return frame == SPEECH


@pytest.fixture()
def client():
    client = Mock()
    client.audio.transcriptions.create.return_value = Mock(text=" hello world ")
    return client


def _recognizer(client, **kwargs):
    options = {"silence_frames": 2, "no_speech_timeout": 0.05}
    options.update(kwargs)
    return WhisperRecognizer(client=client, **options)


def _request():
    return httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")


@pytest.mark.asyncio
async def test_transcribes_utterance_then_ends_with_no_speech(client):
    audio = ScriptedAudio([SPEECH, SPEECH, SILENCE, SILENCE])
    emitted = []

    with pytest.raises(RecognitionError) as exc_info:
        await _recognizer(client).run(audio, emitted.append)

    assert exc_info.value.kind is ErrorKind.TRANSIENT_NO_SPEECH
    assert [event.text for event in emitted] == ["hello world"]
    assert emitted[0].is_final is True

    kwargs = client.audio.transcriptions.create.call_args.kwargs
    assert kwargs["model"] == "whisper-1"
    assert kwargs["language"] == "en"
    assert kwargs["file"].name == "utterance.wav"


@pytest.mark.asyncio
async def test_blank_transcription_is_not_emitted(client):
    client.audio.transcriptions.create.return_value = Mock(text="   ")
    emitted = []

    with pytest.raises(RecognitionError):
        await _recognizer(client).run(ScriptedAudio([SPEECH, SILENCE, SILENCE]), emitted.append)

    assert emitted == []


@pytest.mark.asyncio
async def test_silence_only_ends_with_no_speech(client):
    with pytest.raises(RecognitionError) as exc_info:
        await _recognizer(client).run(ScriptedAudio([SILENCE] * 3), lambda event: None)

    assert exc_info.value.kind is ErrorKind.TRANSIENT_NO_SPEECH
    client.audio.transcriptions.create.assert_not_called()


@pytest.mark.asyncio
async def test_capture_failure(client):
    with pytest.raises(RecognitionError) as exc_info:
        await _recognizer(client).run(ScriptedAudio([OSError("stream closed")]), lambda e: None)

    assert exc_info.value.kind is ErrorKind.AUDIO_CAPTURE_FAILURE


@pytest.mark.parametrize(
    "error, kind",
    [
        (lambda: openai.APIConnectionError(request=_request()), ErrorKind.NETWORK_ERROR),
        (
            lambda: openai.AuthenticationError(
                "bad key", response=httpx.Response(401, request=_request()), body=None
            ),
            ErrorKind.UNSUPPORTED,
        ),
        (
            lambda: openai.BadRequestError(
                "Invalid language 'xx'", response=httpx.Response(400, request=_request()), body=None
            ),
            ErrorKind.UNSUPPORTED,
        ),
        (
            lambda: openai.InternalServerError(
                "oops", response=httpx.Response(500, request=_request()), body=None
            ),
            ErrorKind.ABORTED,
        ),
    ],
)
def test_api_errors_are_classified(client, error, kind):
    client.audio.transcriptions.create.side_effect = error()

    with pytest.raises(RecognitionError) as exc_info:
        _recognizer(client)._transcribe(b"RIFF")

    assert exc_info.value.kind is kind


def test_language_hint_is_optional(client):
    _recognizer(client, language=None)._transcribe(b"RIFF")

    assert "language" not in client.audio.transcriptions.create.call_args.kwargs


def test_wav_container(client):
    data = _recognizer(client, sample_rate=16000)._create_wav([SPEECH, SILENCE])

    with wave.open(io.BytesIO(data)) as wav_file:
        assert wav_file.getnchannels() == 1
        assert wav_file.getsampwidth() == 2
        assert wav_file.getframerate() == 16000
        assert wav_file.getnframes() == 8
