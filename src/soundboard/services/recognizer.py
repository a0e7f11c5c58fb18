"""Whisper-backed transcription primitive."""

import asyncio
import io
import logging
import time
import wave
from typing import Callable, Optional

import openai

from ..errors import ErrorKind, RecognitionError
from ..models import TranscriptEvent

logger = logging.getLogger(__name__)


class WhisperRecognizer:
    """Segments microphone audio into utterances and transcribes them.

    Frames are read from the open microphone; voice activity detection marks
    the start of an utterance and a run of silent frames its end. Each
    utterance is sent to the OpenAI transcription API and delivered as a final
    transcript. Like browser speech services, the recognizer gives up with a
    ``no-speech`` error after a period without voice activity and lets the
    session restart it.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "whisper-1",
        language: Optional[str] = "en",
        sample_rate: int = 16000,
        silence_frames: int = 15,  # ~1.2 seconds at 80ms per frame
        no_speech_timeout: float = 8.0,
        max_utterance_duration: float = 15.0,
        client: Optional[openai.OpenAI] = None,
    ):
        """Initialize recognizer.

        Args:
            api_key: OpenAI API key
            model: Transcription model name
            language: Spoken language hint (None to auto-detect)
            sample_rate: Sample rate of the microphone frames in Hz
            silence_frames: Number of silent frames that end an utterance
            no_speech_timeout: Seconds without speech before ending with no-speech
            max_utterance_duration: Utterances are cut at this length (seconds)
            client: Preconfigured OpenAI client
        """
        self.model = model
        self.language = language
        self.sample_rate = sample_rate
        self.silence_frames = silence_frames
        self.no_speech_timeout = no_speech_timeout
        self.max_utterance_duration = max_utterance_duration
        self.client = client or openai.OpenAI(api_key=api_key or None)

        logger.info(f"WhisperRecognizer initialized (model={model}, language={language})")

    async def run(self, audio, emit: Callable[[TranscriptEvent], None]) -> None:
        """Transcribe utterances until no speech is heard for a while."""
        frames: list[bytes] = []
        silent = 0
        utterance_start: Optional[float] = None
        last_activity = time.monotonic()

        while True:
            try:
                frame = await asyncio.to_thread(audio.read_frame, 0.2)
            except OSError as e:
                raise RecognitionError(ErrorKind.AUDIO_CAPTURE_FAILURE, str(e)) from e

            now = time.monotonic()
            if frame is None:
                if utterance_start is None and now - last_activity >= self.no_speech_timeout:
                    raise RecognitionError(ErrorKind.TRANSIENT_NO_SPEECH)
                continue

            speech = audio.is_speech(frame)
            if utterance_start is None:
                if not speech:
                    if now - last_activity >= self.no_speech_timeout:
                        raise RecognitionError(ErrorKind.TRANSIENT_NO_SPEECH)
                    continue
                utterance_start = now
                logger.debug("Voice activity started")

            frames.append(frame)
            silent = 0 if speech else silent + 1

            too_long = now - utterance_start >= self.max_utterance_duration
            if silent >= self.silence_frames or too_long:
                if too_long:
                    logger.warning(
                        f"Max utterance duration ({self.max_utterance_duration}s) reached"
                    )
                text = await asyncio.to_thread(self._transcribe, self._create_wav(frames))
                if text and text.strip():
                    emit(TranscriptEvent(text=text.strip(), is_final=True))
                frames = []
                silent = 0
                utterance_start = None
                last_activity = time.monotonic()

    def _create_wav(self, frames: list[bytes]) -> bytes:
        """Create WAV file data from PCM16 mono frames."""
        wav_buffer = io.BytesIO()
        with wave.open(wav_buffer, "wb") as wav_file:
            wav_file.setnchannels(1)  # Mono
            wav_file.setsampwidth(2)  # 16-bit
            wav_file.setframerate(self.sample_rate)
            wav_file.writeframes(b"".join(frames))
        return wav_buffer.getvalue()

    def _transcribe(self, audio_data: bytes) -> str:
        """Transcribe WAV audio, mapping API failures onto recognition errors."""
        audio_file = io.BytesIO(audio_data)
        audio_file.name = "utterance.wav"

        kwargs = {"model": self.model, "file": audio_file}
        if self.language:
            kwargs["language"] = self.language

        start_time = time.time()
        try:
            response = self.client.audio.transcriptions.create(**kwargs)
        except openai.APIConnectionError as e:
            raise RecognitionError(ErrorKind.NETWORK_ERROR, str(e)) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise RecognitionError(ErrorKind.UNSUPPORTED, f"service-not-allowed: {e}") from e
        except openai.BadRequestError as e:
            if "language" in str(e).lower():
                raise RecognitionError(ErrorKind.UNSUPPORTED, f"language-not-supported: {e}") from e
            raise RecognitionError(ErrorKind.ABORTED, str(e)) from e
        except openai.APIError as e:
            raise RecognitionError(ErrorKind.ABORTED, str(e)) from e

        logger.info(f"Transcription completed in {time.time() - start_time:.2f}s")
        return response.text
