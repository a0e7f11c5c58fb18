"""Microphone capture with level metering and voice activity detection."""

import errno
import logging
import queue
import weakref
from typing import Optional

import pyaudio
import webrtcvad

from ..errors import AudioInitError, DeviceNotFound, MicrophoneDenied
from ..models import IDLE_LEVEL_DB
from .metering import level_db

logger = logging.getLogger(__name__)


def _release(stream, audio):
    """Close a PyAudio stream and terminate its PyAudio instance."""
    try:
        if stream.is_active():
            stream.stop_stream()
        stream.close()
    except OSError as e:
        logger.warning(f"Error closing audio stream: {e}")
    finally:
        audio.terminate()
        logger.info("Audio stream stopped")


class MicrophoneHandle:
    """An open input stream.

    PyAudio delivers frames on a background thread; each frame is metered and
    queued for the recognizer. The stream is released exactly once, by
    ``close()`` or, failing that, when the handle is collected or the
    interpreter exits.
    """

    def __init__(
        self,
        audio: pyaudio.PyAudio,
        device_index: int,
        sample_rate: int,
        chunk_size: int,
        vad_aggressiveness: int,
    ):
        self.sample_rate = sample_rate
        self.vad = webrtcvad.Vad(vad_aggressiveness)
        self.frames: queue.Queue = queue.Queue(maxsize=100)
        self._level = IDLE_LEVEL_DB

        self.stream = audio.open(
            format=pyaudio.paInt16,
            channels=1,
            rate=sample_rate,
            input=True,
            input_device_index=device_index,
            frames_per_buffer=chunk_size,
            stream_callback=self._audio_callback,
        )
        self._finalizer = weakref.finalize(self, _release, self.stream, audio)
        self.stream.start_stream()
        logger.info(f"Audio stream started on device index {device_index} (callback mode)")

    def _audio_callback(self, in_data, frame_count, time_info, status):
        """Audio callback - called by PyAudio in background thread."""
        if status:
            logger.warning(f"Audio callback status: {status}")

        self._level = level_db(in_data)
        try:
            self.frames.put_nowait(in_data)
        except queue.Full:
            # Recognizer fell behind; drop the oldest frame
            try:
                self.frames.get_nowait()
                self.frames.put_nowait(in_data)
            except (queue.Empty, queue.Full):
                pass

        return (None, pyaudio.paContinue)

    def level_db(self) -> float:
        return self._level

    def read_frame(self, timeout: float = 0.2) -> Optional[bytes]:
        """Read the next captured frame.

        Returns:
            PCM16 mono frame, or None if none arrived within ``timeout``

        Raises:
            OSError: If the stream is closed or stopped delivering audio
        """
        if not self._finalizer.alive or not self.stream.is_active():
            raise OSError("Audio stream is not active")
        try:
            return self.frames.get(timeout=timeout)
        except queue.Empty:
            return None

    def is_speech(self, frame: bytes) -> bool:
        """Check if an audio frame contains speech using VAD.

        VAD requires 10, 20 or 30ms frames, so the frame is split into 20ms
        sub-frames and any speech sub-frame counts.
        """
        frame_size = int(self.sample_rate * 20 / 1000) * 2  # *2 for 16-bit
        for i in range(0, len(frame), frame_size):
            sub_frame = frame[i : i + frame_size]
            if len(sub_frame) == frame_size and self.vad.is_speech(sub_frame, self.sample_rate):
                return True
        return False

    def close(self):
        """Stop the stream and release PyAudio (idempotent)."""
        self._finalizer()


class MicrophoneInput:
    """Opens the configured input device."""

    def __init__(
        self,
        device_name: Optional[str] = None,
        sample_rate: int = 16000,
        chunk_size: int = 1280,  # 80ms at 16kHz
        vad_aggressiveness: int = 2,
    ):
        """Initialize microphone input.

        Args:
            device_name: Preferred input device (partial match, case-insensitive);
                None selects the system default
            sample_rate: Sample rate in Hz (8000, 16000, 32000 or 48000 for VAD)
            chunk_size: Samples per captured frame
            vad_aggressiveness: VAD aggressiveness level (0-3)
        """
        self.device_name = device_name
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.vad_aggressiveness = vad_aggressiveness

    def open(self) -> MicrophoneHandle:
        """Open the input stream.

        Raises:
            DeviceNotFound: No input device is available
            MicrophoneDenied: The OS refused access to the microphone
            AudioInitError: The stream could not be opened
        """
        audio = pyaudio.PyAudio()
        try:
            device_index = self._find_device_index(audio)
            return MicrophoneHandle(
                audio,
                device_index,
                self.sample_rate,
                self.chunk_size,
                self.vad_aggressiveness,
            )
        except DeviceNotFound:
            audio.terminate()
            raise
        except OSError as e:
            audio.terminate()
            if e.errno in (errno.EACCES, errno.EPERM) or "permission" in str(e).lower():
                raise MicrophoneDenied() from e
            raise AudioInitError(f"Microphone error: {e}") from e

    def _find_device_index(self, audio: pyaudio.PyAudio) -> int:
        """Find the input device index by name or fall back to the default."""
        if self.device_name:
            wanted = self.device_name.lower()
            for i in range(audio.get_device_count()):
                info = audio.get_device_info_by_index(i)
                if info.get("maxInputChannels", 0) > 0 and wanted in info.get("name", "").lower():
                    logger.info(f"Found device: {info['name']} (index {i})")
                    return i

        try:
            default_device = audio.get_default_input_device_info()
        except OSError as e:
            raise DeviceNotFound() from e

        if self.device_name:
            logger.warning(
                f"Device '{self.device_name}' not found, using default: {default_device['name']}"
            )
        return int(default_device["index"])
