"""Exception hierarchy for the soundboard core."""

from enum import Enum


class ErrorKind(Enum):
    """Classification of speech session errors surfaced to callers."""

    PERMISSION_DENIED = "permission-denied"
    NO_MICROPHONE = "no-microphone"
    AUDIO_CAPTURE_FAILURE = "audio-capture"
    NETWORK_ERROR = "network"
    UNSUPPORTED = "unsupported"
    TRANSIENT_NO_SPEECH = "no-speech"
    ABORTED = "aborted"
    RESTART_EXHAUSTED = "restart-exhausted"

    @property
    def is_transient(self) -> bool:
        """Transient errors are recovered by restarting the recognizer."""
        return self in (ErrorKind.TRANSIENT_NO_SPEECH, ErrorKind.ABORTED)


# Messages shown to the user for each error kind
ERROR_MESSAGES = {
    ErrorKind.PERMISSION_DENIED: "Microphone permission denied. Please allow microphone access.",
    ErrorKind.NO_MICROPHONE: "No microphone found. Please connect a microphone and try again.",
    ErrorKind.AUDIO_CAPTURE_FAILURE: "Audio capture failed. Check your microphone.",
    ErrorKind.NETWORK_ERROR: "Network error. Check your internet connection.",
    ErrorKind.UNSUPPORTED: "Speech recognition is not supported on this platform.",
    ErrorKind.TRANSIENT_NO_SPEECH: "No speech detected, continuing to listen.",
    ErrorKind.ABORTED: "Speech recognition was aborted.",
    ErrorKind.RESTART_EXHAUSTED: (
        "Speech recognition stopped unexpectedly. Stop and start again."
    ),
}


class SoundboardError(Exception):
    """Base class for all soundboard errors."""


class ValidationError(SoundboardError):
    """Raised when entity data is rejected by the repository."""


class NotFoundError(SoundboardError):
    """Raised when a referenced entity does not exist."""


class SessionError(SoundboardError):
    """Error reported by the speech session, carrying its classification."""

    kind = ErrorKind.AUDIO_CAPTURE_FAILURE

    def __init__(self, message: str | None = None, kind: ErrorKind | None = None):
        if kind is not None:
            self.kind = kind
        self.message = message or ERROR_MESSAGES[self.kind]
        super().__init__(self.message)


class AcquisitionError(SessionError):
    """Audio input could not be acquired; the session stays idle."""


class MicrophoneDenied(AcquisitionError):
    kind = ErrorKind.PERMISSION_DENIED


class DeviceNotFound(AcquisitionError):
    kind = ErrorKind.NO_MICROPHONE


class AudioInitError(AcquisitionError):
    kind = ErrorKind.AUDIO_CAPTURE_FAILURE


class Unsupported(SessionError):
    kind = ErrorKind.UNSUPPORTED


class CaptureError(SessionError):
    """Fatal error raised while the session was listening."""


class RestartExhausted(CaptureError):
    kind = ErrorKind.RESTART_EXHAUSTED


class RecognitionError(SoundboardError):
    """Raised by a transcription primitive when it ends with an error."""

    def __init__(self, kind: ErrorKind, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class ProfileError(SoundboardError):
    """Base class for profile document errors."""


class InvalidProfileError(ProfileError):
    """The profile document is malformed."""


class ProfileTooLargeError(ProfileError):
    """The serialized profile exceeds the size limit."""


class ProfileNotFoundError(ProfileError):
    """A named profile does not exist in the library."""


class ProfileImportError(ProfileError):
    """Import failed after existing data was cleared.

    The previous repository contents are not restored.
    """
