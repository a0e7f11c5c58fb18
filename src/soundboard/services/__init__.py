"""External services - transcription and state management."""

from .state_machine import State, StateMachine

# WhisperRecognizer (openai) is imported from .recognizer where it is used

__all__ = [
    "State",
    "StateMachine",
]
