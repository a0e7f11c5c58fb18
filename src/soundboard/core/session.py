"""Speech session manager - continuous listening with supervised restarts."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol

from ..errors import (
    AcquisitionError,
    AudioInitError,
    CaptureError,
    ErrorKind,
    RecognitionError,
    RestartExhausted,
    SessionError,
    Unsupported,
)
from ..models import IDLE_LEVEL_DB, SessionState, TranscriptEvent
from ..services.state_machine import State, StateMachine
from .event_bus import EventBus, SessionErrorEvent, SessionStateEvent
from .matching import TriggerMatchingEngine

logger = logging.getLogger(__name__)


class AudioInputHandle(Protocol):
    """An open microphone."""

    def level_db(self) -> float: ...

    def read_frame(self, timeout: float) -> Optional[bytes]: ...

    def is_speech(self, frame: bytes) -> bool: ...

    def close(self) -> None: ...


class AudioInput(Protocol):
    """Opens the microphone; raises an AcquisitionError subclass on failure."""

    def open(self) -> AudioInputHandle: ...


class Recognizer(Protocol):
    """Transcription primitive.

    ``run`` delivers transcript events through ``emit`` until it ends.
    Returning means the primitive stopped on its own; errors are reported by
    raising RecognitionError.
    """

    async def run(
        self, audio: AudioInputHandle, emit: Callable[[TranscriptEvent], None]
    ) -> None: ...


@dataclass
class RetryPolicy:
    """Backoff for restarting the recognizer after it ends.

    The delay before a restart is ``min(base_delay * 2 ** failures, max_delay)``
    where ``failures`` counts consecutive failed runs.
    """

    base_delay: float = 0.5
    max_delay: float = 1.0
    max_failures: int = 3

    @classmethod
    def for_platform(cls, constrained: bool = False, max_failures: int = 3) -> "RetryPolicy":
        """Short delays on stable platforms, longer ones on constrained ones."""
        if constrained:
            return cls(base_delay=1.0, max_delay=2.0, max_failures=max_failures)
        return cls(base_delay=0.5, max_delay=1.0, max_failures=max_failures)

    def delay(self, failures: int) -> float:
        return min(self.base_delay * (2**failures), self.max_delay)


async def _cancel_task(task: asyncio.Task):
    """Cancel a task and wait for it, unless it is the caller."""
    if task.done() or task is asyncio.current_task():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


class SpeechSession:
    """Owns the listening lifecycle.

    ``start()`` acquires the microphone, starts level metering and runs the
    recognizer under a supervisor task. Final transcripts go to the matching
    engine in arrival order. When the recognizer ends on its own the
    supervisor restarts it with backoff; consecutive failures beyond the
    retry policy, or a fatal recognizer error, end the session.

    Every resource acquired by ``start()`` is registered on an exit stack and
    released exactly once, by ``stop()``, by a fatal error, or on leaving
    ``async with``.
    """

    def __init__(
        self,
        audio_input: AudioInput,
        recognizer: Optional[Recognizer],
        engine: TriggerMatchingEngine,
        event_bus: Optional[EventBus] = None,
        retry_policy: Optional[RetryPolicy] = None,
        meter_interval: float = 0.1,
    ):
        """Initialize speech session.

        Args:
            audio_input: Microphone factory
            recognizer: Transcription primitive (None if the platform has none)
            engine: Matching engine receiving final transcripts
            event_bus: Optional event bus for transcript, state and error events
            retry_policy: Restart backoff policy
            meter_interval: Seconds between audio level samples
        """
        self.audio_input = audio_input
        self.recognizer = recognizer
        self.engine = engine
        self.event_bus = event_bus
        self.retry_policy = retry_policy or RetryPolicy()
        self.meter_interval = meter_interval

        self.state_machine = StateMachine()
        self.state = SessionState()

        self._handle: Optional[AudioInputHandle] = None
        self._stack: Optional[contextlib.AsyncExitStack] = None
        self._supervisor: Optional[asyncio.Task] = None

        logger.info(
            f"SpeechSession initialized (restart delay {self.retry_policy.base_delay}s"
            f"-{self.retry_policy.max_delay}s, max failures {self.retry_policy.max_failures})"
        )

    @property
    def is_listening(self) -> bool:
        return self.state.is_listening

    async def __aenter__(self) -> "SpeechSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def start(self) -> bool:
        """Start listening.

        Returns:
            True if the session started, False if it was already running

        Raises:
            Unsupported: No transcription primitive is available
            MicrophoneDenied, DeviceNotFound, AudioInitError: The microphone
                could not be acquired; the session stays idle
        """
        if self.state_machine.state is not State.IDLE:
            logger.warning("Speech session already running")
            return False

        if self.recognizer is None:
            error = Unsupported()
            self._report(error, fatal=True)
            raise error

        self.state = SessionState()
        self.engine.reset()
        self._transition(State.STARTING)

        try:
            handle = await asyncio.to_thread(self.audio_input.open)
        except AcquisitionError as e:
            self._report(e, fatal=True)
            self._transition(State.IDLE)
            raise
        except Exception as e:
            error = AudioInitError(f"Microphone error: {e}")
            self._report(error, fatal=True)
            self._transition(State.IDLE)
            raise error from e

        if self.state_machine.state is not State.STARTING:
            # stop() ran while the microphone was being opened
            handle.close()
            return False

        stack = contextlib.AsyncExitStack()
        stack.callback(handle.close)
        stack.callback(self.engine.reset)
        self._handle = handle
        self._stack = stack

        self.state.is_listening = True
        self._transition(State.LISTENING)

        meter = asyncio.create_task(self._meter_loop())
        stack.push_async_callback(_cancel_task, meter)
        self._supervisor = asyncio.create_task(self._supervise())
        stack.push_async_callback(_cancel_task, self._supervisor)

        logger.info("Speech session started")
        return True

    async def stop(self) -> bool:
        """Stop listening and release every resource.

        No play command is emitted after this returns.

        Returns:
            True if the session was running
        """
        was_running = self.state_machine.state is not State.IDLE
        await self._teardown()
        self.state.last_error = None
        if was_running:
            logger.info("Speech session stopped and cleaned up")
        return was_running

    async def _teardown(self):
        stack, self._stack = self._stack, None
        try:
            if stack is not None:
                await stack.aclose()
        finally:
            self.engine.reset()
            self._handle = None
            self._supervisor = None
            self.state.is_listening = False
            self.state.audio_level_db = IDLE_LEVEL_DB
            if self.state_machine.state is not State.IDLE:
                self._transition(State.IDLE)

    async def _supervise(self):
        """Run the recognizer, restarting it until stopped or failing for good."""
        failures = 0

        while True:
            delivered = False

            def emit(event: TranscriptEvent):
                nonlocal delivered
                delivered = True
                self._on_transcript(event)

            failed = False
            try:
                await self.recognizer.run(self._handle, emit)
                logger.info("Speech recognition ended")
            except asyncio.CancelledError:
                raise
            except RecognitionError as e:
                if not e.kind.is_transient:
                    await self._fail(CaptureError(kind=e.kind))
                    return
                if e.kind is ErrorKind.TRANSIENT_NO_SPEECH:
                    logger.info("No speech detected, continuing to listen...")
                else:
                    logger.warning(f"Speech recognition was aborted: {e}")
                    failed = True
            except Exception as e:
                logger.error(f"Speech recognition failed: {e}", exc_info=True)
                failed = True

            if delivered:
                failures = 0
            if failed:
                failures += 1
                if failures >= self.retry_policy.max_failures:
                    logger.error(f"Speech recognition failed {failures} times in a row, giving up")
                    await self._fail(RestartExhausted())
                    return

            delay = self.retry_policy.delay(failures)
            self._transition(State.RECOVERING)
            logger.info(f"Restarting speech recognition in {delay:.1f}s")
            await asyncio.sleep(delay)
            self._transition(State.LISTENING)

    async def _fail(self, error: SessionError):
        self._report(error, fatal=True)
        await self._teardown()

    def _on_transcript(self, event: TranscriptEvent):
        if self.state_machine.state is not State.LISTENING:
            return

        self.state.current_transcript = event.text
        if self.event_bus:
            self.event_bus.publish("transcript", event)

        if not event.is_final:
            return

        logger.info(f"Final transcript: {event.text!r}")
        try:
            self.engine.handle_transcript(event.text)
        except Exception as e:
            logger.error(f"Error matching transcript: {e}", exc_info=True)

    async def _meter_loop(self):
        while True:
            handle = self._handle
            if handle is not None:
                self.state.audio_level_db = handle.level_db()
                if self.event_bus:
                    self.event_bus.publish("audio_level", self.state.audio_level_db)
            await asyncio.sleep(self.meter_interval)

    def _transition(self, new_state: State):
        old_state = self.state_machine.state
        if not self.state_machine.transition(new_state):
            if new_state is not State.IDLE:
                return
            self.state_machine.reset()
        if self.event_bus:
            self.event_bus.publish(
                "session_state",
                SessionStateEvent(
                    timestamp=datetime.now(), old_state=old_state.name, new_state=new_state.name
                ),
            )

    def _report(self, error: SessionError, fatal: bool):
        self.state.last_error = error
        logger.error(f"Speech session error ({error.kind.value}): {error.message}")
        if self.event_bus:
            self.event_bus.publish(
                "session_error",
                SessionErrorEvent(
                    timestamp=datetime.now(),
                    kind=error.kind.value,
                    message=error.message,
                    fatal=fatal,
                ),
            )
