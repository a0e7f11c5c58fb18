"""Trigger matching engine - turns final transcripts into play commands."""

import asyncio
import logging
from datetime import datetime
from typing import Optional, Protocol

from ..models import PlayCommand, Settings
from ..storage import Repository
from .cooldown import CooldownSet
from .event_bus import DefaultResponseEvent, EventBus, TriggerMatchEvent

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_MS = 2000
PLAYBACK_VOLUME = 0.75
DEFAULT_RESPONSE_KEY = "default-response"


class PlaybackSink(Protocol):
    """Receives fire-and-forget play requests."""

    def play(self, clip_id: int, volume: float) -> None: ...


class TriggerMatchingEngine:
    """Matches transcripts against triggers and emits play commands.

    For each final transcript:
    1. Every enabled trigger whose phrase is a substring of the transcript
       matches (both lower-cased unless the trigger is case sensitive)
    2. A match whose (trigger id, phrase) key is cooling down is suppressed
    3. Other matches advance the trigger's rotation and play the clip
    4. When nothing matched, the default response rotation plays after the
       configured delay, gated by its own cooldown key

    Must be driven from a running event loop; cooldown expiry and the
    delayed default response are loop timers.
    """

    def __init__(
        self,
        repository: Repository,
        sink: PlaybackSink,
        event_bus: Optional[EventBus] = None,
        cooldown_ms: int = DEFAULT_COOLDOWN_MS,
        volume: float = PLAYBACK_VOLUME,
    ):
        """Initialize matching engine.

        Args:
            repository: Repository holding triggers, clips and settings
            sink: Playback sink receiving play commands
            event_bus: Optional event bus for match events
            cooldown_ms: Suppression window for repeated matches of one trigger
            volume: Playback volume ratio passed to the sink (0-1)
        """
        if not 0.0 <= volume <= 1.0:
            raise ValueError(f"Volume must be within [0, 1], got {volume}")
        self.repository = repository
        self.sink = sink
        self.event_bus = event_bus
        self.cooldown_seconds = cooldown_ms / 1000.0
        self.volume = volume
        self.cooldowns = CooldownSet()
        self._pending: set[asyncio.Task] = set()

        logger.info(f"TriggerMatchingEngine initialized (cooldown={cooldown_ms}ms, volume={volume})")

    @property
    def pending_default_responses(self) -> int:
        return len(self._pending)

    def handle_transcript(self, text: str) -> list[PlayCommand]:
        """Process one final transcript.

        Args:
            text: Finalized transcript text

        Returns:
            Play commands emitted synchronously (default responses are
            emitted later and not included)
        """
        if not text or not text.strip():
            return []

        commands = []
        outcomes = []
        matched = False
        lowered = text.lower()

        with self.repository.exclusive():
            triggers = self.repository.list_triggers()
            settings = self.repository.get_settings()

            for trigger in triggers:
                if not trigger.enabled:
                    continue

                phrase = trigger.phrase if trigger.case_sensitive else trigger.phrase.lower()
                haystack = text if trigger.case_sensitive else lowered
                if phrase not in haystack:
                    continue

                matched = True
                key = (trigger.id, phrase)
                if not self.cooldowns.add(key, self.cooldown_seconds):
                    logger.debug(f"Trigger '{phrase}' in cooldown, skipping")
                    outcomes.append(
                        (
                            None,
                            "trigger_suppressed",
                            TriggerMatchEvent(
                                timestamp=datetime.now(),
                                trigger_id=trigger.id,
                                phrase=trigger.phrase,
                                transcript=text,
                                suppressed=True,
                            ),
                        )
                    )
                    continue

                clip_id = self.repository.next_clip_for_trigger(trigger.id)
                if clip_id is None:
                    logger.warning(f"Trigger {trigger.id} '{trigger.phrase}' has no clip to play")
                    continue

                logger.info(f"Trigger matched: '{phrase}' -> playing clip {clip_id}")
                command = PlayCommand(
                    clip_id=clip_id,
                    volume=self.volume,
                    source="trigger",
                    trigger_id=trigger.id,
                    phrase=trigger.phrase,
                )
                commands.append(command)
                outcomes.append(
                    (
                        command,
                        "trigger_matched",
                        TriggerMatchEvent(
                            timestamp=command.timestamp,
                            trigger_id=trigger.id,
                            phrase=trigger.phrase,
                            transcript=text,
                            clip_id=clip_id,
                        ),
                    )
                )

        # Emitted outside the repository lock
        for command, event_type, event in outcomes:
            if command is not None:
                self._emit(command)
            self._publish(event_type, event)

        if not matched:
            self._schedule_default_response(text, settings)

        return commands

    def _schedule_default_response(self, text: str, settings: Settings):
        if not settings.default_response_enabled or not settings.default_response_sound_clip_ids:
            return

        delay = settings.default_response_delay_ms / 1000.0
        if not self.cooldowns.add(DEFAULT_RESPONSE_KEY, delay):
            logger.debug("Default response in cooldown, skipping")
            return

        task = asyncio.get_running_loop().create_task(self._play_default_after(delay, text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.debug(f"No trigger matched, default response scheduled in {delay:.2f}s")

    async def _play_default_after(self, delay: float, text: str):
        await asyncio.sleep(delay)

        clip_id = self.repository.next_default_response()
        if clip_id is None:
            logger.debug("Default response disabled or empty when timer fired")
            return

        logger.info(f"No trigger matched, playing default response clip {clip_id}")
        self._emit(PlayCommand(clip_id=clip_id, volume=self.volume, source="default"))
        self._publish(
            "default_response",
            DefaultResponseEvent(timestamp=datetime.now(), transcript=text, clip_id=clip_id),
        )

    def _emit(self, command: PlayCommand):
        try:
            self.sink.play(command.clip_id, command.volume)
        except Exception as e:
            logger.error(f"Playback sink failed for clip {command.clip_id}: {e}", exc_info=True)

    def _publish(self, event_type: str, event):
        if self.event_bus:
            self.event_bus.publish(event_type, event)

    def reset(self):
        """Cancel pending default responses and clear every cooldown.

        No play command is emitted by this engine for work scheduled before
        the call.
        """
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
        self.cooldowns.clear()
        logger.debug("Matching engine reset")
