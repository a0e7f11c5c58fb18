"""Tests for the trigger matching engine."""

import asyncio
import threading

import pytest

from soundboard.core import EventBus, TriggerMatchingEngine


@pytest.fixture()
def event_bus():
    return EventBus()


@pytest.fixture()
def events(event_bus):
    received = []
    for name in ("trigger_matched", "trigger_suppressed", "default_response"):
        event_bus.subscribe(name, lambda event, name=name: received.append((name, event)))
    return received


def _engine(repository, sink, event_bus=None, cooldown_ms=2000):
    return TriggerMatchingEngine(repository, sink, event_bus=event_bus, cooldown_ms=cooldown_ms)


@pytest.mark.asyncio
async def test_rotation_scenario_plays_2_3_2(repository, sink, make_clip):
    make_clip("One")
    two, three = make_clip("Two"), make_clip("Three")
    repository.create_trigger("hello", [two.id, three.id])
    engine = _engine(repository, sink, cooldown_ms=5)

    for _ in range(3):
        engine.handle_transcript("hello there")
        await asyncio.sleep(0.05)

    assert sink.clip_ids == [2, 3, 2]
    assert all(volume == 0.75 for _, volume in sink.played)


@pytest.mark.asyncio
async def test_cooldown_suppresses_repeat(repository, sink, make_clip, event_bus, events):
    clip = make_clip("Ding")
    repository.create_trigger("hello", [clip.id])
    engine = _engine(repository, sink, event_bus, cooldown_ms=200)

    engine.handle_transcript("hello")
    engine.handle_transcript("hello again")
    assert sink.clip_ids == [clip.id]
    assert [name for name, _ in events] == ["trigger_matched", "trigger_suppressed"]
    assert events[1][1].suppressed is True

    await asyncio.sleep(0.3)
    engine.handle_transcript("hello once more")
    assert sink.clip_ids == [clip.id, clip.id]


@pytest.mark.asyncio
async def test_case_insensitive_by_default(repository, sink, make_clip):
    clip = make_clip("Ding")
    repository.create_trigger("HELLO", [clip.id])
    engine = _engine(repository, sink)

    commands = engine.handle_transcript("oh hello world")

    assert [command.clip_id for command in commands] == [clip.id]
    assert commands[0].source == "trigger"
    assert commands[0].phrase == "HELLO"


@pytest.mark.asyncio
async def test_case_sensitive_trigger(repository, sink, make_clip):
    clip = make_clip("Ding")
    repository.create_trigger("Hello", [clip.id], case_sensitive=True)
    engine = _engine(repository, sink)

    assert engine.handle_transcript("hello there") == []
    assert len(engine.handle_transcript("Hello there")) == 1


@pytest.mark.asyncio
async def test_disabled_trigger_ignored(repository, sink, make_clip):
    clip = make_clip("Ding")
    repository.create_trigger("hello", [clip.id], enabled=False)
    engine = _engine(repository, sink)

    assert engine.handle_transcript("hello") == []
    assert sink.played == []


@pytest.mark.asyncio
async def test_every_matching_trigger_plays(repository, sink, make_clip):
    a, b = make_clip("A"), make_clip("B")
    repository.create_trigger("good", [a.id])
    repository.create_trigger("morning", [b.id])
    engine = _engine(repository, sink)

    engine.handle_transcript("good morning")

    assert sink.clip_ids == [a.id, b.id]


@pytest.mark.asyncio
async def test_default_response_after_delay(repository, sink, make_clip, event_bus, events):
    clip = make_clip("Huh")
    repository.update_settings(
        default_response_enabled=True,
        default_response_sound_clip_ids=[clip.id],
        default_response_delay_ms=20,
    )
    engine = _engine(repository, sink, event_bus)

    assert engine.handle_transcript("nothing matches here") == []
    assert sink.played == []
    assert engine.pending_default_responses == 1

    await asyncio.sleep(0.1)

    assert sink.clip_ids == [clip.id]
    assert events[-1][0] == "default_response"
    assert events[-1][1].transcript == "nothing matches here"


@pytest.mark.asyncio
async def test_default_response_with_zero_delay(repository, sink, make_clip):
    clip = make_clip("Huh")
    repository.update_settings(
        default_response_enabled=True,
        default_response_sound_clip_ids=[clip.id],
        default_response_delay_ms=0,
    )
    engine = _engine(repository, sink)

    engine.handle_transcript("anything")
    await asyncio.sleep(0.05)

    assert sink.clip_ids == [clip.id]


@pytest.mark.asyncio
async def test_default_response_gated_by_cooldown(repository, sink, make_clip):
    a, b = make_clip("A"), make_clip("B")
    repository.update_settings(
        default_response_enabled=True,
        default_response_sound_clip_ids=[a.id, b.id],
        default_response_delay_ms=50,
    )
    engine = _engine(repository, sink)

    engine.handle_transcript("first")
    engine.handle_transcript("second")
    await asyncio.sleep(0.15)

    assert sink.clip_ids == [a.id]


@pytest.mark.asyncio
async def test_blank_transcript_never_falls_back(repository, sink, make_clip):
    clip = make_clip("Huh")
    repository.update_settings(
        default_response_enabled=True,
        default_response_sound_clip_ids=[clip.id],
        default_response_delay_ms=0,
    )
    engine = _engine(repository, sink)

    assert engine.handle_transcript("   ") == []
    assert engine.handle_transcript("") == []
    await asyncio.sleep(0.05)

    assert engine.pending_default_responses == 0
    assert sink.played == []


@pytest.mark.asyncio
async def test_suppressed_match_does_not_fall_back(repository, sink, make_clip):
    ding, huh = make_clip("Ding"), make_clip("Huh")
    repository.create_trigger("hello", [ding.id])
    repository.update_settings(
        default_response_enabled=True,
        default_response_sound_clip_ids=[huh.id],
        default_response_delay_ms=0,
    )
    engine = _engine(repository, sink)

    engine.handle_transcript("hello")
    engine.handle_transcript("hello")
    await asyncio.sleep(0.05)

    assert sink.clip_ids == [ding.id]


@pytest.mark.asyncio
async def test_default_disabled_does_nothing(repository, sink, make_clip):
    clip = make_clip("Huh")
    repository.update_settings(default_response_sound_clip_ids=[clip.id], default_response_delay_ms=0)
    engine = _engine(repository, sink)

    engine.handle_transcript("anything")
    await asyncio.sleep(0.05)

    assert engine.pending_default_responses == 0
    assert sink.played == []


@pytest.mark.asyncio
async def test_reset_cancels_pending_default(repository, sink, make_clip):
    clip = make_clip("Huh")
    repository.update_settings(
        default_response_enabled=True,
        default_response_sound_clip_ids=[clip.id],
        default_response_delay_ms=30,
    )
    engine = _engine(repository, sink)

    engine.handle_transcript("anything")
    engine.reset()
    await asyncio.sleep(0.1)

    assert sink.played == []
    assert len(engine.cooldowns) == 0
    assert repository.get_settings().default_response_index == 0


@pytest.mark.asyncio
async def test_sink_failure_is_contained(repository, make_clip):
    class BrokenSink:
        def play(self, clip_id, volume):
            raise RuntimeError("device gone")

    clip = make_clip("Ding")
    repository.create_trigger("hello", [clip.id])
    engine = _engine(repository, BrokenSink())

    commands = engine.handle_transcript("hello")

    assert len(commands) == 1
    assert repository.get_trigger(1).current_index == 0


def test_volume_must_be_a_ratio(repository, sink):
    with pytest.raises(ValueError):
        TriggerMatchingEngine(repository, sink, volume=1.5)


@pytest.mark.asyncio
async def test_sink_runs_without_repository_lock(repository, make_clip):
    class LockCheckingSink:
        def __init__(self):
            self.lock_free = []

        def play(self, clip_id, volume):
            result = []

            def try_lock():
                acquired = repository._lock.acquire(timeout=1)
                if acquired:
                    repository._lock.release()
                result.append(acquired)

            worker = threading.Thread(target=try_lock)
            worker.start()
            worker.join()
            self.lock_free.extend(result)

    clip = make_clip("Ding")
    repository.create_trigger("hello", [clip.id])
    sink = LockCheckingSink()

    _engine(repository, sink).handle_transcript("hello there")

    assert sink.lock_free == [True]
