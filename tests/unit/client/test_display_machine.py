#!/usr/bin/env python3
"""
Unit tests for the paced display state machine.

A fake clock drives lingering so no test depends on wall time.
"""
import asyncio

import pytest

from client.display import DisplayPhase, DisplayStateMachine, StageBuffer, consume_events, run_display
from pipeline import Decision


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def feed_stage(machine, stage, text, complete=True):
    machine.on_event({"type": "stage-start", "stage": stage, "name": f"stage-{stage}"})
    machine.on_event({"type": "text-chunk", "stage": stage, "content": text})
    if complete:
        machine.on_event({"type": "stage-complete", "stage": stage, "name": f"stage-{stage}"})


def drive(machine, clock, until, max_ticks=500):
    for _ in range(max_ticks):
        if machine.phase in until:
            return machine.phase
        machine.tick()
        clock.now += 1.0
    raise AssertionError(f"Display stuck in {machine.phase}")


@pytest.fixture
def clock():
    return FakeClock()


class TestStageBuffer:

    def test_append_and_complete(self):
        buf = StageBuffer(1)
        buf.append("ab")
        buf.append("cd")
        assert buf.text == "abcd"
        assert len(buf) == 4
        buf.mark_complete()
        with pytest.raises(ValueError):
            buf.append("e")


class TestRevealPacing:

    def test_reveals_chars_per_tick(self, clock):
        machine = DisplayStateMachine(chars_per_tick=2, clock=clock)
        feed_stage(machine, 1, "abcde", complete=False)

        machine.tick()
        assert machine.revealed(1) == "ab"
        machine.tick()
        assert machine.revealed(1) == "abcd"
        machine.tick()
        machine.tick()
        assert machine.revealed(1) == "abcde"
        assert machine.phase == DisplayPhase.REVEALING

        machine.on_event({"type": "text-chunk", "stage": 1, "content": "fg"})
        machine.tick()
        assert machine.revealed(1) == "abcdefg"

    def test_next_stage_waits_for_completion_and_linger(self, clock):
        machine = DisplayStateMachine(chars_per_tick=10, linger_seconds=2.0, clock=clock)
        machine.on_event({"type": "meta", "stages": 2})
        feed_stage(machine, 1, "first", complete=False)

        machine.tick()
        machine.tick()
        assert machine.revealed(1) == "first"
        assert machine.current_stage == 1

        machine.on_event({"type": "stage-complete", "stage": 1})
        feed_stage(machine, 2, "second")
        assert machine.revealed(2) == ""

        machine.tick()
        assert machine.phase == DisplayPhase.LINGERING
        clock.now = 1.0
        machine.tick()
        assert machine.phase == DisplayPhase.LINGERING
        assert machine.revealed(2) == ""

        clock.now = 2.5
        machine.tick()
        assert machine.phase == DisplayPhase.REVEALING
        assert machine.current_stage == 2
        machine.tick()
        assert machine.revealed(2) == "second"
        assert machine.revealed(1) == "first"

    def test_buffered_next_stage_waits_for_unflagged_stage(self, clock):
        machine = DisplayStateMachine(chars_per_tick=4, linger_seconds=0.5, clock=clock)
        machine.on_event({"type": "meta", "stages": 2})
        feed_stage(machine, 1, "partial first", complete=False)
        feed_stage(machine, 2, "second stage arrived early")

        for _ in range(20):
            machine.tick()
            clock.now += 1.0

        assert machine.revealed(1) == "partial first"
        assert machine.revealed(2) == ""
        assert machine.current_stage == 1
        assert machine.phase == DisplayPhase.REVEALING

        machine.on_event({"type": "stage-complete", "stage": 1})
        drive(machine, clock, until={DisplayPhase.COMPLETE})
        assert machine.revealed(2) == "second stage arrived early"

    def test_reveal_callback_receives_every_character_once(self, clock):
        pieces = []
        machine = DisplayStateMachine(chars_per_tick=3, linger_seconds=0, clock=clock,
                                      on_reveal=lambda stage, text: pieces.append((stage, text)))
        machine.on_event({"type": "meta", "stages": 2})
        feed_stage(machine, 1, "hello world")
        feed_stage(machine, 2, "bye")
        machine.on_event({"type": "done", "outcome": "completed", "artifact": "bye"})

        drive(machine, clock, {DisplayPhase.COMPLETE})

        assert "".join(t for s, t in pieces if s == 1) == "hello world"
        assert "".join(t for s, t in pieces if s == 2) == "bye"
        assert machine.final_artifact == "bye"
        assert machine.outcome == "completed"

    def test_completes_without_meta_when_stream_done(self, clock):
        machine = DisplayStateMachine(linger_seconds=0, clock=clock)
        feed_stage(machine, 1, "draft")
        machine.on_event({"type": "done", "outcome": "completed", "artifact": "draft"})
        assert drive(machine, clock, {DisplayPhase.COMPLETE}) == DisplayPhase.COMPLETE
        assert machine.final_artifact == "draft"

    def test_invalid_chars_per_tick(self):
        with pytest.raises(ValueError):
            DisplayStateMachine(chars_per_tick=0)


class TestCheckpoint:

    def _at_checkpoint(self, clock):
        machine = DisplayStateMachine(chars_per_tick=50, linger_seconds=0, clock=clock)
        machine.on_event({"type": "meta", "sessionId": "s1", "stages": 4, "checkpointAfter": 3})
        feed_stage(machine, 1, "DRAFT")
        feed_stage(machine, 2, "CRITIQUE")
        feed_stage(machine, 3, "PLAN")
        drive(machine, clock, {DisplayPhase.CHECKPOINT})
        return machine

    def test_pauses_after_checkpoint_stage(self, clock):
        machine = self._at_checkpoint(clock)
        assert machine.current_stage == 3
        assert machine.revealed(3) == "PLAN"
        assert machine.session_id == "s1"

        feed_stage(machine, 4, "FINAL")
        for _ in range(5):
            assert machine.tick() == DisplayPhase.CHECKPOINT
        assert machine.revealed(4) == ""

    def test_reject_finishes_with_first_stage(self, clock):
        machine = self._at_checkpoint(clock)
        machine.decide(Decision.REJECT)

        assert machine.phase == DisplayPhase.COMPLETE
        assert machine.outcome == "rejected"
        assert machine.final_artifact == "DRAFT"

        machine.on_event({"type": "done", "outcome": "rejected", "artifact": "DRAFT", "memosRemaining": 3})
        assert machine.final_artifact == "DRAFT"
        assert machine.memos_remaining == 3

    def test_accept_reveals_final_stage(self, clock):
        machine = self._at_checkpoint(clock)
        machine.decide("accept")
        assert machine.current_stage == 4

        feed_stage(machine, 4, "FINAL")
        machine.on_event({"type": "done", "outcome": "completed", "artifact": {"memo": "FINAL"}})
        drive(machine, clock, {DisplayPhase.COMPLETE})

        assert machine.revealed(4) == "FINAL"
        assert machine.final_artifact == {"memo": "FINAL"}

    def test_decisions_outside_checkpoint_raise(self, clock):
        machine = DisplayStateMachine(clock=clock)
        with pytest.raises(RuntimeError):
            machine.accept()
        with pytest.raises(RuntimeError):
            machine.reject()


class TestFailures:

    def test_error_event_fails_display(self, clock):
        machine = DisplayStateMachine(clock=clock)
        feed_stage(machine, 1, "partial", complete=False)
        machine.on_event({"type": "error", "message": "Stage 2 timed out after 60s", "error": "upstream_error"})

        assert machine.tick() == DisplayPhase.FAILED
        assert machine.error == "Stage 2 timed out after 60s"
        assert machine.is_finished

    def test_stream_ending_early_is_an_error(self, clock):
        machine = DisplayStateMachine(clock=clock)
        machine.stream_ended()
        assert machine.tick() == DisplayPhase.FAILED
        assert "ended" in machine.error


class TestLoops:

    def test_consume_events_stops_at_terminal_event(self):
        machine = DisplayStateMachine()

        async def source():
            yield {"type": "meta", "stages": 1}
            yield {"type": "done", "outcome": "completed", "artifact": "x"}
            yield {"type": "text-chunk", "stage": 1, "content": "late"}

        asyncio.run(consume_events(machine, source()))

        assert machine.terminal_received
        assert machine.error is None
        assert machine.buffers == {}

    def test_run_display_applies_checkpoint_decision(self, clock):
        machine = DisplayStateMachine(chars_per_tick=4, linger_seconds=1, clock=clock)
        machine.on_event({"type": "meta", "stages": 2, "checkpointAfter": 1})
        feed_stage(machine, 1, "DRAFT TEXT")
        feed_stage(machine, 2, "FINAL TEXT")
        machine.on_event({"type": "done", "outcome": "completed", "artifact": "FINAL TEXT"})
        asked = []

        async def fake_sleep(seconds):
            clock.now += seconds

        async def on_checkpoint(stage, text):
            asked.append((stage, text))
            return Decision.ACCEPT

        asyncio.run(run_display(machine, tick_interval=0.5, sleep=fake_sleep, on_checkpoint=on_checkpoint))

        assert asked == [(1, "DRAFT TEXT")]
        assert machine.phase == DisplayPhase.COMPLETE
        assert machine.final_artifact == "FINAL TEXT"
