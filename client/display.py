"""
Client-side display pacing for staged generation streams.

Arrival and reveal are decoupled. The receive loop only appends to
per-stage buffers and sets completion flags; the display loop only moves a
cursor over what has already arrived, ``chars_per_tick`` characters per
tick. Stages are revealed strictly in order: stage n+1 starts revealing
only after stage n is complete, fully revealed and has lingered.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterable, Awaitable, Callable, Dict, List, Optional

from pipeline import events
from pipeline.stages import Decision

logger = logging.getLogger(__name__)


class DisplayPhase(str, Enum):
    REVEALING = "revealing"
    LINGERING = "lingering"
    CHECKPOINT = "checkpoint"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class StageBuffer:
    """Append-only text for one stage plus its completion flag."""
    stage: int
    name: str = ""
    complete: bool = False
    _parts: List[str] = field(default_factory=list)
    _length: int = 0

    def append(self, content: str):
        if self.complete:
            raise ValueError(f"Stage {self.stage} is already complete")
        self._parts.append(content)
        self._length += len(content)

    def mark_complete(self):
        self.complete = True

    @property
    def text(self) -> str:
        if len(self._parts) > 1:
            self._parts = ["".join(self._parts)]
        return self._parts[0] if self._parts else ""

    def __len__(self) -> int:
        return self._length


class DisplayStateMachine:
    """
    Tick-driven reveal of staged text.

    Args:
        chars_per_tick: Characters revealed per tick.
        linger_seconds: Pause after a stage is fully revealed.
        checkpoint_after: Stage after which to wait for accept/reject.
            Usually taken from the stream's ``meta`` event.
        clock: Monotonic time source; tests pass a fake.
        on_reveal: Called with (stage, newly revealed text).
    """

    def __init__(
        self,
        chars_per_tick: int = 3,
        linger_seconds: float = 0.8,
        checkpoint_after: Optional[int] = None,
        stage_count: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        on_reveal: Optional[Callable[[int, str], None]] = None
    ):
        if chars_per_tick < 1:
            raise ValueError("chars_per_tick must be at least 1")
        self.chars_per_tick = chars_per_tick
        self.linger_seconds = linger_seconds
        self.checkpoint_after = checkpoint_after
        self.stage_count = stage_count
        self.clock = clock
        self.on_reveal = on_reveal

        self.buffers: Dict[int, StageBuffer] = {}
        self.phase = DisplayPhase.REVEALING
        self.current_stage = 1
        self.cursor = 0
        self.finalized: Dict[int, str] = {}
        self.outcome: Optional[str] = None
        self.final_artifact: Any = None
        self.error: Optional[str] = None
        self.session_id: Optional[str] = None
        self.memos_remaining: Optional[int] = None
        self.terminal_received = False
        self._linger_until = 0.0
        self._decision = asyncio.Event()

    # Receive side

    def buffer(self, stage: int) -> StageBuffer:
        if stage not in self.buffers:
            self.buffers[stage] = StageBuffer(stage)
        return self.buffers[stage]

    def on_event(self, event: Dict[str, Any]):
        """Apply one stream event; never touches the display cursor."""
        kind = event.get("type")
        if kind == events.META:
            self.session_id = event.get("sessionId", self.session_id)
            self.stage_count = event.get("stages", self.stage_count)
            if event.get("checkpointAfter") is not None:
                self.checkpoint_after = event["checkpointAfter"]
        elif kind == events.STAGE_START:
            self.buffer(event["stage"]).name = event.get("name", "")
        elif kind == events.TEXT_CHUNK:
            self.buffer(event["stage"]).append(event.get("content", ""))
        elif kind == events.STAGE_COMPLETE:
            self.buffer(event["stage"]).mark_complete()
        elif kind == events.DONE:
            self.terminal_received = True
            self.memos_remaining = event.get("memosRemaining")
            if self.outcome != "rejected":
                self.outcome = event.get("outcome")
                self.final_artifact = event.get("artifact")
        elif kind == events.ERROR:
            self.terminal_received = True
            self.error = event.get("message") or event.get("error") or "Generation failed"

    def stream_ended(self):
        if not self.terminal_received:
            self.terminal_received = True
            self.error = "Stream ended before generation finished"

    # Display side

    @property
    def is_finished(self) -> bool:
        return self.phase in (DisplayPhase.COMPLETE, DisplayPhase.FAILED)

    def revealed(self, stage: int) -> str:
        if stage in self.finalized:
            return self.finalized[stage]
        if stage == self.current_stage and stage in self.buffers:
            return self.buffers[stage].text[:self.cursor]
        return ""

    def tick(self) -> DisplayPhase:
        """Advance the display by one timer tick."""
        if self.is_finished or self.phase == DisplayPhase.CHECKPOINT:
            return self.phase

        if self.error is not None:
            logger.warning(f"Display stopped at stage {self.current_stage}: {self.error}")
            self.phase = DisplayPhase.FAILED
            return self.phase

        if self.phase == DisplayPhase.LINGERING:
            if self.clock() >= self._linger_until:
                self._advance()
            return self.phase

        buf = self.buffers.get(self.current_stage)
        if buf is None:
            if self.terminal_received and self.current_stage > 1:
                self._complete()
            return self.phase

        available = len(buf)
        if self.cursor < available:
            start = self.cursor
            self.cursor = min(available, self.cursor + self.chars_per_tick)
            if self.on_reveal:
                self.on_reveal(self.current_stage, buf.text[start:self.cursor])
        elif buf.complete:
            self._finalize_stage(buf)
        return self.phase

    def _finalize_stage(self, buf: StageBuffer):
        self.finalized[buf.stage] = buf.text
        logger.debug(f"Stage {buf.stage} revealed ({len(buf)} chars)")
        if buf.stage == self.checkpoint_after and not self._is_last(buf.stage):
            self.phase = DisplayPhase.CHECKPOINT
            self._decision.clear()
            return
        self.phase = DisplayPhase.LINGERING
        self._linger_until = self.clock() + self.linger_seconds

    def _is_last(self, stage: int) -> bool:
        return self.stage_count is not None and stage >= self.stage_count

    def _advance(self):
        if self._is_last(self.current_stage):
            self._complete()
            return
        self.current_stage += 1
        self.cursor = 0
        self.phase = DisplayPhase.REVEALING

    def _complete(self):
        if self.final_artifact is None:
            last = max(self.finalized) if self.finalized else None
            self.final_artifact = self.finalized.get(last) if last is not None else None
        self.phase = DisplayPhase.COMPLETE

    # Checkpoint

    def accept(self):
        if self.phase != DisplayPhase.CHECKPOINT:
            raise RuntimeError(f"No checkpoint pending (phase: {self.phase.value})")
        self._advance()
        self._decision.set()

    def reject(self):
        """Finish with stage 1's text; later stages are never revealed."""
        if self.phase != DisplayPhase.CHECKPOINT:
            raise RuntimeError(f"No checkpoint pending (phase: {self.phase.value})")
        self.outcome = "rejected"
        self.final_artifact = self.finalized.get(1)
        self.phase = DisplayPhase.COMPLETE
        self._decision.set()

    def decide(self, decision: Decision):
        if Decision(decision) == Decision.ACCEPT:
            self.accept()
        else:
            self.reject()

    async def wait_for_decision(self):
        await self._decision.wait()


CheckpointHandler = Callable[[int, str], Awaitable[Decision]]


async def run_display(
    machine: DisplayStateMachine,
    tick_interval: float = 0.02,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    on_checkpoint: Optional[CheckpointHandler] = None
) -> DisplayStateMachine:
    """
    Display loop: tick on a fixed interval until complete or failed.

    At a checkpoint no timer runs. With ``on_checkpoint`` its decision is
    applied; otherwise the loop waits for ``accept()``/``reject()``.
    """
    while not machine.is_finished:
        phase = machine.tick()
        if phase == DisplayPhase.CHECKPOINT:
            stage = machine.current_stage
            if on_checkpoint is not None:
                machine.decide(await on_checkpoint(stage, machine.revealed(stage)))
            else:
                await machine.wait_for_decision()
            continue
        if not machine.is_finished:
            await sleep(tick_interval)
    return machine


async def consume_events(machine: DisplayStateMachine, stream: AsyncIterable[Dict[str, Any]]):
    """Receive loop: feed every event into the machine's buffers."""
    try:
        async for event in stream:
            machine.on_event(event)
            if event.get("type") in (events.DONE, events.ERROR):
                break
    finally:
        # a receive failure must also stop the display loop
        machine.stream_ended()
