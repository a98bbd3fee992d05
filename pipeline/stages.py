"""
Stage definitions and the pipeline state machine.

States run strictly in sequence:

    IDLE -> STAGE_1_RUNNING -> STAGE_1_DONE -> ... -> STAGE_n_DONE -> COMPLETE

with two branches: a checkpoint stage may enter AWAITING_DECISION, from
which "reject" jumps straight to COMPLETE; any running or waiting state may
move to FAILED. Every other transition raises InvalidTransitionError.
"""
import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from core.errors import StageOutputError
from core.narrative.merge import strip_code_fences

logger = logging.getLogger(__name__)


class GenerationMode(str, Enum):
    DRAFT = "draft"          # 1 stage, streamed
    STANDARD = "standard"    # all stages in the background
    DETAILED = "detailed"    # all stages streamed, with checkpoint


class Decision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class Outcome(str, Enum):
    COMPLETED = "completed"
    REJECTED = "rejected"


class InvalidTransitionError(RuntimeError):
    pass


class Phase(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    DONE = "DONE"
    AWAITING_DECISION = "AWAITING_DECISION"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


class PipelineState:
    """Validated sequential state for one pipeline run."""

    def __init__(self, stage_count: int):
        if stage_count < 1:
            raise ValueError("A pipeline needs at least one stage")
        self.stage_count = stage_count
        self.phase = Phase.IDLE
        self.stage = 0
        self.history: List[str] = [self.label]

    @property
    def label(self) -> str:
        if self.phase in (Phase.RUNNING, Phase.DONE):
            return f"STAGE_{self.stage}_{self.phase.value}"
        return self.phase.value

    @property
    def is_terminal(self) -> bool:
        return self.phase in (Phase.COMPLETE, Phase.FAILED)

    def _move(self, phase: Phase, stage: Optional[int] = None):
        self.phase = phase
        if stage is not None:
            self.stage = stage
        self.history.append(self.label)

    def _illegal(self, action: str):
        raise InvalidTransitionError(f"Cannot {action} from {self.label}")

    def start_stage(self, stage: int):
        expected = self.stage + 1
        ready = self.phase == Phase.IDLE or self.phase == Phase.DONE
        if not ready or stage != expected or stage > self.stage_count:
            self._illegal(f"start stage {stage}")
        self._move(Phase.RUNNING, stage)

    def complete_stage(self, stage: int):
        if self.phase != Phase.RUNNING or stage != self.stage:
            self._illegal(f"complete stage {stage}")
        self._move(Phase.DONE)

    def await_decision(self):
        if self.phase != Phase.DONE or self.stage >= self.stage_count:
            self._illegal("await a decision")
        self._move(Phase.AWAITING_DECISION)

    def accept(self):
        if self.phase != Phase.AWAITING_DECISION:
            self._illegal("accept")
        self._move(Phase.DONE)

    def reject(self):
        if self.phase != Phase.AWAITING_DECISION:
            self._illegal("reject")
        self._move(Phase.COMPLETE)

    def complete(self):
        if self.phase != Phase.DONE or self.stage != self.stage_count:
            self._illegal("complete")
        self._move(Phase.COMPLETE)

    def fail(self):
        if self.is_terminal:
            self._illegal("fail")
        self._move(Phase.FAILED)


@dataclass(frozen=True)
class StageSpec:
    """
    One LLM invocation in the pipeline.

    ``build_prompt`` receives the raw texts of the stages completed so far;
    ``parse`` validates the stage's full text and returns its artifact.
    """
    number: int
    name: str
    system_prompt: str
    build_prompt: Callable[[Sequence[str]], str]
    parse: Callable[[int, str], Any]
    max_tokens: Optional[int] = None


def parse_text(stage: int, text: str) -> str:
    """Any non-empty text."""
    stripped = (text or "").strip()
    if not stripped:
        raise StageOutputError(stage, "empty output")
    return stripped


_LIST_ITEM_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(.+)$")


def parse_list(stage: int, text: str) -> List[str]:
    """A bulleted or numbered list with at least one item."""
    items = []
    for line in (text or "").splitlines():
        match = _LIST_ITEM_RE.match(line)
        if match:
            items.append(match.group(1).strip())
    if not items:
        raise StageOutputError(stage, "expected at least one list item")
    return items


def parse_final_revision(stage: int, text: str) -> Any:
    """
    ``{"memo": str, "revisionNotes": [str]}``; otherwise the raw text itself.

    Only empty output is an error: unstructured text is kept as an opaque
    artifact.
    """
    raw = parse_text(stage, text)
    try:
        data = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError:
        logger.warning(f"Stage {stage} output is not JSON, keeping raw text")
        return raw

    if isinstance(data, dict) and isinstance(data.get("memo"), str):
        notes = data.get("revisionNotes")
        if not isinstance(notes, list):
            notes = []
        return {"memo": data["memo"], "revisionNotes": [str(n) for n in notes]}

    logger.warning(f"Stage {stage} JSON lacks a 'memo' string, keeping raw text")
    return raw
