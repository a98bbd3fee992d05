#!/usr/bin/env python3
"""
Memo service - pitch memo generation sessions.

Draft and detailed runs are streamed to the caller as SSE; standard runs
execute in the background and are polled by session id. Detailed runs pause
at the checkpoint until a decision is posted for the session.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from threading import Lock
from typing import Any, AsyncIterator, Dict, Optional

from core.app_context import AppContext
from core.narrative.memo import MemoBrief, build_firm_profile
from pipeline import events
from pipeline.memo import build_memo_stages
from pipeline.runner import PipelineResult, StagedPipeline
from pipeline.stages import Decision, GenerationMode
from ..exceptions import (
    FirmNotFoundException,
    InvalidDecisionException,
    SessionNotFoundException,
)

logger = logging.getLogger(__name__)

FINISHED_STATUSES = ("completed", "failed")


@dataclass
class GenerationSession:
    """Represents one memo generation run."""
    session_id: str
    mode: GenerationMode
    status: str  # "pending", "running", "awaiting_decision", "completed", "failed"
    firm_name: str = ""
    step: Optional[str] = None
    outcome: Optional[str] = None
    artifact: Any = None
    stages_completed: int = 0
    memos_remaining: Optional[int] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    decision_future: Optional[asyncio.Future] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "status": self.status,
            "mode": self.mode.value,
            "step": self.step,
            "outcome": self.outcome,
            "artifact": self.artifact,
            "stages_completed": self.stages_completed,
            "memos_remaining": self.memos_remaining,
            "error": self.error,
        }


class GenerationSessionManager:
    """Manages generation sessions and their checkpoint decisions."""

    def __init__(self, keep_finished: int = 20):
        self._sessions: Dict[str, GenerationSession] = {}
        self._lock = Lock()
        self.keep_finished = keep_finished

    def create_session(self, mode: GenerationMode, firm_name: str = "") -> GenerationSession:
        session = GenerationSession(
            session_id=str(uuid.uuid4()),
            mode=mode,
            status="pending",
            firm_name=firm_name,
            step="IDLE",
        )
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> Optional[GenerationSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def require_session(self, session_id: str) -> GenerationSession:
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFoundException(f"Session {session_id} not found")
        return session

    def update_session_status(self, session_id: str, status: str, **kwargs):
        """
        Update session status and other fields.

        Args:
            session_id: The session ID.
            status: New status.
            **kwargs: Additional fields to update.
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return
            session.status = status
            for key, value in kwargs.items():
                setattr(session, key, value)

        if status in FINISHED_STATUSES:
            self._cleanup_finished_sessions()

    async def wait_for_decision(self, session_id: str, stage: int) -> Decision:
        """Block the run until ``submit_decision`` is called for this session."""
        future = asyncio.get_running_loop().create_future()
        self.update_session_status(
            session_id, "awaiting_decision", step=f"STAGE_{stage}_DONE", decision_future=future
        )
        try:
            return await future
        finally:
            self.update_session_status(session_id, "running", decision_future=None)

    def submit_decision(self, session_id: str, decision: Decision):
        """
        Resolve a pending checkpoint.

        Raises:
            SessionNotFoundException: If the session is unknown or discarded.
            InvalidDecisionException: If the session is not awaiting a decision.
        """
        session = self.require_session(session_id)
        with self._lock:
            future = session.decision_future
            if session.status != "awaiting_decision" or future is None or future.done():
                raise InvalidDecisionException(
                    f"Session {session_id} is not awaiting a decision (status: {session.status})"
                )
            # only the first decision for a checkpoint is taken
            session.status = "running"
            session.decision_future = None

        def _resolve():
            if not future.done():
                future.set_result(decision)

        # Requests may be served on a different loop than the generating stream
        future.get_loop().call_soon_threadsafe(_resolve)
        logger.info(f"Decision '{decision.value}' submitted for session {session_id}")

    def discard(self, session_id: str):
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session and session.decision_future and not session.decision_future.done():
            session.decision_future.get_loop().call_soon_threadsafe(session.decision_future.cancel)

    def _cleanup_finished_sessions(self):
        """Remove old finished sessions, keeping only the most recent ones."""
        with self._lock:
            finished = [
                (sid, s) for sid, s in self._sessions.items()
                if s.status in FINISHED_STATUSES
            ]
            if len(finished) <= self.keep_finished:
                return

            finished.sort(key=lambda x: x[1].created_at, reverse=True)
            for sid, _ in finished[self.keep_finished:]:
                del self._sessions[sid]
                logger.debug(f"Cleaned up finished session {sid}")


@dataclass
class MemoRun:
    """A prepared, not yet started, generation run."""
    session: GenerationSession
    pipeline: StagedPipeline
    brief: MemoBrief


class MemoService:
    """Service for generating pitch memos."""

    def __init__(self, ctx: AppContext, sessions: GenerationSessionManager):
        self.ctx = ctx
        self.sessions = sessions

    def prepare(self, brief: MemoBrief, mode: GenerationMode) -> MemoRun:
        """
        Validate the request and build the pipeline for it.

        Raises:
            FirmNotFoundException: If the firm is not in the dataset.
            QuotaExceededError: If the usage quota is spent.
        """
        firm = self.ctx.dataset.find_firm(brief.firm_name)
        if firm is None:
            raise FirmNotFoundException(f"Firm '{brief.firm_name}' not found")
        self.ctx.quota.check()

        gen = self.ctx.config.generation
        profile = build_firm_profile(firm, self.ctx.dataset, gen)
        stages = build_memo_stages(profile, brief, mode, gen)
        session = self.sessions.create_session(mode, firm.name)

        detailed = mode == GenerationMode.DETAILED
        pipeline = StagedPipeline(
            self.ctx.llm,
            stages,
            stage_timeout=gen.stage_timeout_seconds,
            checkpoint_after=gen.checkpoint_after_stage if detailed else None,
            decide=partial(self.sessions.wait_for_decision, session.session_id) if detailed else None,
            decision_timeout=gen.decision_timeout_seconds,
            status_callback=partial(self._on_transition, session.session_id),
        )
        logger.info(
            f"Prepared {mode.value} memo session {session.session_id} "
            f"for {firm.name} ({len(stages)} stages)"
        )
        return MemoRun(session=session, pipeline=pipeline, brief=brief)

    def _on_transition(self, session_id: str, label: str):
        session = self.sessions.get_session(session_id)
        if session is None or session.status in FINISHED_STATUSES:
            return
        # wait_for_decision publishes awaiting_decision together with its future
        if label == "AWAITING_DECISION":
            return
        self.sessions.update_session_status(session_id, "running", step=label)

    async def _record_usage(self, run: MemoRun, result: PipelineResult) -> Dict[str, Any]:
        remaining = self.ctx.quota.increment({
            "firmName": run.session.firm_name,
            "prospectName": run.brief.prospect_name,
            "prospectIssues": list(run.brief.prospect_issues),
            "mode": run.session.mode.value,
            "outcome": result.outcome.value,
        })
        return {"memosRemaining": remaining}

    async def events(self, run: MemoRun) -> AsyncIterator[Dict[str, Any]]:
        """Run the pipeline, mirroring terminal events into the session."""
        session_id = run.session.session_id
        meta = {
            "sessionId": session_id,
            "mode": run.session.mode.value,
            "firmName": run.session.firm_name,
        }
        async for event in run.pipeline.run(meta=meta, on_complete=partial(self._record_usage, run)):
            if event["type"] == events.DONE:
                self.sessions.update_session_status(
                    session_id,
                    "completed",
                    step="COMPLETE",
                    outcome=event["outcome"],
                    artifact=event["artifact"],
                    stages_completed=event.get("stagesCompleted", 0),
                    memos_remaining=event.get("memosRemaining"),
                )
            elif event["type"] == events.ERROR:
                self.sessions.update_session_status(
                    session_id, "failed", step="FAILED", error=event.get("message")
                )
            yield event

    async def stream(self, run: MemoRun) -> AsyncIterator[str]:
        """SSE frames for a streamed run; the session is discarded afterwards."""
        session_id = run.session.session_id
        try:
            async for event in self.events(run):
                yield events.format_sse(event)
        except asyncio.CancelledError:
            logger.info(f"Client disconnected from memo session {session_id}")
            raise
        finally:
            self.sessions.discard(session_id)

    async def run_in_background(self, run: MemoRun):
        """Consume a standard-mode run; results are read back through the session."""
        session_id = run.session.session_id
        self.sessions.update_session_status(session_id, "running")
        try:
            async for event in self.events(run):
                if event["type"] == events.STAGE_COMPLETE:
                    logger.debug(f"Session {session_id}: stage {event['stage']} complete")
        except Exception as e:
            logger.exception(f"Error in background memo session {session_id}")
            self.sessions.update_session_status(session_id, "failed", error=str(e))


# Global session manager
_session_manager = GenerationSessionManager()


def get_session_manager() -> GenerationSessionManager:
    """Get the global generation session manager."""
    return _session_manager
