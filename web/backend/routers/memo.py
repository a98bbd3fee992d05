#!/usr/bin/env python3
"""
Pitch memo endpoints - generation, session status and checkpoint decisions.
"""

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import StreamingResponse

from core.narrative.memo import MemoBrief
from pipeline import events
from pipeline.stages import GenerationMode
from ..dependencies import get_memo_service
from ..models.requests import DecisionRequest, MemoRequest
from ..models.responses import (
    DecisionResponse,
    MemoSessionResponse,
    MemoSessionStatusResponse,
)
from ..rate_limit import GENERATION_RATE_LIMIT, limiter
from ..services.memo_service import (
    GenerationSessionManager,
    MemoService,
    get_session_manager,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/memo", tags=["memo"])


def to_brief(body: MemoRequest) -> MemoBrief:
    return MemoBrief(
        firm_name=body.firm_name,
        prospect_name=body.prospect_name,
        prospect_issues=tuple(body.prospect_issues),
        advocacy_goal=body.advocacy_goal,
        prospect_industry=body.prospect_industry,
        goal_type=body.goal_type,
        venue=body.venue,
        timeline=body.timeline,
        budget_range=body.budget_range,
        current_representation=body.current_representation,
        additional_context=body.additional_context,
    )


@router.post("")
@limiter.limit(GENERATION_RATE_LIMIT)
async def generate_memo(
    request: Request,
    body: MemoRequest,
    background_tasks: BackgroundTasks,
    service: MemoService = Depends(get_memo_service)
):
    """
    Generate a pitch memo.

    Draft and detailed modes stream SSE events (meta, stage-start,
    text-chunk, stage-complete, done or error). In detailed mode the run
    pauses after the checkpoint stage until a decision is posted to
    /api/memo/sessions/{sessionId}/decision.

    Standard mode runs in the background and returns a session id to poll.
    """
    run = service.prepare(to_brief(body), body.generation_mode)

    if body.generation_mode == GenerationMode.STANDARD:
        background_tasks.add_task(service.run_in_background, run)
        return MemoSessionResponse(
            success=True,
            session_id=run.session.session_id,
            status=run.session.status,
            mode=run.session.mode.value,
            message="Memo generation started"
        ).model_dump(by_alias=True)

    return StreamingResponse(
        service.stream(run),
        media_type="text/event-stream",
        headers=events.SSE_HEADERS
    )


@router.get("/sessions/{session_id}", response_model=MemoSessionStatusResponse, response_model_by_alias=True)
def get_session_status(
    session_id: str,
    sessions: GenerationSessionManager = Depends(get_session_manager)
):
    """Get the status, and once finished the result, of a generation session."""
    session = sessions.require_session(session_id)
    return MemoSessionStatusResponse(**session.to_dict())


@router.post("/sessions/{session_id}/decision", response_model=DecisionResponse, response_model_by_alias=True)
async def submit_decision(
    session_id: str,
    body: DecisionRequest,
    sessions: GenerationSessionManager = Depends(get_session_manager)
):
    """Accept or reject at the checkpoint of a detailed-mode session."""
    sessions.submit_decision(session_id, body.decision)
    return DecisionResponse(success=True, session_id=session_id, decision=body.decision.value)
