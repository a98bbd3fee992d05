#!/usr/bin/env python3
"""
Match endpoints - rank firms for a client profile and narrate the result.
"""

import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from core.dataset.models import MatchQuery
from pipeline import events
from ..dependencies import get_match_service
from ..models.requests import MatchRequest
from ..models.responses import MatchResponse
from ..rate_limit import MATCH_RATE_LIMIT, limiter
from ..services.match_service import MatchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/match", tags=["match"])


def to_query(body: MatchRequest) -> MatchQuery:
    return MatchQuery(
        issue_area=body.issue_area,
        additional_issues=tuple(body.additional_issues),
        budget=body.budget,
        organization_type=body.organization_type,
        org_description=body.org_description,
        policy_goals=body.policy_goals,
        timeline=body.timeline,
        priorities=body.priorities,
    )


@router.post("", response_model=MatchResponse, response_model_by_alias=True)
@limiter.limit(MATCH_RATE_LIMIT)
async def match_firms(
    request: Request,
    body: MatchRequest,
    service: MatchService = Depends(get_match_service)
):
    """
    Rank every firm for the client profile and return the narrated top-K.

    Scores, ranks and firm names are always the engine's.
    """
    result = await service.analyze(to_query(body), top_k=body.top_k)
    return MatchResponse(success=True, **result)


@router.post("/stream")
@limiter.limit(MATCH_RATE_LIMIT)
async def match_firms_stream(
    request: Request,
    body: MatchRequest,
    service: MatchService = Depends(get_match_service)
):
    """
    Server-Sent Events variant of the match endpoint.

    Event types:
    - scores: engine top-K with authoritative scores, sent first
    - chunk: narrative text as the model writes it
    - complete: merged analysis and metadata
    - error: terminal failure
    """
    query = to_query(body)

    async def event_generator():
        async for event in service.stream(query, top_k=body.top_k):
            yield events.format_sse(event)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=events.SSE_HEADERS
    )
