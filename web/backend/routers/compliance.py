#!/usr/bin/env python3
"""
Compliance endpoints - policy gap analysis.
"""

from fastapi import APIRouter, Depends, Request

from ..dependencies import get_compliance_service
from ..models.requests import ComplianceRequest
from ..models.responses import ComplianceResponse
from ..rate_limit import GENERATION_RATE_LIMIT, limiter
from ..services.compliance_service import ComplianceService

router = APIRouter(prefix="/api/compliance", tags=["compliance"])


@router.post("/analyze", response_model=ComplianceResponse, response_model_by_alias=True,
             response_model_exclude_none=True)
@limiter.limit(GENERATION_RATE_LIMIT)
async def analyze_policy(
    request: Request,
    body: ComplianceRequest,
    service: ComplianceService = Depends(get_compliance_service)
):
    """
    Compare a compliance policy against BSA/AML or FCPA requirements.

    The summary counts are recomputed from the findings. When the model's
    output cannot be parsed the response carries ``raw`` instead.
    """
    result = await service.analyze(body.policy_text, body.framework)
    return ComplianceResponse(success=True, **result)
