#!/usr/bin/env python3
"""
Compliance service - policy gap analysis against a regulatory framework.
"""

import logging
import time
from typing import Any, Dict

from core.app_context import AppContext
from core.llm.system_prompts import COMPLIANCE_SYSTEM_PROMPT
from core.narrative.compliance import (
    build_compliance_prompt,
    normalize_gap_analysis,
    supported_frameworks,
)
from core.narrative.merge import parse_structured_response
from ..exceptions import InvalidRequestException

logger = logging.getLogger(__name__)


class ComplianceService:
    """Service for compliance gap analysis."""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    async def analyze(self, policy_text: str, framework: str) -> Dict[str, Any]:
        """
        Compare a policy against the framework's requirements.

        Raises:
            InvalidRequestException: If the framework is not supported.
        """
        frameworks = supported_frameworks()
        if framework not in frameworks:
            raise InvalidRequestException(
                f"Unsupported framework '{framework}'. Supported: {', '.join(frameworks)}"
            )

        start = time.time()
        completion = await self.ctx.llm.complete(
            COMPLIANCE_SYSTEM_PROMPT,
            build_compliance_prompt(policy_text, framework),
        )
        result = normalize_gap_analysis(parse_structured_response(completion.text), completion.text)
        if "raw" in result:
            logger.warning(f"{framework} gap analysis was not valid JSON; returning raw text")

        return {
            "framework": framework,
            **result,
            "metadata": {
                "model": completion.model,
                "inputTokens": completion.input_tokens,
                "outputTokens": completion.output_tokens,
                "timeMs": int((time.time() - start) * 1000),
            },
        }
