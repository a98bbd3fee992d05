#!/usr/bin/env python3
"""
Match service - ranks firms and has the LLM narrate the engine's top-K.

The engine ranking is authoritative: whatever the model writes, scores,
ranks and firm names in the returned analysis come from the engine.
"""

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Dict, Optional

from core.app_context import AppContext
from core.dataset.models import MatchQuery
from core.errors import LobbyMatchError, NoFirmDataError
from core.llm.system_prompts import MATCH_SYSTEM_PROMPT
from core.narrative import (
    build_match_prompt,
    build_methodology,
    merge_match_analysis,
    parse_structured_response,
)
from core.scorer import RankingResult
from pipeline import events

logger = logging.getLogger(__name__)


class MatchService:
    """Service for ranking firms against a client profile."""

    def __init__(self, ctx: AppContext):
        self.ctx = ctx

    def rank(self, query: MatchQuery, top_k: Optional[int] = None) -> RankingResult:
        """
        Run the ranking engine.

        Raises:
            NoFirmDataError: If the dataset holds no firms.
        """
        ranking = self.ctx.engine.analyze(self.ctx.dataset, query, top_k=top_k)
        if not ranking.has_data:
            raise NoFirmDataError()
        return ranking

    def _prompt(self, query: MatchQuery, ranking: RankingResult):
        methodology = build_methodology(ranking, self.ctx.config.scoring)
        prompt = build_match_prompt(query, ranking, methodology, self.ctx.dataset.issue_labels)
        return methodology, prompt

    def _metadata(self, ranking: RankingResult, model: str, start: float, **usage) -> Dict[str, Any]:
        return {
            "model": model,
            "inputTokens": usage.get("input_tokens", 0),
            "outputTokens": usage.get("output_tokens", 0),
            "timeMs": int((time.time() - start) * 1000),
            "firmsAnalyzed": ranking.total_analyzed,
            "scoreDistribution": ranking.distribution.to_dict() if ranking.distribution else None,
            "scoringMode": ranking.mode.value,
        }

    async def analyze(self, query: MatchQuery, top_k: Optional[int] = None) -> Dict[str, Any]:
        """
        Rank, narrate and merge.

        Returns:
            Dict with ``analysis`` and ``metadata`` keys.
        """
        start = time.time()
        ranking = self.rank(query, top_k)
        methodology, prompt = self._prompt(query, ranking)

        completion = await self.ctx.llm.complete(MATCH_SYSTEM_PROMPT, prompt)
        parsed = parse_structured_response(completion.text)
        if parsed is None:
            logger.warning("Match narrative was not valid JSON; returning raw text with engine skeletons")

        analysis = merge_match_analysis(parsed, completion.text, ranking, methodology)
        return {
            "analysis": analysis,
            "metadata": self._metadata(
                ranking,
                completion.model,
                start,
                input_tokens=completion.input_tokens,
                output_tokens=completion.output_tokens,
            ),
        }

    async def stream(self, query: MatchQuery, top_k: Optional[int] = None) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield ``scores``, then ``chunk``s as the model writes, then ``complete``.

        Failures after the stream has started are reported with one ``error``
        event.
        """
        start = time.time()
        try:
            ranking = self.rank(query, top_k)
        except LobbyMatchError as e:
            yield events.error_event(str(e), e.category)
            return

        methodology, prompt = self._prompt(query, ranking)
        yield events.scores_event(
            matches=[ranked.to_dict() for ranked in ranking.top_firms],
            firmsAnalyzed=ranking.total_analyzed,
            scoreDistribution=ranking.distribution.to_dict() if ranking.distribution else None,
            scoringMode=ranking.mode.value,
        )

        parts = []
        try:
            async for chunk in self.ctx.llm.stream(MATCH_SYSTEM_PROMPT, prompt):
                parts.append(chunk)
                yield events.chunk_event(chunk)
        except LobbyMatchError as e:
            logger.error(f"Match stream failed: {e}")
            yield events.error_event(str(e), e.category)
            return
        except asyncio.CancelledError:
            logger.info("Match stream cancelled by client")
            raise
        except Exception as e:
            logger.exception("Unexpected error in match stream")
            yield events.error_event(f"Analysis failed: {e}", "internal_error")
            return

        text = "".join(parts)
        analysis = merge_match_analysis(parse_structured_response(text), text, ranking, methodology)
        yield events.complete_event(
            analysis=analysis,
            metadata=self._metadata(ranking, self.ctx.llm.model, start),
        )
