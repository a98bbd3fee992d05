#!/usr/bin/env python3
"""
Ranking Engine - scores the whole firm population against a query and
selects the top-K.

Pipeline:
1. extract raw metrics for every firm
2. score all firms (percentile or rubric mode, per ScoringConfig.mode)
3. stable sort by overall score, truncate to top-K, build narrative excerpts

Ties on the overall score keep dataset order (Python's sort is stable), so
output is deterministic for a fixed dataset and query.

The engine is pure: the dataset is passed in at call time and never mutated.
"""

from typing import List, Optional, Sequence
import logging
import time

from core.config_loader import ScoringConfig, ScoringMode
from core.dataset.models import FirmDataset, MatchQuery
from core.scorer.metrics import extract_raw_metrics
from core.scorer.models import (
    ClientExcerpt,
    PersonnelExcerpt,
    RankedFirm,
    RankingResult,
    RawMetrics,
    ScoreDistribution,
    ScoredFirm,
)
from core.scorer.scoring_modes import calculate_percentile_scores, calculate_rubric_scores

logger = logging.getLogger(__name__)


class RankingEngine:
    """Deterministic, explainable firm ranking."""

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    @property
    def mode(self) -> ScoringMode:
        return self.config.mode

    def score_all_candidates(self, all_metrics: Sequence[RawMetrics]) -> List[ScoredFirm]:
        if self.config.mode == ScoringMode.RUBRIC:
            return calculate_rubric_scores(all_metrics, self.config)
        return calculate_percentile_scores(all_metrics, self.config)

    def _build_excerpt(self, rank: int, scored: ScoredFirm) -> RankedFirm:
        firm = scored.firm
        cfg = self.config

        personnel = [
            PersonnelExcerpt(name=l.name, position=l.covered_positions[0])
            for l in firm.covered_lobbyists[:cfg.max_personnel_excerpt]
        ]
        clients = [
            ClientExcerpt(name=c.name, description=c.description)
            for c in firm.clients[:cfg.max_client_excerpt]
        ]
        committees = list(scored.metrics.matching_committees[:cfg.max_committee_excerpt])

        return RankedFirm(
            rank=rank,
            scored=scored,
            personnel=personnel,
            clients=clients,
            committees=committees,
        )

    def rank_and_select(self, scored: Sequence[ScoredFirm], k: Optional[int] = None) -> RankingResult:
        """
        Sort by overall score (stable), keep the top ``k`` and compute the
        score distribution over the entire population.
        """
        if not scored:
            return RankingResult.empty(self.config.mode)

        top_k = k if k is not None else self.config.top_k
        if top_k < 1:
            raise ValueError(f"top_k must be >= 1 (got {top_k})")

        ordered = sorted(scored, key=lambda s: s.scores.overall_match, reverse=True)
        top_firms = [self._build_excerpt(idx + 1, s) for idx, s in enumerate(ordered[:top_k])]

        distribution = ScoreDistribution(
            top=ordered[0].scores.overall_match,
            median=ordered[len(ordered) // 2].scores.overall_match,
            bottom=ordered[-1].scores.overall_match,
        )
        return RankingResult(
            top_firms=top_firms,
            relevant_committees=[],
            total_analyzed=len(ordered),
            distribution=distribution,
            mode=self.config.mode,
        )

    def analyze(self, dataset: FirmDataset, query: MatchQuery, top_k: Optional[int] = None) -> RankingResult:
        """
        Rank every firm in ``dataset`` for ``query``.

        An empty dataset yields ``RankingResult.empty()`` (``has_data`` is False);
        callers must surface that as a "no data" error, not a ranking.
        """
        start = time.time()
        if dataset.is_empty:
            logger.error("Ranking requested but no firms are loaded")
            return RankingResult.empty(self.config.mode)

        relevant = dataset.relevant_committees(query.issue_area, tuple(query.additional_issues))
        all_metrics = [
            extract_raw_metrics(firm, query, relevant, self.config)
            for firm in dataset.firms
        ]
        scored = self.score_all_candidates(all_metrics)
        result = self.rank_and_select(scored, top_k)
        result.relevant_committees = [c.full_name for c in relevant]

        elapsed_ms = (time.time() - start) * 1000
        logger.info(
            f"Ranking ({self.config.mode.value}): top {len(result.top_firms)} of "
            f"{result.total_analyzed} firms in {elapsed_ms:.1f}ms"
        )
        logger.info(" | ".join(
            f"{r.firm.name}: {r.scores.overall_match} "
            f"(I:{r.scores.issue_alignment} E:{r.scores.experience_depth} C:{r.scores.cost_fit})"
            for r in result.top_firms
        ))
        if result.distribution:
            d = result.distribution
            logger.info(f"Distribution: top {d.top}, median {d.median}, bottom {d.bottom}")
        return result
