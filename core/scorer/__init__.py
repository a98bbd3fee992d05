#!/usr/bin/env python3
"""
Scoring Module - Firm ranking engine.

Public API:
- RankingEngine: scores the population and selects the top-K
- percentile_score: population-relative normalization of one value
- extract_raw_metrics: per-firm raw metric vector for a query

Layout:

- models.py: Data structures (RawMetrics, ScoredFirm, RankedFirm, RankingResult)
- metrics.py: Raw metric extraction, budget and billing normalization
- percentile.py: Percentile and rounding helpers
- scoring_modes.py: Percentile and fixed-rubric scoring formulas
- service.py: RankingEngine orchestrator
"""

from core.scorer.metrics import extract_raw_metrics, parse_budget_to_monthly
from core.scorer.models import (
    DimensionScores,
    RankedFirm,
    RankingResult,
    RawMetrics,
    ScoreDistribution,
    ScoredFirm,
)
from core.scorer.percentile import percentile_score, round_half_up
from core.scorer.service import RankingEngine

__all__ = [
    'RankingEngine', 'RankingResult', 'RankedFirm', 'ScoredFirm', 'RawMetrics',
    'DimensionScores', 'ScoreDistribution', 'extract_raw_metrics',
    'parse_budget_to_monthly', 'percentile_score', 'round_half_up',
]
