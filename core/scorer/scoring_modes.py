#!/usr/bin/env python3
"""
Scoring Modes - Percentile and fixed-rubric scoring formulas.

Percentile mode is population-relative: each raw metric is ranked against the
same metric of every other firm for the same query, so scores must be
recomputed whenever the population or the query changes.

Rubric mode awards fixed point buckets per raw metric and produces the same
score for a firm regardless of who else is in the dataset.

Both modes share the composite formula:

    overall = round(w_issue*issue + w_exp*experience + w_cost*cost)
"""

from typing import Dict, Any, List, Sequence, Tuple
import logging

from core.config_loader import ScoringConfig
from core.scorer.models import DimensionScores, RawMetrics, ScoredFirm
from core.scorer.percentile import percentile_scores, round_half_up

logger = logging.getLogger(__name__)

# (RawMetrics attribute, higher_is_better)
PERCENTILE_METRICS: Tuple[Tuple[str, bool], ...] = (
    ('issue_filing_count', True),
    ('issue_position', False),
    ('additional_match_rate', True),
    ('issue_count', False),  # fewer issues = more specialized
    ('covered_count', True),
    ('committee_signal_strength', True),
    ('committee_overlap_count', True),
    ('client_count', True),
    ('team_size', True),
    ('cost_distance', False),
)


def composite_score(issue: int, experience: int, cost: int, config: ScoringConfig) -> int:
    w = config.composite_weights
    return round_half_up(
        issue * w.issue_alignment +
        experience * w.experience_depth +
        cost * w.cost_fit
    )


def calculate_percentile_scores(
    all_metrics: Sequence[RawMetrics],
    config: ScoringConfig
) -> List[ScoredFirm]:
    """
    Score every firm against the whole population (percentile mode).

    Returns one ScoredFirm per input, in input order.
    """
    if not all_metrics:
        return []

    columns: Dict[str, Any] = {
        name: percentile_scores([getattr(m, name) for m in all_metrics], higher_is_better)
        for name, higher_is_better in PERCENTILE_METRICS
    }
    iw = config.issue_weights
    ew = config.experience_weights

    scored = []
    for idx, metrics in enumerate(all_metrics):
        pct = {name: float(values[idx]) for name, values in columns.items()}

        issue_alignment = round_half_up(
            pct['issue_filing_count'] * iw.filing_count +
            pct['issue_position'] * iw.issue_position +
            pct['additional_match_rate'] * iw.additional_match +
            pct['issue_count'] * iw.specialization
        )
        experience_depth = round_half_up(
            pct['covered_count'] * ew.covered_officials +
            pct['committee_signal_strength'] * ew.committee_signal +
            pct['committee_overlap_count'] * ew.committee_overlap +
            pct['client_count'] * ew.client_count +
            pct['team_size'] * ew.team_size
        )
        cost_fit = round_half_up(pct['cost_distance'])
        overall = composite_score(issue_alignment, experience_depth, cost_fit, config)

        scored.append(ScoredFirm(
            metrics=metrics,
            scores=DimensionScores(
                issue_alignment=issue_alignment,
                experience_depth=experience_depth,
                cost_fit=cost_fit,
                overall_match=overall,
            ),
            components={'mode': 'percentile', 'percentiles': pct},
        ))

    return scored


def rubric_issue_score(metrics: RawMetrics) -> int:
    score = 0
    # only the filing history earns position points; top_issues alone does not
    position = metrics.history_issue_position
    if position is not None:
        if position == 0:
            score += 60
        elif position <= 2:
            score += 50
        elif position <= 5:
            score += 40
        else:
            score += 30

    if metrics.additional_requested > 0:
        score += round_half_up(metrics.additional_matches / metrics.additional_requested * 40)
    else:
        score += 20

    return min(100, score)


def rubric_experience_score(metrics: RawMetrics) -> int:
    score = min(metrics.covered_count * 10, 40)

    overlap = metrics.committee_overlap_count
    if overlap >= 3:
        score += 40
    elif overlap >= 2:
        score += 30
    elif overlap >= 1:
        score += 20
    elif metrics.firm.committees:
        score += 10

    clients = metrics.client_count
    if clients >= 20:
        score += 20
    elif clients >= 10:
        score += 15
    elif clients >= 5:
        score += 10
    else:
        score += 5

    return min(100, score)


def rubric_cost_score(metrics: RawMetrics, config: ScoringConfig) -> int:
    budget = metrics.budget_monthly
    billing = metrics.billing
    if not budget or billing is None:
        return config.rubric_cost_unknown

    firm_min = billing.min_monthly
    firm_max = billing.max_monthly
    if firm_min is None and firm_max is None:
        if not billing.average_per_filing:
            return config.rubric_cost_unknown
        firm_min = firm_max = billing.average_per_filing / config.filings_per_month_divisor
    firm_min = firm_min or 0.0
    firm_max = firm_max if firm_max is not None else float('inf')

    if firm_min <= budget <= firm_max:
        return config.rubric_cost_in_range
    if firm_min * 0.5 <= budget <= firm_max * 1.5:
        return config.rubric_cost_near_range
    if firm_min * 0.25 <= budget <= firm_max * 2:
        return config.rubric_cost_far_range
    return config.rubric_cost_outside


def calculate_rubric_scores(
    all_metrics: Sequence[RawMetrics],
    config: ScoringConfig
) -> List[ScoredFirm]:
    """Score each firm with fixed point buckets (rubric mode); population-independent."""
    scored = []
    for metrics in all_metrics:
        issue_alignment = rubric_issue_score(metrics)
        experience_depth = rubric_experience_score(metrics)
        cost_fit = rubric_cost_score(metrics, config)
        overall = composite_score(issue_alignment, experience_depth, cost_fit, config)

        scored.append(ScoredFirm(
            metrics=metrics,
            scores=DimensionScores(
                issue_alignment=issue_alignment,
                experience_depth=experience_depth,
                cost_fit=cost_fit,
                overall_match=overall,
            ),
            components={'mode': 'rubric'},
        ))
    return scored
