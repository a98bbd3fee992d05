#!/usr/bin/env python3
"""
Raw Metric Extraction - per-firm scalars relative to a query.

Pure functions: no I/O, no population-wide state. Percentile conversion
happens afterwards in the scoring modes.
"""

from typing import Optional, Sequence, Tuple
import logging

from core.config_loader import ScoringConfig
from core.dataset.models import BillingProfile, Committee, CommitteeTie, Firm, MatchQuery
from core.scorer.models import RawMetrics

logger = logging.getLogger(__name__)

# Budget enum token -> representative monthly spend
BUDGET_MONTHLY = (
    ('2,500-5,000', 3750.0),
    ('5,000-15,000', 10000.0),
    ('15,000-30,000', 22500.0),
    ('30,000+', 50000.0),
)


def parse_budget_to_monthly(budget: Optional[str]) -> Optional[float]:
    """Map a budget range label (e.g. "$5,000-15,000/month") to a monthly figure."""
    if not budget:
        return None
    for token, monthly in BUDGET_MONTHLY:
        if token in budget:
            return monthly
    return None


def monthly_billing(billing: Optional[BillingProfile], filings_per_month_divisor: float = 3.0) -> Optional[float]:
    """
    Normalize a firm's billing data to a comparable monthly figure.

    Average-per-filing is quarterly and takes priority; otherwise the
    midpoint of the declared monthly range is used.
    """
    if billing is None:
        return None
    if billing.average_per_filing:
        return billing.average_per_filing / filings_per_month_divisor
    if billing.min_monthly is not None and billing.max_monthly is not None:
        return (billing.min_monthly + billing.max_monthly) / 2.0
    return billing.min_monthly or billing.max_monthly or None


def committee_names_overlap(firm_committee: str, relevant_name: str) -> bool:
    """Case-insensitive substring match in either direction; blank names never match."""
    a = (firm_committee or '').strip().lower()
    b = (relevant_name or '').strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def matching_committees(
    committees: Sequence[CommitteeTie],
    relevant: Sequence[Committee]
) -> Tuple[CommitteeTie, ...]:
    relevant_names = [c.name for c in relevant]
    return tuple(
        tie for tie in committees
        if any(committee_names_overlap(tie.committee, name) for name in relevant_names)
    )


def extract_raw_metrics(
    firm: Firm,
    query: MatchQuery,
    relevant_committees: Sequence[Committee],
    config: Optional[ScoringConfig] = None
) -> RawMetrics:
    """Compute the raw metric vector of one firm for one query."""
    cfg = config or ScoringConfig()

    # Issue metrics: two-tier position lookup (issue history, then top issues)
    primary = firm.issue_activity(query.issue_area)
    if primary is not None:
        issue_position = firm.issue_index(query.issue_area)
    elif query.issue_area in firm.top_issues:
        issue_position = firm.top_issues.index(query.issue_area)
    else:
        issue_position = cfg.issue_position_not_found
    issue_filing_count = primary.count if primary is not None else 0

    additional = [code for code in query.additional_issues if code]
    additional_matches = sum(1 for code in additional if firm.is_active_in(code))
    if additional:
        additional_match_rate = additional_matches / len(additional)
    else:
        additional_match_rate = cfg.default_additional_match_rate

    issue_count = len(firm.issues) or cfg.default_issue_count

    # Experience metrics
    if firm.covered_official_count is not None:
        covered_count = firm.covered_official_count
    else:
        covered_count = len(firm.covered_lobbyists)

    overlapping = matching_committees(firm.committees, relevant_committees)
    committee_signal_strength = sum(tie.signal_strength for tie in overlapping)

    # Cost metrics
    budget_monthly = parse_budget_to_monthly(query.budget)
    firm_monthly = monthly_billing(firm.billing, cfg.filings_per_month_divisor)
    if budget_monthly and firm_monthly:
        cost_distance = abs(budget_monthly - firm_monthly) / firm_monthly
    else:
        cost_distance = cfg.neutral_cost_distance

    return RawMetrics(
        firm=firm,
        issue_filing_count=issue_filing_count,
        issue_position=issue_position,
        additional_match_rate=additional_match_rate,
        issue_count=issue_count,
        covered_count=covered_count,
        committee_signal_strength=committee_signal_strength,
        committee_overlap_count=len(overlapping),
        client_count=firm.client_count,
        team_size=firm.team_size,
        cost_distance=cost_distance,
        budget_monthly=budget_monthly,
        billing=firm.billing,
        history_issue_position=firm.issue_index(query.issue_area),
        additional_requested=len(additional),
        additional_matches=additional_matches,
        matching_committees=tuple(tie.committee for tie in overlapping),
    )
