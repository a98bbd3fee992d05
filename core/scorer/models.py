#!/usr/bin/env python3
"""
Scoring Models - Data structures for raw metrics and ranking results.
"""

from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass, field

from core.config_loader import ScoringMode
from core.dataset.models import BillingProfile, Firm


@dataclass(frozen=True)
class RawMetrics:
    """Per-firm, per-query scalar metrics, before normalization."""
    firm: Firm

    # Issue dimension
    issue_filing_count: int
    issue_position: int
    additional_match_rate: float
    issue_count: int

    # Experience dimension
    covered_count: int
    committee_signal_strength: float
    committee_overlap_count: int
    client_count: int
    team_size: int

    # Cost dimension
    cost_distance: float
    budget_monthly: Optional[float] = None
    billing: Optional[BillingProfile] = None

    # Pass-through for rubric scoring and excerpts
    history_issue_position: Optional[int] = None
    additional_requested: int = 0
    additional_matches: int = 0
    matching_committees: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DimensionScores:
    issue_alignment: int
    experience_depth: int
    cost_fit: int
    overall_match: int

    def to_dict(self) -> Dict[str, int]:
        return {
            'issueAlignment': self.issue_alignment,
            'experienceDepth': self.experience_depth,
            'costFit': self.cost_fit,
            'overallMatch': self.overall_match,
        }


@dataclass
class ScoredFirm:
    """A firm with its dimension scores and the components behind them."""
    metrics: RawMetrics
    scores: DimensionScores
    components: Dict[str, Any] = field(default_factory=dict)

    @property
    def firm(self) -> Firm:
        return self.metrics.firm


@dataclass(frozen=True)
class PersonnelExcerpt:
    name: str
    position: str


@dataclass(frozen=True)
class ClientExcerpt:
    name: str
    description: Optional[str] = None


@dataclass
class RankedFirm:
    """A surviving top-K firm plus the curated fields used in narrative prompts."""
    rank: int
    scored: ScoredFirm
    personnel: List[PersonnelExcerpt] = field(default_factory=list)
    clients: List[ClientExcerpt] = field(default_factory=list)
    committees: List[str] = field(default_factory=list)

    @property
    def firm(self) -> Firm:
        return self.scored.firm

    @property
    def scores(self) -> DimensionScores:
        return self.scored.scores

    def to_dict(self) -> Dict[str, Any]:
        metrics = self.scored.metrics
        return {
            'rank': self.rank,
            'name': self.firm.name,
            'website': self.firm.website,
            'scores': self.scores.to_dict(),
            'issueFilingCount': metrics.issue_filing_count,
            'lobbyists': [{'name': p.name, 'position': p.position} for p in self.personnel],
            'clients': [
                {'name': c.name, 'description': c.description} if c.description else {'name': c.name}
                for c in self.clients
            ],
            'committees': list(self.committees),
            'clientCount': metrics.client_count,
            'coveredOfficialCount': metrics.covered_count,
            'rawMetrics': {
                'filingCount': metrics.issue_filing_count,
                'coveredOfficials': metrics.covered_count,
                'committeeSignal': round(metrics.committee_signal_strength),
                'committeeOverlap': metrics.committee_overlap_count,
            },
        }


@dataclass(frozen=True)
class ScoreDistribution:
    """Overall-score spread across the entire ranked population."""
    top: int
    median: int
    bottom: int

    def to_dict(self) -> Dict[str, int]:
        return {'top': self.top, 'median': self.median, 'bottom': self.bottom}


@dataclass
class RankingResult:
    top_firms: List[RankedFirm]
    relevant_committees: List[str]
    total_analyzed: int
    distribution: Optional[ScoreDistribution]
    mode: ScoringMode = ScoringMode.PERCENTILE

    @property
    def has_data(self) -> bool:
        """False when the candidate population was empty ("no data")."""
        return self.total_analyzed > 0

    @classmethod
    def empty(cls, mode: ScoringMode = ScoringMode.PERCENTILE) -> "RankingResult":
        return cls(top_firms=[], relevant_committees=[], total_analyzed=0, distribution=None, mode=mode)
