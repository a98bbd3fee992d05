#!/usr/bin/env python3
"""
Dataset Models - Normalized, immutable firm records.

Raw JSON shapes vary between dataset snapshots (issues as strings or
{code, count} objects, clients as strings or objects, ...). The loader folds
all of them into these dataclasses so the scoring engine only ever sees one
representation.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


@dataclass(frozen=True)
class IssueActivity:
    """One entry of a firm's issue history: LDA issue code and filing count."""
    code: str
    count: int = 0


@dataclass(frozen=True)
class Lobbyist:
    name: str
    covered_positions: Tuple[str, ...] = ()
    client_experience: Tuple[str, ...] = ()

    @property
    def has_covered_position(self) -> bool:
        return len(self.covered_positions) > 0


@dataclass(frozen=True)
class ClientEngagement:
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class CommitteeTie:
    """A firm's relationship signal with a congressional committee."""
    committee: str
    chamber: Optional[str] = None
    signal_strength: float = 0.0


@dataclass(frozen=True)
class BillingProfile:
    min_monthly: Optional[float] = None
    max_monthly: Optional[float] = None
    average_per_filing: Optional[float] = None


@dataclass(frozen=True)
class Firm:
    firm_id: str
    name: str
    website: Optional[str] = None
    issues: Tuple[IssueActivity, ...] = ()
    top_issues: Tuple[str, ...] = ()
    lobbyists: Tuple[Lobbyist, ...] = ()
    clients: Tuple[ClientEngagement, ...] = ()
    committees: Tuple[CommitteeTie, ...] = ()
    billing: Optional[BillingProfile] = None
    client_count: int = 0
    team_size: int = 0
    covered_official_count: Optional[int] = None
    firm_intro: Optional[str] = None
    voice_profile: Optional[Mapping[str, object]] = None

    def issue_index(self, code: str) -> Optional[int]:
        for idx, issue in enumerate(self.issues):
            if issue.code == code:
                return idx
        return None

    def issue_activity(self, code: str) -> Optional[IssueActivity]:
        idx = self.issue_index(code)
        return self.issues[idx] if idx is not None else None

    def is_active_in(self, code: str) -> bool:
        return self.issue_index(code) is not None or code in self.top_issues

    @property
    def covered_lobbyists(self) -> Tuple[Lobbyist, ...]:
        return tuple(l for l in self.lobbyists if l.has_covered_position)


@dataclass(frozen=True)
class Committee:
    name: str
    chamber: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.chamber} {self.name}".strip()


@dataclass(frozen=True)
class FirmDataset:
    """
    Read-only snapshot of everything loaded at process start.

    Built once by the loader and injected into request handlers; never
    mutated afterwards, so it can be shared across concurrent requests.
    """
    firms: Tuple[Firm, ...] = ()
    issue_committees: Mapping[str, Tuple[Committee, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    issue_labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    scenarios: Tuple[Mapping[str, object], ...] = ()

    def __len__(self) -> int:
        return len(self.firms)

    @property
    def is_empty(self) -> bool:
        return len(self.firms) == 0

    def find_firm(self, key: str) -> Optional[Firm]:
        """Look up a firm by id or exact name."""
        for firm in self.firms:
            if firm.firm_id == key or firm.name == key:
                return firm
        return None

    def issue_label(self, code: str) -> str:
        return self.issue_labels.get(code, code)

    def relevant_committees(
        self, issue_area: str, additional_issues: Tuple[str, ...] = ()
    ) -> Tuple[Committee, ...]:
        """Committees with jurisdiction over the query's issues, deduplicated by full name."""
        seen = set()
        result = []
        for code in (issue_area, *additional_issues):
            if not code:
                continue
            for committee in self.issue_committees.get(code, ()):
                if committee.full_name in seen:
                    continue
                seen.add(committee.full_name)
                result.append(committee)
        return tuple(result)


@dataclass(frozen=True)
class MatchQuery:
    """
    Client search parameters.

    Only issue_area, additional_issues and budget drive scoring; the
    free-text fields are used for narrative prompts alone.
    """
    issue_area: str
    additional_issues: Tuple[str, ...] = ()
    budget: Optional[str] = None
    organization_type: str = ""
    org_description: str = ""
    policy_goals: Optional[str] = None
    timeline: Optional[str] = None
    priorities: Optional[str] = None
