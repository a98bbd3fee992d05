#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MatchMetadata(CamelModel):
    """Model usage and engine statistics for a match."""
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    time_ms: int = 0
    firms_analyzed: int = 0
    score_distribution: Optional[Dict[str, int]] = None
    scoring_mode: str = "percentile"


class MatchResponse(CamelModel):
    """Narrated match with engine-authoritative scores."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "success": True,
                "analysis": {
                    "executiveSummary": "Capitol Strategies leads the field...",
                    "matches": [{
                        "rank": 1,
                        "firmName": "Capitol Strategies",
                        "firmWebsite": "https://example.com",
                        "rationale": "...",
                        "keyPersonnel": [{"name": "Jane Smith", "background": "Staff Director, Senate Banking"}],
                        "representativeClients": ["Community Bankers Association"],
                        "keyStrengths": ["...", "...", "..."],
                        "considerations": ["..."],
                        "scores": {"issueAlignment": 88, "experienceDepth": 75, "costFit": 60, "overallMatch": 78}
                    }],
                    "methodology": "Matches determined by percentile ranking..."
                },
                "metadata": {
                    "model": "gpt-4o-mini", "inputTokens": 2100, "outputTokens": 900,
                    "timeMs": 5400, "firmsAnalyzed": 120,
                    "scoreDistribution": {"top": 78, "median": 44, "bottom": 9},
                    "scoringMode": "percentile"
                }
            }
        }
    )

    success: bool = True
    analysis: Dict[str, Any]
    metadata: MatchMetadata


class MemoSessionResponse(CamelModel):
    """Returned when a background memo session is started."""
    success: bool
    session_id: str
    status: str
    mode: str
    message: str


class MemoSessionStatusResponse(CamelModel):
    """State of a memo generation session."""
    session_id: str
    status: str = Field(description="pending, running, awaiting_decision, completed or failed")
    mode: str
    step: Optional[str] = None
    outcome: Optional[str] = None
    artifact: Optional[Any] = None
    stages_completed: int = 0
    memos_remaining: Optional[int] = None
    error: Optional[str] = None


class DecisionResponse(CamelModel):
    success: bool
    session_id: str
    decision: str


class FirmSummary(CamelModel):
    id: str
    name: str
    website: Optional[str] = None
    covered_official_count: int = 0
    total_clients: int = 0
    top_issues: List[str] = Field(default_factory=list)


class FirmListResponse(CamelModel):
    firms: List[FirmSummary]


class IssuesResponse(CamelModel):
    issues: Dict[str, str]


class ScenariosResponse(CamelModel):
    scenarios: List[Dict[str, Any]]


class UsageResponse(CamelModel):
    used: int
    limit: int
    remaining: Optional[int] = None
    count: int
    logs: List[Dict[str, Any]]


class ComplianceSummary(CamelModel):
    met: int = 0
    gaps: int = 0
    critical: int = 0


class ComplianceResponse(CamelModel):
    """Gap analysis; ``raw`` replaces summary and findings when the model output was unparseable."""
    success: bool = True
    framework: str
    summary: Optional[ComplianceSummary] = None
    findings: List[Dict[str, Any]] = Field(default_factory=list)
    raw: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
