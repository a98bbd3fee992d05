#!/usr/bin/env python3
"""
Request models for API endpoints.

Fields are snake_case in Python and camelCase on the wire.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional

from pipeline.stages import Decision, GenerationMode


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class MatchRequest(CamelModel):
    """Search parameters for a firm match."""
    organization_type: str = Field(..., min_length=1, description="Client organization type")
    issue_area: str = Field(..., min_length=1, description="Primary LDA issue code, e.g. BAN")
    additional_issues: List[str] = Field(default_factory=list, description="Secondary issue codes")
    budget: Optional[str] = Field(None, description="Budget range, e.g. $5,000-15,000/month")
    org_description: str = Field(..., min_length=1, description="What the organization does")
    policy_goals: Optional[str] = None
    timeline: Optional[str] = None
    priorities: Optional[str] = None
    top_k: Optional[int] = Field(None, ge=1, le=50, description="Override the configured top-K")


class MemoRequest(CamelModel):
    """Pitch memo target, prospect and goal."""
    firm_name: str = Field(..., min_length=1, description="Firm name or registrant id")
    prospect_name: str = Field(..., min_length=1)
    prospect_issues: List[str] = Field(..., min_length=1, description="Prospect's issue areas")
    advocacy_goal: str = Field(..., min_length=1)
    prospect_industry: Optional[str] = None
    goal_type: Optional[str] = Field(None, description="offensive or defensive")
    venue: Optional[str] = None
    timeline: Optional[str] = None
    budget_range: Optional[str] = None
    current_representation: Optional[str] = None
    additional_context: Optional[str] = None
    generation_mode: GenerationMode = Field(
        default=GenerationMode.DRAFT,
        description="draft: 1 stage streamed; standard: 4 stages in the background; "
                    "detailed: 4 stages streamed with a checkpoint"
    )

    @field_validator("prospect_issues", mode="before")
    @classmethod
    def _split_issue_string(cls, value):
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class DecisionRequest(CamelModel):
    """Accept or reject at a generation checkpoint."""
    decision: Decision


class ComplianceRequest(CamelModel):
    """Policy text to analyze against a regulatory framework."""
    policy_text: str = Field(..., min_length=1)
    framework: str = Field(..., min_length=1, description="BSA/AML or FCPA")
