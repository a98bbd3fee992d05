#!/usr/bin/env python3
"""
Pitch Memo Content - firm profile, prospect brief and per-stage prompts.

The four memo stages are:
1. draft: the full memo from the firm profile and prospect brief
2. critique: the draft read from the prospect's perspective
3. revision plan: a list of concrete changes
4. final revision: the revised memo as JSON {"memo", "revisionNotes"}
"""

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from core.config_loader import GenerationConfig
from core.dataset.models import Firm, FirmDataset, Lobbyist


@dataclass(frozen=True)
class MemoBrief:
    """Prospect and goal description for one memo."""
    firm_name: str
    prospect_name: str
    prospect_issues: Tuple[str, ...]
    advocacy_goal: str
    prospect_industry: Optional[str] = None
    goal_type: Optional[str] = None
    venue: Optional[str] = None
    timeline: Optional[str] = None
    budget_range: Optional[str] = None
    current_representation: Optional[str] = None
    additional_context: Optional[str] = None


@dataclass
class FirmProfile:
    """The slice of a firm record that goes into memo prompts."""
    name: str
    top_issues: List[Tuple[str, str]] = field(default_factory=list)
    total_clients: int = 0
    recent_clients: List[Tuple[str, Optional[str]]] = field(default_factory=list)
    lobbyists: List[Lobbyist] = field(default_factory=list)
    covered_official_count: int = 0
    committees: List[Tuple[str, float]] = field(default_factory=list)
    billing_summary: str = "Not available"
    voice_profile: Optional[Mapping[str, object]] = None
    firm_intro: Optional[str] = None


def _billing_summary(firm: Firm) -> str:
    billing = firm.billing
    if billing is None:
        return "Not available"
    if billing.min_monthly is not None and billing.max_monthly is not None:
        return f"${billing.min_monthly:,.0f}-${billing.max_monthly:,.0f} per month"
    if billing.average_per_filing:
        return f"about ${billing.average_per_filing:,.0f} per quarterly filing"
    return "Not available"


def build_firm_profile(firm: Firm, dataset: FirmDataset, config: Optional[GenerationConfig] = None) -> FirmProfile:
    """
    Select the parts of a firm record relevant to a pitch.

    Lobbyists qualify with a meaningful covered position or any client
    experience, in dataset order, capped at ``max_lobbyists_in_profile``.
    """
    cfg = config or GenerationConfig()
    lobbyists = [l for l in firm.lobbyists if l.has_covered_position or l.client_experience]

    codes = [i.code for i in firm.issues] or list(firm.top_issues)
    return FirmProfile(
        name=firm.name,
        top_issues=[(code, dataset.issue_label(code)) for code in codes[:5]],
        total_clients=firm.client_count,
        recent_clients=[(c.name, c.description) for c in firm.clients[:cfg.max_clients_in_profile]],
        lobbyists=lobbyists[:cfg.max_lobbyists_in_profile],
        covered_official_count=(
            firm.covered_official_count
            if firm.covered_official_count is not None else len(firm.covered_lobbyists)
        ),
        committees=[(tie.committee, tie.signal_strength) for tie in firm.committees],
        billing_summary=_billing_summary(firm),
        voice_profile=firm.voice_profile,
        firm_intro=firm.firm_intro,
    )


def _join(values, default: str) -> str:
    if isinstance(values, (list, tuple)) and values:
        return ", ".join(str(v) for v in values)
    if isinstance(values, str) and values:
        return values
    return default


def _voice_section(profile: FirmProfile) -> str:
    voice = profile.voice_profile
    if not voice:
        return ""
    return "\n".join([
        "**VOICE PROFILE (apply throughout the memo):**",
        f"Tone: {_join(voice.get('tone'), 'Professional, strategic')}",
        f"Key Phrases to Echo: {_join(voice.get('keyPhrases'), 'None specified')}",
        f"Positioning: {_join(voice.get('positioning'), 'Not specified')}",
        f"Differentiators: {_join(voice.get('differentiators'), 'None specified')}",
        f"Avoid: {_join(voice.get('avoid'), 'None specified')}",
    ])


def _lobbyist_line(lobbyist: Lobbyist) -> str:
    lines = [f"- {lobbyist.name}"]
    if lobbyist.covered_positions:
        lines.append(f"    Government service: {lobbyist.covered_positions[0]}")
    else:
        lines.append("    (No covered position on file)")
    if lobbyist.client_experience:
        lines.append(f"    Client experience: {', '.join(lobbyist.client_experience[:5])}")
    return "\n".join(lines)


def build_draft_prompt(profile: FirmProfile, brief: MemoBrief) -> str:
    issues = "\n".join(f"- {code}: {label}" for code, label in profile.top_issues) or "Not available"
    clients = "\n".join(
        f"- {name}: {desc}" if desc else f"- {name}" for name, desc in profile.recent_clients
    ) or "Client data not available"
    lobbyists = "\n".join(_lobbyist_line(l) for l in profile.lobbyists) or "No covered officials on file"
    committees = "\n".join(
        f"- {name} (Signal strength: {strength:g})" for name, strength in profile.committees
    ) or "Committee relationship data not available"
    intro = f"**FIRM INTRO (use verbatim):**\n{profile.firm_intro}" if profile.firm_intro else ""

    return f"""Generate a pitch memo for the following:

## FIRM PROFILE: {profile.name}
{_voice_section(profile)}
{intro}

**Top Issue Areas:**
{issues}

**Client Portfolio ({profile.total_clients} total clients):**
{clients}

**Billing Range:** {profile.billing_summary}

**Team Members ({profile.covered_official_count} with covered positions):**
{lobbyists}

**Committee Relationships:**
{committees}

---

## PROSPECT PROFILE: {brief.prospect_name}
**Industry:** {brief.prospect_industry or 'Not specified'}
**Primary Issue Areas:** {', '.join(brief.prospect_issues)}
**Advocacy Goal:** {brief.advocacy_goal}
**Goal Type:** {brief.goal_type or 'Not specified'} (offensive = seeking policy change, defensive = protecting status quo)
**Primary Venue:** {brief.venue or 'Not specified'}
**Timeline:** {brief.timeline or 'Not specified'}
**Budget Range:** {brief.budget_range or 'Not specified'}
**Current Representation:** {brief.current_representation or 'None'}
**Additional Context:** {brief.additional_context or 'None provided'}

---

Generate the pitch memo now. Select team members by relevance to this prospect, not seniority."""


def _prospect_summary(brief: MemoBrief) -> str:
    return (
        f"Prospect: {brief.prospect_name} ({brief.prospect_industry or 'industry not specified'}). "
        f"Issues: {', '.join(brief.prospect_issues)}. Goal: {brief.advocacy_goal}."
    )


def build_critique_prompt(brief: MemoBrief, draft: str) -> str:
    return f"""{_prospect_summary(brief)}

## DRAFT MEMO
{draft}

Critique this memo as the prospect."""


def build_plan_prompt(brief: MemoBrief, draft: str, critique: str) -> str:
    return f"""{_prospect_summary(brief)}

## DRAFT MEMO
{draft}

## PROSPECT CRITIQUE
{critique}

Write the revision plan as a list."""


def build_revision_prompt(brief: MemoBrief, draft: str, plan: str) -> str:
    return f"""{_prospect_summary(brief)}

## DRAFT MEMO
{draft}

## REVISION PLAN
{plan}

Apply the plan and return the JSON object."""
