#!/usr/bin/env python3
"""
Match Prompt Assembly - embeds the engine's top-K into the narrative prompt.

The prompt carries the engine's scores for context only; whatever scores the
model echoes back are discarded during the merge.
"""

from typing import Mapping, Optional
import json

from core.config_loader import ScoringConfig, ScoringMode
from core.dataset.models import MatchQuery
from core.scorer.models import RankedFirm, RankingResult

MAX_PROMPT_COMMITTEES = 4


def _label(code: str, labels: Optional[Mapping[str, str]]) -> str:
    if labels and code in labels:
        return f"{code} ({labels[code]})"
    return code


def build_methodology(ranking: RankingResult, config: Optional[ScoringConfig] = None) -> str:
    """Transparency paragraph describing how the scores were produced."""
    cfg = config or ScoringConfig()
    w = cfg.composite_weights
    top = ranking.top_firms[0].scored.metrics if ranking.top_firms else None
    scores = ", ".join(str(r.scores.overall_match) for r in ranking.top_firms)

    if ranking.mode == ScoringMode.RUBRIC:
        opening = (
            f"Matches determined by a **fixed scoring rubric** applied to each of "
            f"{ranking.total_analyzed} firms: scores are absolute point totals and do not "
            f"depend on which other firms are in the dataset."
        )
    else:
        opening = (
            f"Matches determined by **percentile ranking** across {ranking.total_analyzed} "
            f"firms: scores reflect how each firm compares to all others in the dataset, "
            f"not absolute thresholds."
        )

    filings = f" ({top.issue_filing_count} filings for #1)" if top else ""
    officials = f" ({top.covered_count} at #1)" if top else ""
    parts = [
        opening,
        f"**Issue Alignment ({w.issue_alignment:.0%})** weighs filing frequency{filings}, "
        f"issue position prominence, additional issue coverage and practice specialization.",
        f"**Experience Depth ({w.experience_depth:.0%})** weighs former government officials{officials}, "
        f"committee relationship signal strength and overlap, client portfolio breadth and team size.",
        f"**Cost Fit ({w.cost_fit:.0%})** weighs budget alignment using billing data.",
    ]
    if ranking.distribution:
        d = ranking.distribution
        parts.append(f"Score distribution: Top {d.top}, Median {d.median}, Bottom {d.bottom}.")
    if scores:
        parts.append(f"Top {len(ranking.top_firms)} scores: {scores}.")
    return " ".join(parts)


def _firm_block(idx: int, ranked: RankedFirm, issue_area: str) -> str:
    firm = ranked.firm
    s = ranked.scores
    metrics = ranked.scored.metrics
    filings = (
        f"{metrics.issue_filing_count} filings in {issue_area}"
        if metrics.issue_filing_count > 0 else "Active in this area"
    )
    lobbyists = "; ".join(f"{p.name} ({p.position})" for p in ranked.personnel) or "Team available"
    clients = ", ".join(c.name for c in ranked.clients) or "Various clients"
    committees = "; ".join(ranked.committees) or "General government affairs"
    return "\n".join([
        f"FIRM {idx}: {firm.name} (Score: {s.overall_match}/100 | Issue: {s.issue_alignment} | "
        f"Experience: {s.experience_depth} | Cost: {s.cost_fit})",
        f"Website: {firm.website or 'N/A'}",
        f"Issue Filing Count: {filings}",
        f"Key Lobbyists: {lobbyists}",
        f"Representative Clients: {clients}",
        f"Committee Relationships: {committees}",
        f"Stats: {metrics.covered_count} former officials, {metrics.client_count} total clients",
    ])


def build_match_prompt(
    query: MatchQuery,
    ranking: RankingResult,
    methodology: str,
    issue_labels: Optional[Mapping[str, str]] = None
) -> str:
    """Build the user prompt asking the model to narrate the engine's top-K."""
    k = len(ranking.top_firms)
    relative = ranking.mode == ScoringMode.PERCENTILE
    score_kind = "percentile-based" if relative else "fixed-rubric"

    firm_blocks = "\n\n".join(
        _firm_block(idx + 1, ranked, query.issue_area)
        for idx, ranked in enumerate(ranking.top_firms)
    )
    additional = ", ".join(_label(c, issue_labels) for c in query.additional_issues) or "None"
    committees = ", ".join(ranking.relevant_committees[:MAX_PROMPT_COMMITTEES]) or "None identified"

    if relative and ranking.distribution:
        score_context = (
            f"These are percentile scores: {ranking.distribution.top} is top of "
            f"{ranking.total_analyzed} firms, median is {ranking.distribution.median}."
        )
    elif ranking.distribution:
        score_context = (
            f"These are rubric scores out of 100; across {ranking.total_analyzed} firms the "
            f"top score is {ranking.distribution.top} and the median is {ranking.distribution.median}."
        )
    else:
        score_context = "No score distribution available."

    output_format = {
        "executiveSummary": (
            "3-4 sentences. Lead with the #1 firm and its score. Name a specific lobbyist with "
            "their government background. Explain what differentiates #1 from the others."
        ),
        "matches": [{
            "rank": 1,
            "firmName": "Exact name",
            "firmWebsite": "URL or null",
            "rationale": "Two paragraphs: issue alignment first, then named lobbyists, experience depth and cost fit.",
            "keyPersonnel": [{"name": "Real name from data", "background": "Their position from data"}],
            "representativeClients": ["From data only"],
            "keyStrengths": ["Strength 1", "Strength 2", "Strength 3"],
            "considerations": ["One honest consideration"],
        }],
        "methodology": methodology,
    }

    return f"""Analyze these TOP {k} lobbying firm matches for a {query.organization_type} client. Scores are {score_kind}: explain why each firm ranks where it does relative to the {ranking.total_analyzed} firms analyzed.

## CLIENT PROFILE
**Organization:** {query.org_description}
**Primary Issue:** {_label(query.issue_area, issue_labels)}
**Additional Issues:** {additional}
**Policy Goals:** {query.policy_goals or 'Not specified'}
**Timeline:** {query.timeline or 'Not specified'}
**Budget:** {query.budget or 'Not specified'}
**Priorities:** {query.priorities or 'Not specified'}

## RELEVANT COMMITTEES
{committees}

## TOP {k} MATCHES
{firm_blocks}

## SCORE CONTEXT
{score_context}

## OUTPUT FORMAT
{json.dumps(output_format, indent=2)}

RULES:
- Do not invent scores; the scores above are final
- Never say "access": use "relationships with"
- Fuzzy numbers: "more than 1,000 filings" not "1,171 filings"
- keyPersonnel: ONLY names from the data, at least 2 per firm where available
- keyStrengths: EXACTLY 3 per firm
- JSON only, no markdown fences"""
