#!/usr/bin/env python3
"""
Authoritative Merge - combines LLM narrative with engine-computed scores.

Engine scores are ground truth: any ``scores`` object the model emits is
discarded and replaced. Narrative fields are kept as decoration. When the
model output is not valid JSON, the raw text is returned under ``raw`` and
the matches are rebuilt from the engine ranking alone.
"""

from typing import Any, Dict, List, Optional
import json
import logging
import re

from core.scorer.models import RankedFirm, RankingResult

logger = logging.getLogger(__name__)

MIN_METHODOLOGY_LENGTH = 100

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_structured_response(text: str) -> Optional[Any]:
    """
    Parse a model response as JSON after stripping markdown fences.

    Falls back to the outermost ``{...}`` span when the model wraps the JSON
    in prose. Returns None when nothing parses.
    """
    cleaned = strip_code_fences(text)
    if not cleaned:
        return None
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            pass
    logger.warning(f"Model output is not valid JSON ({len(cleaned)} chars)")
    return None


def match_skeleton(ranked: RankedFirm) -> Dict[str, Any]:
    """Engine-only match entry, used when the model output cannot be aligned."""
    return {
        "rank": ranked.rank,
        "firmName": ranked.firm.name,
        "firmWebsite": ranked.firm.website,
        "rationale": "",
        "keyPersonnel": [{"name": p.name, "background": p.position} for p in ranked.personnel],
        "representativeClients": [c.name for c in ranked.clients],
        "keyStrengths": [],
        "considerations": [],
        "scores": ranked.scores.to_dict(),
    }


def _align_matches(llm_matches: List[Any], ranking: RankingResult) -> List[Dict[str, Any]]:
    """
    Pair each engine-ranked firm with the model's entry for it.

    Entries are matched by firm name first, then by position. Model entries
    for firms outside the engine's top-K are dropped.
    """
    entries = [m for m in llm_matches if isinstance(m, dict)]
    by_name: Dict[str, int] = {}
    for idx, entry in enumerate(entries):
        name = str(entry.get("firmName") or "").strip().lower()
        if name and name not in by_name:
            by_name[name] = idx

    engine_names = {r.firm.name.strip().lower() for r in ranking.top_firms}
    used = set()
    merged = []
    for position, ranked in enumerate(ranking.top_firms):
        own_name = ranked.firm.name.strip().lower()
        idx = by_name.get(own_name)
        if idx is None or idx in used:
            idx = position if position < len(entries) and position not in used else None
            if idx is not None:
                name = str(entries[idx].get("firmName") or "").strip().lower()
                # a positional entry that names another engine firm belongs to that firm
                if name in engine_names and name != own_name:
                    idx = None
        skeleton = match_skeleton(ranked)
        if idx is None:
            merged.append(skeleton)
            continue

        used.add(idx)
        entry = {k: v for k, v in entries[idx].items() if k != "scores"}
        for key, value in skeleton.items():
            if entry.get(key) in (None, "", []):
                entry[key] = value
        entry["rank"] = ranked.rank
        entry["firmName"] = ranked.firm.name
        entry["scores"] = ranked.scores.to_dict()
        merged.append(entry)
    return merged


def merge_match_analysis(
    parsed: Optional[Any],
    raw_text: str,
    ranking: RankingResult,
    methodology: str
) -> Dict[str, Any]:
    """Build the final ``analysis`` object from model output and the engine ranking."""
    if not isinstance(parsed, dict):
        return {
            "raw": raw_text,
            "executiveSummary": "",
            "matches": [match_skeleton(r) for r in ranking.top_firms],
            "methodology": methodology,
        }

    analysis = dict(parsed)
    llm_matches = analysis.get("matches")
    if not isinstance(llm_matches, list):
        llm_matches = []
    analysis["matches"] = _align_matches(llm_matches, ranking)

    if not isinstance(analysis.get("executiveSummary"), str):
        analysis["executiveSummary"] = ""

    existing = analysis.get("methodology")
    if not isinstance(existing, str) or len(existing) < MIN_METHODOLOGY_LENGTH:
        analysis["methodology"] = methodology
    return analysis
