#!/usr/bin/env python3
"""
Unit tests for structured-output parsing and the authoritative score merge.
"""
import json

import pytest

from core.dataset import MatchQuery
from core.narrative import build_methodology, merge_match_analysis, parse_structured_response
from core.narrative.merge import MIN_METHODOLOGY_LENGTH, strip_code_fences
from core.scorer import RankingEngine
from tests.fixtures.firm_fixtures import sample_dataset


@pytest.fixture
def ranking():
    query = MatchQuery(issue_area="BAN", additional_issues=("FIN",))
    return RankingEngine().analyze(sample_dataset(), query, top_k=3)


@pytest.fixture
def methodology(ranking):
    return build_methodology(ranking)


def llm_entry(name, **extra):
    entry = {
        "rank": 9,
        "firmName": name,
        "rationale": f"Why {name}",
        "keyStrengths": ["a", "b", "c"],
        "considerations": ["d"],
    }
    entry.update(extra)
    return entry


class TestParseStructuredResponse:

    def test_plain_json(self):
        assert parse_structured_response('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        assert parse_structured_response('```json\n{"a": 1}\n```') == {"a": 1}
        assert strip_code_fences("```\nhello\n```") == "hello"

    def test_json_wrapped_in_prose(self):
        text = 'Here is the analysis:\n{"executiveSummary": "x", "matches": []}\nHope this helps.'
        assert parse_structured_response(text) == {"executiveSummary": "x", "matches": []}

    def test_unparseable_returns_none(self):
        assert parse_structured_response("Sorry, I cannot help with that.") is None
        assert parse_structured_response("") is None
        assert parse_structured_response("{broken") is None


class TestMergeMatchAnalysis:

    def test_forged_scores_never_survive(self, ranking, methodology):
        names = [r.firm.name for r in ranking.top_firms]
        forged = {"overallMatch": 999, "issueAlignment": 999, "experienceDepth": 999, "costFit": 999}
        parsed = {
            "executiveSummary": "Summary",
            "matches": [llm_entry(name, scores=dict(forged)) for name in names],
            "methodology": methodology,
        }

        merged = merge_match_analysis(parsed, json.dumps(parsed), ranking, methodology)

        for entry, ranked in zip(merged["matches"], ranking.top_firms):
            assert entry["scores"] == ranked.scores.to_dict()
            assert entry["scores"]["overallMatch"] != 999

    def test_entries_realigned_by_name(self, ranking, methodology):
        names = [r.firm.name for r in ranking.top_firms]
        parsed = {"matches": [llm_entry(name) for name in reversed(names)]}

        merged = merge_match_analysis(parsed, "", ranking, methodology)

        assert [m["firmName"] for m in merged["matches"]] == names
        assert [m["rank"] for m in merged["matches"]] == [1, 2, 3]
        assert [m["rationale"] for m in merged["matches"]] == [f"Why {n}" for n in names]

    def test_name_match_ignores_case(self, ranking, methodology):
        first = ranking.top_firms[0].firm.name
        parsed = {"matches": [llm_entry(first.upper())]}
        merged = merge_match_analysis(parsed, "", ranking, methodology)
        assert merged["matches"][0]["rationale"] == f"Why {first.upper()}"
        assert merged["matches"][0]["firmName"] == first

    def test_positional_fallback_for_misnamed_entries(self, ranking, methodology):
        parsed = {"matches": [llm_entry("Some Other Name") for _ in ranking.top_firms]}
        merged = merge_match_analysis(parsed, "", ranking, methodology)
        assert [m["firmName"] for m in merged["matches"]] == [r.firm.name for r in ranking.top_firms]
        assert all(m["rationale"] == "Why Some Other Name" for m in merged["matches"])

    def test_positional_entry_naming_another_firm_is_not_reused(self, ranking, methodology):
        second = ranking.top_firms[1].firm.name
        parsed = {"matches": [llm_entry(second)]}

        merged = merge_match_analysis(parsed, "", ranking, methodology)

        assert merged["matches"][0]["rationale"] == ""
        assert merged["matches"][1]["rationale"] == f"Why {second}"

    def test_missing_fields_filled_from_engine(self, ranking, methodology):
        top = ranking.top_firms[0]
        parsed = {"matches": [{"firmName": top.firm.name, "firmWebsite": None}]}

        merged = merge_match_analysis(parsed, "", ranking, methodology)
        entry = merged["matches"][0]

        assert entry["firmWebsite"] == top.firm.website
        assert entry["keyPersonnel"] == [{"name": p.name, "background": p.position} for p in top.personnel]
        assert len(merged["matches"]) == len(ranking.top_firms)

    def test_firms_outside_top_k_dropped(self, ranking, methodology):
        parsed = {"matches": [llm_entry(r.firm.name) for r in ranking.top_firms] + [llm_entry("Invented LLC")]}
        merged = merge_match_analysis(parsed, "", ranking, methodology)
        assert "Invented LLC" not in [m["firmName"] for m in merged["matches"]]

    def test_short_methodology_replaced(self, ranking, methodology):
        merged = merge_match_analysis({"matches": [], "methodology": "Percentiles."}, "", ranking, methodology)
        assert merged["methodology"] == methodology
        assert len(merged["methodology"]) >= MIN_METHODOLOGY_LENGTH

    def test_long_methodology_kept(self, ranking, methodology):
        text = "Model methodology. " * 10
        merged = merge_match_analysis({"matches": [], "methodology": text}, "", ranking, methodology)
        assert merged["methodology"] == text

    def test_unparseable_output_falls_back_to_raw(self, ranking, methodology):
        merged = merge_match_analysis(None, "plain prose", ranking, methodology)
        assert merged["raw"] == "plain prose"
        assert merged["executiveSummary"] == ""
        assert [m["scores"] for m in merged["matches"]] == [r.scores.to_dict() for r in ranking.top_firms]
        assert merged["methodology"] == methodology

    def test_non_list_matches(self, ranking, methodology):
        merged = merge_match_analysis({"matches": "oops", "executiveSummary": 5}, "", ranking, methodology)
        assert len(merged["matches"]) == len(ranking.top_firms)
        assert merged["executiveSummary"] == ""
