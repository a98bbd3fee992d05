#!/usr/bin/env python3
"""
Unit tests for the match endpoints.
Tests POST /api/match and POST /api/match/stream.
"""

import json
import unittest

from core.dataset import FirmDataset, MatchQuery
from core.errors import GenerationError
from tests.fixtures.web_fixtures import MATCH_BODY, build_api, decode_sse
from tests.mocks.llm_mocks import MockLLMProvider


def forged_analysis(names):
    return json.dumps({
        "executiveSummary": "Alpha leads.",
        "matches": [
            {
                "rank": idx + 1,
                "firmName": name,
                "rationale": f"About {name}",
                "keyStrengths": ["x", "y", "z"],
                "scores": {"overallMatch": 999, "issueAlignment": 999, "experienceDepth": 999, "costFit": 999},
            }
            for idx, name in enumerate(names)
        ],
        "methodology": "short",
    })


class TestMatchEndpoint(unittest.TestCase):

    def tearDown(self):
        self.api.close()

    def _engine_top(self, ctx, top_k=None):
        query = MatchQuery(issue_area="BAN", additional_issues=("FIN",), budget=MATCH_BODY["budget"])
        return ctx.engine.analyze(ctx.dataset, query, top_k=top_k).top_firms

    def test_engine_scores_override_model_scores(self):
        names = ["Gamma Group", "Beta Partners", "Alpha Advocacy"]
        self.api = build_api(MockLLMProvider(completions=[forged_analysis(names)]))

        response = self.api.client.post("/api/match", json=MATCH_BODY)

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["success"])
        expected = self._engine_top(self.api.ctx)
        matches = data["analysis"]["matches"]
        self.assertEqual([m["firmName"] for m in matches], [r.firm.name for r in expected])
        self.assertEqual([m["scores"] for m in matches], [r.scores.to_dict() for r in expected])
        self.assertEqual([m["rank"] for m in matches], [1, 2, 3])
        self.assertEqual(matches[0]["rationale"], f"About {expected[0].firm.name}")
        self.assertGreaterEqual(len(data["analysis"]["methodology"]), 100)

        meta = data["metadata"]
        self.assertEqual(meta["model"], "mock-model")
        self.assertEqual(meta["firmsAnalyzed"], 3)
        self.assertEqual(meta["scoringMode"], "percentile")
        self.assertEqual(meta["scoreDistribution"]["top"], matches[0]["scores"]["overallMatch"])

    def test_top_k_override(self):
        self.api = build_api(MockLLMProvider(completions=["{}"]))
        response = self.api.client.post("/api/match", json={**MATCH_BODY, "topK": 1})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["analysis"]["matches"]), 1)

    def test_unparseable_narrative_returns_raw(self):
        self.api = build_api(MockLLMProvider(completions=["Here are my thoughts in prose."]))
        response = self.api.client.post("/api/match", json=MATCH_BODY)
        self.assertEqual(response.status_code, 200)
        analysis = response.json()["analysis"]
        self.assertEqual(analysis["raw"], "Here are my thoughts in prose.")
        self.assertEqual(len(analysis["matches"]), 3)

    def test_missing_required_field_is_400(self):
        self.api = build_api(MockLLMProvider())
        body = {k: v for k, v in MATCH_BODY.items() if k != "issueArea"}
        response = self.api.client.post("/api/match", json=body)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_request")
        self.assertIn("issueArea", response.json()["details"])

    def test_empty_dataset_is_no_data(self):
        self.api = build_api(MockLLMProvider(), dataset=FirmDataset())
        response = self.api.client.post("/api/match", json=MATCH_BODY)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "no_data")

    def test_llm_failure_is_upstream_error(self):
        self.api = build_api(MockLLMProvider())
        response = self.api.client.post("/api/match", json=MATCH_BODY)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "upstream_error")


class TestMatchStreamEndpoint(unittest.TestCase):

    def tearDown(self):
        self.api.close()

    def test_scores_then_chunks_then_complete(self):
        text = forged_analysis(["Alpha Advocacy"])
        self.api = build_api(MockLLMProvider(streams=[[text[:20], text[20:]]]))

        response = self.api.client.post("/api/match/stream", json=MATCH_BODY)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/event-stream"))
        events = decode_sse(response.text)
        self.assertEqual([e["type"] for e in events], ["scores", "chunk", "chunk", "complete"])
        self.assertEqual("".join(e["content"] for e in events if e["type"] == "chunk"), text)

        scores = [m["scores"] for m in events[0]["matches"]]
        merged = [m["scores"] for m in events[-1]["analysis"]["matches"]]
        self.assertEqual(scores, merged)
        self.assertEqual(events[0]["firmsAnalyzed"], 3)
        self.assertEqual(events[-1]["metadata"]["scoringMode"], "percentile")

    def test_stream_failure_ends_with_error(self):
        llm = MockLLMProvider(streams=[["partial"]], stream_errors={0: GenerationError("provider down")})
        self.api = build_api(llm)

        events = decode_sse(self.api.client.post("/api/match/stream", json=MATCH_BODY).text)

        self.assertEqual([e["type"] for e in events], ["scores", "chunk", "error"])
        self.assertEqual(events[-1]["error"], "upstream_error")

    def test_empty_dataset_streams_single_error(self):
        self.api = build_api(MockLLMProvider(), dataset=FirmDataset())
        events = decode_sse(self.api.client.post("/api/match/stream", json=MATCH_BODY).text)
        self.assertEqual(events, [{"type": "error", "message": "No firm data available", "error": "no_data"}])


class TestHealth(unittest.TestCase):

    def test_health(self):
        api = build_api(MockLLMProvider())
        try:
            response = api.client.get("/health")
        finally:
            api.close()
        self.assertEqual(response.json(), {"status": "healthy", "service": "lobbymatch-api"})


if __name__ == '__main__':
    unittest.main()
