#!/usr/bin/env python3
"""
Unit tests for the memo endpoints.
Tests POST /api/memo, GET /api/memo/sessions/{id} and the decision endpoint.
"""

import json
import unittest

from core.config_loader import AppConfig, QuotaConfig
from core.errors import GenerationError
from pipeline.stages import GenerationMode
from tests.fixtures.web_fixtures import MEMO_BODY, build_api, decode_sse
from tests.mocks.llm_mocks import MockLLMProvider

FOUR_STAGES = [
    ["Dear First Community Bank, ", "Alpha Advocacy..."],
    ["The memo is too generic."],
    ["- Name Jane Smith\n", "- Lead with the Senate committee"],
    [json.dumps({"memo": "Revised memo", "revisionNotes": ["Named Jane Smith"]})],
]


class TestDraftMemo(unittest.TestCase):

    def tearDown(self):
        self.api.close()

    def test_draft_streams_single_stage(self):
        self.api = build_api(MockLLMProvider(streams=[["Dear ", "prospect"]]))

        response = self.api.client.post("/api/memo", json=MEMO_BODY)

        self.assertEqual(response.status_code, 200)
        events = decode_sse(response.text)
        self.assertEqual(
            [e["type"] for e in events],
            ["meta", "stage-start", "text-chunk", "text-chunk", "stage-complete", "done"],
        )
        meta = events[0]
        self.assertEqual(meta["stages"], 1)
        self.assertEqual(meta["mode"], "draft")
        self.assertEqual(meta["firmName"], "Alpha Advocacy")
        self.assertNotIn("checkpointAfter", meta)

        done = events[-1]
        self.assertEqual(done["outcome"], "completed")
        self.assertEqual(done["artifact"], "Dear prospect")
        self.assertEqual(done["memosRemaining"], 19)

        # streamed sessions are discarded once the stream ends
        status = self.api.client.get(f"/api/memo/sessions/{meta['sessionId']}")
        self.assertEqual(status.status_code, 404)
        self.assertEqual(status.json()["error"], "session_not_found")

    def test_prompt_built_from_firm_profile(self):
        llm = MockLLMProvider(streams=[["memo"]])
        self.api = build_api(llm)
        self.api.client.post("/api/memo", json={**MEMO_BODY, "prospectIssues": "BAN, FIN"})
        prompt = llm.stream_calls[0]["prompt"]
        self.assertIn("FIRM PROFILE: Alpha Advocacy", prompt)
        self.assertIn("**Primary Issue Areas:** BAN, FIN", prompt)

    def test_stage_failure_streams_error(self):
        llm = MockLLMProvider(streams=[["Dear"]], stream_errors={0: GenerationError("provider down")})
        self.api = build_api(llm)

        events = decode_sse(self.api.client.post("/api/memo", json=MEMO_BODY).text)

        self.assertEqual(events[-1]["type"], "error")
        self.assertNotIn("done", [e["type"] for e in events])
        self.assertEqual(self.api.ctx.quota.used, 0)

    def test_unknown_firm_is_404(self):
        self.api = build_api(MockLLMProvider())
        response = self.api.client.post("/api/memo", json={**MEMO_BODY, "firmName": "Nobody LLC"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "firm_not_found")

    def test_quota_exhausted_is_429(self):
        self.api = build_api(MockLLMProvider(), quota_limit=0)
        response = self.api.client.post("/api/memo", json=MEMO_BODY)
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()["error"], "quota_exceeded")

    def test_invalid_body_is_400(self):
        self.api = build_api(MockLLMProvider())
        for body in (
            {k: v for k, v in MEMO_BODY.items() if k != "prospectIssues"},
            {**MEMO_BODY, "prospectIssues": []},
            {**MEMO_BODY, "generationMode": "verbose"},
        ):
            response = self.api.client.post("/api/memo", json=body)
            self.assertEqual(response.status_code, 400, body)
            self.assertEqual(response.json()["error"], "invalid_request")


class TestStandardMemo(unittest.TestCase):

    def tearDown(self):
        self.api.close()

    def test_background_run_completes(self):
        llm = MockLLMProvider(streams=FOUR_STAGES)
        self.api = build_api(llm)

        response = self.api.client.post("/api/memo", json={**MEMO_BODY, "generationMode": "standard"})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["mode"], "standard")

        status = self.api.client.get(f"/api/memo/sessions/{data['sessionId']}").json()
        self.assertEqual(status["status"], "completed")
        self.assertEqual(status["outcome"], "completed")
        self.assertEqual(status["step"], "COMPLETE")
        self.assertEqual(status["stagesCompleted"], 4)
        self.assertEqual(status["artifact"], {"memo": "Revised memo", "revisionNotes": ["Named Jane Smith"]})
        self.assertEqual(status["memosRemaining"], 19)
        self.assertEqual(len(llm.stream_calls), 4)

    def test_background_failure_recorded(self):
        llm = MockLLMProvider(streams=[["draft"], ["  "]])
        self.api = build_api(llm)

        data = self.api.client.post("/api/memo", json={**MEMO_BODY, "generationMode": "standard"}).json()
        status = self.api.client.get(f"/api/memo/sessions/{data['sessionId']}").json()

        self.assertEqual(status["status"], "failed")
        self.assertIn("Stage 2 output invalid", status["error"])
        self.assertIsNone(status["outcome"])


class TestDecisionEndpoint(unittest.TestCase):

    def setUp(self):
        self.api = build_api(MockLLMProvider())

    def tearDown(self):
        self.api.close()

    def test_unknown_session_is_404(self):
        response = self.api.client.post("/api/memo/sessions/nope/decision", json={"decision": "accept"})
        self.assertEqual(response.status_code, 404)

    def test_session_not_awaiting_is_409(self):
        session = self.api.sessions.create_session(GenerationMode.DETAILED, "Alpha Advocacy")
        response = self.api.client.post(
            f"/api/memo/sessions/{session.session_id}/decision", json={"decision": "reject"}
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "invalid_decision")

    def test_invalid_decision_value_is_400(self):
        session = self.api.sessions.create_session(GenerationMode.DETAILED)
        response = self.api.client.post(
            f"/api/memo/sessions/{session.session_id}/decision", json={"decision": "maybe"}
        )
        self.assertEqual(response.status_code, 400)

    def test_pending_session_status(self):
        session = self.api.sessions.create_session(GenerationMode.STANDARD, "Alpha Advocacy")
        status = self.api.client.get(f"/api/memo/sessions/{session.session_id}").json()
        self.assertEqual(status["sessionId"], session.session_id)
        self.assertEqual(status["status"], "pending")
        self.assertEqual(status["step"], "IDLE")


class TestUsageEndpoint(unittest.TestCase):

    def setUp(self):
        config = AppConfig(quota=QuotaConfig(usage_log_key="secret", limit=5))
        self.api = build_api(MockLLMProvider(streams=[["memo"]]), config=config, quota_limit=5)

    def tearDown(self):
        self.api.close()

    def test_wrong_key_is_401(self):
        response = self.api.client.get("/api/usage", params={"key": "guess"})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "unauthorized")

    def test_usage_reports_generated_memos(self):
        self.api.client.post("/api/memo", json=MEMO_BODY)

        response = self.api.client.get("/api/usage", params={"key": "secret"})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["used"], 1)
        self.assertEqual(data["limit"], 5)
        self.assertEqual(data["remaining"], 4)
        self.assertEqual(data["count"], 1)
        self.assertEqual(data["logs"][0]["firmName"], "Alpha Advocacy")
        self.assertEqual(data["logs"][0]["outcome"], "completed")


if __name__ == '__main__':
    unittest.main()
