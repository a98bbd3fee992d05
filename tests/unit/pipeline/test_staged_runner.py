#!/usr/bin/env python3
"""
Test suite for the staged pipeline runner.

Async runs are driven with asyncio.run; the LLM is a scripted mock.
"""

import asyncio
import unittest

from core.errors import GenerationError
from pipeline import Decision, StagedPipeline, StageSpec
from pipeline.stages import parse_text
from tests.mocks.llm_mocks import MockLLMProvider


def make_stages(count, parse=parse_text):
    return [
        StageSpec(
            number=n,
            name=f"stage-{n}",
            system_prompt=f"system {n}",
            build_prompt=lambda texts: f"prompt after {len(texts)} stages: {' | '.join(texts)}",
            parse=parse,
        )
        for n in range(1, count + 1)
    ]


def four_stage_llm(**kwargs):
    return MockLLMProvider(
        streams=[["DRAFT", "-A"], ["critique"], ["- change"], ["FINAL", " memo"]],
        **kwargs
    )


async def collect(pipeline, **kwargs):
    return [event async for event in pipeline.run(**kwargs)]


def types(events):
    return [e["type"] for e in events]


def decider(decision, record=None):
    async def decide(stage):
        if record is not None:
            record.append(stage)
        return decision
    return decide


class TestStagedPipeline(unittest.TestCase):

    def test_all_stages_in_order(self):
        llm = four_stage_llm()
        pipeline = StagedPipeline(llm, make_stages(4))

        events = asyncio.run(collect(pipeline))

        expected = ["meta"]
        for chunks in (2, 1, 1, 2):
            expected += ["stage-start"] + ["text-chunk"] * chunks + ["stage-complete"]
        expected.append("done")
        self.assertEqual(types(events), expected)
        self.assertEqual(events[0], {"type": "meta", "stages": 4})
        self.assertEqual(events[-1]["outcome"], "completed")
        self.assertEqual(events[-1]["artifact"], "FINAL memo")
        self.assertEqual(events[-1]["stagesCompleted"], 4)
        self.assertEqual(pipeline.state.label, "COMPLETE")

        stage_numbers = [e["stage"] for e in events if e["type"] == "text-chunk"]
        self.assertEqual(stage_numbers, sorted(stage_numbers))

    def test_each_stage_sees_previous_texts(self):
        llm = four_stage_llm()
        asyncio.run(collect(StagedPipeline(llm, make_stages(4))))
        self.assertEqual(llm.stream_calls[0]["prompt"], "prompt after 0 stages: ")
        self.assertIn("DRAFT-A | critique", llm.stream_calls[2]["prompt"])
        self.assertEqual([c["system"] for c in llm.stream_calls], [f"system {n}" for n in range(1, 5)])

    def test_reject_at_checkpoint_returns_first_stage(self):
        llm = four_stage_llm()
        asked = []
        pipeline = StagedPipeline(
            llm, make_stages(4), checkpoint_after=3, decide=decider(Decision.REJECT, asked)
        )

        events = asyncio.run(collect(pipeline))

        self.assertEqual(events[0]["checkpointAfter"], 3)
        self.assertEqual(asked, [3])
        self.assertEqual(len(llm.stream_calls), 3)
        self.assertNotIn(4, [e.get("stage") for e in events if e["type"] == "stage-start"])
        self.assertEqual(events[-1]["type"], "done")
        self.assertEqual(events[-1]["outcome"], "rejected")
        self.assertEqual(events[-1]["artifact"], "DRAFT-A")
        self.assertEqual(events[-1]["stagesCompleted"], 3)
        self.assertIn("AWAITING_DECISION", pipeline.state.history)
        self.assertEqual(pipeline.state.label, "COMPLETE")

    def test_rejected_artifact_is_the_streamed_draft_text(self):
        llm = MockLLMProvider(streams=[["Dear team,", "\n\nDraft body\n"], ["critique"], ["- change"]])
        pipeline = StagedPipeline(llm, make_stages(4), checkpoint_after=3, decide=decider(Decision.REJECT))

        events = asyncio.run(collect(pipeline))

        streamed = "".join(e["content"] for e in events if e["type"] == "text-chunk" and e["stage"] == 1)
        self.assertEqual(events[-1]["artifact"], streamed)
        self.assertEqual(pipeline.result.artifact, "Dear team,\n\nDraft body\n")

    def test_accept_at_checkpoint_runs_remaining_stages(self):
        llm = four_stage_llm()
        pipeline = StagedPipeline(llm, make_stages(4), checkpoint_after=3, decide=decider("accept"))

        events = asyncio.run(collect(pipeline))

        self.assertEqual(events[-1]["outcome"], "completed")
        self.assertEqual(events[-1]["artifact"], "FINAL memo")
        self.assertEqual(len(llm.stream_calls), 4)

    def test_checkpoint_ignored_without_decider_or_on_last_stage(self):
        self.assertIsNone(StagedPipeline(MockLLMProvider(), make_stages(4), checkpoint_after=3).checkpoint_after)
        single = StagedPipeline(MockLLMProvider(), make_stages(1), checkpoint_after=3, decide=decider("accept"))
        self.assertIsNone(single.checkpoint_after)

    def test_single_stage_draft(self):
        llm = MockLLMProvider(streams=[["Just ", "a draft"]])
        events = asyncio.run(collect(StagedPipeline(llm, make_stages(1)), meta={"sessionId": "abc"}))
        self.assertEqual(events[0], {"type": "meta", "sessionId": "abc", "stages": 1})
        self.assertEqual(events[-1]["artifact"], "Just a draft")

    def test_llm_failure_emits_single_error(self):
        llm = four_stage_llm(stream_errors={1: GenerationError("upstream broke")})
        pipeline = StagedPipeline(llm, make_stages(4))

        events = asyncio.run(collect(pipeline))

        self.assertEqual(types(events).count("error"), 1)
        self.assertNotIn("done", types(events))
        self.assertEqual(events[-1]["error"], "upstream_error")
        self.assertIn("upstream broke", events[-1]["message"])
        self.assertEqual(pipeline.state.label, "FAILED")
        self.assertEqual(len(llm.stream_calls), 2)

    def test_empty_stage_output_is_an_error(self):
        llm = MockLLMProvider(streams=[["  "]])
        events = asyncio.run(collect(StagedPipeline(llm, make_stages(2))))
        self.assertEqual(events[-1]["type"], "error")
        self.assertIn("Stage 1 output invalid", events[-1]["message"])
        self.assertNotIn("stage-complete", types(events))

    def test_unexpected_exception_is_reported(self):
        def explode(stage, text):
            raise KeyError("bad")

        llm = MockLLMProvider(streams=[["text"]])
        events = asyncio.run(collect(StagedPipeline(llm, make_stages(1, parse=explode))))
        self.assertEqual(events[-1]["type"], "error")
        self.assertEqual(events[-1]["error"], "internal_error")

    def test_stage_timeout(self):
        llm = MockLLMProvider(streams=[["partial"]], hang_on=[0])
        pipeline = StagedPipeline(llm, make_stages(2), stage_timeout=0.05)

        events = asyncio.run(collect(pipeline))

        self.assertEqual(types(events), ["meta", "stage-start", "text-chunk", "error"])
        self.assertIn("timed out", events[-1]["message"])
        self.assertEqual(pipeline.state.label, "FAILED")

    def test_decision_timeout(self):
        async def never(stage):
            await asyncio.sleep(3600)

        llm = four_stage_llm()
        pipeline = StagedPipeline(
            llm, make_stages(4), checkpoint_after=1, decide=never, decision_timeout=0.05
        )

        events = asyncio.run(collect(pipeline))

        self.assertEqual(events[-1]["type"], "error")
        self.assertIn("No decision received after stage 1", events[-1]["message"])
        self.assertEqual(len(llm.stream_calls), 1)
        self.assertEqual(pipeline.state.label, "FAILED")

    def test_completion_hook_fields_added_to_done(self):
        seen = []

        async def on_complete(result):
            seen.append(result)
            return {"memosRemaining": 7}

        llm = MockLLMProvider(streams=[["memo"]])
        pipeline = StagedPipeline(llm, make_stages(1))
        events = asyncio.run(collect(pipeline, on_complete=on_complete))

        self.assertEqual(events[-1]["memosRemaining"], 7)
        self.assertEqual(seen[0].stage_texts, ["memo"])
        self.assertIs(pipeline.result, seen[0])

    def test_status_callback_sees_every_transition(self):
        labels = []
        llm = MockLLMProvider(streams=[["memo"]])
        asyncio.run(collect(StagedPipeline(llm, make_stages(1), status_callback=labels.append)))
        self.assertEqual(labels, ["STAGE_1_RUNNING", "STAGE_1_DONE", "COMPLETE"])

    def test_chunks_forwarded_before_next_is_awaited(self):
        class GatedProvider(MockLLMProvider):
            def __init__(self):
                super().__init__()
                self.gate = asyncio.Event()

            async def stream(self, system, prompt, max_tokens=None):
                yield "first"
                await self.gate.wait()
                yield "second"

        async def scenario():
            provider = GatedProvider()
            run = StagedPipeline(provider, make_stages(1), stage_timeout=5).run()
            seen = []
            while True:
                event = await asyncio.wait_for(run.__anext__(), timeout=1)
                seen.append(event)
                if event.get("content") == "first":
                    provider.gate.set()
                if event["type"] in ("done", "error"):
                    return seen

        events = asyncio.run(scenario())
        self.assertEqual(events[-1]["artifact"], "firstsecond")

    def test_stage_numbering_validated(self):
        stages = make_stages(2)
        with self.assertRaises(ValueError):
            StagedPipeline(MockLLMProvider(), [stages[1]])
        with self.assertRaises(ValueError):
            StagedPipeline(MockLLMProvider(), [])


if __name__ == '__main__':
    unittest.main()
