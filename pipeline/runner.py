"""Staged generation runner.

Drives a fixed sequence of streamed LLM calls and yields stream events as
they happen. The runner never buffers a whole stage before forwarding it:
each text chunk is yielded before the next one is awaited.

Stages are not retried. An LLM failure, an invalid stage output, a stage
timeout or a missing checkpoint decision ends the run with one ``error``
event and no ``done`` event.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence

from core.errors import DecisionTimeoutError, LobbyMatchError, StageTimeoutError
from core.llm.interfaces import LLMProvider
from pipeline import events
from pipeline.stages import Decision, Outcome, PipelineState, StageSpec

logger = logging.getLogger(__name__)

DecisionProvider = Callable[[int], Awaitable[Decision]]
CompletionHook = Callable[["PipelineResult"], Awaitable[Dict[str, Any]]]


@dataclass
class PipelineResult:
    """Outcome of a finished run."""
    outcome: Outcome
    artifact: Any
    stage_texts: List[str] = field(default_factory=list)
    stage_artifacts: List[Any] = field(default_factory=list)
    execution_time: float = 0.0


class StagedPipeline:
    """
    Sequential, stateful LLM pipeline with an optional accept/reject checkpoint.

    Args:
        provider: LLM used for every stage.
        stages: Stage specs, numbered 1..n in order.
        stage_timeout: Seconds allowed per stage, measured from stage start.
        checkpoint_after: Stage after which ``decide`` is awaited. Ignored for
            the last stage or when no ``decide`` callback is given.
        decide: Async callback returning the decision for a checkpoint stage.
        decision_timeout: Seconds to wait for ``decide``.
        status_callback: Called with the state label after each transition.
    """

    def __init__(
        self,
        provider: LLMProvider,
        stages: Sequence[StageSpec],
        stage_timeout: float = 60.0,
        checkpoint_after: Optional[int] = None,
        decide: Optional[DecisionProvider] = None,
        decision_timeout: float = 300.0,
        status_callback: Optional[Callable[[str], None]] = None
    ):
        if not stages:
            raise ValueError("StagedPipeline needs at least one stage")
        for idx, spec in enumerate(stages):
            if spec.number != idx + 1:
                raise ValueError(f"Stage {idx + 1} is numbered {spec.number}")

        self.provider = provider
        self.stages = list(stages)
        self.stage_timeout = stage_timeout
        self.decide = decide
        self.decision_timeout = decision_timeout
        self.status_callback = status_callback
        self.checkpoint_after = (
            checkpoint_after
            if decide is not None and checkpoint_after and checkpoint_after < len(self.stages)
            else None
        )
        self.state = PipelineState(len(self.stages))
        self.result: Optional[PipelineResult] = None

    def _notify(self):
        if self.status_callback:
            self.status_callback(self.state.label)

    async def _stream_stage(self, spec: StageSpec, texts: List[str]) -> AsyncIterator[str]:
        """Yield the stage's chunks, enforcing the per-stage deadline."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.stage_timeout
        stream = self.provider.stream(spec.system_prompt, spec.build_prompt(texts), spec.max_tokens)
        iterator = stream.__aiter__()
        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise StageTimeoutError(spec.number, self.stage_timeout)
                try:
                    chunk = await asyncio.wait_for(iterator.__anext__(), timeout=remaining)
                except StopAsyncIteration:
                    return
                except asyncio.TimeoutError:
                    raise StageTimeoutError(spec.number, self.stage_timeout)
                yield chunk
        finally:
            aclose = getattr(iterator, 'aclose', None)
            if aclose is not None:
                await aclose()

    async def _await_decision(self, stage: int) -> Decision:
        try:
            decision = await asyncio.wait_for(self.decide(stage), timeout=self.decision_timeout)
        except asyncio.TimeoutError:
            raise DecisionTimeoutError(stage, self.decision_timeout)
        return Decision(decision)

    async def run(
        self,
        meta: Optional[Dict[str, Any]] = None,
        on_complete: Optional[CompletionHook] = None
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Run every stage and yield events in contract order.

        ``on_complete`` runs once the final artifact is known and before the
        ``done`` event; the fields it returns are added to that event.
        """
        start = time.time()
        texts: List[str] = []
        artifacts: List[Any] = []

        meta_fields = dict(meta or {})
        meta_fields.setdefault("stages", len(self.stages))
        if self.checkpoint_after:
            meta_fields["checkpointAfter"] = self.checkpoint_after
        yield events.meta_event(**meta_fields)

        try:
            outcome = Outcome.COMPLETED
            for spec in self.stages:
                self.state.start_stage(spec.number)
                self._notify()
                yield events.stage_start_event(spec.number, spec.name)

                parts: List[str] = []
                async for chunk in self._stream_stage(spec, texts):
                    parts.append(chunk)
                    yield events.text_chunk_event(spec.number, chunk)

                text = "".join(parts)
                artifacts.append(spec.parse(spec.number, text))
                texts.append(text)
                self.state.complete_stage(spec.number)
                self._notify()
                yield events.stage_complete_event(spec.number, spec.name)
                logger.info(f"Stage {spec.number} ({spec.name}) complete: {len(text)} chars")

                if spec.number == self.checkpoint_after:
                    self.state.await_decision()
                    self._notify()
                    decision = await self._await_decision(spec.number)
                    logger.info(f"Checkpoint after stage {spec.number}: {decision.value}")
                    if decision == Decision.REJECT:
                        self.state.reject()
                        self._notify()
                        outcome = Outcome.REJECTED
                        break
                    self.state.accept()
                    self._notify()

            if outcome == Outcome.COMPLETED:
                self.state.complete()
                self._notify()
                artifact = artifacts[-1]
            else:
                # the streamed draft, exactly as the client displayed it
                artifact = texts[0]

            self.result = PipelineResult(
                outcome=outcome,
                artifact=artifact,
                stage_texts=texts,
                stage_artifacts=artifacts,
                execution_time=time.time() - start,
            )
            extra = await on_complete(self.result) if on_complete else {}
            yield events.done_event(outcome.value, artifact, stagesCompleted=len(texts), **(extra or {}))
            logger.info(
                f"Pipeline {outcome.value} after {len(texts)}/{len(self.stages)} stages "
                f"in {self.result.execution_time:.1f}s"
            )

        except LobbyMatchError as e:
            logger.error(f"Pipeline failed at {self.state.label}: {e}")
            self._fail()
            yield events.error_event(str(e), e.category)
        except asyncio.CancelledError:
            logger.info(f"Pipeline cancelled at {self.state.label}")
            raise
        except Exception as e:
            logger.exception(f"Unexpected pipeline error at {self.state.label}")
            self._fail()
            yield events.error_event(f"Generation failed: {e}", "internal_error")

    def _fail(self):
        if not self.state.is_terminal:
            self.state.fail()
            self._notify()
