"""
Async HTTP client for the memo generation stream.

Posts a memo request, decodes the SSE body and drives a
DisplayStateMachine; at the checkpoint the caller's decision is posted
back to the server for the same session.
"""
import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

import httpx

from client.display import DisplayStateMachine, consume_events, run_display
from client.sse import SSEDecoder
from pipeline.stages import Decision

logger = logging.getLogger(__name__)

DecisionCallback = Callable[[int, str], Awaitable[Decision]]


class StreamClientError(Exception):
    """Raised when the server refuses a request before streaming starts."""

    def __init__(self, status_code: int, category: str, details: str):
        super().__init__(f"{category} ({status_code}): {details}")
        self.status_code = status_code
        self.category = category
        self.details = details


class MemoStreamClient:
    """
    Client for ``POST /api/memo`` in draft and detailed modes.

    Args:
        base_url: API root, e.g. http://localhost:8080
        timeout: Read timeout; generous by default since stages run long.
        client: Optional pre-built httpx.AsyncClient (tests pass one bound
            to an ASGI transport).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=httpx.Timeout(timeout))

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    @staticmethod
    async def _raise_for_error(response: httpx.Response):
        if response.status_code < 400:
            return
        await response.aread()
        try:
            body = response.json()
        except ValueError:
            body = {}
        raise StreamClientError(
            response.status_code,
            body.get("error", "http_error"),
            body.get("details", response.text),
        )

    async def events(self, payload: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
        """Yield decoded events from a streamed memo request."""
        decoder = SSEDecoder()
        async with self.client.stream("POST", "/api/memo", json=payload) as response:
            await self._raise_for_error(response)
            async for raw in response.aiter_bytes():
                for event in decoder.feed(raw):
                    yield event
        for event in decoder.flush():
            yield event

    async def submit_decision(self, session_id: str, decision: Decision) -> Dict[str, Any]:
        response = await self.client.post(
            f"/api/memo/sessions/{session_id}/decision",
            json={"decision": Decision(decision).value},
        )
        await self._raise_for_error(response)
        return response.json()

    async def generate(
        self,
        payload: Dict[str, Any],
        machine: Optional[DisplayStateMachine] = None,
        decide: Optional[DecisionCallback] = None,
        tick_interval: float = 0.02
    ) -> DisplayStateMachine:
        """
        Stream a memo and pace its display.

        The receive loop and the display loop run concurrently and share
        only the machine's buffers. ``decide`` is awaited at the checkpoint;
        without it a checkpoint is accepted.
        """
        machine = machine or DisplayStateMachine()

        async def on_checkpoint(stage: int, text: str) -> Decision:
            decision = await decide(stage, text) if decide else Decision.ACCEPT
            if machine.session_id:
                await self.submit_decision(machine.session_id, decision)
            logger.info(f"Checkpoint after stage {stage}: {Decision(decision).value}")
            return decision

        receiver = asyncio.create_task(consume_events(machine, self.events(payload)))
        try:
            await run_display(machine, tick_interval=tick_interval, on_checkpoint=on_checkpoint)
        except BaseException:
            receiver.cancel()
            raise
        await receiver
        return machine
