"""
Client Module - consumes staged generation streams.

- sse.py: incremental text/event-stream decoder
- display.py: per-stage buffers and the paced display state machine
- stream_client.py: httpx client for the memo endpoint
"""

from client.display import DisplayPhase, DisplayStateMachine, StageBuffer, consume_events, run_display
from client.sse import SSEDecoder
from client.stream_client import MemoStreamClient, StreamClientError

__all__ = [
    'DisplayPhase', 'DisplayStateMachine', 'StageBuffer', 'consume_events', 'run_display',
    'SSEDecoder', 'MemoStreamClient', 'StreamClientError',
]
