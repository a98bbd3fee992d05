"""
Stream events and SSE framing.

Every event is a JSON object with a ``type`` field, framed as
``data: <json>\\n\\n``. Staged generation emits meta, stage-start,
text-chunk, stage-complete and a terminal done or error; match streaming
emits scores, chunk and a terminal complete or error.
"""
import json
from typing import Any, Dict, Optional

META = "meta"
STAGE_START = "stage-start"
TEXT_CHUNK = "text-chunk"
STAGE_COMPLETE = "stage-complete"
DONE = "done"
ERROR = "error"

SCORES = "scores"
CHUNK = "chunk"
COMPLETE = "complete"

TERMINAL_EVENTS = frozenset({DONE, ERROR, COMPLETE})

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def format_sse(event: Dict[str, Any]) -> str:
    return f"data: {json.dumps(event)}\n\n"


def meta_event(**fields: Any) -> Dict[str, Any]:
    return {"type": META, **fields}


def stage_start_event(stage: int, name: str) -> Dict[str, Any]:
    return {"type": STAGE_START, "stage": stage, "name": name}


def text_chunk_event(stage: int, content: str) -> Dict[str, Any]:
    return {"type": TEXT_CHUNK, "stage": stage, "content": content}


def stage_complete_event(stage: int, name: str) -> Dict[str, Any]:
    return {"type": STAGE_COMPLETE, "stage": stage, "name": name}


def done_event(outcome: str, artifact: Any, **fields: Any) -> Dict[str, Any]:
    return {"type": DONE, "outcome": outcome, "artifact": artifact, **fields}


def error_event(message: str, category: Optional[str] = None) -> Dict[str, Any]:
    event = {"type": ERROR, "message": message}
    if category:
        event["error"] = category
    return event


def scores_event(**fields: Any) -> Dict[str, Any]:
    return {"type": SCORES, **fields}


def chunk_event(content: str) -> Dict[str, Any]:
    return {"type": CHUNK, "content": content}


def complete_event(**fields: Any) -> Dict[str, Any]:
    return {"type": COMPLETE, **fields}
