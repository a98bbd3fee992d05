"""
Incremental decoder for ``text/event-stream`` bodies.

Frames are separated by a blank line. Reads may split a frame (or a UTF-8
sequence) anywhere, so input is buffered until a full frame is available.
"""
import codecs
import json
import logging
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


class SSEDecoder:
    """Feed raw reads, get back parsed JSON events in arrival order."""

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")()
        self._buffer = ""
        self._pending_cr = ""

    def feed(self, data: Union[str, bytes]) -> List[Dict[str, Any]]:
        if isinstance(data, bytes):
            data = self._utf8.decode(data)
        data = self._pending_cr + data
        # a trailing \r may be the first half of a \r\n split across reads
        self._pending_cr = "\r" if data.endswith("\r") else ""
        if self._pending_cr:
            data = data[:-1]
        self._buffer += data.replace("\r\n", "\n").replace("\r", "\n")

        decoded = []
        while "\n\n" in self._buffer:
            frame, self._buffer = self._buffer.split("\n\n", 1)
            event = self._parse_frame(frame)
            if event is not None:
                decoded.append(event)
        return decoded

    def flush(self) -> List[Dict[str, Any]]:
        """Decode a trailing frame that was not followed by a blank line."""
        tail = self._buffer + ("\n" if self._pending_cr else "") + self._utf8.decode(b"", final=True)
        self._buffer = ""
        self._pending_cr = ""
        event = self._parse_frame(tail.strip("\n"))
        return [event] if event is not None else []

    @staticmethod
    def _parse_frame(frame: str):
        data_lines = []
        for line in frame.split("\n"):
            if not line or line.startswith(":"):
                continue
            name, _, value = line.partition(":")
            if name != "data":
                continue
            data_lines.append(value[1:] if value.startswith(" ") else value)

        if not data_lines:
            return None
        payload = "\n".join(data_lines)
        try:
            event = json.loads(payload)
        except json.JSONDecodeError:
            logger.warning(f"Skipping non-JSON event data: {payload[:80]!r}")
            return None
        if not isinstance(event, dict):
            logger.warning(f"Skipping event that is not an object: {payload[:80]!r}")
            return None
        return event
