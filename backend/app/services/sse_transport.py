"""
Server-Sent Events framing for chat replies.

The encoder side produces the frames the chat endpoint streams; the decoder
side turns raw response bytes back into events for Python clients.

Frames:
    data: {"content": "..."}\\n\\n                       content chunk
    data: [DONE]\\n\\n                                   end of reply
    event: error\\ndata: {"error": "...", "code": "..."}\\n\\n  in-band error
"""

import codecs
import json
import logging
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Optional, Union

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
ERROR_EVENT = "error"


@dataclass(frozen=True)
class ContentChunk:
    content: str


@dataclass(frozen=True)
class DoneSignal:
    pass


@dataclass(frozen=True)
class ErrorPayload:
    error: str
    code: Optional[str] = None


StreamEvent = Union[ContentChunk, DoneSignal, ErrorPayload]


def encode_chunk(content: str) -> str:
    """Frame one text delta."""
    return f"{DATA_PREFIX} {json.dumps({'content': content}, ensure_ascii=False)}\n\n"


def encode_done() -> str:
    return f"{DATA_PREFIX} {DONE_SENTINEL}\n\n"


def encode_error(message: str, code: str) -> str:
    """Frame an error that happened after the stream was opened."""
    payload = json.dumps({"error": message, "code": code}, ensure_ascii=False)
    return f"event: {ERROR_EVENT}\n{DATA_PREFIX} {payload}\n\n"


def decode_payload(payload: str) -> Optional[StreamEvent]:
    """
    Decode the text after a data marker.

    Precedence: the [DONE] sentinel, then an object with "error", then an
    object with a non-empty "content" string. Anything else decodes to None.

    Raises:
        json.JSONDecodeError: If the payload is not valid JSON
    """
    if payload.strip() == DONE_SENTINEL:
        return DoneSignal()

    data = json.loads(payload)
    if not isinstance(data, dict):
        return None
    if "error" in data:
        code = data.get("code")
        return ErrorPayload(error=str(data["error"]), code=str(code) if code is not None else None)
    content = data.get("content")
    if isinstance(content, str) and content:
        return ContentChunk(content=content)
    return None


def _looks_complete(fragment: str) -> bool:
    stripped = fragment.strip()
    return stripped.startswith("{") and stripped.endswith("}")


class SSEDecoder:
    """Incremental SSE decoder.

    Feed it bytes exactly as they come off the socket; a frame may be split
    anywhere, including inside a multi-byte character.
    """

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._line_buffer = ""
        self._partial = ""
        self.done = False

    def feed(self, data: bytes) -> list[StreamEvent]:
        """Consume a read and return the events it completed."""
        if self.done:
            return []

        text = self._line_buffer + self._utf8.decode(data)
        lines = text.split("\n")
        # Last element is an unterminated line (or "")
        self._line_buffer = lines.pop()

        events: list[StreamEvent] = []
        for line in lines:
            event = self._parse_line(line.rstrip("\r"))
            if event is None:
                continue
            events.append(event)
            if isinstance(event, DoneSignal):
                self.done = True
                self._line_buffer = ""
                break
        return events

    def flush(self) -> list[StreamEvent]:
        """Parse a final line the server sent without a newline."""
        if self.done:
            return []
        self._line_buffer += self._utf8.decode(b"", final=True)
        return self.feed(b"\n")

    def _parse_line(self, line: str) -> Optional[StreamEvent]:
        if not line.strip() or not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX):]
        if payload.startswith(" "):
            payload = payload[1:]

        if payload.strip() == DONE_SENTINEL:
            if self._partial:
                logger.warning("Discarding incomplete SSE payload before [DONE]")
                self._partial = ""
            return DoneSignal()

        if self._partial:
            payload = self._partial + payload
            self._partial = ""

        try:
            return decode_payload(payload)
        except json.JSONDecodeError as e:
            if _looks_complete(payload):
                logger.warning(f"Failed to decode SSE payload: {e}")
            else:
                # Assume a transient partial read; retry with the next payload
                self._partial = payload
            return None


async def iter_events(byte_stream: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    """Decode an async byte stream into events, stopping after [DONE]."""
    decoder = SSEDecoder()
    async for data in byte_stream:
        for event in decoder.feed(data):
            yield event
        if decoder.done:
            return
    for event in decoder.flush():
        yield event
