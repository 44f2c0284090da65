"""Chat-completion objects and simulated SSE streaming of an atomic answer.

The upstream returns its whole answer at once. For ``stream: true`` requests
the text is cut into fixed-size slices and written as OpenAI-style
``chat.completion.chunk`` events with a short pause between them:

    data: {"id": ..., "choices": [{"delta": {"content": "Hi"}, ...}]}

    ...
    data: {"id": ..., "choices": [{"delta": {}, "finish_reason": "stop"}]}

    data: [DONE]
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import time
from typing import Any, Iterator, Protocol

log = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 2
DEFAULT_DELAY = 0.010

SSE_DONE = b"data: [DONE]\n\n"


def _now() -> int:
    return int(time.time())


def build_completion(
    text: str, model: str, request_id: str, created: int | None = None
) -> dict[str, Any]:
    return {
        "id": request_id,
        "object": "chat.completion",
        "created": _now() if created is None else created,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
    }


def build_chunk(
    request_id: str,
    created: int,
    model: str,
    content: str | None = None,
    finish_reason: str | None = None,
) -> dict[str, Any]:
    """One chunk event. content=None produces an empty delta."""
    delta = {} if content is None else {"content": content}
    return {
        "id": request_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": model,
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def sse_record(payload: dict[str, Any]) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


def split_text(text: str, size: int) -> Iterator[str]:
    """Yield consecutive slices of text; the last one may be shorter."""
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    for start in range(0, len(text), size):
        yield text[start : start + size]


class StreamWriter(Protocol):
    async def write(self, data: bytes) -> None: ...

    async def write_eof(self, data: bytes = b"") -> None: ...


class StreamState(enum.Enum):
    INIT = "init"
    EMITTING = "emitting"
    TERMINATING = "terminating"
    CLOSED = "closed"


class ChunkStreamer:
    """Drive one simulated stream: INIT -> EMITTING -> TERMINATING -> CLOSED.

    ``run`` never raises on write failures. A client that goes away makes the
    next write fail; that is logged and the streamer goes straight to CLOSED.
    ``write_eof`` is attempted on every exit path.
    """

    def __init__(
        self,
        text: str,
        model: str,
        request_id: str,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        delay: float = DEFAULT_DELAY,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.text = text
        self.model = model
        self.request_id = request_id
        self.chunk_size = chunk_size
        self.delay = delay
        self.created = _now()
        self.state = StreamState.INIT
        self.chunks_sent = 0

    def _chunk(self, content: str | None = None, finish_reason: str | None = None) -> bytes:
        return sse_record(
            build_chunk(self.request_id, self.created, self.model, content, finish_reason)
        )

    async def run(self, writer: StreamWriter) -> StreamState:
        try:
            self.state = StreamState.EMITTING
            for piece in split_text(self.text, self.chunk_size):
                await writer.write(self._chunk(piece))
                self.chunks_sent += 1
                await asyncio.sleep(self.delay)

            self.state = StreamState.TERMINATING
            await writer.write(self._chunk(finish_reason="stop"))
            await writer.write(SSE_DONE)
        except (ConnectionError, RuntimeError) as exc:
            # aiohttp raises ClientConnectionResetError (a ConnectionResetError)
            # or RuntimeError once the transport is gone.
            log.warning(
                "Stream %s aborted in state %s after %d chunks: %s",
                self.request_id,
                self.state.value,
                self.chunks_sent,
                exc,
            )
        finally:
            self.state = StreamState.CLOSED
            await self._close(writer)
        return self.state

    async def _close(self, writer: StreamWriter) -> None:
        try:
            await writer.write_eof()
        except (ConnectionError, RuntimeError) as exc:
            log.debug("Stream %s close failed: %s", self.request_id, exc)
