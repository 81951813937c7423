"""Relay for converting Bedrock ConverseStream events to OpenAI Chat SSE.

Converse stream events:
    messageStart        {"role": "assistant"}
    contentBlockDelta   {"delta": {"text": "Hello"}, "contentBlockIndex": 0}
    contentBlockStop    {"contentBlockIndex": 0}
    messageStop         {"stopReason": "end_turn"}
    metadata            {"usage": {...}, "metrics": {...}}

OpenAI Chat Completion events:
    data: {"object":"chat.completion.chunk","choices":[{"delta":{"role":"assistant","content":"Hello"},"index":0}]}
    data: [DONE]

Each frame is yielded as soon as its event is read, so the ASGI server sends
it before the next event is pulled from the backend.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol

from ..core.exceptions import BackendStreamError
from ..core.sse import DONE_FRAME, format_sse_data, format_sse_error
from ..types import ChatCompletionChunk
from .events import PASSIVE_EVENT_TAGS, StreamEvent, StreamEventKind
from .translator import USAGE_FIELDS, new_completion_id

logger = logging.getLogger("bedrock-proxy")


class EventSource(Protocol):
    """Pull-based source of backend stream events."""

    async def next_event(self) -> Optional[StreamEvent]:
        """Return the next event, or None once the stream is exhausted.

        Raises BackendStreamError when the underlying transport fails.
        """
        ...

    async def aclose(self) -> None:
        """Release the underlying backend stream."""
        ...


class RelayState(enum.Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"


class ConverseToChatStreamRelay:
    """Converts a Converse event stream into OpenAI chat completion chunks.

    The relay is single-use: ``relay`` may be iterated once. After it finishes
    ``state`` is one of DONE, ERRORED or CANCELLED, and ``usage`` holds the
    OpenAI-style token counts of the stream's metadata event when one was read.
    """

    def __init__(
        self,
        model: str,
        *,
        completion_id: Optional[str] = None,
        disconnect_checker: Optional[Callable[[], Awaitable[bool]]] = None,
    ):
        """Initialize the relay.

        Args:
            model: Backend model id reported in every chunk
            completion_id: Chunk id; generated when omitted
            disconnect_checker: Awaitable returning True once the client is gone
        """
        self.model = model
        self.completion_id = completion_id or new_completion_id()
        self.created = int(time.time())
        self.disconnect_checker = disconnect_checker

        self.state = RelayState.IDLE
        self.frames_sent = 0
        self.stop_reason: Optional[str] = None
        self.usage: Optional[dict[str, int]] = None
        self.error: Optional[BackendStreamError] = None

    async def relay(self, source: EventSource) -> AsyncIterator[bytes]:
        """Transform backend events into SSE frames.

        Args:
            source: The backend event source; always closed on exit

        Yields:
            OpenAI chat completion SSE frames as bytes

        Raises:
            BackendStreamError: the source failed or ended before messageStop.
                An error frame has already been yielded and no ``[DONE]``.
            asyncio.CancelledError: the client disconnected
        """
        if self.state is not RelayState.IDLE:
            raise RuntimeError(f"relay already used (state={self.state.value})")
        self.state = RelayState.STREAMING

        try:
            while True:
                if self.disconnect_checker and await self.disconnect_checker():
                    logger.info("Client disconnected, abandoning backend stream")
                    self.state = RelayState.CANCELLED
                    raise asyncio.CancelledError("client disconnected")

                try:
                    event = await source.next_event()
                    if event is None:
                        raise BackendStreamError("backend stream ended before messageStop")
                except BackendStreamError as exc:
                    logger.error(f"Backend stream failed after {self.frames_sent} frames: {exc}")
                    self.state = RelayState.ERRORED
                    self.error = exc
                    yield format_sse_error(exc.message, exc.code)
                    raise exc

                if event.kind is StreamEventKind.MESSAGE_START:
                    continue

                if event.kind is StreamEventKind.CONTENT_DELTA:
                    if event.text is None:
                        logger.warning(
                            f"Skipping non-text content delta (kind={event.delta_kind})"
                        )
                        continue
                    yield self._emit_chunk(event.text)
                    self.frames_sent += 1
                    continue

                if event.kind is StreamEventKind.MESSAGE_STOP:
                    self.stop_reason = event.stop_reason
                    self.state = RelayState.DONE
                    yield DONE_FRAME
                    await self._read_trailing_metadata(source)
                    return

                if event.kind is StreamEventKind.METADATA:
                    self._keep_usage(event)
                    continue

                if event.tag in PASSIVE_EVENT_TAGS:
                    logger.debug(f"Dropping stream event: {event.tag}")
                else:
                    logger.info(f"Unknown stream event tag: {event.tag}")
        except (asyncio.CancelledError, GeneratorExit):
            if self.state is RelayState.STREAMING:
                self.state = RelayState.CANCELLED
            raise
        finally:
            await source.aclose()

    async def _read_trailing_metadata(self, source: EventSource) -> None:
        """Read the ``metadata`` event that follows messageStop, if any.

        Nothing is written after ``[DONE]``; a failure here only loses usage.
        """
        try:
            event = await source.next_event()
        except BackendStreamError as exc:
            logger.warning(f"Backend stream failed after messageStop: {exc.message}")
            return
        if event is not None and event.kind is StreamEventKind.METADATA:
            self._keep_usage(event)

    def _keep_usage(self, event: StreamEvent) -> None:
        usage = event.usage or {}
        converted: dict[str, int] = {}
        for source_key, target_key in USAGE_FIELDS:
            value = usage.get(source_key)
            if isinstance(value, int) and not isinstance(value, bool):
                converted[target_key] = value
        if converted:
            self.usage = converted
        else:
            logger.debug("Stream metadata carried no token usage")

    def _emit_chunk(self, text: str) -> bytes:
        """Serialize one assistant text delta as an SSE frame."""
        chunk: ChatCompletionChunk = {
            "id": self.completion_id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "delta": {"role": "assistant", "content": text},
                    "finish_reason": None,
                }
            ],
        }
        return format_sse_data(chunk)
