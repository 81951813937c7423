"""Deterministic in-process inference backend for tests and local runs."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Iterable, Optional, Union

from ..converse.events import StreamEvent
from ..core.exceptions import BackendError
from ..types import ConverseRequest, ConverseResponse


class ScriptedEventSource:
    """EventSource that replays a fixed script.

    Script items are ``StreamEvent`` objects or exceptions; an exception item
    is raised from ``next_event`` when reached. ``pulls`` counts how many
    times ``next_event`` was awaited.
    """

    def __init__(self, script: Iterable[Union[StreamEvent, BaseException]]) -> None:
        self._script: Deque[Union[StreamEvent, BaseException]] = deque(script)
        self.pulls = 0
        self.closed = False

    async def next_event(self) -> Optional[StreamEvent]:
        self.pulls += 1
        if self.closed or not self._script:
            return None
        item = self._script.popleft()
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True


def text_response(
    text: str,
    *,
    stop_reason: str = "end_turn",
    usage: Optional[dict[str, int]] = None,
) -> ConverseResponse:
    """Build a Converse response carrying one text block."""
    if usage is None:
        usage = {"inputTokens": 10, "outputTokens": 5, "totalTokens": 15}
    return {
        "output": {"message": {"role": "assistant", "content": [{"text": text}]}},
        "stopReason": stop_reason,
        "usage": usage,
        "metrics": {"latencyMs": 1},
    }


def text_stream(
    *chunks: str,
    stop_reason: str = "end_turn",
    usage: Optional[dict[str, int]] = None,
) -> list[StreamEvent]:
    """Build the event script of a plain text answer, ending with metadata."""
    if usage is None:
        usage = {"inputTokens": 10, "outputTokens": 5, "totalTokens": 15}
    events = [StreamEvent.message_start()]
    events.extend(StreamEvent.content_delta(chunk) for chunk in chunks)
    events.append(StreamEvent.message_stop(stop_reason))
    events.append(StreamEvent.metadata(usage))
    return events


@dataclass
class FakeInferenceBackend:
    """InferenceBackend returning queued responses and recording requests.

    Queue items for ``responses`` are Converse responses or exceptions; items
    for ``streams`` are event scripts (see ``ScriptedEventSource``) or exceptions.
    A non-BackendError exception is wrapped the way a real backend reports it.
    """

    responses: Deque[Any] = field(default_factory=deque)
    streams: Deque[Any] = field(default_factory=deque)
    requests: list[ConverseRequest] = field(default_factory=list)
    sources: list[ScriptedEventSource] = field(default_factory=list)

    def queue_response(self, response: Union[ConverseResponse, BaseException]) -> None:
        self.responses.append(response)

    def queue_stream(self, script: Union[list, BaseException]) -> None:
        self.streams.append(script)

    async def invoke(self, request: ConverseRequest) -> ConverseResponse:
        self.requests.append(request)
        if not self.responses:
            raise BackendError("FakeInferenceBackend: no response queued")
        item = self.responses.popleft()
        if isinstance(item, BackendError):
            raise item
        if isinstance(item, BaseException):
            raise BackendError(str(item)) from item
        return item

    async def invoke_streaming(self, request: ConverseRequest) -> ScriptedEventSource:
        self.requests.append(request)
        if not self.streams:
            raise BackendError("FakeInferenceBackend: no stream queued")
        item = self.streams.popleft()
        if isinstance(item, BackendError):
            raise item
        if isinstance(item, BaseException):
            raise BackendError(str(item)) from item
        source = ScriptedEventSource(item)
        self.sources.append(source)
        return source
