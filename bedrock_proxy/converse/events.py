"""Typed view over Bedrock ``converse_stream`` events.

boto3 yields each stream event as a single-key dict, for example::

    {"messageStart": {"role": "assistant"}}
    {"contentBlockDelta": {"delta": {"text": "Hello"}, "contentBlockIndex": 0}}
    {"contentBlockStop": {"contentBlockIndex": 0}}
    {"messageStop": {"stopReason": "end_turn"}}
    {"metadata": {"usage": {...}, "metrics": {...}}}

``parse_stream_event`` turns that union into a ``StreamEvent`` with an explicit
kind so the relay never has to guess at the payload shape.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..core.exceptions import BackendStreamError

# Members that carry nothing the OpenAI chunk format needs.
PASSIVE_EVENT_TAGS = frozenset({"contentBlockStart", "contentBlockStop"})

# Error members the service can put in the event stream instead of data.
STREAM_EXCEPTION_TAGS = frozenset({
    "internalServerException",
    "modelStreamErrorException",
    "serviceUnavailableException",
    "throttlingException",
    "validationException",
})


class StreamEventKind(enum.Enum):
    MESSAGE_START = "messageStart"
    CONTENT_DELTA = "contentBlockDelta"
    MESSAGE_STOP = "messageStop"
    METADATA = "metadata"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class StreamEvent:
    """One backend stream event.

    Attributes:
        kind: Discriminant of the event.
        tag: Raw union member name as delivered by the backend.
        text: Delta text for text ``CONTENT_DELTA`` events, else None.
        delta_kind: Member name of the delta union (``"text"``, ``"toolUse"``...).
        stop_reason: Backend stop reason on ``MESSAGE_STOP``.
        usage: Converse token usage on ``METADATA``.
    """

    kind: StreamEventKind
    tag: str
    text: Optional[str] = None
    delta_kind: Optional[str] = None
    stop_reason: Optional[str] = None
    usage: Optional[Mapping[str, Any]] = None

    @classmethod
    def message_start(cls) -> "StreamEvent":
        return cls(StreamEventKind.MESSAGE_START, StreamEventKind.MESSAGE_START.value)

    @classmethod
    def content_delta(cls, text: str) -> "StreamEvent":
        return cls(
            StreamEventKind.CONTENT_DELTA,
            StreamEventKind.CONTENT_DELTA.value,
            text=text,
            delta_kind="text",
        )

    @classmethod
    def message_stop(cls, stop_reason: Optional[str] = None) -> "StreamEvent":
        return cls(
            StreamEventKind.MESSAGE_STOP,
            StreamEventKind.MESSAGE_STOP.value,
            stop_reason=stop_reason,
        )

    @classmethod
    def metadata(cls, usage: Optional[Mapping[str, Any]] = None) -> "StreamEvent":
        return cls(StreamEventKind.METADATA, StreamEventKind.METADATA.value, usage=usage)

    @classmethod
    def unrecognized(cls, tag: str) -> "StreamEvent":
        return cls(StreamEventKind.UNRECOGNIZED, tag)


def _stream_error_message(tag: str, body: Any) -> str:
    if isinstance(body, Mapping):
        detail = body.get("message") or body.get("Message")
        if detail:
            return f"{tag}: {detail}"
    return tag


def parse_stream_event(raw: Mapping[str, Any]) -> StreamEvent:
    """Convert one raw ``converse_stream`` event into a ``StreamEvent``.

    Raises:
        BackendStreamError: the event is one of the service's in-stream
            exception members.
    """
    if not raw:
        return StreamEvent.unrecognized("")

    tag, body = next(iter(raw.items()))

    if tag in STREAM_EXCEPTION_TAGS:
        raise BackendStreamError(_stream_error_message(tag, body))

    if tag == StreamEventKind.MESSAGE_START.value:
        return StreamEvent.message_start()

    if tag == StreamEventKind.CONTENT_DELTA.value:
        delta = body.get("delta") if isinstance(body, Mapping) else None
        if not isinstance(delta, Mapping) or not delta:
            return StreamEvent(StreamEventKind.CONTENT_DELTA, tag, delta_kind=None)
        delta_kind = next(iter(delta))
        text = delta.get("text") if delta_kind == "text" else None
        if not isinstance(text, str):
            text = None
        return StreamEvent(StreamEventKind.CONTENT_DELTA, tag, text=text, delta_kind=delta_kind)

    if tag == StreamEventKind.MESSAGE_STOP.value:
        stop_reason = body.get("stopReason") if isinstance(body, Mapping) else None
        return StreamEvent.message_stop(stop_reason)

    if tag == StreamEventKind.METADATA.value:
        usage = body.get("usage") if isinstance(body, Mapping) else None
        return StreamEvent.metadata(usage if isinstance(usage, Mapping) else None)

    return StreamEvent.unrecognized(tag)
