"""Bedrock Converse translation helpers.

Provides translation between the OpenAI Chat Completions format and the
Bedrock Converse format, and the relay that turns a Converse event stream
into OpenAI chat completion chunks.
"""

from .events import StreamEvent, StreamEventKind, parse_stream_event
from .translator import chat_completions_to_converse, converse_to_chat_completion
from .stream_adapter import ConverseToChatStreamRelay, EventSource, RelayState

__all__ = [
    "chat_completions_to_converse",
    "converse_to_chat_completion",
    "ConverseToChatStreamRelay",
    "EventSource",
    "parse_stream_event",
    "RelayState",
    "StreamEvent",
    "StreamEventKind",
]
