"""Type definitions for the proxy."""

from .chat import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatMessage,
    ChatRequest,
    Choice,
    Delta,
    Usage,
)
from .converse import (
    ContentBlock,
    ConverseOutput,
    ConverseRequest,
    ConverseResponse,
    InferenceConfiguration,
    Message,
    SystemContentBlock,
    TokenUsage,
)

__all__ = [
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChatMessage",
    "ChatRequest",
    "Choice",
    "ContentBlock",
    "ConverseOutput",
    "ConverseRequest",
    "ConverseResponse",
    "Delta",
    "InferenceConfiguration",
    "Message",
    "SystemContentBlock",
    "TokenUsage",
    "Usage",
]
