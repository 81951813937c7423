"""OpenAI Chat Completions types accepted and produced by the proxy.

Only the plain-text subset of the schema is represented: messages carry a
single string ``content`` and there are no tool or multi-modal parts.
"""

from typing_extensions import TypedDict


class ChatMessage(TypedDict, total=False):
    """A message in a chat conversation (OpenAI format).

    Attributes:
        role: Role of the message sender:
            - "system": System instruction
            - "user": User message
            - "assistant": Model response
        content: Text content of the message.
    """
    role: str
    content: str


class ChatRequest(TypedDict, total=False):
    """An inbound chat completion request.

    Attributes:
        model: Requested model identifier (a Bedrock model id).
        messages: Conversation in order.
        stream: Whether to answer with Server-Sent Events.
        max_tokens: Upper bound on generated tokens.
        temperature: Sampling temperature.
        top_p: Nucleus sampling mass.
        stop: Stop sequence or list of stop sequences.
    """
    model: str
    messages: list[ChatMessage]
    stream: bool
    max_tokens: int | None
    temperature: float | None
    top_p: float | None
    stop: str | list[str] | None


class Delta(TypedDict, total=False):
    """A streamed delta of a choice (OpenAI format)."""
    role: str | None
    content: str | None


class Choice(TypedDict, total=False):
    """A choice in a chat completion response (OpenAI format).

    Attributes:
        index: Zero-based index of this choice in the choices array.
        delta: The incremental content for streaming responses.
        message: The complete message for non-streaming responses.
        finish_reason: Reason why the model stopped generating:
            - "stop": Model hit a natural stopping point
            - "length": Hit max tokens limit
            - "tool_calls": Model requested tool calls
            - "content_filter": Content was filtered
    """
    index: int
    delta: Delta | None
    message: ChatMessage | None
    finish_reason: str | None


class Usage(TypedDict, total=False):
    """Token usage information from a completion response (OpenAI format)."""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatCompletionChunk(TypedDict, total=False):
    """A streamed chunk of a chat completion response (OpenAI format)."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]


class ChatCompletionResponse(TypedDict, total=False):
    """A complete (non-streaming) chat completion response (OpenAI format)."""
    id: str
    object: str
    created: int
    model: str
    choices: list[Choice]
    usage: Usage
