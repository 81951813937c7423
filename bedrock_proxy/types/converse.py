"""Bedrock Converse API types.

These mirror the request and response dictionaries of the ``bedrock-runtime``
``converse`` / ``converse_stream`` operations as exposed by boto3.

Reference: https://docs.aws.amazon.com/bedrock/latest/APIReference/API_runtime_Converse.html
"""

from typing import Any

from typing_extensions import TypedDict


class ContentBlock(TypedDict, total=False):
    """A content block. Only the ``text`` member is produced by the proxy;
    responses may carry other members (``toolUse``, ``image``, ...)."""
    text: str


class SystemContentBlock(TypedDict, total=False):
    """A system instruction block."""
    text: str


class Message(TypedDict, total=False):
    """A conversational turn.

    Attributes:
        role: "user" or "assistant".
        content: Content blocks of the turn.
    """
    role: str
    content: list[ContentBlock]


class InferenceConfiguration(TypedDict, total=False):
    maxTokens: int
    temperature: float
    topP: float
    stopSequences: list[str]


class ConverseRequest(TypedDict, total=False):
    """Keyword arguments for ``converse`` / ``converse_stream``."""
    modelId: str
    messages: list[Message]
    system: list[SystemContentBlock]
    inferenceConfig: InferenceConfiguration


class TokenUsage(TypedDict, total=False):
    inputTokens: int
    outputTokens: int
    totalTokens: int


class ConverseOutput(TypedDict, total=False):
    """Union-shaped output: exactly one member is set (``message`` today)."""
    message: Message


class ConverseResponse(TypedDict, total=False):
    """Response of ``converse``.

    Attributes:
        output: Union holding the generated message.
        stopReason: Why generation stopped:
            - "end_turn": Natural stopping point
            - "tool_use": Model wants to use a tool
            - "max_tokens": Hit token limit
            - "stop_sequence": Hit a stop sequence
            - "guardrail_intervened": A guardrail blocked the output
            - "content_filtered": Content was filtered
        usage: Token counters.
        metrics: Latency metrics.
    """
    output: ConverseOutput
    stopReason: str
    usage: TokenUsage
    metrics: dict[str, Any]
