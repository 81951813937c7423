"""OpenAI Chat Completions <-> Bedrock Converse translation.

This module translates between the OpenAI Chat Completions format accepted by
the proxy and the Bedrock Converse format spoken by the backend.

Key mappings:
- OpenAI system messages -> Converse ``system`` blocks (order preserved)
- OpenAI user/assistant messages -> Converse ``messages`` with one text block
- max_tokens/temperature/top_p/stop -> Converse ``inferenceConfig``
- Converse usage/stopReason -> OpenAI usage/finish_reason

Reference:
- Bedrock Converse: https://docs.aws.amazon.com/bedrock/latest/APIReference/API_runtime_Converse.html
- OpenAI Chat Completions: https://platform.openai.com/docs/api-reference/chat
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Mapping, Optional

from ..core.exceptions import (
    InvalidRequestError,
    MissingUsageError,
    UnsupportedContentTypeError,
)
from ..core.models import choose_model
from ..types import (
    ChatCompletionResponse,
    ConverseRequest,
    ConverseResponse,
    InferenceConfiguration,
    Message,
    SystemContentBlock,
)

logger = logging.getLogger("bedrock-proxy")

CONVERSATION_ROLES = ("user", "assistant")
SYSTEM_ROLE = "system"

# Bedrock stopReason -> OpenAI finish_reason. Values not listed pass through.
_STOP_REASON_MAP = {
    "end_turn": "stop",
    "stop_sequence": "stop",
    "max_tokens": "length",
    "tool_use": "tool_calls",
    "guardrail_intervened": "content_filter",
    "content_filtered": "content_filter",
}

USAGE_FIELDS = (
    ("inputTokens", "prompt_tokens"),
    ("outputTokens", "completion_tokens"),
    ("totalTokens", "total_tokens"),
)


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex[:24]}"


def _convert_stop_reason(stop_reason: Optional[str]) -> Optional[str]:
    """Convert a Bedrock stopReason to an OpenAI finish_reason.

    Bedrock: end_turn, tool_use, max_tokens, stop_sequence,
             guardrail_intervened, content_filtered
    OpenAI: stop, length, tool_calls, content_filter
    """
    if stop_reason is None:
        return None
    return _STOP_REASON_MAP.get(stop_reason, stop_reason)


def _message_text(message: Mapping[str, Any], index: int) -> str:
    content = message.get("content")
    if isinstance(content, str):
        return content
    raise UnsupportedContentTypeError(
        f"messages[{index}].content must be a string, got {type(content).__name__}",
        status_code=400,
    )


def _build_inference_config(payload: Mapping[str, Any]) -> InferenceConfiguration:
    config: InferenceConfiguration = {}

    max_tokens = payload.get("max_tokens")
    if max_tokens is not None:
        if isinstance(max_tokens, bool) or not isinstance(max_tokens, int):
            raise InvalidRequestError("max_tokens must be an integer", param="max_tokens")
        config["maxTokens"] = max_tokens

    for source, target in (("temperature", "temperature"), ("top_p", "topP")):
        value = payload.get(source)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidRequestError(f"{source} must be a number", param=source)
        config[target] = float(value)

    stop = payload.get("stop")
    if stop is not None:
        stop_sequences = [stop] if isinstance(stop, str) else stop
        if not isinstance(stop_sequences, list) or not all(
            isinstance(item, str) for item in stop_sequences
        ):
            raise InvalidRequestError(
                "stop must be a string or a list of strings", param="stop"
            )
        if stop_sequences:
            config["stopSequences"] = list(stop_sequences)

    return config


def chat_completions_to_converse(
    payload: Mapping[str, Any],
    select_model: Callable[[str], str] = choose_model,
) -> ConverseRequest:
    """Translate an OpenAI Chat Completions request into Converse arguments.

    System messages become ``system`` blocks and every other message becomes
    a conversational turn, each partition keeping the input order. Roles
    are carried through unchanged; consecutive same-role turns are allowed.

    Args:
        payload: OpenAI Chat Completions request body
        select_model: Maps the requested model id to the backend model id

    Returns:
        Keyword arguments for ``converse`` / ``converse_stream``

    Raises:
        InvalidRequestError: the payload does not have the expected shape
        UnsupportedContentTypeError: a message carries non-text content
    """
    messages = payload.get("messages")
    if not isinstance(messages, list):
        raise InvalidRequestError("messages must be a list", param="messages")

    converse_messages: list[Message] = []
    converse_system: list[SystemContentBlock] = []

    for index, msg in enumerate(messages):
        if not isinstance(msg, Mapping):
            raise InvalidRequestError(
                f"messages[{index}] must be an object", param="messages"
            )

        role = msg.get("role")
        text = _message_text(msg, index)

        if role == SYSTEM_ROLE:
            converse_system.append({"text": text})
        elif role in CONVERSATION_ROLES:
            converse_messages.append({"role": role, "content": [{"text": text}]})
        else:
            raise InvalidRequestError(
                f"messages[{index}].role must be one of system, user, assistant; got {role!r}",
                param="messages",
            )

    model = payload.get("model")
    result: ConverseRequest = {
        "modelId": select_model(model if isinstance(model, str) else ""),
        "messages": converse_messages,
        "system": converse_system,
    }

    inference_config = _build_inference_config(payload)
    if inference_config:
        result["inferenceConfig"] = inference_config

    return result


def _extract_text(response: Mapping[str, Any]) -> str:
    output = response.get("output")
    message = output.get("message") if isinstance(output, Mapping) else None
    if not isinstance(message, Mapping):
        member = next(iter(output), "<empty>") if isinstance(output, Mapping) else type(output).__name__
        raise UnsupportedContentTypeError(f"Unsupported converse output member: {member}")

    content = message.get("content") or []
    if not content:
        logger.warning("Converse response carried no content blocks")
        return ""

    block = content[0]
    text = block.get("text") if isinstance(block, Mapping) else None
    if not isinstance(text, str):
        member = next(iter(block), "<empty>") if isinstance(block, Mapping) else type(block).__name__
        raise UnsupportedContentTypeError(f"Unsupported content block type: {member}")
    return text


def _extract_usage(response: Mapping[str, Any]) -> dict[str, int]:
    usage = response.get("usage")
    if not isinstance(usage, Mapping):
        raise MissingUsageError("Converse response has no usage")

    converted: dict[str, int] = {}
    for source, target in USAGE_FIELDS:
        value = usage.get(source)
        if isinstance(value, bool) or not isinstance(value, int):
            raise MissingUsageError(f"Converse response usage is missing {source}")
        converted[target] = value
    return converted


def converse_to_chat_completion(
    response: ConverseResponse,
    model: str,
    completion_id: Optional[str] = None,
) -> ChatCompletionResponse:
    """Translate a Converse response into an OpenAI Chat Completions response.

    Args:
        response: Converse API response
        model: Backend model id the request was sent to
        completion_id: Optional response id, generated when omitted

    Returns:
        OpenAI Chat Completions API response body

    Raises:
        UnsupportedContentTypeError: the first content unit is not text
        MissingUsageError: a usage counter is absent
    """
    text = _extract_text(response)
    usage = _extract_usage(response)

    return {
        "id": completion_id or new_completion_id(),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": _convert_stop_reason(response.get("stopReason")),
            }
        ],
        "usage": usage,
    }
