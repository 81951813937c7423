"""SSE (Server-Sent Events) frame formatting and error detection."""

import json
from typing import Any, Mapping, Optional

DONE_FRAME = b"data: [DONE]\n\n"


def format_sse_data(payload: Mapping[str, Any]) -> bytes:
    """Serialize ``payload`` as a single ``data: <json>`` SSE frame.

    Raises TypeError/ValueError when the payload is not JSON serializable.
    """
    json_str = json.dumps(payload, ensure_ascii=False)
    return f"data: {json_str}\n\n".encode("utf-8")


def format_sse_error(message: str, code: str, error_type: str = "server_error") -> bytes:
    """Build the terminal frame written when a stream fails part-way."""
    return format_sse_data(
        {"error": {"message": message, "type": error_type, "code": code}}
    )


def detect_sse_stream_error(data: bytes) -> Optional[str]:
    """Return the error message of the first error frame in ``data``, if any.

    Matches OpenAI-style ``data: {"error": {...}}`` frames.
    """
    text = data.decode("utf-8", errors="replace")

    for line in text.split("\n"):
        line = line.strip()
        if not line.startswith("data:"):
            continue

        json_part = line[5:].strip()
        if not json_part or json_part == "[DONE]":
            continue

        try:
            parsed = json.loads(json_part)
        except json.JSONDecodeError:
            continue

        if not isinstance(parsed, dict):
            continue

        error_obj = parsed.get("error")
        if isinstance(error_obj, dict):
            error_msg = error_obj.get("message") or str(error_obj)
            error_code = error_obj.get("code", "unknown")
            return f"SSE stream error: {error_msg} (code={error_code})"

    return None
