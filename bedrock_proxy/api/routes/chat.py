"""OpenAI-compatible chat completions endpoint backed by Bedrock Converse."""

import json
import logging
import time
import uuid
from typing import Any, AsyncIterator, Mapping, Optional
from urllib.parse import quote

from fastapi import Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.requests import ClientDisconnect

from ...converse import (
    ConverseToChatStreamRelay,
    EventSource,
    RelayState,
    chat_completions_to_converse,
    converse_to_chat_completion,
)
from ...core.exceptions import BackendStreamError, InvalidRequestError, ProxyError
from ...core.models import ModelSelection
from ...core.registry import get_backend, get_model_selector
from ...usage_metrics import USAGE_COUNTERS, RequestTracker

logger = logging.getLogger("bedrock-proxy")

MODEL_ID_HEADER = "X-Bedrock-Model-Id"
MODEL_FALLBACK_HEADER = "X-Model-Fallback"


def _openai_error_response(
    message: str,
    *,
    error_type: str = "invalid_request_error",
    status_code: int = 400,
    error_code: Optional[str] = None,
    param: Optional[str] = None,
) -> JSONResponse:
    error: dict[str, Any] = {"message": message, "type": error_type}
    if error_code:
        error["code"] = error_code
    if param:
        error["param"] = param
    return JSONResponse({"error": error}, status_code=status_code)


def _error_response_from(exc: ProxyError) -> JSONResponse:
    return _openai_error_response(
        exc.message,
        error_type=exc.error_type,
        status_code=exc.status_code,
        error_code=exc.code,
        param=getattr(exc, "param", None),
    )


def _decode_chat_request(body: bytes) -> Mapping[str, Any]:
    """Decode and shape-check the request body.

    Raises:
        InvalidRequestError: the body is not a chat completion request object
    """
    try:
        payload = json.loads(body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRequestError(f"Invalid JSON payload: {exc}", code="invalid_json") from exc

    if not isinstance(payload, Mapping):
        raise InvalidRequestError(
            "Request body must be a JSON object", code="invalid_json_shape"
        )

    model = payload.get("model", "")
    if not isinstance(model, str):
        raise InvalidRequestError("model must be a string", param="model")

    if not isinstance(payload.get("stream", False), bool):
        raise InvalidRequestError("stream must be a boolean", param="stream")

    return payload


def _model_headers(selection: ModelSelection) -> dict[str, str]:
    headers = {MODEL_ID_HEADER: selection.model_id}
    if selection.fell_back:
        headers[MODEL_FALLBACK_HEADER] = quote(selection.requested, safe=":._-/") or '""'
    return headers


async def chat_completions(request: Request) -> Response:
    """POST /v1/chat/completions - OpenAI Chat Completions compatible endpoint.

    The request is translated to a Bedrock Converse call. Depending on the
    ``stream`` flag the answer is a JSON chat completion or a
    ``text/event-stream`` of chat completion chunks ending with ``[DONE]``.
    """
    req_id = uuid.uuid4().hex[:8]
    start_time = time.perf_counter()
    client_host = request.client.host if request.client else "unknown"
    logger.info(f"[{req_id}] Chat completion request from {client_host}")

    tracker = USAGE_COUNTERS.start_request()

    try:
        body = await request.body()
    except ClientDisconnect:
        elapsed = time.perf_counter() - start_time
        logger.warning(f"[{req_id}] ClientDisconnect after {elapsed:.3f}s while reading body")
        tracker.fail()
        return Response(status_code=499)  # Client Closed Request

    try:
        payload = _decode_chat_request(body)
        selection = get_model_selector().select(payload.get("model", ""))
        converse_request = chat_completions_to_converse(
            payload, select_model=lambda _requested: selection.model_id
        )
    except ProxyError as exc:
        logger.error(f"[{req_id}] Rejected request: {exc.message}")
        tracker.fail()
        return _error_response_from(exc)

    is_stream = bool(payload.get("stream", False))
    model_id = converse_request["modelId"]

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            f"[{req_id}] Translated to Converse: modelId={model_id}, "
            f"messages={len(converse_request['messages'])}, "
            f"system={len(converse_request['system'])}, stream={is_stream}"
        )

    backend = get_backend()
    headers = _model_headers(selection)
    USAGE_COUNTERS.record_dispatch(model_id, stream=is_stream, fell_back=selection.fell_back)

    if is_stream:
        try:
            source = await backend.invoke_streaming(converse_request)
        except ProxyError as exc:
            elapsed = time.perf_counter() - start_time
            logger.error(f"[{req_id}] Backend stream error after {elapsed:.3f}s: {exc.message}")
            tracker.fail()
            return _error_response_from(exc)

        elapsed = time.perf_counter() - start_time
        logger.info(
            f"[{req_id}] Starting streaming response for {model_id}, setup took {elapsed:.3f}s"
        )
        relay = ConverseToChatStreamRelay(model_id, disconnect_checker=request.is_disconnected)
        headers.update({"Cache-Control": "no-cache", "Connection": "keep-alive"})
        return StreamingResponse(
            _stream_frames(req_id, relay, source, tracker, start_time),
            headers=headers,
            media_type="text/event-stream",
        )

    try:
        backend_response = await backend.invoke(converse_request)
        chat_response = converse_to_chat_completion(backend_response, model_id)
    except ProxyError as exc:
        elapsed = time.perf_counter() - start_time
        logger.error(f"[{req_id}] Completion failed after {elapsed:.3f}s: {exc.message}")
        tracker.fail()
        return _error_response_from(exc)

    try:
        content = json.dumps(chat_response, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        logger.error(f"[{req_id}] Failed to serialize response: {exc}")
        tracker.fail()
        return _openai_error_response(
            f"Failed to serialize response: {exc}", error_code="serialization_error"
        )

    USAGE_COUNTERS.record_usage(chat_response["usage"])
    tracker.finish()
    elapsed = time.perf_counter() - start_time
    logger.info(
        f"[{req_id}] Completed non-streaming response for {model_id}, took {elapsed:.3f}s"
    )
    return Response(content=content, media_type="application/json", headers=headers)


async def _stream_frames(
    req_id: str,
    relay: ConverseToChatStreamRelay,
    source: EventSource,
    tracker: RequestTracker,
    start_time: float,
) -> AsyncIterator[bytes]:
    """Drive the relay and settle the request once the stream ends."""
    try:
        async for frame in relay.relay(source):
            yield frame
    except BackendStreamError as exc:
        # The relay already wrote the error frame; the body ends without [DONE].
        logger.error(f"[{req_id}] Stream aborted: {exc.message}")
    finally:
        elapsed = time.perf_counter() - start_time
        if relay.state is RelayState.DONE:
            if relay.usage:
                USAGE_COUNTERS.record_usage(relay.usage)
            tracker.finish()
            logger.info(
                f"[{req_id}] Completed streaming response, {relay.frames_sent} chunks "
                f"in {elapsed:.3f}s"
            )
        else:
            tracker.fail()
            logger.warning(
                f"[{req_id}] Streaming response ended in state {relay.state.value} "
                f"after {elapsed:.3f}s"
            )
