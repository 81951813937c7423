"""Inference backend abstraction and the Bedrock implementation."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterator, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.eventstream import ParserError
from botocore.exceptions import BotoCoreError, ClientError
from urllib3.exceptions import HTTPError

from ..converse.events import StreamEvent, parse_stream_event
from ..converse.stream_adapter import EventSource
from ..types import ConverseRequest, ConverseResponse
from .exceptions import BackendError, BackendStreamError

logger = logging.getLogger("bedrock-proxy")

_END = object()

# EventStream iteration reads the raw HTTP body directly, so transport and
# frame decoding failures arrive unwrapped by botocore.
STREAM_READ_ERRORS = (BotoCoreError, ClientError, ParserError, HTTPError, OSError)


class InferenceBackend(Protocol):
    """What the HTTP layer needs from a conversational inference service."""

    async def invoke(self, request: ConverseRequest) -> ConverseResponse:
        """Run one non-streaming conversation turn. Raises BackendError."""
        ...

    async def invoke_streaming(self, request: ConverseRequest) -> EventSource:
        """Open an event stream for one turn. Raises BackendError."""
        ...


def format_boto_error(exc: Exception) -> str:
    """Format a botocore or transport exception into a readable error message."""
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {})
        code = error.get("Code") or type(exc).__name__
        message = error.get("Message") or str(exc)
        return f"{code}: {message}"
    return f"{type(exc).__name__}: {exc}"


class BedrockEventSource:
    """EventSource over a boto3 ``converse_stream`` EventStream.

    Each read blocks on the network, so it runs in a worker thread.
    """

    def __init__(self, event_stream: Any) -> None:
        self._stream = event_stream
        self._iterator: Iterator[dict[str, Any]] = iter(event_stream)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def next_event(self) -> Optional[StreamEvent]:
        if self._closed:
            return None
        try:
            raw = await asyncio.to_thread(next, self._iterator, _END)
        except STREAM_READ_ERRORS as exc:
            raise BackendStreamError(format_boto_error(exc)) from exc
        if raw is _END:
            return None
        return parse_stream_event(raw)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._stream, "close", None)
        if close is None:
            return
        try:
            close()
        except Exception as exc:
            logger.warning(f"Failed to close backend event stream: {exc}")


class BedrockBackend:
    """InferenceBackend backed by the ``bedrock-runtime`` boto3 client."""

    def __init__(
        self,
        region: str,
        client: Any = None,
        *,
        read_timeout: float = 300.0,
    ) -> None:
        self.region = region
        if client is None:
            client = boto3.client(
                "bedrock-runtime",
                region_name=region,
                config=Config(read_timeout=read_timeout),
            )
        self._client = client

    async def invoke(self, request: ConverseRequest) -> ConverseResponse:
        try:
            return await asyncio.to_thread(self._client.converse, **request)
        except (BotoCoreError, ClientError) as exc:
            raise BackendError(format_boto_error(exc)) from exc

    async def invoke_streaming(self, request: ConverseRequest) -> BedrockEventSource:
        try:
            response = await asyncio.to_thread(self._client.converse_stream, **request)
        except (BotoCoreError, ClientError) as exc:
            raise BackendError(format_boto_error(exc)) from exc

        stream = response.get("stream") if isinstance(response, dict) else None
        if stream is None:
            raise BackendError("converse_stream response carried no event stream")
        return BedrockEventSource(stream)
