"""Tests for the Bedrock backend module."""

from unittest.mock import MagicMock

import pytest
from botocore.eventstream import ParserError
from botocore.exceptions import ClientError, EndpointConnectionError
from urllib3.exceptions import ProtocolError, ReadTimeoutError

from bedrock_proxy.converse.events import StreamEventKind
from bedrock_proxy.converse.stream_adapter import ConverseToChatStreamRelay, RelayState
from bedrock_proxy.core.backend import BedrockBackend, BedrockEventSource, format_boto_error
from bedrock_proxy.core.exceptions import BackendError, BackendStreamError
from bedrock_proxy.core.sse import detect_sse_stream_error

REQUEST = {
    "modelId": "anthropic.claude-3-haiku-20240307-v1:0",
    "messages": [{"role": "user", "content": [{"text": "hi"}]}],
    "system": [],
}


def _client_error(code: str = "ThrottlingException", message: str = "Too many requests"):
    return ClientError({"Error": {"Code": code, "Message": message}}, "Converse")


class _FakeEventStream:
    """Iterable stand-in for a botocore EventStream."""

    def __init__(self, events, fail_with=None):
        self._events = list(events)
        self._fail_with = fail_with
        self.closed = False

    def __iter__(self):
        yield from self._events
        if self._fail_with is not None:
            raise self._fail_with

    def close(self):
        self.closed = True


class TestFormatBotoError:
    """Tests for format_boto_error()."""

    def test_client_error(self):
        assert format_boto_error(_client_error()) == "ThrottlingException: Too many requests"

    def test_botocore_error(self):
        exc = EndpointConnectionError(endpoint_url="https://bedrock.example")
        result = format_boto_error(exc)
        assert result.startswith("EndpointConnectionError: ")
        assert "bedrock.example" in result


class TestBedrockBackend:
    """Tests for BedrockBackend with a mocked boto3 client."""

    @pytest.mark.asyncio
    async def test_invoke_passes_request_as_keywords(self):
        client = MagicMock()
        client.converse.return_value = {"output": {}}
        backend = BedrockBackend("us-east-1", client=client)

        result = await backend.invoke(REQUEST)

        assert result == {"output": {}}
        client.converse.assert_called_once_with(**REQUEST)

    @pytest.mark.asyncio
    async def test_invoke_wraps_client_error(self):
        client = MagicMock()
        client.converse.side_effect = _client_error("ValidationException", "bad model")
        backend = BedrockBackend("us-east-1", client=client)

        with pytest.raises(BackendError) as excinfo:
            await backend.invoke(REQUEST)

        assert excinfo.value.message == "ValidationException: bad model"
        assert excinfo.value.status_code == 502

    @pytest.mark.asyncio
    async def test_invoke_streaming_returns_event_source(self):
        stream = _FakeEventStream([{"messageStart": {"role": "assistant"}}])
        client = MagicMock()
        client.converse_stream.return_value = {"stream": stream}
        backend = BedrockBackend("us-east-1", client=client)

        source = await backend.invoke_streaming(REQUEST)

        assert isinstance(source, BedrockEventSource)
        client.converse_stream.assert_called_once_with(**REQUEST)

    @pytest.mark.asyncio
    async def test_invoke_streaming_wraps_client_error(self):
        client = MagicMock()
        client.converse_stream.side_effect = _client_error()
        backend = BedrockBackend("us-east-1", client=client)

        with pytest.raises(BackendError, match="ThrottlingException"):
            await backend.invoke_streaming(REQUEST)

    @pytest.mark.asyncio
    async def test_invoke_streaming_without_stream_member(self):
        client = MagicMock()
        client.converse_stream.return_value = {"ResponseMetadata": {}}
        backend = BedrockBackend("us-east-1", client=client)

        with pytest.raises(BackendError, match="no event stream"):
            await backend.invoke_streaming(REQUEST)


class TestBedrockEventSource:
    """Tests for BedrockEventSource."""

    @pytest.mark.asyncio
    async def test_reads_events_in_order_then_none(self):
        stream = _FakeEventStream(
            [
                {"messageStart": {"role": "assistant"}},
                {"contentBlockDelta": {"delta": {"text": "Hi"}, "contentBlockIndex": 0}},
                {"messageStop": {"stopReason": "end_turn"}},
            ]
        )
        source = BedrockEventSource(stream)

        kinds = []
        while (event := await source.next_event()) is not None:
            kinds.append(event.kind)

        assert kinds == [
            StreamEventKind.MESSAGE_START,
            StreamEventKind.CONTENT_DELTA,
            StreamEventKind.MESSAGE_STOP,
        ]

    @pytest.mark.asyncio
    async def test_transport_error_becomes_stream_error(self):
        stream = _FakeEventStream(
            [{"messageStart": {"role": "assistant"}}],
            fail_with=_client_error("ModelStreamErrorException", "model crashed"),
        )
        source = BedrockEventSource(stream)

        await source.next_event()
        with pytest.raises(BackendStreamError, match="model crashed"):
            await source.next_event()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failure",
        [
            ProtocolError("Connection broken", ConnectionResetError(104, "reset by peer")),
            ReadTimeoutError(None, "https://bedrock-runtime.us-east-1.amazonaws.com", "Read timed out."),
            ParserError("bad prelude checksum"),
            ConnectionResetError(104, "reset by peer"),
        ],
    )
    async def test_transport_failure_mid_stream_reaches_relay_error_path(self, failure):
        stream = _FakeEventStream(
            [
                {"messageStart": {"role": "assistant"}},
                {"contentBlockDelta": {"delta": {"text": "Hel"}, "contentBlockIndex": 0}},
            ],
            fail_with=failure,
        )
        source = BedrockEventSource(stream)
        relay = ConverseToChatStreamRelay("anthropic.claude-3-haiku-20240307-v1:0")
        frames: list[bytes] = []

        with pytest.raises(BackendStreamError) as excinfo:
            async for frame in relay.relay(source):
                frames.append(frame)

        assert excinfo.value.__cause__ is failure
        assert type(failure).__name__ in excinfo.value.message
        assert relay.state is RelayState.ERRORED
        assert len(frames) == 2
        assert b'"Hel"' in frames[0]
        assert detect_sse_stream_error(frames[-1]) is not None
        assert b"[DONE]" not in b"".join(frames)
        assert stream.closed

    @pytest.mark.asyncio
    async def test_in_stream_exception_member_raises(self):
        stream = _FakeEventStream([{"internalServerException": {"message": "oops"}}])
        source = BedrockEventSource(stream)

        with pytest.raises(BackendStreamError, match="oops"):
            await source.next_event()

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self):
        stream = _FakeEventStream([{"messageStart": {"role": "assistant"}}])
        source = BedrockEventSource(stream)

        await source.aclose()
        await source.aclose()

        assert stream.closed
        assert source.closed
        assert await source.next_event() is None
