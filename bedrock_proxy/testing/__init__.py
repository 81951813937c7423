"""Test doubles for the inference backend."""

from .fake_backend import FakeInferenceBackend, ScriptedEventSource, text_response, text_stream

__all__ = [
    "FakeInferenceBackend",
    "ScriptedEventSource",
    "text_response",
    "text_stream",
]
