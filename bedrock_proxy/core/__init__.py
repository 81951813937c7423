"""Core module initialization."""

from .exceptions import (
    BackendError,
    BackendStreamError,
    ConfigurationError,
    InvalidRequestError,
    MissingUsageError,
    ProxyError,
    UnsupportedContentTypeError,
    UnsupportedModelError,
)
from .models import SUPPORTED_MODELS, ModelSelection, ModelSelector, choose_model
from .sse import DONE_FRAME, detect_sse_stream_error, format_sse_data, format_sse_error
from .backend import BedrockBackend, BedrockEventSource, InferenceBackend, format_boto_error
from .registry import get_backend, get_model_selector, set_backend, set_model_selector

__all__ = [
    "BackendError",
    "BackendStreamError",
    "BedrockBackend",
    "BedrockEventSource",
    "choose_model",
    "ConfigurationError",
    "detect_sse_stream_error",
    "DONE_FRAME",
    "format_boto_error",
    "format_sse_data",
    "format_sse_error",
    "get_backend",
    "get_model_selector",
    "InferenceBackend",
    "InvalidRequestError",
    "MissingUsageError",
    "ModelSelection",
    "ModelSelector",
    "ProxyError",
    "set_backend",
    "set_model_selector",
    "SUPPORTED_MODELS",
    "UnsupportedContentTypeError",
    "UnsupportedModelError",
]
