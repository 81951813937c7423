"""Core exceptions for the proxy.

Every exception carries the HTTP status and OpenAI error fields used when it
is rendered as an ``{"error": {...}}`` response body.
"""

from typing import Optional


class ProxyError(Exception):
    """Base exception for proxy errors."""

    status_code = 500
    error_type = "server_error"
    code = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(ProxyError):
    """Raised when there's an issue with the configuration."""
    code = "configuration_error"


class InvalidRequestError(ProxyError):
    """Raised when an incoming request cannot be decoded."""

    status_code = 400
    error_type = "invalid_request_error"

    def __init__(
        self,
        message: str,
        code: str = "invalid_request",
        param: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.param = param


class UnsupportedModelError(InvalidRequestError):
    """Raised when a model outside the allow-list is requested under the reject policy."""

    def __init__(self, model: str) -> None:
        super().__init__(
            f"Model '{model}' is not supported by this proxy",
            code="model_not_supported",
            param="model",
        )
        self.model = model


class UnsupportedContentTypeError(ProxyError):
    """Raised when content is not a plain-text unit.

    Backend responses with such content are a server error; inbound requests
    carrying it are rejected with ``status_code=400``.
    """

    code = "unsupported_content_type"

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code
        if status_code < 500:
            self.error_type = "invalid_request_error"


class MissingUsageError(ProxyError):
    """Raised when a backend response lacks one of the token usage counters."""
    code = "missing_usage"


class BackendError(ProxyError):
    """Raised when the inference backend call fails."""

    status_code = 502
    code = "backend_error"


class BackendStreamError(BackendError):
    """Raised when the backend event stream fails after it was opened."""
    code = "backend_stream_error"
