"""bedrock-proxy - OpenAI-compatible gateway to Amazon Bedrock

Accepts OpenAI Chat Completions requests, forwards them to the Bedrock
Converse API and returns the answer in the OpenAI schema, including the
Server-Sent Events streaming variant.

This module provides:
- chat_completions_to_converse / converse_to_chat_completion: format translation
- ConverseToChatStreamRelay: Converse event stream -> OpenAI SSE chunks
- ModelSelector: allow-list with fallback or reject policy
- BedrockBackend: boto3-based inference backend

Example:
    >>> from bedrock_proxy.main import app
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8081)
"""

from .config_loader import load_config
from .converse import (
    ConverseToChatStreamRelay,
    chat_completions_to_converse,
    converse_to_chat_completion,
)
from .core import BedrockBackend, ModelSelector, ProxyError, choose_model
from .logging import logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "BedrockBackend",
    "chat_completions_to_converse",
    "choose_model",
    "converse_to_chat_completion",
    "ConverseToChatStreamRelay",
    "load_config",
    "logger",
    "ModelSelector",
    "ProxyError",
    "setup_logging",
]
