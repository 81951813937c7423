"""API routes for the proxy."""

from .chat import chat_completions
from .health import home
from .models import list_models
from .usage import router as usage_router

__all__ = [
    "chat_completions",
    "home",
    "list_models",
    "usage_router",
]
