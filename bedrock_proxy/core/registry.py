"""Registry for the process-wide backend and model selector.

Routes import from here instead of from ``main`` to avoid circular imports.
"""

from typing import Optional

from .backend import InferenceBackend
from .models import ModelSelector

# Set by main.create_app during initialization
backend: Optional[InferenceBackend] = None
model_selector: Optional[ModelSelector] = None


def set_backend(backend_instance: InferenceBackend) -> None:
    """Set the global inference backend."""
    global backend
    backend = backend_instance


def get_backend() -> InferenceBackend:
    """Get the global inference backend."""
    if backend is None:
        raise RuntimeError("Backend not initialized. Did you call set_backend?")
    return backend


def set_model_selector(selector: ModelSelector) -> None:
    """Set the global model selector."""
    global model_selector
    model_selector = selector


def get_model_selector() -> ModelSelector:
    """Get the global model selector, defaulting to the built-in allow-list."""
    global model_selector
    if model_selector is None:
        model_selector = ModelSelector()
    return model_selector
