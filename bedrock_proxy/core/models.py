"""Model allow-list and selection policy."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .exceptions import ConfigurationError, UnsupportedModelError

logger = logging.getLogger("bedrock-proxy")

# Model list: https://docs.aws.amazon.com/bedrock/latest/userguide/model-ids.html
# The first entry is the default used for fallback.
SUPPORTED_MODELS: tuple[str, ...] = (
    "anthropic.claude-3-sonnet-20240229-v1:0",
    "anthropic.claude-3-haiku-20240307-v1:0",
    "anthropic.claude-3-5-sonnet-20240620-v1:0",
    "anthropic.claude-3-opus-20240229-v1:0",
)

POLICY_FALLBACK = "fallback"
POLICY_REJECT = "reject"


def choose_model(requested: str, models: Sequence[str] = SUPPORTED_MODELS) -> str:
    """Return ``requested`` if it is allow-listed, otherwise the default model."""
    if requested in models:
        return requested
    return models[0]


@dataclass(frozen=True)
class ModelSelection:
    """Outcome of a model selection."""

    model_id: str
    requested: str
    fell_back: bool


class ModelSelector:
    """Applies the unsupported-model policy on top of ``choose_model``."""

    def __init__(
        self,
        models: Sequence[str] | None = None,
        policy: str = POLICY_FALLBACK,
    ) -> None:
        models = tuple(models) if models is not None else SUPPORTED_MODELS
        if not models:
            raise ConfigurationError("model allow-list must not be empty")
        if policy not in (POLICY_FALLBACK, POLICY_REJECT):
            raise ConfigurationError(f"unknown unsupported-model policy: {policy!r}")
        self._models = models
        self.policy = policy

    @property
    def models(self) -> tuple[str, ...]:
        return self._models

    @property
    def default_model(self) -> str:
        return self._models[0]

    def select(self, requested: str) -> ModelSelection:
        model_id = choose_model(requested, self._models)
        if model_id == requested:
            return ModelSelection(model_id=model_id, requested=requested, fell_back=False)

        if self.policy == POLICY_REJECT:
            logger.warning(f"Rejecting unsupported model '{requested}'")
            raise UnsupportedModelError(requested)

        logger.warning(
            f"Unsupported model '{requested}', falling back to default '{model_id}'"
        )
        return ModelSelection(model_id=model_id, requested=requested, fell_back=True)
