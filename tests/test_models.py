"""Tests for the model allow-list and selection policy."""

import pytest

from bedrock_proxy.core.exceptions import ConfigurationError, UnsupportedModelError
from bedrock_proxy.core.models import (
    SUPPORTED_MODELS,
    ModelSelector,
    choose_model,
)


class TestChooseModel:
    """Tests for choose_model()."""

    @pytest.mark.parametrize("model", SUPPORTED_MODELS)
    def test_returns_supported_model_unchanged(self, model):
        assert choose_model(model) == model

    @pytest.mark.parametrize(
        "model",
        [
            "unknown-model",
            "",
            "gpt-4o",
            "anthropic.claude-3-haiku-20240307-v1:0 ",  # trailing space
            "ANTHROPIC.CLAUDE-3-HAIKU-20240307-V1:0",
        ],
    )
    def test_unknown_model_falls_back_to_first_entry(self, model):
        assert choose_model(model) == SUPPORTED_MODELS[0]

    def test_uses_custom_allow_list(self):
        models = ("model-a", "model-b")
        assert choose_model("model-b", models) == "model-b"
        assert choose_model("model-c", models) == "model-a"

    def test_allow_list_is_immutable(self):
        assert isinstance(SUPPORTED_MODELS, tuple)


class TestModelSelector:
    """Tests for ModelSelector policies."""

    def test_supported_model_is_not_a_fallback(self):
        selection = ModelSelector().select(SUPPORTED_MODELS[2])
        assert selection.model_id == SUPPORTED_MODELS[2]
        assert selection.requested == SUPPORTED_MODELS[2]
        assert selection.fell_back is False

    def test_fallback_policy_substitutes_default(self, caplog):
        with caplog.at_level("WARNING", logger="bedrock-proxy"):
            selection = ModelSelector(policy="fallback").select("unknown-model")
        assert selection.model_id == SUPPORTED_MODELS[0]
        assert selection.requested == "unknown-model"
        assert selection.fell_back is True
        assert "unknown-model" in caplog.text

    def test_reject_policy_raises(self):
        selector = ModelSelector(policy="reject")
        with pytest.raises(UnsupportedModelError) as excinfo:
            selector.select("unknown-model")
        assert excinfo.value.model == "unknown-model"
        assert excinfo.value.status_code == 400
        assert excinfo.value.param == "model"

    def test_reject_policy_accepts_supported_model(self):
        selection = ModelSelector(policy="reject").select(SUPPORTED_MODELS[1])
        assert selection.model_id == SUPPORTED_MODELS[1]

    def test_custom_models_define_default(self):
        selector = ModelSelector(["model-x", "model-y"])
        assert selector.default_model == "model-x"
        assert selector.models == ("model-x", "model-y")
        assert selector.select("other").model_id == "model-x"

    def test_rejects_empty_allow_list(self):
        with pytest.raises(ConfigurationError):
            ModelSelector([])

    def test_rejects_unknown_policy(self):
        with pytest.raises(ConfigurationError):
            ModelSelector(policy="warn")
