"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient

from bedrock_proxy.core.models import SUPPORTED_MODELS
from bedrock_proxy.testing import FakeInferenceBackend

DEFAULT_MODEL = SUPPORTED_MODELS[0]
HAIKU_MODEL = SUPPORTED_MODELS[1]


def build_proxy_config(
    *,
    policy: str = "fallback",
    supported_models: list[str] | None = None,
    allow_origins: list[str] | None = None,
) -> dict[str, Any]:
    """Build a config dict for create_app.

    Args:
        policy: Unsupported-model policy (fallback or reject)
        supported_models: Allow-list override
        allow_origins: CORS origins

    Returns:
        Config dict
    """
    bedrock: dict[str, Any] = {
        "region": "us-west-2",
        "unsupported_model_policy": policy,
    }
    if supported_models is not None:
        bedrock["supported_models"] = supported_models
    return {
        "proxy_settings": {
            "server": {"host": "127.0.0.1", "port": 9999},
            "cors": {"allow_origins": allow_origins or ["*"]},
        },
        "bedrock": bedrock,
    }


@pytest.fixture
def fake_backend() -> FakeInferenceBackend:
    return FakeInferenceBackend()


@pytest.fixture
def make_client(fake_backend: FakeInferenceBackend):
    """Factory building a TestClient around a fresh app using ``fake_backend``."""
    from bedrock_proxy.main import create_app

    clients: list[TestClient] = []

    def _make(**config_kwargs: Any) -> TestClient:
        app = create_app(build_proxy_config(**config_kwargs), backend=fake_backend)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> Generator[TestClient, None, None]:
    """TestClient with the default fallback policy."""
    yield make_client()
