"""Main FastAPI application for the Bedrock proxy."""

import logging
import socket
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import chat_completions, home, list_models, usage_router
from .api.routes.chat import MODEL_FALLBACK_HEADER, MODEL_ID_HEADER
from .config_loader import (
    get_cors_origins,
    get_log_level,
    get_model_policy,
    get_region,
    get_server_host,
    get_server_port,
    get_supported_models,
    load_config,
)
from .core.backend import BedrockBackend, InferenceBackend
from .core.models import ModelSelector
from .core.registry import set_backend, set_model_selector
from .logging import resolve_log_level, setup_logging

logger = logging.getLogger("bedrock-proxy")


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    backend: Optional[InferenceBackend] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Parsed configuration; loaded from the config file when omitted.
        backend: Inference backend; a BedrockBackend for the configured region
            when omitted.

    Returns:
        The configured FastAPI application instance.
    """
    if config is None:
        config = load_config()

    setup_logging(resolve_log_level(get_log_level(config)))

    selector = ModelSelector(get_supported_models(config), get_model_policy(config))
    set_model_selector(selector)

    region = get_region(config)
    if backend is None:
        backend = BedrockBackend(region)
    set_backend(backend)

    host = get_server_host(config)
    port = get_server_port(config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("Bedrock proxy starting up...")
        logger.info("Configured bind address %s:%s", host, port)
        if host == "0.0.0.0":
            hostname = socket.gethostname()
            logger.info("Reachable on local network at http://%s:%s", hostname, port)
        logger.info("Bedrock region: %s", region)
        logger.info(
            "Supported models (default first, policy=%s): %s",
            selector.policy,
            list(selector.models),
        )
        yield
        logger.info("Bedrock proxy shutting down")

    app = FastAPI(title="Bedrock Proxy", lifespan=lifespan)
    app.state.server_host = host
    app.state.server_port = port

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(config),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Type", MODEL_ID_HEADER, MODEL_FALLBACK_HEADER],
    )

    app.get("/")(home)
    app.post("/v1/chat/completions")(chat_completions)
    app.get("/v1/models")(list_models)
    app.include_router(usage_router)

    logger.info("FastAPI application created")
    return app


# Module-level application for ``uvicorn bedrock_proxy.main:app``
app = create_app()

__all__ = ["app", "create_app"]
