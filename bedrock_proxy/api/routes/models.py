"""Models listing endpoint - OpenAI compatible."""

import logging
import time

from ...core.registry import get_model_selector

logger = logging.getLogger("bedrock-proxy")

_CREATED = int(time.time())


async def list_models() -> dict:
    """List the allow-listed Bedrock models in OpenAI API format.

    GET /v1/models

    The first entry is the default model used for fallback.
    """
    logger.info("Received models list request")

    models = []
    for model_id in get_model_selector().models:
        models.append({
            "id": model_id,
            "object": "model",
            "created": _CREATED,
            "owned_by": "bedrock",
        })

    return {
        "object": "list",
        "data": models
    }
