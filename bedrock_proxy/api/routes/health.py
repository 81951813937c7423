"""Liveness endpoint."""

from fastapi.responses import PlainTextResponse


async def home() -> PlainTextResponse:
    """GET / - plain-text liveness string."""
    return PlainTextResponse("Hello bedrock api proxy...")
