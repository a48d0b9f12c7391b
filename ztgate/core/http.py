"""Outbound HTTP client used for config, key set and backend calls."""

from collections.abc import AsyncIterator

import httpx


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """FastAPI dependency that yields a per-request async HTTP client."""
    async with httpx.AsyncClient() as client:
        yield client
