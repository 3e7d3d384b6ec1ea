"""
Shared httpx client for provider and CDN calls.
"""
from typing import Optional

import httpx

from soundforge.config import PROVIDER_TIMEOUT_SECONDS


# Singleton instance
_http_client: Optional[httpx.AsyncClient] = None


def get_http_client() -> httpx.AsyncClient:
    """Get the shared async HTTP client, creating it on first use."""
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = httpx.AsyncClient(
            timeout=PROVIDER_TIMEOUT_SECONDS,
            follow_redirects=True,
        )
    return _http_client


async def close_http_client():
    """Close the shared client (called on shutdown)."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
    _http_client = None
