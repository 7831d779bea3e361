from __future__ import annotations

from typing import Optional

import httpx

USER_AGENT = "authcore/0.1"

_client: Optional[httpx.AsyncClient] = None


async def open_http_client(timeout: float = 10.0) -> httpx.AsyncClient:
    """
    Build the process-wide AsyncClient for outbound calls. Calling it again
    returns the already opened client; `timeout` only applies on creation.
    """
    global _client
    if _client is None:
        _client = httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=False,
        )
    return _client


def get_http_client() -> httpx.AsyncClient:
    if _client is None:
        raise RuntimeError("shared HTTP client is not open; call open_http_client() first")
    return _client


async def close_http_client() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()
