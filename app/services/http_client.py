from __future__ import annotations

"""Lightweight async HTTP client util for upstream feeds.

A single GET returning the body as bytes. Retries are deliberately absent here:
the rate cache controller owns the attempt loop and backoff, so every call maps
to exactly one upstream request.
"""
from typing import Optional

import httpx


class HttpError(Exception):
    pass


async def get_bytes(
    url: str,
    *,
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bytes:
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.get(url)
    except httpx.HTTPError as e:  # transport failures and timeouts
        raise HttpError(f"Failed to fetch {url}: {e!r}") from e
    if not resp.is_success:
        raise HttpError(f"HTTP {resp.status_code} {resp.reason_phrase} for {url}")
    return resp.content
