from __future__ import annotations

"""Async HTTP GET-JSON helper shared by all rate providers.

Maps every transport-level problem to ``TransportError`` and any body that is
not a JSON object to ``MalformedResponse`` so callers only deal with the
pipeline's own error taxonomy. No retries here: the fiat chain moves on to the
next provider and the refresh service owns the retry budget.
"""
from typing import Any, Dict, Mapping, Optional

import httpx

from fxcache.core.errors import MalformedResponse, TransportError

USER_AGENT = "fxcache/0.1"


def make_client(timeout: float = 10.0) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        follow_redirects=True,
    )


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as e:
        raise TransportError(f"GET {url} failed: {e!r}") from e
    if resp.status_code >= 400:
        raise TransportError(f"HTTP {resp.status_code} for {resp.request.url}")
    try:
        data = resp.json()
    except ValueError as e:
        raise MalformedResponse(f"non-JSON body from {resp.request.url}") from e
    if not isinstance(data, dict):
        raise MalformedResponse(f"expected JSON object from {resp.request.url}")
    return data
