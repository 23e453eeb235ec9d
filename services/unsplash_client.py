# services/unsplash_client.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

log = logging.getLogger("images")

_SEARCH_URL = "https://api.unsplash.com/search/photos"

class PhotoSearch(Protocol):
    async def search_photos(self, query: str, *, orientation: str = "landscape", per_page: int = 1) -> List[Dict[str, Any]]: ...

def photo_url(record: Dict[str, Any]) -> Optional[str]:
    """The display-sized URL of one search hit, if it has one."""
    urls = record.get("urls") if isinstance(record, dict) else None
    if not isinstance(urls, dict):
        return None
    return urls.get("regular") or urls.get("small")

class UnsplashClient:
    """
    Unsplash photo search (https://unsplash.com/documentation#search-photos).
    Raises httpx errors to the caller; the resolver decides what to fall back to.
    """

    def __init__(self, access_key: str, *, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self._access_key = access_key
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept-Version": "v1", "User-Agent": "ai-trip-planner/1.0"},
        )

    async def search_photos(self, query: str, *, orientation: str = "landscape", per_page: int = 1) -> List[Dict[str, Any]]:
        r = await self._client.get(
            _SEARCH_URL,
            params={"query": query, "orientation": orientation, "per_page": per_page},
            headers={"Authorization": f"Client-ID {self._access_key}"},
        )
        r.raise_for_status()
        data = r.json() or {}
        results = data.get("results") or []
        log.debug("Unsplash search", extra={"query": query, "hits": len(results)})
        return results

    async def aclose(self) -> None:
        await self._client.aclose()
