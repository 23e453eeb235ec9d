# services/image_resolver.py
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Optional
from urllib.parse import quote

from models import DayPlan, Stop
from services.unsplash_client import PhotoSearch, UnsplashClient, photo_url

log = logging.getLogger("images")

PLACEHOLDER_URL = "https://source.unsplash.com/600x400/?{query}"

def placeholder_url(query: Optional[str]) -> str:
    # Same characters left unescaped as a browser's encodeURIComponent
    return PLACEHOLDER_URL.format(query=quote(query or "travel", safe="-_.!~*'()"))

def place_key(stop: Stop) -> str:
    return (stop.name or stop.location.label or "place").lower()

def place_query(stop: Stop) -> str:
    loc = stop.location
    return stop.name or loc.label or f"{loc.lat},{loc.lng}"

def build_photo_search(settings) -> Optional[UnsplashClient]:
    """One shared search client per process; None without an access key."""
    if not settings.has_unsplash_key:
        log.warning("UNSPLASH_ACCESS_KEY not set; using placeholder images")
        return None
    return UnsplashClient(settings.UNSPLASH_ACCESS_KEY, timeout=settings.UNSPLASH_TIMEOUT_S)

class ImageResolver:
    """
    Place key -> photo URL, backed by an in-memory cache that lives as long as
    the resolver (one browsing session). Never raises: every path ends in a URL.
    """

    def __init__(self, search: Optional[PhotoSearch] = None, *, pause_s: float = 0.008) -> None:
        self._search = search
        self._cache: Dict[str, str] = {}
        self.pause_s = pause_s

    def __len__(self) -> int:
        return len(self._cache)

    def get(self, key: str) -> Optional[str]:
        return self._cache.get(key)

    def set(self, key: str, url: str) -> None:
        self._cache[key] = url

    async def resolve(self, key: str, query: str) -> str:
        cached = self._cache.get(key)
        if cached:
            return cached

        # Concurrent misses for one key each hit the backend; last write wins
        if self._search is not None:
            try:
                results = await self._search.search_photos(query, orientation="landscape", per_page=1)
                url = photo_url(results[0]) if results else None
                if url:
                    self._cache[key] = url
                    return url
                log.info("No photo found", extra={"key": key, "query": query})
            except Exception:
                log.warning("Photo search failed for query=%s", query, exc_info=True)

        fallback = placeholder_url(query)
        self._cache[key] = fallback
        return fallback

    async def prefetch_day(self, day: Optional[DayPlan], is_alive: Callable[[], bool] = lambda: True) -> Optional[Dict[str, str]]:
        """
        Resolve every stop of a day in order, pausing briefly between fetches.
        Returns None once the owning view is gone; in-flight lookups still
        complete and land in the cache.
        """
        if day is None or not day.stops:
            return {}

        images: Dict[str, str] = {}
        for stop in day.stops:
            key = place_key(stop)
            url = await self.resolve(key, place_query(stop))
            if not is_alive():
                log.debug("Dropping prefetch for stale view", extra={"day": day.title})
                return None
            images[key] = url
            await asyncio.sleep(self.pause_s)

        return images if is_alive() else None

