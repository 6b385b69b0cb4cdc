"""
Search proxy over the Brave Search API with a cache-aside TTL cache
"""

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import httpx

from tabsync.core.config import settings
from .search_exceptions import SearchConfigurationError, SearchUpstreamError

logger = logging.getLogger(__name__)

FRESHNESS_MAP = {
    "day": "pd",
    "week": "pw",
    "month": "pm",
    "year": "py",
}

ENDPOINTS = {
    "news": "/news/search",
    "video": "/videos/search",
    "image": "/images/search",
    "web": "/web/search",
}

SUGGEST_ENDPOINT = "/suggest/search"


class TTLCache:
    """
    Small in-memory cache whose entries expire after ttl seconds.

    Expired entries are swept on every write and the oldest entries are
    evicted once max_entries is reached.
    """

    def __init__(self, ttl: float, max_entries: int = 1024):
        self.ttl = ttl
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any):
        now = time.monotonic()
        self._prune(now)

        # Re-inserting moves the key to the end of the eviction order
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            del self._entries[next(iter(self._entries))]
        self._entries[key] = (now + self.ttl, value)

    def _prune(self, now: float):
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _meta_data(item: Dict[str, Any]) -> Dict[str, Any]:
    video = item.get("video") or {}
    thumbnail = item.get("thumbnail") or {}
    meta_url = item.get("meta_url") or {}
    profile = item.get("profile") or {}
    return {
        "creator": video.get("creator") or item.get("source") or profile.get("name") or meta_url.get("hostname"),
        "image": thumbnail.get("original") or meta_url.get("favicon"),
        "thumbnail": thumbnail.get("src") or meta_url.get("favicon"),
        "creatorChannel": (video.get("author") or {}).get("url"),
        "duration": video.get("duration"),
        "views": video.get("views"),
    }


def normalize_items(data: Dict[str, Any], result_type: Optional[str]) -> List[Dict[str, Any]]:
    """Flatten provider results into {type, title, link, description, published, meta_data}"""
    if result_type in ("news", "video"):
        return [
            {
                "type": result_type,
                "title": item.get("title") or "Untitled",
                "description": item.get("description") or "No description available",
                "link": item.get("url"),
                "published": item.get("age") or "Unknown",
                "meta_data": _meta_data(item),
            }
            for item in data.get("results") or []
        ]

    if result_type == "image":
        return [
            {
                "type": "image",
                "title": item.get("title") or "Untitled",
                "link": item.get("url"),
                "description": item.get("description"),
                "published": item.get("age"),
                "meta_data": _meta_data(item),
            }
            for item in data.get("results") or []
        ]

    return [
        {
            "type": "web",
            "title": item.get("title") or "Untitled",
            "link": item.get("url"),
            "description": item.get("description") or "No description available",
            "published": item.get("age") or "Unknown",
            "meta_data": _meta_data(item),
        }
        for item in (data.get("web") or {}).get("results") or []
    ]


class SearchService:
    """Service for proxying search queries"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        suggest_api_key: Optional[str] = None,
        timeout: Optional[int] = None,
        cache_ttl: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url or settings.BRAVE_API_BASE_URL
        self.api_key = api_key or settings.BRAVE_API_KEY
        self.suggest_api_key = suggest_api_key or settings.BRAVE_SUGGEST_API_KEY or self.api_key
        self.timeout = timeout or settings.SEARCH_TIMEOUT
        self.cache = TTLCache(cache_ttl or settings.SEARCH_CACHE_TTL, settings.SEARCH_CACHE_MAX_ENTRIES)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json", "Accept-Encoding": "gzip"},
                transport=self._transport
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, path: str, api_key: Optional[str], params: Dict[str, Any]) -> Dict[str, Any]:
        if not api_key:
            raise SearchConfigurationError("Search API key is not configured")

        try:
            response = await self._get_client().get(
                path, params=params, headers={"X-Subscription-Token": api_key}
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"Search API error for {path}: HTTP {status_code}")
            raise SearchUpstreamError("Error fetching data from search provider", status_code)
        except httpx.HTTPError as e:
            logger.error(f"Search API request failed for {path}: {e}")
            raise SearchUpstreamError("Error fetching data from search provider")

    async def suggest(self, q: str) -> Dict[str, Any]:
        """Query completions for q"""
        cache_key = f"suggest-{q}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        data = await self._get(SUGGEST_ENDPOINT, self.suggest_api_key, {"q": q, "count": 5})
        result = {
            "status": 200,
            "suggestions": [item.get("query") for item in data.get("results") or []],
        }
        self.cache.set(cache_key, result)
        return result

    async def search(
        self,
        q: str,
        page: int = 1,
        limit: int = 10,
        safesearch: str = "moderate",
        freshness: str = "year",
        result_type: Optional[str] = None,
        country: Optional[str] = None
    ) -> Dict[str, Any]:
        """Search and normalize one page of results"""
        country = country or settings.SEARCH_DEFAULT_COUNTRY
        cache_key = f"{q}-{page}-{limit}-{country}-{safesearch}-{freshness}-{result_type}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        params: Dict[str, Any] = {
            "q": q,
            "count": limit,
            "offset": page - 1,
            "country": country,
            "safesearch": safesearch,
            "freshness": FRESHNESS_MAP.get(freshness, freshness),
        }
        if result_type == "image":
            params.pop("freshness")
            params.pop("offset")
            params["safesearch"] = "strict"

        path = ENDPOINTS.get(result_type or "web", ENDPOINTS["web"])
        data = await self._get(path, self.api_key, params)

        reported_country = (data.get("query") or {}).get("country")
        if reported_country and reported_country.lower() != country.lower():
            country = reported_country

        result = {
            "page": page,
            "country": country,
            "items": normalize_items(data, result_type),
        }
        self.cache.set(cache_key, result)
        return result


# Singleton instance
_search_service = None

def get_search_service() -> SearchService:
    """Get singleton SearchService instance"""
    global _search_service
    if _search_service is None:
        _search_service = SearchService()
    return _search_service
