"""TMDB API client with a short-lived response cache."""

import logging
import time
from functools import lru_cache
from typing import Any, Callable, Dict, Hashable, List, Optional

import requests

from .config import Settings
from .errors import (
    ConfigurationError,
    UpstreamError,
    UpstreamParseError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


class TTLCache:
    """Mapping whose entries expire a fixed time after they were stored.

    Expiry is absolute from insertion; reads do not extend it.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._entries: Dict[Hashable, tuple] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Hashable, value: Any) -> None:
        now = self.clock()
        self.prune(now)
        self._entries[key] = (value, now + self.ttl)

    def prune(self, now: Optional[float] = None) -> None:
        """Drop every expired entry."""
        if now is None:
            now = self.clock()
        expired = [k for k, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class TMDBClient:
    """Client for The Movie Database API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = Settings.TMDB_BASE_URL,
        image_base_url: str = Settings.TMDB_IMAGE_BASE_URL,
        timeout: float = Settings.TMDB_TIMEOUT_SECONDS,
        cache_ttl: float = Settings.TMDB_CACHE_TTL_SECONDS,
        backoff: float = Settings.TMDB_RATE_LIMIT_BACKOFF_SECONDS,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.image_base_url = image_base_url.rstrip("/")
        self.timeout = timeout
        self.backoff = backoff
        self.session = session or requests.Session()
        self.sleep = sleep
        self.cache = TTLCache(cache_ttl, clock=clock)
        self._genre_cache: Dict[str, List[dict]] = {}

    @staticmethod
    def _cache_key(endpoint: str, params: Dict[str, Any]) -> tuple:
        return endpoint, tuple(sorted((str(k), str(v)) for k, v in params.items()))

    def fetch_resource(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> dict:
        """GET ``endpoint`` and return the decoded JSON body.

        Successful bodies are cached for ``cache_ttl`` seconds. A 429 is
        retried once after ``backoff`` seconds; failures are never cached.
        """
        if not self.api_key:
            raise ConfigurationError("TMDB_API_KEY is not set")

        params = params or {}
        key = self._cache_key(endpoint, params)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        data = self._get(endpoint, params, retry_rate_limit=True)
        self.cache.set(key, data)
        return data

    def _get(self, endpoint: str, params: Dict[str, Any], retry_rate_limit: bool) -> dict:
        url = f"{self.base_url}{endpoint}"
        request_params = {"api_key": self.api_key}
        request_params.update({k: str(v) for k, v in params.items()})

        try:
            response = self.session.get(url, params=request_params, timeout=self.timeout)
        except requests.Timeout as e:
            logger.warning(f"TMDB request to {endpoint} timed out: {e}")
            raise UpstreamTimeoutError()
        except requests.RequestException as e:
            logger.warning(f"TMDB request to {endpoint} failed: {e}")
            raise UpstreamUnavailableError()

        if response.status_code == 429 and retry_rate_limit:
            logger.warning(f"TMDB rate limited {endpoint}, retrying in {self.backoff}s")
            self.sleep(self.backoff)
            return self._get(endpoint, params, retry_rate_limit=False)

        if not 200 <= response.status_code < 300:
            message = _error_message(response)
            logger.warning(f"TMDB API error for {endpoint}: {response.status_code} {message}")
            raise UpstreamError(response.status_code, message)

        try:
            return response.json()
        except ValueError:
            logger.warning(f"TMDB returned malformed JSON for {endpoint}")
            raise UpstreamParseError()

    def poster_url(self, path: Optional[str], size: str = "w500") -> Optional[str]:
        if not path:
            return None
        return f"{self.image_base_url}/{size}{path}"

    # ----- public helpers -----
    def get_trending(self, content_type: str = "movie", window: str = "week") -> List[dict]:
        return self.fetch_resource(f"/trending/{content_type}/{window}").get("results", [])

    def get_top_rated(self, content_type: str = "movie") -> List[dict]:
        return self.fetch_resource(f"/{content_type}/top_rated").get("results", [])

    def get_content_by_year(
        self,
        year: int,
        content_type: str = "movie",
        sort_by: str = "popularity.desc",
        limit: int = 20,
    ) -> List[dict]:
        date_field = "primary_release_date" if content_type == "movie" else "first_air_date"
        data = self.fetch_resource(
            f"/discover/{content_type}",
            {
                f"{date_field}.gte": f"{year}-01-01",
                f"{date_field}.lte": f"{year}-12-31",
                "sort_by": sort_by,
                "page": 1,
                "vote_count.gte": 50,
            },
        )
        return data.get("results", [])[:limit]

    def get_content_by_genre(
        self,
        genre_id: int,
        content_type: str = "movie",
        sort_by: str = "popularity.desc",
        page: int = 1,
    ) -> List[dict]:
        data = self.fetch_resource(
            f"/discover/{content_type}",
            {"with_genres": genre_id, "sort_by": sort_by, "page": page},
        )
        return data.get("results", [])

    def get_by_id(self, tmdb_id: int, content_type: str = "movie") -> dict:
        return self.fetch_resource(
            f"/{content_type}/{tmdb_id}", {"append_to_response": "credits,similar"}
        )

    def get_genres(self, content_type: str = "movie") -> List[dict]:
        return self.fetch_resource(f"/genre/{content_type}/list").get("genres", [])

    def get_cached_genres(self, content_type: str = "movie") -> List[dict]:
        """Genre lists rarely change, so they are kept for the client's lifetime."""
        if content_type not in self._genre_cache:
            self._genre_cache[content_type] = self.get_genres(content_type)
        return self._genre_cache[content_type]

    def search(self, query: str, content_type: str = "movie", page: int = 1) -> List[dict]:
        data = self.fetch_resource(
            f"/search/{content_type}",
            {"query": query, "page": page, "include_adult": "false"},
        )
        return data.get("results", [])

    def search_person(self, name: str) -> Optional[dict]:
        data = self.fetch_resource(
            "/search/person", {"query": name, "page": 1, "include_adult": "false"}
        )
        results = data.get("results") or []
        return results[0] if results else None

    def discover_movies(
        self,
        query: Optional[str] = None,
        year: Optional[int] = None,
        genres: Optional[List[int]] = None,
        rating_min: Optional[float] = None,
        rating_max: Optional[float] = None,
        crew_name: Optional[str] = None,
        page: int = 1,
    ) -> List[dict]:
        """Advanced search over TMDB discover.

        An unresolvable ``crew_name`` yields no results rather than an error.
        """
        with_people = None
        if crew_name:
            person = self.search_person(crew_name)
            if not person or not person.get("id"):
                return []
            with_people = person["id"]

        params: Dict[str, Any] = {
            "page": page,
            "include_adult": "false",
            "vote_count.gte": 50,
        }

        if query:
            params["query"] = query
            return self.fetch_resource("/search/movie", params).get("results", [])

        if year:
            params["primary_release_year"] = year
        if genres:
            params["with_genres"] = ",".join(str(g) for g in genres)
        if with_people:
            params["with_people"] = with_people
        if rating_min is not None:
            params["vote_average.gte"] = rating_min
        if rating_max is not None:
            params["vote_average.lte"] = rating_max

        return self.fetch_resource("/discover/movie", params).get("results", [])


def _error_message(response) -> str:
    """Best-effort short message from a TMDB error body."""
    try:
        body = response.json()
    except ValueError:
        # Raw bodies (proxy error pages and the like) stay in the log.
        logger.warning(f"TMDB error body was not JSON: {(response.text or '')[:500]!r}")
        return ""
    if isinstance(body, dict):
        return str(body.get("status_message") or body.get("message") or "")
    return ""


@lru_cache
def get_tmdb_client() -> TMDBClient:
    return TMDBClient(api_key=Settings.TMDB_API_KEY)
