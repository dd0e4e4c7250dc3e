import pytest
import requests

from cinelog.errors import (
    ConfigurationError,
    UpstreamError,
    UpstreamParseError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
)
from cinelog.tmdb import TMDBClient, TTLCache

from conftest import TMDB_BASE, FakeResponse

TRENDING = {"results": [{"id": 1, "title": "Test Movie"}]}


def test_ttl_cache_expiry_is_absolute(clock):
    cache = TTLCache(300, clock=clock)
    cache.set("k", "v")

    clock.advance(200)
    assert cache.get("k") == "v"
    clock.advance(100)
    assert cache.get("k") is None


def test_ttl_cache_prunes_expired_entries_on_set(clock):
    cache = TTLCache(300, clock=clock)
    for i in range(10):
        cache.set(("/search/movie", i), i)

    clock.advance(300)
    cache.set("fresh", "v")

    assert len(cache) == 1
    assert cache.get("fresh") == "v"


def test_trending_is_served_from_cache_within_ttl(tmdb, tmdb_session, clock):
    tmdb_session.add("/trending/movie/week", FakeResponse(200, TRENDING))

    first = tmdb.get_trending("movie")
    clock.advance(299)
    second = tmdb.get_trending("movie")

    assert first == second == TRENDING["results"]
    assert len(tmdb_session.calls) == 1


def test_cache_entry_refetched_after_ttl(tmdb, tmdb_session, clock):
    tmdb_session.add("/trending/movie/week", FakeResponse(200, TRENDING))

    tmdb.get_trending("movie")
    clock.advance(301)
    tmdb.get_trending("movie")

    assert len(tmdb_session.calls) == 2


def test_cache_key_ignores_param_order(tmdb, tmdb_session):
    tmdb_session.add("/discover/movie", FakeResponse(200, {"results": []}))

    tmdb.fetch_resource("/discover/movie", {"page": 1, "sort_by": "popularity.desc"})
    tmdb.fetch_resource("/discover/movie", {"sort_by": "popularity.desc", "page": "1"})

    assert len(tmdb_session.calls) == 1


def test_request_carries_api_key_and_timeout(tmdb, tmdb_session):
    tmdb_session.add("/search/movie", FakeResponse(200, {"results": []}))

    tmdb.search("alien", page=2)

    call = tmdb_session.calls[0]
    assert call["params"]["api_key"] == "test-key"
    assert call["params"]["query"] == "alien"
    assert call["params"]["page"] == "2"
    assert call["timeout"] == 10


def test_rate_limit_is_retried_once(tmdb, tmdb_session, sleeps):
    tmdb_session.add(
        "/trending/movie/week",
        FakeResponse(429, {"status_message": "slow down"}),
        FakeResponse(200, TRENDING),
    )

    assert tmdb.get_trending("movie") == TRENDING["results"]
    assert len(tmdb_session.calls) == 2
    assert sleeps == [1]


def test_second_rate_limit_propagates(tmdb, tmdb_session, sleeps):
    tmdb_session.add("/trending/movie/week", FakeResponse(429, {"status_message": "slow down"}))

    with pytest.raises(UpstreamError) as exc_info:
        tmdb.get_trending("movie")

    assert exc_info.value.upstream_status == 429
    assert len(tmdb_session.calls) == 2
    assert sleeps == [1]


def test_timeout_is_unavailable(tmdb, tmdb_session):
    tmdb_session.add("/movie/top_rated", requests.Timeout("read timed out"))

    with pytest.raises(UpstreamTimeoutError) as exc_info:
        tmdb.get_top_rated("movie")

    assert isinstance(exc_info.value, UpstreamUnavailableError)
    assert exc_info.value.status_code == 504


def test_network_failure_is_unavailable(tmdb, tmdb_session):
    tmdb_session.add("/movie/top_rated", requests.ConnectionError("connection refused"))

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        tmdb.get_top_rated("movie")

    assert exc_info.value.status_code == 503


def test_error_status_carries_provider_message(tmdb, tmdb_session):
    tmdb_session.add(
        "/movie/top_rated",
        FakeResponse(401, {"status_message": "Invalid API key: You must be granted a valid key."}),
    )

    with pytest.raises(UpstreamError) as exc_info:
        tmdb.get_top_rated("movie")

    err = exc_info.value
    assert err.upstream_status == 401
    assert err.status_code == 502
    assert "Invalid API key" in err.message


def test_plain_text_error_body_is_not_echoed(tmdb, tmdb_session, caplog):
    page = "<html><body>nginx upstream 10.0.3.7:8080 failure</body></html>"
    tmdb_session.add("/movie/top_rated", FakeResponse(502, None, text=page))

    with pytest.raises(UpstreamError) as exc_info:
        tmdb.get_top_rated("movie")

    assert exc_info.value.message == "TMDB API error: 502"
    assert "nginx" in caplog.text


def test_json_error_message_is_truncated(tmdb, tmdb_session):
    tmdb_session.add("/movie/top_rated", FakeResponse(500, {"status_message": "x" * 5000}))

    with pytest.raises(UpstreamError) as exc_info:
        tmdb.get_top_rated("movie")

    assert len(exc_info.value.message) < 300


def test_upstream_not_found_maps_to_404(tmdb):
    with pytest.raises(UpstreamError) as exc_info:
        tmdb.get_by_id(999999)

    assert exc_info.value.status_code == 404


def test_malformed_json_is_parse_error(tmdb, tmdb_session):
    tmdb_session.add("/genre/movie/list", FakeResponse(200, None, text="<html>oops</html>"))

    with pytest.raises(UpstreamParseError):
        tmdb.get_genres("movie")


def test_failures_are_not_cached(tmdb, tmdb_session):
    tmdb_session.add(
        "/trending/movie/week",
        FakeResponse(500, {"status_message": "boom"}),
        FakeResponse(200, TRENDING),
    )

    with pytest.raises(UpstreamError):
        tmdb.get_trending("movie")
    assert tmdb.get_trending("movie") == TRENDING["results"]
    assert len(tmdb_session.calls) == 2


def test_missing_api_key_is_configuration_error(tmdb_session):
    client = TMDBClient(api_key="", base_url=TMDB_BASE, session=tmdb_session)

    with pytest.raises(ConfigurationError):
        client.get_trending()
    assert tmdb_session.calls == []


def test_discover_with_unknown_crew_returns_empty(tmdb, tmdb_session):
    tmdb_session.add("/search/person", FakeResponse(200, {"results": []}))

    assert tmdb.discover_movies(crew_name="Unknown Person") == []
    assert tmdb_session.calls_to("/discover/movie") == []


def test_discover_resolves_crew_to_person(tmdb, tmdb_session):
    tmdb_session.add("/search/person", FakeResponse(200, {"results": [{"id": 525}]}))
    tmdb_session.add("/discover/movie", FakeResponse(200, {"results": [{"id": 27205}]}))

    results = tmdb.discover_movies(crew_name="Christopher Nolan", genres=[28, 878], year=2010)

    assert results == [{"id": 27205}]
    params = tmdb_session.calls_to("/discover/movie")[0]["params"]
    assert params["with_people"] == "525"
    assert params["with_genres"] == "28,878"
    assert params["primary_release_year"] == "2010"


def test_discover_with_query_uses_search(tmdb, tmdb_session):
    tmdb_session.add("/search/movie", FakeResponse(200, {"results": [{"id": 603}]}))

    assert tmdb.discover_movies(query="matrix") == [{"id": 603}]
    assert tmdb_session.calls_to("/discover/movie") == []


def test_content_by_year_is_limited(tmdb, tmdb_session):
    tmdb_session.add(
        "/discover/movie", FakeResponse(200, {"results": [{"id": i} for i in range(20)]})
    )

    results = tmdb.get_content_by_year(1999, limit=5)

    assert len(results) == 5
    params = tmdb_session.calls[0]["params"]
    assert params["primary_release_date.gte"] == "1999-01-01"
    assert params["primary_release_date.lte"] == "1999-12-31"


def test_cached_genres_fetched_once(tmdb, tmdb_session, clock):
    tmdb_session.add("/genre/movie/list", FakeResponse(200, {"genres": [{"id": 18, "name": "Drama"}]}))

    tmdb.get_cached_genres("movie")
    clock.advance(10_000)
    genres = tmdb.get_cached_genres("movie")

    assert genres == [{"id": 18, "name": "Drama"}]
    assert len(tmdb_session.calls) == 1


def test_poster_url(tmdb):
    assert tmdb.poster_url("/abc.jpg") == "https://img.test/t/p/w500/abc.jpg"
    assert tmdb.poster_url(None) is None
