import asyncio

import httpx
import pytest

from domain.models import Coordinate, PlaceSummary
from services.errors import ProviderError
from services.places_client import DETAIL_FIELDS, PlacesClient, project_place
from services.result_cache import ResultCache

PLACES_URL = "https://places.test/maps/api/place"
HERE = Coordinate(lat=1.0, lng=2.0)


def _raw(i: int) -> dict:
    return {
        "place_id": f"p{i}",
        "name": f"Place {i}",
        "rating": 4.0 + i / 10,
        "user_ratings_total": 10 * i,
        "vicinity": f"{i} Main St",
        "geometry": {"location": {"lat": 1.0 + i, "lng": 2.0}},
    }


class FakeProvider:
    """Records requests and answers nearbysearch/details like Google would."""

    def __init__(self, results=None, details=None, status_code=200):
        self.results = results if results is not None else [_raw(i) for i in range(8)]
        self.details = details or {"status": "OK", "result": {"name": "Detail"}}
        self.status_code = status_code
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={})
        if request.url.path.endswith("/nearbysearch/json"):
            return httpx.Response(200, json={"status": "OK", "results": self.results})
        return httpx.Response(200, json=self.details)


def _client(provider, clock=None) -> PlacesClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(provider))
    cache = ResultCache(ttl_seconds=300, clock=clock) if clock else ResultCache(ttl_seconds=300)
    return PlacesClient(http, api_key="maps-key", cache=cache, base_url=PLACES_URL)


def _search(client: PlacesClient, **kwargs):
    params = dict(location=HERE, radius_m=1500, place_type="restaurant", keywords="sushi", limit=3)
    params.update(kwargs)
    return asyncio.run(client.search(**params))


def test_project_place_builds_links_and_falls_back_to_address():
    place = project_place(
        {"place_id": "abc", "name": "Sushi Go", "formatted_address": "1 Bay Rd"}
    )
    assert place == PlaceSummary(
        place_id="abc",
        name="Sushi Go",
        rating=None,
        user_ratings_total=None,
        vicinity="1 Bay Rd",
        location=None,
        maps_url="https://www.google.com/maps/search/?api=1&query=place_id:abc",
        directions_url="https://www.google.com/maps/dir/?api=1&destination=place_id:abc",
    )


def test_search_sends_filters_and_truncates_in_order():
    provider = FakeProvider()
    places = _search(_client(provider))

    assert [p.place_id for p in places] == ["p0", "p1", "p2"]
    assert places[1].location == Coordinate(lat=2.0, lng=2.0)
    params = provider.requests[0].url.params
    assert params["key"] == "maps-key"
    assert params["location"] == "1,2"
    assert params["radius"] == "1500"
    assert params["type"] == "restaurant"
    assert params["keyword"] == "sushi"


def test_search_omits_empty_filters():
    provider = FakeProvider()
    _search(_client(provider), place_type=None, keywords=None)
    params = provider.requests[0].url.params
    assert "type" not in params
    assert "keyword" not in params


def test_search_returns_fewer_when_provider_has_fewer():
    places = _search(_client(FakeProvider(results=[_raw(0)])), limit=5)
    assert len(places) == 1


def test_search_is_cached_per_parameter_set(clock):
    provider = FakeProvider()
    client = _client(provider, clock=clock)

    first = _search(client)
    second = _search(client)
    assert second is first
    assert len(provider.requests) == 1

    _search(client, limit=4)
    assert len(provider.requests) == 2

    clock.advance(301)
    _search(client)
    assert len(provider.requests) == 3


def test_search_raises_on_http_error_and_caches_nothing():
    provider = FakeProvider(status_code=500)
    client = _client(provider)
    with pytest.raises(ProviderError):
        _search(client)
    assert len(client.cache) == 0


def test_search_raises_on_provider_error_status():
    def handler(request):
        return httpx.Response(200, json={"status": "REQUEST_DENIED", "error_message": "bad key"})

    with pytest.raises(ProviderError) as excinfo:
        _search(_client(handler))
    assert "REQUEST_DENIED" in str(excinfo.value)


def test_search_raises_on_non_json_body():
    def handler(request):
        return httpx.Response(200, text="<html>oops</html>")

    with pytest.raises(ProviderError):
        _search(_client(handler))


def test_get_details_requests_fixed_fields_and_caches():
    provider = FakeProvider()
    client = _client(provider)

    first = asyncio.run(client.get_details("xyz"))
    second = asyncio.run(client.get_details("xyz"))

    assert first == {"status": "OK", "result": {"name": "Detail"}}
    assert second is first
    assert len(provider.requests) == 1
    params = provider.requests[0].url.params
    assert params["place_id"] == "xyz"
    assert params["fields"] == ",".join(DETAIL_FIELDS)
    assert "opening_hours" in params["fields"].split(",")


def test_get_details_raises_on_connection_error():
    def handler(request):
        raise httpx.ConnectTimeout("slow", request=request)

    client = _client(handler)
    with pytest.raises(ProviderError):
        asyncio.run(client.get_details("xyz"))
    assert len(client.cache) == 0
