import asyncio

import pytest

from domain.models import Coordinate, Intent, PlaceSummary, StructuredQuery
from services.errors import ClientInputError, ProviderError
from services.search_service import SearchOrchestrator, normalize_query

DEFAULT = Coordinate(lat=-6.2, lng=106.816666)
USER = Coordinate(lat=1.0, lng=2.0)


class StubParser:
    def __init__(self, query: StructuredQuery):
        self.query = query
        self.calls = []

    async def parse(self, prompt, fallback_location):
        self.calls.append((prompt, fallback_location))
        return self.query


class StubPlaces:
    def __init__(self, places=None, error=None):
        self.places = places or []
        self.error = error
        self.calls = []

    async def search(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.places


def _summary(pid: str) -> PlaceSummary:
    return PlaceSummary(place_id=pid, name=pid, maps_url="m", directions_url="d")


def test_normalize_query_fills_defaults():
    query = normalize_query(StructuredQuery(radius_m=0, limit=None), USER)
    assert query.radius_m == 3000
    assert query.limit == 5
    assert query.location == USER


def test_normalize_query_is_idempotent():
    samples = [
        StructuredQuery(),
        StructuredQuery(radius_m=700, limit=2, location=DEFAULT),
        StructuredQuery(intent=Intent.DIRECTIONS, destination_place_id="abc"),
    ]
    for query in samples:
        once = normalize_query(query, USER)
        assert normalize_query(once, USER) == once


def test_handle_rejects_blank_prompt():
    orchestrator = SearchOrchestrator(StubParser(StructuredQuery()), StubPlaces(), DEFAULT)
    for prompt in (None, "", "   "):
        with pytest.raises(ClientInputError):
            asyncio.run(orchestrator.handle(prompt))


def test_handle_uses_default_location_without_user_location():
    parser = StubParser(StructuredQuery(keywords="tea"))
    places = StubPlaces([_summary("p1")])
    orchestrator = SearchOrchestrator(parser, places, DEFAULT)

    response = asyncio.run(orchestrator.handle("tea"))

    assert parser.calls == [("tea", DEFAULT)]
    assert places.calls == [
        {
            "location": DEFAULT,
            "radius_m": 3000,
            "place_type": None,
            "keywords": "tea",
            "limit": 5,
        }
    ]
    assert response["parsed"]["location"] == {"lat": -6.2, "lng": 106.816666}
    assert [p["place_id"] for p in response["places"]] == ["p1"]
    assert "directions_url" not in response


def test_handle_directions_skips_search():
    parser = StubParser(StructuredQuery(intent=Intent.DIRECTIONS, destination_place_id="abc123"))
    places = StubPlaces()
    orchestrator = SearchOrchestrator(parser, places, DEFAULT)

    response = asyncio.run(orchestrator.handle("take me there", USER))

    assert places.calls == []
    assert "places" not in response
    assert response["directions_url"].endswith("origin=1,2&destination=place_id:abc123")


def test_handle_directions_without_destination_searches():
    parser = StubParser(StructuredQuery(intent=Intent.DIRECTIONS))
    places = StubPlaces()
    response = asyncio.run(SearchOrchestrator(parser, places, DEFAULT).handle("directions", USER))
    assert len(places.calls) == 1
    assert response["places"] == []


def test_handle_propagates_provider_errors():
    orchestrator = SearchOrchestrator(
        StubParser(StructuredQuery()), StubPlaces(error=ProviderError("down")), DEFAULT
    )
    with pytest.raises(ProviderError):
        asyncio.run(orchestrator.handle("anything", USER))
