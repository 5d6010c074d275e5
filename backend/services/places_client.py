"""
Google Places web-service client: nearby search and place details, both cached.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from domain.models import Coordinate, PlaceSummary
from services.directions import build_destination_url, build_maps_url
from services.errors import ProviderError
from services.result_cache import ResultCache, place_details_cache_key, places_cache_key

GOOGLE_PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"

# Only these are requested from Place Details, which keeps the billed SKU small.
DETAIL_FIELDS = (
    "name",
    "formatted_address",
    "geometry",
    "formatted_phone_number",
    "website",
    "rating",
    "user_ratings_total",
    "opening_hours",
    "photo",
)

_OK_STATUSES = {"OK", "ZERO_RESULTS"}


def project_place(item: Dict[str, Any]) -> PlaceSummary:
    """Project a raw nearby-search result into a PlaceSummary."""
    place_id = str(item.get("place_id") or "")
    geometry = item.get("geometry") or {}
    location = Coordinate.from_dict(geometry.get("location")) if isinstance(geometry, dict) else None
    return PlaceSummary(
        place_id=place_id,
        name=item.get("name") or "",
        rating=item.get("rating"),
        user_ratings_total=item.get("user_ratings_total"),
        vicinity=item.get("vicinity") or item.get("formatted_address"),
        location=location,
        maps_url=build_maps_url(place_id),
        directions_url=build_destination_url(place_id),
    )


class PlacesClient:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_key: str,
        cache: ResultCache,
        base_url: Optional[str] = None,
        timeout: float = 10.0,
    ):
        self.http_client = http_client
        self.api_key = api_key
        self.cache = cache
        self.base_url = (base_url or GOOGLE_PLACES_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    async def _get_json(self, endpoint: str, params: Dict[str, str]) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}/json"
        query = {"key": self.api_key, **params}
        try:
            resp = await self.http_client.get(url, params=query, timeout=self.timeout)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProviderError(f"{endpoint} request failed: {exc.__class__.__name__}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderError(f"{endpoint} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise ProviderError(f"{endpoint} returned an unexpected body")

        status = data.get("status")
        if status is not None and status not in _OK_STATUSES:
            # error_message may echo request details; keep it out of the raised text
            self.logger.warning(
                "Places %s status=%s: %s", endpoint, status, data.get("error_message", "")
            )
            raise ProviderError(f"{endpoint} failed with status {status}")
        return data

    async def search(
        self,
        location: Coordinate,
        radius_m: int,
        place_type: Optional[str] = None,
        keywords: Optional[str] = None,
        limit: int = 5,
    ) -> List[PlaceSummary]:
        cache_key = places_cache_key(location, radius_m, place_type, keywords, limit)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        params = {
            "location": str(location),
            "radius": str(radius_m),
        }
        if place_type:
            params["type"] = place_type
        if keywords:
            params["keyword"] = keywords

        data = await self._get_json("nearbysearch", params)
        raw_results = data.get("results") or []
        if not isinstance(raw_results, list):
            raise ProviderError("nearbysearch returned malformed results")

        places = [project_place(item) for item in raw_results[:limit] if isinstance(item, dict)]
        self.cache.set(cache_key, places)
        self.logger.debug(
            "PlacesClient.search: location=%s radius_m=%s type=%s got %d of %d results",
            location,
            radius_m,
            place_type,
            len(places),
            len(raw_results),
        )
        return places

    async def get_details(self, place_id: str) -> Dict[str, Any]:
        cache_key = place_details_cache_key(place_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        data = await self._get_json(
            "details",
            {"place_id": place_id, "fields": ",".join(DETAIL_FIELDS)},
        )
        self.cache.set(cache_key, data)
        return data
