"""
Request-level composition: parse the prompt, fill defaults, then either build
a directions link or run a nearby search.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from domain.models import DEFAULT_LIMIT, DEFAULT_RADIUS_M, Coordinate, Intent, StructuredQuery
from services.directions import build_directions_url
from services.errors import ClientInputError
from services.intent_parser import IntentParser
from services.places_client import PlacesClient

logger = logging.getLogger(__name__)


def normalize_query(query: StructuredQuery, fallback_location: Coordinate) -> StructuredQuery:
    """Fill radius_m, limit and location. Applying it twice changes nothing."""
    return replace(
        query,
        radius_m=query.radius_m or DEFAULT_RADIUS_M,
        limit=query.limit or DEFAULT_LIMIT,
        location=query.location or fallback_location,
    )


class SearchOrchestrator:
    def __init__(
        self,
        parser: IntentParser,
        places: PlacesClient,
        default_location: Coordinate,
    ):
        self.parser = parser
        self.places = places
        self.default_location = default_location

    async def handle(self, prompt: Optional[str], user_location: Optional[Coordinate] = None) -> Dict[str, Any]:
        """
        Run one search request end to end.

        Returns {"parsed", "directions_url"} for a directions intent with a
        destination, otherwise {"parsed", "places"}. Provider failures
        propagate as ProviderError.
        """
        if not prompt or not prompt.strip():
            raise ClientInputError("prompt is required")

        fallback_location = user_location or self.default_location
        parsed = await self.parser.parse(prompt, fallback_location)
        parsed = normalize_query(parsed, fallback_location)

        if parsed.intent == Intent.DIRECTIONS and parsed.destination_place_id:
            return {
                "parsed": parsed.to_dict(),
                "directions_url": build_directions_url(parsed.location, parsed.destination_place_id),
            }

        places = await self.places.search(
            location=parsed.location,
            radius_m=parsed.radius_m,
            place_type=parsed.place_type,
            keywords=parsed.keywords,
            limit=parsed.limit,
        )
        logger.debug("search intent=%s returned %d places", parsed.intent.value, len(places))
        return {
            "parsed": parsed.to_dict(),
            "places": [p.to_dict() for p in places],
        }
