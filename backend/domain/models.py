"""
Core domain models for the places search pipeline.
These are framework-agnostic and can be used across all services.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


DEFAULT_RADIUS_M = 3000
DEFAULT_LIMIT = 5


def _format_degrees(value: float) -> str:
    """Render a coordinate component without a trailing '.0' on whole numbers."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


class Intent(str, Enum):
    """What the user asked us to do."""
    FIND = "find"
    DIRECTIONS = "directions"
    DETAILS = "details"


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point."""
    lat: float
    lng: float

    def __str__(self) -> str:
        return f"{_format_degrees(self.lat)},{_format_degrees(self.lng)}"

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Coordinate"]:
        """Build a Coordinate from a {lat, lng} mapping; None if either is not numeric."""
        if not isinstance(data, dict):
            return None
        lat = data.get("lat")
        lng = data.get("lng")
        for value in (lat, lng):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return None
        return cls(lat=float(lat), lng=float(lng))


@dataclass(frozen=True)
class StructuredQuery:
    """
    Structured form of a free-text request.

    Produced by the intent parser. The orchestrator fills radius_m, limit
    and location once; after that all three are non-null.
    """
    intent: Intent = Intent.FIND
    place_type: Optional[str] = None
    keywords: Optional[str] = None
    radius_m: Optional[int] = None
    limit: Optional[int] = None
    location: Optional[Coordinate] = None
    destination_place_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent": self.intent.value,
            "place_type": self.place_type,
            "keywords": self.keywords,
            "radius_m": self.radius_m,
            "limit": self.limit,
            "location": self.location.to_dict() if self.location else None,
            "destination_place_id": self.destination_place_id,
        }


@dataclass(frozen=True)
class PlaceSummary:
    """Light-weight projection of one provider search result."""
    place_id: str
    name: str
    maps_url: str
    directions_url: str
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    vicinity: Optional[str] = None
    location: Optional[Coordinate] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "place_id": self.place_id,
            "name": self.name,
            "rating": self.rating,
            "user_ratings_total": self.user_ratings_total,
            "vicinity": self.vicinity,
            "location": self.location.to_dict() if self.location else None,
            "maps_url": self.maps_url,
            "directions_url": self.directions_url,
        }


@dataclass(frozen=True)
class Recognized:
    """The model produced a usable query."""
    query: StructuredQuery


@dataclass(frozen=True)
class Fallback:
    """The model call or its output failed; query is the keyword-only fallback."""
    query: StructuredQuery
    reason: str = field(default="")


ParseResult = Union[Recognized, Fallback]
