"""
Google Maps deep-link helpers. Pure string building, no network.
"""
from __future__ import annotations

from typing import Union

from domain.models import Coordinate
from services.errors import ClientInputError

MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query=place_id:{place_id}"
MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1&destination=place_id:{place_id}"
MAPS_DIRECTIONS_FROM_URL = (
    "https://www.google.com/maps/dir/?api=1&origin={origin}&destination=place_id:{place_id}"
)


def build_maps_url(place_id: str) -> str:
    return MAPS_SEARCH_URL.format(place_id=place_id)


def build_destination_url(place_id: str) -> str:
    """Directions link with no origin; Maps uses the viewer's position."""
    return MAPS_DIRECTIONS_URL.format(place_id=place_id)


def build_directions_url(origin: Union[Coordinate, str], destination_place_id: str) -> str:
    """origin is a Coordinate or an already validated 'lat,lng' string, used as-is."""
    return MAPS_DIRECTIONS_FROM_URL.format(origin=origin, place_id=destination_place_id)


def parse_origin(value: str) -> str:
    """
    Validate a 'lat,lng' query parameter.

    Returns the caller's two components, stripped of surrounding whitespace
    but otherwise unchanged ('-6.200000' stays '-6.200000').
    """
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != 2:
        raise ClientInputError("origin must be 'lat,lng'")
    try:
        float(parts[0])
        float(parts[1])
    except ValueError:
        raise ClientInputError("origin must be 'lat,lng'") from None
    return f"{parts[0]},{parts[1]}"
