"""
Search API routes.

POST /search          prompt -> parsed query + places (or a directions link)
GET  /place/{id}      raw provider place details
GET  /directions      Google Maps directions link
"""
import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from domain.models import Coordinate
from services.directions import build_directions_url, parse_origin
from services.errors import ClientInputError, ProviderError
from services.places_client import PlacesClient
from services.search_service import SearchOrchestrator

router = APIRouter()
logger = logging.getLogger(__name__)


class CoordinateBody(BaseModel):
    lat: float
    lng: float


class SearchRequest(BaseModel):
    prompt: Optional[str] = None
    user_location: Optional[CoordinateBody] = None


def _error(status_code: int, **content) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed /search bodies as 400 {error}; other routes keep the 422 default."""
    if request.url.path != "/search":
        return await request_validation_exception_handler(request, exc)
    fields = {
        str(err["loc"][1])
        for err in exc.errors()
        if len(err.get("loc", ())) > 1 and err["loc"][0] == "body"
    }
    if "prompt" in fields:
        message = "prompt must be a string"
    elif "user_location" in fields:
        message = "user_location must be {lat, lng}"
    else:
        message = "invalid request body"
    return _error(400, error=message)


@router.post("/search")
async def search(request: Request, body: Optional[SearchRequest] = None):
    """
    Parse a free-text prompt and run the resulting search.

    The intent parser never fails; provider errors and anything unexpected
    become a 500 with a short message.
    """
    orchestrator: SearchOrchestrator = request.app.state.orchestrator
    user_location = None
    if body is None:
        body = SearchRequest()
    if body.user_location is not None:
        user_location = Coordinate(lat=body.user_location.lat, lng=body.user_location.lng)

    try:
        return await orchestrator.handle(body.prompt, user_location)
    except ClientInputError as exc:
        return _error(400, error=str(exc))
    except ProviderError as exc:
        logger.error("search failed: %s", exc)
        return _error(500, error="internal_error", details=str(exc))
    except Exception:
        logger.exception("search failed")
        return _error(500, error="internal_error", details="unexpected error")


@router.get("/place/{place_id}")
async def place_details(place_id: str, request: Request):
    """Return the provider's place details object unchanged."""
    places: PlacesClient = request.app.state.places_client
    try:
        return await places.get_details(place_id)
    except ProviderError as exc:
        logger.error("place details failed for %s: %s", place_id, exc)
    except Exception:
        logger.exception("place details failed for %s", place_id)
    return _error(500, error="failed_to_get_place")


@router.get("/directions")
async def directions(origin: Optional[str] = None, destination_place_id: Optional[str] = None):
    if not origin or not destination_place_id:
        return _error(400, error="origin and destination_place_id required")
    try:
        origin_text = parse_origin(origin)
    except ClientInputError as exc:
        return _error(400, error=str(exc))
    return {"directions_url": build_directions_url(origin_text, destination_place_id)}
