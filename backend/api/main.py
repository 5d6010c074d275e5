"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
or:       placeprompt-serve
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.middleware import RateLimitMiddleware, SecurityHeadersMiddleware
from api.routes import search
from domain.models import Coordinate
from services.intent_parser import IntentParser
from services.places_client import PlacesClient
from services.result_cache import ResultCache
from services.search_service import SearchOrchestrator
from settings import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the app and its collaborators.

    The result cache and the outbound HTTP client live exactly as long as the
    app. transport replaces the network layer of that client (tests pass an
    httpx.MockTransport).
    """
    cfg = app_settings or default_settings
    http_client = httpx.AsyncClient(transport=transport)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Refuse to start without the provider key and model endpoint
        cfg.require()
        logger.info(
            "PlacePrompt ready: llm=%s model=%s cache_ttl=%ss",
            cfg.LLM_API_URL,
            cfg.LLM_MODEL,
            cfg.CACHE_TTL_SECONDS,
        )
        yield
        await http_client.aclose()

    app = FastAPI(
        title="PlacePrompt API",
        description="Natural-language places search backed by an LLM and Google Places",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Last added runs outermost: security headers also land on 429 responses
    app.add_middleware(
        RateLimitMiddleware,
        window_ms=cfg.RATE_LIMIT_WINDOW_MS,
        max_requests=cfg.RATE_LIMIT_MAX,
    )
    app.add_middleware(SecurityHeadersMiddleware)

    cache = ResultCache(ttl_seconds=cfg.CACHE_TTL_SECONDS, max_entries=cfg.CACHE_MAX_ENTRIES)
    places_client = PlacesClient(
        http_client,
        api_key=cfg.GOOGLE_MAPS_API_KEY or "",
        cache=cache,
        base_url=cfg.PLACES_BASE_URL,
        timeout=cfg.PLACES_TIMEOUT_SECONDS,
    )
    parser = IntentParser(
        http_client,
        api_url=cfg.LLM_API_URL or "",
        api_key=cfg.LLM_API_KEY,
        model=cfg.LLM_MODEL,
        temperature=cfg.LLM_TEMPERATURE,
        timeout=cfg.LLM_TIMEOUT_SECONDS,
    )

    app.state.settings = cfg
    app.state.http_client = http_client
    app.state.cache = cache
    app.state.places_client = places_client
    app.state.orchestrator = SearchOrchestrator(
        parser,
        places_client,
        default_location=Coordinate(lat=cfg.DEFAULT_LAT, lng=cfg.DEFAULT_LNG),
    )

    app.include_router(search.router, tags=["search"])
    app.add_exception_handler(RequestValidationError, search.validation_error_handler)

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"status": "ok", "service": "PlacePrompt API"}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app on settings.PORT."""
    import uvicorn

    logging.basicConfig(
        level=default_settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=default_settings.PORT)


if __name__ == "__main__":
    run()
