"""
Home Finder - Main FastAPI Application.

Answers natural-language home searches ("3 bedroom homes near Orlando, FL
under $500,000") by letting a tool-calling chat model extract the search
parameters, geocode the location and query the property search backend.

Run with:
    uvicorn homefinder.main:app --reload
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from homefinder.agents.orchestrator import HomeSearchAgent
from homefinder.agents.tools import HomeSearchToolbox
from homefinder.api.v1.search import router as search_router
from homefinder.config import get_settings
from homefinder.constants import API_TITLE, API_VERSION, DEFAULT_SEARCH_DISTANCE
from homefinder.logging_config import setup_logging
from homefinder.middleware import RequestContextMiddleware
from homefinder.services.geocoder import GeocoderService
from homefinder.services.llm import get_chat_model
from homefinder.services.parameter_normalizer import ParameterNormalizer
from homefinder.services.property_search import PropertySearchService

# Get settings before logging setup so we know the debug flag
settings = get_settings()

# Propagate LangSmith settings into os.environ so LangChain can find them.
# pydantic-settings reads .env into the Settings model but does NOT inject
# values into os.environ, which is where the tracer looks.
if settings.langchain_tracing_v2 and settings.langsmith_api_key:
    os.environ["LANGCHAIN_TRACING_V2"] = "true"
    os.environ["LANGSMITH_API_KEY"] = settings.langsmith_api_key
    os.environ["LANGSMITH_PROJECT"] = settings.langsmith_project

# Configure logging
setup_logging(settings.debug)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan event handler for startup and shutdown."""
    logger.info("api_startup", cors_origins=settings.cors_origins)

    if not settings.azure_maps_api_key:
        logger.warning("azure_maps_key_missing", detail="Geocoding requests will be rejected")
    if not settings.elastic_api_key:
        logger.warning("elastic_key_missing", detail="Search requests are sent unauthenticated")

    # Create services once at startup
    geocoder = GeocoderService(settings.azure_maps_api_key, settings.geocoding)
    search_service = PropertySearchService(settings.elastic_api_key, settings.elastic)
    toolbox = HomeSearchToolbox(
        ParameterNormalizer(DEFAULT_SEARCH_DISTANCE), geocoder, search_service
    )

    # Compile graph once and store on app state
    agent = HomeSearchAgent(settings, get_chat_model(settings), toolbox)

    _app.state.geocoder = geocoder
    _app.state.search_service = search_service
    _app.state.agent = agent
    _app.state.geocoding_configured = bool(settings.azure_maps_api_key)
    _app.state.search_configured = bool(settings.elastic.url)

    logger.info(
        "services_initialized",
        model=settings.orchestrator.model,
        max_turns=settings.orchestrator.max_turns,
        search_url=search_service.search_url,
    )

    yield

    await geocoder.close()
    await search_service.close()
    logger.info("api_shutdown")


# Create FastAPI app
app = FastAPI(
    title=API_TITLE,
    description=(
        "Natural-language home search. A tool-calling model extracts the "
        "search parameters, geocodes the location and queries the property index."
    ),
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Request context middleware must come before CORS so every response gets
# the X-Request-ID header (including preflight OPTIONS responses).
app.add_middleware(RequestContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(search_router, prefix="/api/v1")


@app.get("/")
async def root() -> dict:
    """Root endpoint with API info."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "description": "Natural-language home search",
        "docs": "/docs",
    }


@app.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}
