"""
Shared test fixtures for the Home Finder test suite.
"""

from decimal import Decimal

import pytest
import structlog
from fastapi.testclient import TestClient

from homefinder.config import Settings
from homefinder.models.home import HomeRecord


@pytest.fixture(autouse=True)
def _set_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set required environment variables for tests so Settings can be instantiated."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-fake-key-for-testing")
    monkeypatch.setenv("AZURE_MAPS_API_KEY", "maps-test-fake-key")
    monkeypatch.setenv("ELASTIC_API_KEY", "elastic-test-fake-key")
    monkeypatch.delenv("AZURE_OPENAI_ENDPOINT", raising=False)
    # Disable LangSmith tracing in tests
    monkeypatch.setenv("LANGCHAIN_TRACING_V2", "false")


@pytest.fixture(autouse=True)
def _configure_structlog_for_tests():
    """Configure structlog for tests using a simple, deterministic setup."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def settings() -> Settings:
    """Settings with fake keys and default config groups."""
    return Settings(openai_api_key="sk-test-fake-key-for-testing")


@pytest.fixture
def client() -> TestClient:
    """FastAPI TestClient wrapping the main application."""
    # Clear the lru_cache so settings pick up test env vars
    from homefinder.config import get_settings

    get_settings.cache_clear()

    from homefinder.main import app

    return TestClient(app)


@pytest.fixture
def orlando_search_response() -> dict:
    """Search template response with two Orlando hits (fields retrieval shape)."""
    return {
        "took": 12,
        "hits": {
            "total": {"value": 2, "relation": "eq"},
            "hits": [
                {
                    "_id": "1",
                    "fields": {
                        "title": ["3BR Ranch in College Park"],
                        "home-price": [450000],
                        "number-of-bedrooms": [3],
                        "number-of-bathrooms": [2.5],
                        "square-footage": [1850],
                        "annual-tax": [5200.75],
                        "maintenance-fee": [150],
                        "property-features": ["Pool, Garage,  Central air"],
                        "property-description": ["Updated ranch close to downtown."],
                    },
                },
                {
                    "_id": "2",
                    "fields": {
                        "title": ["Lakefront Colonial"],
                        "home-price": [489000],
                        "number-of-bedrooms": [3],
                        "number-of-bathrooms": [2],
                        "square-footage": [2100],
                        "annual-tax": [6100],
                        "maintenance-fee": [0],
                        "property-features": ["Dock"],
                        "property-description": ["Colonial on Lake Ivanhoe."],
                    },
                },
            ],
        },
    }


@pytest.fixture
def orlando_geocode_response() -> dict:
    """Azure Maps FeatureCollection for 'Orlando, FL'."""
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [-81.3789, 28.5384]},
                "properties": {"type": "PopulatedPlace", "confidence": "High"},
            }
        ],
    }


@pytest.fixture
def sample_home() -> HomeRecord:
    """A single flattened home record."""
    return HomeRecord(
        title="3BR Ranch in College Park",
        price=Decimal("450000"),
        bedrooms=Decimal("3"),
        bathrooms=Decimal("2.5"),
        square_footage=1850,
        annual_tax=Decimal("5200.75"),
        maintenance_fee=Decimal("150"),
        features=["Pool", "Garage", "Central air"],
        description="Updated ranch close to downtown.",
    )
