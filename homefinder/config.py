"""
Application configuration using pydantic-settings.
Loads environment variables from .env file.

Nested config groups (OrchestratorConfig, GeocodingConfig, ElasticConfig) are
env-overridable via the double-underscore delimiter, e.g.:
    ORCHESTRATOR__MAX_TURNS=10
    GEOCODING__TIMEOUT_SECONDS=5
    ELASTIC__MAX_RETRIES=3
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OrchestratorConfig(BaseModel):
    """Home search agent configuration.

    Env-overridable via ORCHESTRATOR__KEY format, e.g.:
        ORCHESTRATOR__MODEL=gpt-4o-mini
        ORCHESTRATOR__MAX_TURNS=6
    """

    model: str = "gpt-4o"
    temperature: float = 0.0
    # Upper bound on model calls per search; exceeding it aborts the run
    max_turns: int = Field(default=8, ge=1)
    # Timeout for a single model turn
    request_timeout_seconds: float = 60.0


class GeocodingConfig(BaseModel):
    """Azure Maps geocoding endpoint configuration."""

    url: str = "https://atlas.microsoft.com/geocode"
    api_version: str = "2025-01-01"
    country_set: str = "US"
    language: str = "en-US"
    timeout_seconds: float = 10.0


class ElasticConfig(BaseModel):
    """Elasticsearch search-template configuration."""

    url: str = "http://localhost:9200"
    index_name: str = "properties"
    template_id: str = "properties-search-template"
    # Extra attempts when the backend reports it is still starting
    max_retries: int = Field(default=2, ge=0)
    retry_delay_seconds: float = 2.0
    request_timeout_seconds: float = 30.0


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # API Keys
    openai_api_key: str
    azure_maps_api_key: str = ""
    elastic_api_key: str = ""

    # Azure OpenAI (used instead of api.openai.com when the endpoint is set)
    azure_openai_endpoint: str = ""
    azure_openai_api_version: str = "2024-10-21"
    azure_openai_deployment: str = ""

    # LangSmith / Observability
    langsmith_api_key: str = ""
    langsmith_project: str = "homefinder"
    langchain_tracing_v2: bool = False  # Explicit opt-in

    # App Settings
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    # Nested config groups (env-overridable via SECTION__KEY format)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    elastic: ElasticConfig = Field(default_factory=ElasticConfig)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
