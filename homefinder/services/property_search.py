"""
Property search service backed by an Elasticsearch search template.

The search itself (text relevance, geo radius, numeric bounds) lives in the
stored template `properties-search-template`; this service only fills its
params, runs it through POST /{index}/_search/template and flattens the hits.

The template is retrieved with the "fields" option, so every field of a hit
arrives as an array even when it holds a single value:

    {"hits": {"hits": [{"fields": {"title": ["3BR ranch"], "home-price": [350000]}}]}}

flatten_search_response() is the only place that knows this shape.

Usage:
    service = PropertySearchService(api_key="...", elastic_config=settings.elastic)
    homes = await service.search(SearchCriteria(query="house with a pool", bedrooms=2))
"""

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
import structlog

from homefinder import serialization
from homefinder.config import ElasticConfig
from homefinder.constants import (
    FIELD_ANNUAL_TAX,
    FIELD_BATHROOMS,
    FIELD_BEDROOMS,
    FIELD_DESCRIPTION,
    FIELD_FEATURES,
    FIELD_HOME_PRICE,
    FIELD_MAINTENANCE_FEE,
    FIELD_SQUARE_FOOTAGE,
    FIELD_TITLE,
    SEARCH_AUTH_FAILURE_MARKERS,
    SEARCH_NOT_READY_MARKERS,
)
from homefinder.models.home import HomeRecord, SearchCriteria, split_features

logger = structlog.get_logger(__name__)


class SearchError(Exception):
    """Base class for search backend failures."""


class SearchAuthenticationError(SearchError):
    """The backend rejected the API key. Never retried."""


class SearchUnavailableError(SearchError):
    """The backend kept reporting that it is not ready after every retry."""


class SearchBackendError(SearchError):
    """Any other failed request (transport error or unexpected status)."""


def _mentions(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


class PropertySearchService:
    """Runs the properties search template and returns home records."""

    def __init__(
        self,
        api_key: str,
        elastic_config: ElasticConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the search service.

        Args:
            api_key:        Elasticsearch API key (sent as "ApiKey <key>").
            elastic_config: Cluster URL, index, template id, retry policy.
            client:         Shared HTTP client; one is created when omitted.
        """
        self.api_key = api_key
        self.elastic_config = elastic_config or ElasticConfig()
        self._client = client or httpx.AsyncClient(
            timeout=self.elastic_config.request_timeout_seconds
        )

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    @property
    def search_url(self) -> str:
        base = self.elastic_config.url.rstrip("/")
        return f"{base}/{self.elastic_config.index_name}/_search/template"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"ApiKey {self.api_key}"
        return headers

    def _build_body(self, criteria: SearchCriteria) -> dict[str, Any]:
        return {"id": self.elastic_config.template_id, "params": criteria.to_params()}

    async def _request_with_retry(self, body: dict[str, Any]) -> httpx.Response:
        """
        POST the template request, retrying only while the backend is starting.

        The inference deployment behind the template can take a while to come
        up; Elasticsearch reports that as "Starting deployment timed out".
        That condition is retried max_retries times with a fixed delay.

        Raises:
            SearchAuthenticationError: HTTP 401 or a credentials error body.
            SearchBackendError: Transport errors and any other non-2xx status.
            SearchUnavailableError: The backend never became ready.
        """
        max_attempts = self.elastic_config.max_retries + 1
        retry_delay = self.elastic_config.retry_delay_seconds
        content = serialization.dumps(body)

        for attempt in range(max_attempts):
            try:
                response = await self._client.post(
                    self.search_url, content=content, headers=self._headers()
                )
            except httpx.HTTPError as e:
                logger.error("search_request_failed", error=str(e))
                raise SearchBackendError(f"Error while querying Elasticsearch: {e}") from e

            if response.is_success:
                return response

            reason = response.text
            if response.status_code == 401 or _mentions(reason, SEARCH_AUTH_FAILURE_MARKERS):
                logger.error("search_authentication_failed", status_code=response.status_code)
                raise SearchAuthenticationError(
                    "Authentication failed: missing or invalid credentials."
                )

            if not _mentions(reason, SEARCH_NOT_READY_MARKERS):
                logger.error(
                    "search_request_failed",
                    status_code=response.status_code,
                    reason=reason[:500],
                )
                raise SearchBackendError(
                    f"Elasticsearch returned HTTP {response.status_code}: {reason[:200]}"
                )

            if attempt + 1 == max_attempts:
                break

            logger.warning(
                "search_backend_not_ready",
                attempt=attempt + 1,
                max_attempts=max_attempts,
                retry_in_seconds=retry_delay,
            )
            await asyncio.sleep(retry_delay)

        raise SearchUnavailableError(
            f"Search backend still starting after {max_attempts} attempts."
        )

    async def search(self, criteria: SearchCriteria) -> list[HomeRecord]:
        """
        Run the search template with the given criteria.

        Args:
            criteria: Sparse search parameters.

        Returns:
            Home records in backend ranking order. A malformed response body
            yields an empty list.

        Raises:
            SearchError: When the request itself fails (see _request_with_retry).
        """
        body = self._build_body(criteria)
        logger.info(
            "search_template_request",
            template_id=body["id"],
            params=serialization.dumps(body["params"]),
        )

        response = await self._request_with_retry(body)
        homes = flatten_search_response(response.content)

        logger.info("search_completed", results=len(homes))
        return homes


# ---------------------------------------------------------------------------
# Response flattening
# ---------------------------------------------------------------------------


def flatten_search_response(body: str | bytes) -> list[HomeRecord]:
    """
    Flatten a search response into home records.

    One record per hit that has a "fields" object, in hit order; hits without
    "fields" are skipped. Parse failures are logged and produce an empty list.
    """
    try:
        document = serialization.loads(body)
    except (serialization.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error("search_response_parse_failed", error=str(e))
        return []

    envelope = document.get("hits") if isinstance(document, dict) else None
    hits = envelope.get("hits") if isinstance(envelope, dict) else None
    if not isinstance(hits, list):
        logger.error("search_response_parse_failed", error="response has no hits.hits array")
        return []

    total = envelope.get("total")
    if isinstance(total, dict) and "value" in total:
        logger.info("search_hits_total", total=str(total["value"]))

    return [
        _flatten_fields(hit["fields"])
        for hit in hits
        if isinstance(hit, dict) and "fields" in hit
    ]


def _flatten_fields(fields: Any) -> HomeRecord:
    if not isinstance(fields, dict):
        fields = {}

    raw_features = _first(fields, FIELD_FEATURES)

    return HomeRecord(
        title=_to_text(_first(fields, FIELD_TITLE)),
        price=_to_decimal(_first(fields, FIELD_HOME_PRICE)) or Decimal(0),
        bedrooms=_to_decimal(_first(fields, FIELD_BEDROOMS)) or Decimal(0),
        bathrooms=_to_decimal(_first(fields, FIELD_BATHROOMS)) or Decimal(0),
        square_footage=_to_int(_first(fields, FIELD_SQUARE_FOOTAGE)) or 0,
        annual_tax=_to_decimal(_first(fields, FIELD_ANNUAL_TAX)) or Decimal(0),
        maintenance_fee=_to_decimal(_first(fields, FIELD_MAINTENANCE_FEE)) or Decimal(0),
        features=split_features(raw_features) if isinstance(raw_features, str) else [],
        description=_to_text(_first(fields, FIELD_DESCRIPTION)),
    )


def _first(fields: dict[str, Any], name: str) -> Any:
    """Element 0 of a fields array (a bare scalar is accepted as-is)."""
    value = fields.get(name)
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _to_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value)


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _to_int(value: Any) -> int | None:
    number = _to_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)
