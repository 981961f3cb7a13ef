"""
Geocoding service using the Azure Maps geocoding API.

Resolves a free-text location ("Orlando, FL") to coordinates with a single
GET request. The response is a GeoJSON FeatureCollection whose first feature
carries the best match as a [longitude, latitude] point.

Usage:
    service = GeocoderService(api_key="...")
    coordinates = await service.geocode("Orlando, FL")
    # Coordinates(latitude=Decimal('28.5384'), longitude=Decimal('-81.3789'))
"""


import httpx
import structlog
from pydantic import ValidationError

from homefinder import serialization
from homefinder.config import GeocodingConfig
from homefinder.constants import GEOCODE_RESULT_LIMIT
from homefinder.models.home import Coordinates

logger = structlog.get_logger(__name__)


class GeocodeError(Exception):
    """Raised when a location cannot be resolved to coordinates."""


class GeocoderService:
    """Service for resolving place names to coordinates."""

    def __init__(
        self,
        api_key: str,
        geocoding_config: GeocodingConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the geocoder.

        Args:
            api_key:          Azure Maps subscription key
            geocoding_config: Endpoint, API version, country and language.
            client:           Shared HTTP client; one is created when omitted.
        """
        self.api_key = api_key
        self.geocoding_config = geocoding_config or GeocodingConfig()
        self._client = client or httpx.AsyncClient(
            timeout=self.geocoding_config.timeout_seconds
        )

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    def _build_params(self, location: str) -> dict[str, str]:
        return {
            "subscription-key": self.api_key,
            "api-version": self.geocoding_config.api_version,
            "query": location,
            "limit": str(GEOCODE_RESULT_LIMIT),
            "countrySet": self.geocoding_config.country_set,
            "language": self.geocoding_config.language,
        }

    async def geocode(self, location: str) -> Coordinates:
        """
        Resolve a location to coordinates.

        No retry is attempted: the caller decides whether to search without
        coordinates.

        Args:
            location: Place name or address.

        Returns:
            Coordinates of the best match.

        Raises:
            GeocodeError: On transport errors, non-2xx responses, or a
                response without usable coordinates.
        """
        if not location or not location.strip():
            raise GeocodeError("Location is empty")

        try:
            response = await self._client.get(
                self.geocoding_config.url, params=self._build_params(location)
            )
        except httpx.HTTPError as e:
            raise GeocodeError(f"Geocoding request failed: {e}") from e

        if not response.is_success:
            raise GeocodeError(f"Error calling geocoding service: HTTP {response.status_code}")

        try:
            body = serialization.loads(response.content)
        except (serialization.JSONDecodeError, UnicodeDecodeError) as e:
            raise GeocodeError("Geocoding response is not valid JSON") from e

        coordinates = self._parse_feature_collection(body)
        logger.info(
            "location_geocoded",
            location=location,
            latitude=str(coordinates.latitude),
            longitude=str(coordinates.longitude),
        )
        return coordinates

    @staticmethod
    def _parse_feature_collection(body: object) -> Coordinates:
        """
        Extract the first feature's point from a GeoJSON FeatureCollection.

        GeoJSON orders positions as [longitude, latitude]; the pair is swapped
        here so callers never see the source order.
        """
        features = body.get("features") if isinstance(body, dict) else None
        if not isinstance(features, list) or not features:
            raise GeocodeError("No coordinates found in geocoding response")

        first = features[0]
        geometry = first.get("geometry") if isinstance(first, dict) else None
        position = geometry.get("coordinates") if isinstance(geometry, dict) else None
        if not isinstance(position, list) or len(position) != 2:
            raise GeocodeError("Malformed coordinates in geocoding response")

        longitude, latitude = position
        try:
            return Coordinates(latitude=latitude, longitude=longitude)
        except ValidationError as e:
            raise GeocodeError("Malformed coordinates in geocoding response") from e
