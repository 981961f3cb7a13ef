"""
Parameter normalizer — canonicalizes the arguments of the
extract_home_search_parameters tool.

The model does the actual extraction (bedrooms, price, location, ...) while
filling the tool's JSON schema. This service only canonicalizes what it sent
and applies the single default rule: a geocoded search without an explicit
radius gets DEFAULT_SEARCH_DISTANCE.

Usage:
    normalizer = ParameterNormalizer()
    normalizer.normalize('{"Latitude": 28.5, "longitude": -81.3}')
    # '{"latitude":28.5,"longitude":-81.3,"distance":"5000m"}'
"""


import structlog

from homefinder import serialization
from homefinder.constants import DEFAULT_SEARCH_DISTANCE
from homefinder.models.parameters import ParameterMap

logger = structlog.get_logger(__name__)


class ParameterNormalizer:
    """Converts raw tool-call arguments into the canonical parameter JSON."""

    def __init__(self, default_distance: str = DEFAULT_SEARCH_DISTANCE):
        self.default_distance = default_distance

    def normalize(self, args_json: str) -> str:
        """
        Canonicalize a JSON object of search parameters.

        Args:
            args_json: JSON object text as produced by the model.

        Returns:
            The canonical parameters serialized as a JSON object.

        Raises:
            ValueError: If args_json is not valid JSON or not an object.
        """
        try:
            payload = serialization.loads(args_json)
        except serialization.JSONDecodeError as e:
            raise ValueError(f"Invalid arguments JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ValueError("Arguments must be a JSON object")

        parameters = ParameterMap()
        parameters.merge(payload)

        # An explicit distance, even null or blank, is left as given
        if (
            "latitude" in parameters
            and "longitude" in parameters
            and "distance" not in parameters
        ):
            parameters["distance"] = self.default_distance

        result = serialization.dumps(parameters.to_dict())
        logger.info("parameters_normalized", parameters=result)
        return result
