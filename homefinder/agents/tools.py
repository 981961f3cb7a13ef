"""
Home search agent tools.

The tool set is closed: three OpenAI-format function descriptors the model
can choose from, and a toolbox mapping each ToolName to the coroutine that
serves it. The orchestrator resolves a requested name through
HomeSearchToolbox.resolve(); there is no other dispatch path.

Tools:
  extract_home_search_parameters  canonicalize the parameters read from the query
  geocode_location                place name -> latitude/longitude
  search_homes                    run the properties search template

Every handler receives the call's arguments and the run's ParameterMap (after
the arguments were merged into it) and returns a ToolResult whose content is
the JSON text sent back to the model. Recoverable failures are returned as
{"error": "..."} content; only broken conversations raise.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog
from pydantic import ValidationError

from homefinder import serialization
from homefinder.agents.errors import MalformedToolCallError, MissingQueryError
from homefinder.agents.state import ToolInvocation
from homefinder.models.home import HomeRecord, SearchCriteria
from homefinder.models.parameters import ParameterMap
from homefinder.services.geocoder import GeocodeError, GeocoderService
from homefinder.services.parameter_normalizer import ParameterNormalizer
from homefinder.services.property_search import PropertySearchService, SearchError

logger = structlog.get_logger(__name__)


class ToolName(str, Enum):
    """Names of the tools exposed to the model."""

    EXTRACT_PARAMETERS = "extract_home_search_parameters"
    GEOCODE = "geocode_location"
    SEARCH = "search_homes"


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

_NUMBER_HINT = "Convert text representation of numbers into numeric values"

_SEARCH_PROPERTIES: dict[str, dict[str, str]] = {
    "query": {
        "type": "string",
        "description": "The original search query (e.g., 'homes near Belongil Beach').",
    },
    "location": {
        "type": "string",
        "description": "Location mentioned in the query (e.g., Belongil Beach, The Woodlands Texas).",
    },
    "distance": {
        "type": "string",
        "description": "Search radius. Miles should be abbreviated as mi and kilometers as km (e.g., 50mi).",
    },
    "bedrooms": {
        "type": "number",
        "description": f"The number of bedrooms a home may have (e.g., 2, 3, 4). {_NUMBER_HINT}.",
    },
    "bathrooms": {
        "type": "number",
        "description": f"The number of bathrooms a home may have (e.g., 2, 2.5, 3). {_NUMBER_HINT}.",
    },
    "home_price": {
        "type": "number",
        "description": "Home price without $ or commas. If the query supplies $100,000 then parse it as 100000.",
    },
    "tax": {
        "type": "number",
        "description": "Tax amount without $ or commas. If the query supplies $10,000 then parse it as 10000.",
    },
    "maintenance": {
        "type": "number",
        "description": "Maintenance or Homeowners Association (HOA) fees without $ or commas.",
    },
    "square_footage": {
        "type": "number",
        "description": "Square footage of the home without commas. If the query supplies 1,000 then parse it as 1000.",
    },
    "feature": {
        "type": "string",
        "description": (
            "Home features, amenities, or descriptive terms (e.g., 2 car garage, pool, gym, modern). "
            "Enclose each feature in double quotes and comma delimit multiple features, "
            'e.g. pool and updated kitchen become "pool", "updated kitchen".'
        ),
    },
    "latitude": {"type": "number", "description": f"Latitude of the location. {_NUMBER_HINT}."},
    "longitude": {"type": "number", "description": f"Longitude of the location. {_NUMBER_HINT}."},
}

EXTRACT_PARAMETERS_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": ToolName.EXTRACT_PARAMETERS.value,
        "description": "Extract search parameters for finding homes from the user's query.",
        "parameters": {
            "type": "object",
            "properties": _SEARCH_PROPERTIES,
            "required": ["query"],
        },
    },
}

GEOCODE_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": ToolName.GEOCODE.value,
        "description": "Resolve a location to its latitude and longitude.",
        "parameters": {
            "type": "object",
            "properties": {
                "location": {"type": "string", "description": "Location name to geocode"},
            },
            "required": ["location"],
        },
    },
}

SEARCH_TOOL: dict[str, Any] = {
    "type": "function",
    "function": {
        "name": ToolName.SEARCH.value,
        "description": "Query the property search backend for homes matching the parameters.",
        "parameters": {
            "type": "object",
            "properties": _SEARCH_PROPERTIES,
            "required": ["query"],
        },
    },
}

TOOL_SCHEMAS: list[dict[str, Any]] = [EXTRACT_PARAMETERS_TOOL, GEOCODE_TOOL, SEARCH_TOOL]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool dispatch."""

    content: str
    invocation: ToolInvocation
    homes: list[HomeRecord] | None = None


ToolHandler = Callable[[dict[str, Any], ParameterMap], Awaitable[ToolResult]]


def _error(tool: ToolName, arguments: dict[str, Any], message: str) -> ToolResult:
    """Build an {"error": ...} result the model can explain to the user."""
    return ToolResult(
        content=serialization.dumps({"error": message}),
        invocation=ToolInvocation(
            tool=tool.value, arguments=arguments, status="error", detail=message
        ),
    )


class HomeSearchToolbox:
    """Binds the tool names to the services that implement them."""

    def __init__(
        self,
        normalizer: ParameterNormalizer,
        geocoder: GeocoderService,
        search_service: PropertySearchService,
    ):
        self.normalizer = normalizer
        self.geocoder = geocoder
        self.search_service = search_service
        self.handlers: dict[ToolName, ToolHandler] = {
            ToolName.EXTRACT_PARAMETERS: self.extract_parameters,
            ToolName.GEOCODE: self.geocode_location,
            ToolName.SEARCH: self.search_homes,
        }

    def resolve(self, name: str) -> ToolHandler | None:
        """Return the handler for a tool name, or None if it is not registered."""
        try:
            return self.handlers[ToolName(name)]
        except ValueError:
            return None

    async def extract_parameters(
        self, args: dict[str, Any], parameters: ParameterMap
    ) -> ToolResult:
        """Canonicalize the extracted parameters (default radius included)."""
        try:
            content = self.normalizer.normalize(serialization.dumps(args))
        except ValueError as e:
            raise MalformedToolCallError(str(e)) from e

        return ToolResult(
            content=content,
            invocation=ToolInvocation(
                tool=ToolName.EXTRACT_PARAMETERS.value,
                arguments=serialization.loads(content),
                status="ok",
            ),
        )

    async def geocode_location(
        self, args: dict[str, Any], parameters: ParameterMap
    ) -> ToolResult:
        """Geocode the call's location, or the extracted one if the call has none."""
        location = args.get("location") or parameters.get("location")
        if not isinstance(location, str) or not location.strip():
            return _error(ToolName.GEOCODE, {}, "Missing or invalid 'location' parameter.")

        arguments = {"location": location}
        try:
            coordinates = await self.geocoder.geocode(location)
        except GeocodeError as e:
            logger.warning("geocode_failed", location=location, error=str(e))
            return _error(ToolName.GEOCODE, arguments, f"Unable to geocode location: {e}")

        content = serialization.dumps(
            {"latitude": coordinates.latitude, "longitude": coordinates.longitude}
        )
        return ToolResult(
            content=content,
            invocation=ToolInvocation(
                tool=ToolName.GEOCODE.value, arguments=arguments, status="ok", detail=content
            ),
        )

    async def search_homes(
        self, args: dict[str, Any], parameters: ParameterMap
    ) -> ToolResult:
        """
        Search with everything accumulated so far.

        Criteria come from the whole ParameterMap, not only this call's
        arguments, so coordinates from an earlier geocode call are included.

        Raises:
            MissingQueryError: No `query` parameter has been seen yet.
        """
        if "query" not in parameters:
            raise MissingQueryError(f"'query' is required before calling {ToolName.SEARCH.value}.")

        try:
            criteria = SearchCriteria.from_parameters(parameters)
        except ValidationError as e:
            logger.warning("search_criteria_invalid", error=str(e))
            return _error(ToolName.SEARCH, {}, f"Invalid search parameters: {e}")

        arguments = criteria.to_params()
        try:
            homes = await self.search_service.search(criteria)
        except SearchError as e:
            return _error(ToolName.SEARCH, arguments, str(e))
        except Exception as e:
            logger.exception("search_unexpected_error")
            return _error(ToolName.SEARCH, arguments, f"Error while searching homes: {e}")

        content = serialization.dumps(
            [home.model_dump(by_alias=True) for home in homes]
        )
        return ToolResult(
            content=content,
            invocation=ToolInvocation(
                tool=ToolName.SEARCH.value,
                arguments=arguments,
                status="ok",
                detail=f"{len(homes)} homes",
            ),
            homes=homes,
        )
