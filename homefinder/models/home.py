"""
Data models for home search.
These models define the structure for coordinates, search criteria, and the
home records returned to callers.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator, model_validator
from pydantic.alias_generators import to_camel


def _as_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Decimal in Python; pydantic JSON mode renders a plain number. Payloads that
# leave the process go through serialization.dumps, which keeps every digit.
JsonDecimal = Annotated[
    Decimal, PlainSerializer(_as_number, return_type=int | float, when_used="json")
]

# Parameter values the model uses to say "not given"
_BLANK_VALUES = {"", "null", "none"}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip().lower() in _BLANK_VALUES


def split_features(raw: str) -> list[str]:
    """Split a comma-delimited feature string into trimmed, non-empty entries."""
    return [part.strip() for part in raw.split(",") if part.strip()]


class Coordinates(BaseModel):
    """A geocoded point. Decimal keeps the geocoder's digits intact."""

    model_config = ConfigDict(frozen=True)

    latitude: JsonDecimal = Field(description="Latitude in decimal degrees")
    longitude: JsonDecimal = Field(description="Longitude in decimal degrees")


class SearchCriteria(BaseModel):
    """
    Parameters sent to the properties search template.

    Built from the accumulated parameter map on every search call. Keys the
    template does not know are ignored and blank values are dropped, so the
    outgoing payload is always sparse.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    query: str | None = Field(default=None, description="Original free-text query")
    latitude: JsonDecimal | None = Field(default=None, description="Search centre latitude")
    longitude: JsonDecimal | None = Field(default=None, description="Search centre longitude")
    distance: str | None = Field(default=None, description="Radius with unit suffix, e.g. '50mi'")
    bedrooms: int | None = Field(default=None, description="Number of bedrooms")
    bathrooms: JsonDecimal | None = Field(default=None, description="Number of bathrooms")
    home_price: JsonDecimal | None = Field(default=None, description="Home price bound")
    tax: JsonDecimal | None = Field(default=None, description="Annual tax bound")
    maintenance: JsonDecimal | None = Field(default=None, description="HOA / maintenance fee bound")
    square_footage: int | None = Field(default=None, description="Square footage")
    feature: str | None = Field(default=None, description="Quoted, comma-delimited features")

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {str(k).lower(): v for k, v in data.items() if not _is_blank(v)}
        return data

    @classmethod
    def from_parameters(cls, parameters: Mapping[str, Any]) -> "SearchCriteria":
        """Build criteria from a (case-insensitive) parameter map."""
        return cls.model_validate(dict(parameters.items()))

    def to_params(self) -> dict[str, Any]:
        """Template params: only the fields that carry a value."""
        return self.model_dump(exclude_none=True)


# Keys the model sometimes uses in its answer instead of the record's own names
_ANSWER_KEY_SYNONYMS = {
    "homePrice": "price",
    "home_price": "price",
    "home-price": "price",
    "propertyDescription": "description",
    "property-description": "description",
    "propertyFeatures": "features",
    "property-features": "features",
    "square-footage": "squareFootage",
    "annual-tax": "annualTax",
    "maintenance-fee": "maintenanceFee",
}


class HomeRecord(BaseModel):
    """A single home returned by the search backend."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    title: str = Field(default="", description="Listing title")
    price: JsonDecimal = Field(default=Decimal(0), description="Asking price in USD")
    bedrooms: JsonDecimal = Field(default=Decimal(0), description="Number of bedrooms")
    bathrooms: JsonDecimal = Field(default=Decimal(0), description="Number of bathrooms")
    square_footage: int = Field(default=0, description="Living area in square feet")
    annual_tax: JsonDecimal = Field(default=Decimal(0), description="Annual property tax")
    maintenance_fee: JsonDecimal = Field(default=Decimal(0), description="HOA / maintenance fee")
    features: list[str] = Field(default_factory=list, description="Features in listing order")
    description: str = Field(default="", description="Listing description")

    @field_validator("features", mode="before")
    @classmethod
    def _split_feature_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_features(value)
        return value

    @classmethod
    def from_answer(cls, data: Mapping[str, Any]) -> "HomeRecord":
        """Validate a home object written by the model in its final answer."""
        renamed = {_ANSWER_KEY_SYNONYMS.get(k, k): v for k, v in data.items()}
        return cls.model_validate(renamed)
