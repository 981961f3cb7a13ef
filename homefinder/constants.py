"""
Business logic constants for the Home Finder application.

These values are stable across environments (dev/staging/prod) and do not
need env-var overrides. For operational parameters that vary per environment
(endpoints, timeouts, retry counts), see config.py.
"""

API_TITLE = "Home Finder API"
API_VERSION = "1.0.0"

# --- Parameter normalization ---
# Radius applied when coordinates are known but the query gave no distance
DEFAULT_SEARCH_DISTANCE = "5000m"

# --- Geocoding ---
# Only the best match is used
GEOCODE_RESULT_LIMIT = 1

# --- Search backend error signals ---
# Substrings of the Elasticsearch error body. The readiness marker appears while
# the inference deployment behind the search template is still warming up.
SEARCH_NOT_READY_MARKERS: tuple[str, ...] = ("Starting deployment timed out",)
SEARCH_AUTH_FAILURE_MARKERS: tuple[str, ...] = ("missing or invalid credentials",)

# --- Search hit field names (fields retrieval of the properties index) ---
FIELD_TITLE = "title"
FIELD_HOME_PRICE = "home-price"
FIELD_BEDROOMS = "number-of-bedrooms"
FIELD_BATHROOMS = "number-of-bathrooms"
FIELD_SQUARE_FOOTAGE = "square-footage"
FIELD_ANNUAL_TAX = "annual-tax"
FIELD_MAINTENANCE_FEE = "maintenance-fee"
FIELD_FEATURES = "property-features"
FIELD_DESCRIPTION = "property-description"

# --- Model answer format ---
# Each home in the final answer is a one-line JSON object wrapped in this tag
HOME_TAG = "home"
