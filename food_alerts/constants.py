"""
Constants for the food alert pipeline.
"""

from pathlib import Path

MODULE_ROOT = Path(__file__).parent

CONFIG_PATH = MODULE_ROOT / "data" / "pipeline.yaml"

DB_NAME = "food_alerts.db"

RASFF_FEED_URL = (
    "https://api.datalake.sante.service.ec.europa.eu/rasff/"
    "irasff-general-info-view?format=json&api-version=v1.0"
)

RASFF_LINK_BASE_URL = "https://webgate.ec.europa.eu/rasff-window/screen/notification/"

# Upstream packs several hazards or countries into one field with this separator
MULTI_VALUE_DELIMITER = "***"

UNKNOWN = "Unknown"
OTHER = "Other"
PRODUCT_NOT_SPECIFIED = "Product not specified"

DEFAULT_PAGE_LIMIT = 2
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30

# Custom normalization mappings
MAPPING_CACHE_TTL_SECONDS = 5 * 60
MIN_MAPPING_CONFIDENCE = 0.8
MAX_BULK_MAPPINGS = 100

# Country labels list every country up to this many, then "A, B + N more"
MAX_COUNTRIES_IN_LABEL = 3
