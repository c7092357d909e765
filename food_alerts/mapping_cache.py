"""
In-memory cache of reviewed normalization mappings.

The caller owns the cache and decides when it refreshes.
"""

from typing import Callable, Dict, Iterable, Optional

from food_alerts.constants import MAPPING_CACHE_TTL_SECONDS
from food_alerts.models import MappingType, NormalizationMapping
from util.logging_util import setup_logger

logger = setup_logger(__name__)

MappingLoader = Callable[[], Iterable[NormalizationMapping]]


class MappingCache:
    """Custom raw value -> canonical value mappings, keyed by mapping type.

    Lookups are case-insensitive on the raw value. `last_refreshed` is the
    epoch time of the last successful load, or None before the first one.
    """

    def __init__(self, loader: MappingLoader, ttl_seconds: float = MAPPING_CACHE_TTL_SECONDS):
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self.mappings: Dict[MappingType, Dict[str, str]] = {}
        self.last_refreshed: Optional[float] = None

    def is_stale(self, now: float) -> bool:
        if self.last_refreshed is None:
            return True
        return (now - self.last_refreshed) > self.ttl_seconds

    def refresh(self, now: float):
        """Reload every mapping from the loader.

        On a loader failure the previous mappings are kept and the cache stays
        stale, so the next refresh_if_stale() retries.
        """
        try:
            rows = list(self._loader())
        except Exception as e:
            logger.error(f"Failed to load normalization mappings: {e}")
            return

        mappings: Dict[MappingType, Dict[str, str]] = {}
        for row in rows:
            mappings.setdefault(row.mapping_type, {})[row.raw_value.strip().lower()] = row.normalized_value
        self.mappings = mappings
        self.last_refreshed = now
        logger.debug(f"Loaded {len(rows)} normalization mappings")

    def refresh_if_stale(self, now: float) -> bool:
        """Refresh when the TTL has elapsed. Returns True if a refresh was attempted."""
        if not self.is_stale(now):
            return False
        self.refresh(now)
        return True

    def invalidate(self):
        """Force the next refresh_if_stale() to reload."""
        self.last_refreshed = None

    def lookup(self, mapping_type: MappingType, raw_value: Optional[str]) -> Optional[str]:
        if not raw_value:
            return None
        return self.mappings.get(mapping_type, {}).get(raw_value.strip().lower())
