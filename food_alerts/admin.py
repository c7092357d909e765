"""
Operator tools for the normalization mappings: statistics, the unknown value
review queue, and adding mappings.
"""

import time
from typing import Any, Dict, Iterable, List, Optional, Union

from food_alerts import database
from food_alerts.constants import MAX_BULK_MAPPINGS
from food_alerts.mapping_cache import MappingCache
from food_alerts.models import MappingType, NormalizationMapping, UnknownValue
from food_alerts.normalizer import (
    normalize_country,
    normalize_hazard,
    normalize_product_category,
    normalize_product_text,
)
from util.logging_util import setup_logger

logger = setup_logger(__name__)

MAX_UNKNOWNS_LIMIT = 200
MAX_MAPPINGS_LIMIT = 500
TOP_VALUES_PER_TYPE = 10


def parse_mapping_type(value: Union[str, MappingType]) -> MappingType:
    if isinstance(value, MappingType):
        return value
    try:
        return MappingType((value or "").strip().lower())
    except ValueError:
        valid = ", ".join(t.value for t in MappingType)
        raise ValueError(f"Invalid mapping type {value!r}. Must be one of: {valid}")


def _optional_type(value: Optional[str]) -> Optional[MappingType]:
    if value is None or value == "all":
        return None
    return parse_mapping_type(value)


def normalization_stats() -> Dict[str, Any]:
    """Mapping count, pending unknowns grouped by type, and recent additions."""
    unknown_by_type: Dict[str, Dict[str, Any]] = {}
    for unknown in database.list_unknown_values(limit=100):
        entry = unknown_by_type.setdefault(
            unknown.value_type.value, {"type": unknown.value_type.value, "count": 0, "top_values": []}
        )
        entry["count"] += unknown.occurrence_count
        if len(entry["top_values"]) < TOP_VALUES_PER_TYPE:
            entry["top_values"].append(unknown.raw_value)

    return {
        "total_mappings": database.count_mappings(),
        "unknown_values": list(unknown_by_type.values()),
        "recent_additions": database.recent_mappings(),
        **database.count_facts(),
    }


def list_unknowns(value_type: Optional[str] = None, limit: int = 50) -> List[UnknownValue]:
    return database.list_unknown_values(_optional_type(value_type), limit=min(limit, MAX_UNKNOWNS_LIMIT))


def list_mappings(mapping_type: Optional[str] = None, limit: int = 100) -> List[NormalizationMapping]:
    return database.list_mappings(_optional_type(mapping_type), limit=min(limit, MAX_MAPPINGS_LIMIT))


def preview_normalization(mapping_type: Union[str, MappingType], raw_value: str,
                          mappings: Optional[MappingCache] = None) -> str:
    """What the normalizer currently makes of a raw value."""
    value_type = parse_mapping_type(mapping_type)
    if value_type == MappingType.HAZARD:
        hazard = normalize_hazard(raw_value, mappings)
        return f"{hazard.name} ({hazard.category})"
    if value_type == MappingType.COUNTRY:
        return normalize_country(raw_value, mappings)
    if value_type == MappingType.CATEGORY:
        return normalize_product_category(raw_value, mappings)
    return normalize_product_text(raw_value, mappings)


def add_mapping(mapping_type: Union[str, MappingType], raw_value: str, normalized_value: str,
                confidence: float = 1.0, cache: Optional[MappingCache] = None) -> NormalizationMapping:
    """Add or update a mapping and invalidate the cache.

    Raises ValueError for an unknown mapping type, an empty value or a
    confidence outside [0, 1].
    """
    value_type = parse_mapping_type(mapping_type)
    if not raw_value or not raw_value.strip():
        raise ValueError("raw_value must not be empty")
    if not normalized_value or not normalized_value.strip():
        raise ValueError("normalized_value must not be empty")
    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"confidence must be between 0 and 1, got {confidence}")

    mapping = database.upsert_mapping(value_type, raw_value, normalized_value, confidence)
    logger.info(f"Mapped {value_type.value} {mapping.raw_value!r} -> {mapping.normalized_value!r}")

    if cache is not None:
        cache.invalidate()
    return mapping


def bulk_add_mappings(entries: Iterable[Dict[str, Any]], cache: Optional[MappingCache] = None) -> int:
    """Add up to MAX_BULK_MAPPINGS mappings. Invalid entries are skipped.

    Returns the number added.
    """
    entries = list(entries)
    if not entries:
        raise ValueError("No mappings provided")
    if len(entries) > MAX_BULK_MAPPINGS:
        logger.warning(f"Only the first {MAX_BULK_MAPPINGS} of {len(entries)} mappings will be added")

    added = 0
    for entry in entries[:MAX_BULK_MAPPINGS]:
        try:
            add_mapping(
                entry.get("mapping_type"),
                entry.get("raw_value"),
                entry.get("normalized_value"),
                float(entry.get("confidence", 1.0)),
            )
            added += 1
        except ValueError as e:
            logger.warning(f"Skipping mapping {entry!r}: {e}")

    if cache is not None:
        cache.invalidate()
    return added


def mark_reviewed(value_type: Union[str, MappingType], raw_value: str) -> bool:
    """Dismiss an unknown value without adding a mapping."""
    return database.mark_unknown_reviewed(parse_mapping_type(value_type), raw_value)


def refresh_cache(cache: MappingCache, now: Optional[float] = None):
    cache.refresh(now if now is not None else time.time())
