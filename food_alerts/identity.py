"""
Deterministic identifiers for raw records and alert facts.

Re-ingesting the same upstream record always produces the same ids, which is
what makes every write in the pipeline an idempotent upsert.
"""

import hashlib
import json
from typing import Any

from food_alerts.fields import pick, pick_text

SOURCE_ID_FIELDS = ["id", "notif_id", "notification_reference", "referenceNumber"]

_FINGERPRINT_FIELDS = [
    ["notification_reference", "referenceNumber"],
    ["notification_type_desc", "notificationType"],
    ["product_category_desc", "productCategory"],
    ["origin_country_desc", "country"],
]


def derive_source_id(record: Any) -> str:
    """Upstream identifier of a record.

    Uses the first identifier field present; records without one get the
    SHA-1 of a compact JSON fingerprint of their descriptive fields.
    """
    source_id = pick_text(record, SOURCE_ID_FIELDS)
    if source_id:
        return source_id

    fingerprint = [pick(record, candidates) for candidates in _FINGERPRINT_FIELDS]
    encoded = json.dumps(fingerprint, separators=(",", ":"), ensure_ascii=False, default=str)
    return hashlib.sha1(encoded.encode("utf-8")).hexdigest()


def stable_id(seed: str) -> str:
    """UUID-shaped id: first 32 hex chars of SHA-256(seed), grouped 8-4-4-4-12."""
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()[:32]
    return f"{digest[:8]}-{digest[8:12]}-{digest[12:16]}-{digest[16:20]}-{digest[20:32]}"


def fact_id(source_id: str, hazard: str, ordinal: int) -> str:
    return stable_id(f"{source_id}-{hazard}-{ordinal}")
