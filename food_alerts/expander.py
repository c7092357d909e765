"""
Turns a raw record into its envelope and one AlertFact per hazard.
"""

import time
from typing import Any, Dict, List, Optional

from food_alerts.fields import pick_text
from food_alerts.identity import derive_source_id, fact_id, stable_id
from food_alerts.models import AlertFact, NormalizedAlert, RawRecordEnvelope

PUBLISHED_AT_FIELDS = ["publishedAt", "alertDate", "date"]


def build_envelope(record: Dict[str, Any], now: Optional[int] = None) -> RawRecordEnvelope:
    source_id = derive_source_id(record)
    return RawRecordEnvelope(
        id=stable_id(source_id),
        source_id=source_id,
        payload=record,
        published_at=pick_text(record, PUBLISHED_AT_FIELDS),
        ingested_at=now if now is not None else int(time.time()),
    )


def expand_facts(envelope: RawRecordEnvelope, alert: NormalizedAlert) -> List[AlertFact]:
    """One fact per distinct hazard of the alert, all other attributes shared.

    The ordinal in each fact id is the hazard's position in the alert, so ids
    stay stable for as long as upstream keeps the hazard order.
    """
    hazards = [(hazard.name, hazard.category) for hazard in alert.hazards]
    if not hazards:
        hazards = [(alert.hazard, alert.hazard_category)]

    facts = []
    seen = set()
    for ordinal, (name, category) in enumerate(hazards):
        if name in seen:
            continue
        seen.add(name)
        facts.append(AlertFact(
            id=fact_id(envelope.source_id, name, ordinal),
            raw_id=envelope.id,
            hazard=name,
            hazard_category=category,
            product_text=alert.product_text,
            product_category=alert.product_category,
            origin_country=alert.origin_country,
            notifying_country=alert.notifying_country,
            risk_level=alert.risk_level,
            alert_date=alert.alert_date,
            link=alert.link,
            origin_countries=list(alert.origin_countries or [alert.origin_country]),
        ))
    return facts
