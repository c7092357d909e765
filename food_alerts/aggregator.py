from typing import Dict, List

from food_alerts.models import AggregatedAlert, AlertFact
from food_alerts.normalizer import apply_unknown_sentinel


def aggregate(facts: List[AlertFact]) -> List[AggregatedAlert]:
    """Fold facts back into one alert per source record.

    Facts are grouped by raw_id (a fact without one is its own group). Hazards
    and origin countries are unioned in first-seen order with "Unknown" kept
    only when nothing else is known; every other field comes from the first
    fact of the group. Groups are returned in first-seen order.
    """
    groups: Dict[str, List[AlertFact]] = {}
    for fact in facts:
        groups.setdefault(fact.raw_id or fact.id, []).append(fact)

    alerts = []
    for key, group in groups.items():
        first = group[0]

        countries = []
        for fact in group:
            countries.extend(fact.origin_countries or [fact.origin_country])

        hazard_categories = []
        for fact in group:
            if fact.hazard_category not in hazard_categories:
                hazard_categories.append(fact.hazard_category)

        alerts.append(AggregatedAlert(
            id=first.id,
            raw_id=key,
            hazards=apply_unknown_sentinel([fact.hazard for fact in group]),
            countries=apply_unknown_sentinel(countries),
            product_category=first.product_category,
            product_text=first.product_text,
            alert_date=first.alert_date,
            link=first.link,
            fact_ids=[fact.id for fact in group],
            hazard_categories=hazard_categories,
            notifying_country=first.notifying_country,
            risk_level=first.risk_level,
        ))
    return alerts
