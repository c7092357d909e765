"""
Subscriber filter matching.

A subscription's rules are grouped by dimension. An alert passes when, for
every dimension that has rules, at least one rule value is a case-insensitive
substring of one of the alert's values for that dimension.
"""

from typing import Iterable, List

from food_alerts.models import AggregatedAlert, FilterCriteria, FilterRule, RuleType


def criteria_from_rules(rules: Iterable[FilterRule]) -> FilterCriteria:
    criteria = FilterCriteria()
    for rule in rules:
        value = (rule.rule_value or "").strip()
        if not value:
            continue
        if rule.rule_type == RuleType.HAZARD:
            criteria.hazards.append(value)
        elif rule.rule_type == RuleType.CATEGORY:
            criteria.categories.append(value)
        elif rule.rule_type == RuleType.COUNTRY:
            criteria.countries.append(value)
    return criteria


def _any_contains(filter_values: List[str], alert_values: List[str]) -> bool:
    lowered = [value.lower() for value in alert_values if value]
    return any(
        wanted.lower() in value
        for wanted in filter_values
        for value in lowered
    )


def matches(alert: AggregatedAlert, criteria: FilterCriteria) -> bool:
    if criteria.is_empty():
        return True

    if criteria.hazards and not _any_contains(criteria.hazards, alert.hazards):
        return False

    if criteria.categories and not _any_contains(criteria.categories, [alert.product_category]):
        return False

    if criteria.countries:
        countries = list(alert.countries) + [alert.notifying_country]
        if not _any_contains(criteria.countries, countries):
            return False

    return True
