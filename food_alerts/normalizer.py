"""
Normalization of raw feed values into canonical hazards, countries,
categories and risk levels.

Nothing in here raises on odd input: values that no rule recognises end up
in a generic bucket ("Other" / "Unknown") and are reported to an optional
observer so they can be queued for review.
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from food_alerts.constants import (
    MAX_COUNTRIES_IN_LABEL,
    MULTI_VALUE_DELIMITER,
    OTHER,
    PRODUCT_NOT_SPECIFIED,
    RASFF_LINK_BASE_URL,
    UNKNOWN,
)
from food_alerts.fields import pick, pick_text
from food_alerts.mapping_cache import MappingCache
from food_alerts.models import MappingType, NormalizedAlert, ParsedHazard, RiskLevel
from food_alerts.rules import (
    COUNTRY_RULES,
    HAZARD_CATEGORY_TABLE,
    HAZARD_KEYWORD_CATEGORIES,
    HAZARD_RULES,
    PRODUCT_CATEGORY_RULES,
    PRODUCT_CATEGORY_TABLE,
    first_match,
)
from food_alerts.text_repair import collapse_whitespace, is_shouting, repair_text, title_case

# Called with (value type, raw value, suggested canonical value)
UnmappedObserver = Callable[[MappingType, str, Optional[str]], None]

# Candidate field names, most specific first
HAZARD_FIELDS = ["hazard_category_name", "hazard_desc", "hazards", "hazard"]
PRODUCT_FIELDS = ["product_name", "product", "productText", "productDescription"]
CATEGORY_FIELDS = ["product_category_desc", "product_category", "productCategory"]
ORIGIN_FIELDS = ["origin_country_desc", "origin_country", "originCountry"]
# "notifyng" is a typo in one version of the upstream API
NOTIFYING_FIELDS = ["notifyng_country_desc", "notifying_country_desc", "notifying_country", "notifyingCountry"]
RISK_FIELDS = ["risk_decision_desc", "risk_decision", "riskDecision"]
DATE_FIELDS = ["notif_date", "notification_date", "alertDate", "date"]
REFERENCE_FIELDS = ["notification_reference", "referenceNumber", "reference"]
LINK_FIELDS = ["link", "url"]

_DELIMITER_SPLIT = re.compile(r"\s*" + re.escape(MULTI_VALUE_DELIMITER) + r"\s*")
_CATEGORY_MARKER = re.compile(r"\{([^}]+)\}")
_CATEGORY_MARKER_WITH_DASH = re.compile(r"\s*-?\s*\{[^}]+\}\s*")
_SURROUNDING_QUOTES = re.compile(r"^[\"']+|[\"']+$")

_DATE_FORMATS = [
    "%d-%m-%Y %H:%M:%S",
    "%d-%m-%Y",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y",
    "%Y/%m/%d",
]

_RISK_EXACT: Dict[str, RiskLevel] = {
    "serious": RiskLevel.SERIOUS,
    "potentially serious": RiskLevel.POTENTIALLY_SERIOUS,
    "potential risk": RiskLevel.POTENTIALLY_SERIOUS,
    "not serious": RiskLevel.NOT_SERIOUS,
    "no risk": RiskLevel.NO_RISK,
    "undecided": RiskLevel.UNDECIDED,
}


def _notify(observer: Optional[UnmappedObserver], value_type: MappingType, raw: str,
            suggestion: Optional[str] = None):
    if observer is not None:
        observer(value_type, raw, suggestion)


def _clean(raw: Any) -> str:
    if raw is None:
        return ""
    return collapse_whitespace(repair_text(str(raw)))


def split_multi_value(raw: Any) -> List[str]:
    """Split a field on the upstream '***' delimiter, dropping empty pieces."""
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        pieces = [str(item) for item in raw if item is not None]
    else:
        pieces = _DELIMITER_SPLIT.split(str(raw))
    return [piece.strip() for piece in pieces if piece and piece.strip()]


def _before_last_separator(text: str) -> str:
    if " - " in text:
        head = text.rsplit(" - ", 1)[0].strip()
        if head:
            return head
    return text


def _hazard_keyword_category(text: str) -> Optional[str]:
    lower = text.lower()
    for keyword, category in HAZARD_KEYWORD_CATEGORIES:
        if keyword in lower:
            return category
    return None


def _classify_hazard_name(name: str) -> str:
    """Best category for an already canonical hazard name."""
    rule = first_match(HAZARD_RULES, name)
    if rule is not None:
        return rule.category
    return _hazard_keyword_category(name) or OTHER


def normalize_hazard(raw: Any, mappings: Optional[MappingCache] = None,
                     observer: Optional[UnmappedObserver] = None) -> ParsedHazard:
    """Normalize a single hazard string (no '***' delimiters) to (name, category).

    Resolution order: custom mapping, pattern rules, embedded
    "<text> - {category}" marker, keyword heuristics, and finally the text
    before the last " - " title-cased with category "Other".
    """
    text = _clean(raw)
    if not text:
        return ParsedHazard(UNKNOWN, UNKNOWN)

    if mappings is not None:
        mapped = mappings.lookup(MappingType.HAZARD, text)
        if mapped:
            return ParsedHazard(mapped, _classify_hazard_name(mapped))

    # Rules see the full text including the marker, so "{pesticide residues}"
    # lands in the generic pesticide bucket that hazard filters match on.
    rule = first_match(HAZARD_RULES, text)
    if rule is not None:
        return ParsedHazard(rule.canonical, rule.category)

    marker = _CATEGORY_MARKER.search(text)
    body = collapse_whitespace(_CATEGORY_MARKER_WITH_DASH.sub(" ", text)) if marker else text
    body = _SURROUNDING_QUOTES.sub("", body).strip()

    if marker:
        raw_category = marker.group(1).strip()
        category = HAZARD_CATEGORY_TABLE.get(raw_category.lower()) or title_case(raw_category)
        name = title_case(body) if body else category
        return ParsedHazard(name, category)

    category = _hazard_keyword_category(body)
    if category is not None:
        name = title_case(body) or UNKNOWN
        _notify(observer, MappingType.HAZARD, text, name)
        return ParsedHazard(name, category)

    name = title_case(_before_last_separator(body)) or UNKNOWN
    _notify(observer, MappingType.HAZARD, text, name)
    return ParsedHazard(name, OTHER)


def normalize_hazards(raw: Any, mappings: Optional[MappingCache] = None,
                      observer: Optional[UnmappedObserver] = None) -> List[ParsedHazard]:
    """Split a hazard field on '***' and normalize each piece.

    Hazards are de-duplicated by canonical name, keeping the first one seen.
    Never returns an empty list.
    """
    hazards: List[ParsedHazard] = []
    seen = set()
    for piece in split_multi_value(raw):
        hazard = normalize_hazard(piece, mappings, observer)
        if hazard.name in seen:
            continue
        seen.add(hazard.name)
        hazards.append(hazard)
    return hazards or [ParsedHazard(UNKNOWN, UNKNOWN)]


def normalize_country(raw: Any, mappings: Optional[MappingCache] = None) -> str:
    """Normalize one country name. Empty input gives "Unknown"."""
    text = _clean(raw)
    if not text:
        return UNKNOWN

    if mappings is not None:
        mapped = mappings.lookup(MappingType.COUNTRY, text)
        if mapped:
            return mapped

    rule = first_match(COUNTRY_RULES, text)
    if rule is not None:
        return rule.canonical

    if is_shouting(text):
        text = title_case(text)
    return text


def apply_unknown_sentinel(values: List[str]) -> List[str]:
    """De-duplicate, dropping "Unknown" unless it is the only value."""
    distinct = []
    for value in values:
        if value and value not in distinct:
            distinct.append(value)
    known = [value for value in distinct if value != UNKNOWN]
    return known or [UNKNOWN]


def normalize_countries(raw: Any, mappings: Optional[MappingCache] = None) -> List[str]:
    """Split a country field on '***', normalize and de-duplicate."""
    countries = [normalize_country(piece, mappings) for piece in split_multi_value(raw)]
    return apply_unknown_sentinel(countries)


def format_country_label(countries: List[str]) -> str:
    """Short label: every country up to three, else "A, B + N more"."""
    distinct = []
    for country in countries:
        if country not in distinct:
            distinct.append(country)

    if not distinct:
        return UNKNOWN
    if len(distinct) <= MAX_COUNTRIES_IN_LABEL:
        return ", ".join(distinct)
    return f"{distinct[0]}, {distinct[1]} + {len(distinct) - 2} more"


def normalize_product_category(raw: Any, mappings: Optional[MappingCache] = None,
                               observer: Optional[UnmappedObserver] = None) -> str:
    text = _clean(raw)
    if not text:
        return OTHER

    if mappings is not None:
        mapped = mappings.lookup(MappingType.CATEGORY, text)
        if mapped:
            return mapped

    rule = first_match(PRODUCT_CATEGORY_RULES, text)
    if rule is not None:
        return rule.canonical

    known = PRODUCT_CATEGORY_TABLE.get(text.lower())
    if known is not None:
        return known

    category = title_case(text).replace(" and ", " & ").replace(" or ", " / ")
    _notify(observer, MappingType.CATEGORY, text, category)
    return category


def normalize_product_text(raw: Any, mappings: Optional[MappingCache] = None) -> str:
    text = _clean(raw)
    if not text:
        return PRODUCT_NOT_SPECIFIED

    if mappings is not None:
        mapped = mappings.lookup(MappingType.PRODUCT, text)
        if mapped:
            return mapped

    if is_shouting(text):
        text = title_case(text)
    return text


def normalize_risk_level(raw: Any) -> RiskLevel:
    """Map a risk decision description to a RiskLevel.

    "not serious" is checked before the bare word "serious".
    """
    if raw is None:
        return RiskLevel.UNKNOWN

    text = collapse_whitespace(str(raw).replace("-", " ")).lower()
    if not text:
        return RiskLevel.UNKNOWN

    if text in _RISK_EXACT:
        return _RISK_EXACT[text]

    if "not serious" in text:
        return RiskLevel.NOT_SERIOUS
    if "no risk" in text:
        return RiskLevel.NO_RISK
    if "potential" in text:
        return RiskLevel.POTENTIALLY_SERIOUS
    if "undecided" in text:
        return RiskLevel.UNDECIDED
    if re.search(r"\bserious\b", text):
        return RiskLevel.SERIOUS
    return RiskLevel.UNKNOWN


def normalize_date(raw: Any) -> Optional[date]:
    """Parse an alert date. Unparseable or missing values give None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return _utc_date(raw)
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (int, float)):
        # Epoch seconds, or milliseconds as some feed versions send
        seconds = raw / 1000 if raw > 1e11 else raw
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None

    text = str(raw).strip()
    if not text:
        return None

    try:
        return _utc_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _utc_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()


def build_link(record: Any, reference: Optional[str], base_url: str = RASFF_LINK_BASE_URL) -> Optional[str]:
    """Use the record's own link if it has one, else the notification page."""
    link = pick_text(record, LINK_FIELDS)
    if link and link.lower().startswith(("http://", "https://")):
        return link
    if reference:
        return f"{base_url}{quote(reference)}"
    return None


def normalize_record(record: Any, mappings: Optional[MappingCache] = None,
                     observer: Optional[UnmappedObserver] = None,
                     link_base_url: str = RASFF_LINK_BASE_URL) -> NormalizedAlert:
    """Reduce one raw feed record to its canonical attributes."""
    hazards = normalize_hazards(pick(record, HAZARD_FIELDS), mappings, observer)
    origin_countries = normalize_countries(pick(record, ORIGIN_FIELDS), mappings)
    reference = pick_text(record, REFERENCE_FIELDS)

    return NormalizedAlert(
        hazard=hazards[0].name,
        hazard_category=hazards[0].category,
        product_text=normalize_product_text(pick(record, PRODUCT_FIELDS), mappings),
        product_category=normalize_product_category(pick(record, CATEGORY_FIELDS), mappings, observer),
        origin_country=origin_countries[0],
        notifying_country=normalize_country(pick(record, NOTIFYING_FIELDS), mappings),
        risk_level=normalize_risk_level(pick(record, RISK_FIELDS)),
        alert_date=normalize_date(pick(record, DATE_FIELDS)),
        link=build_link(record, reference, link_base_url),
        hazards=hazards,
        origin_countries=origin_countries,
    )
