"""
Data models for the food alert pipeline.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from food_alerts.constants import UNKNOWN


class RiskLevel(Enum):
    SERIOUS = "serious"
    POTENTIALLY_SERIOUS = "potentially-serious"
    NOT_SERIOUS = "not-serious"
    NO_RISK = "no-risk"
    UNDECIDED = "undecided"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return RISK_LEVEL_LABELS[self]


RISK_LEVEL_LABELS = {
    RiskLevel.SERIOUS: "Serious",
    RiskLevel.POTENTIALLY_SERIOUS: "Potential Risk",
    RiskLevel.NOT_SERIOUS: "Not Serious",
    RiskLevel.NO_RISK: "No Risk",
    RiskLevel.UNDECIDED: "Under Review",
    RiskLevel.UNKNOWN: "Unknown",
}


class Frequency(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RuleType(Enum):
    HAZARD = "hazard"
    CATEGORY = "category"
    COUNTRY = "country"


class DeliveryStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class MappingType(Enum):
    HAZARD = "hazard"
    COUNTRY = "country"
    CATEGORY = "category"
    PRODUCT = "product"


class DigestKind(Enum):
    DIGEST = "digest"
    ALL_CLEAR = "all_clear"


@dataclass(frozen=True)
class ParsedHazard:
    """A canonical hazard name and its category."""
    name: str
    category: str


@dataclass(frozen=True)
class NormalizedAlert:
    """Canonical attributes derived from one raw feed record."""
    hazard: str
    hazard_category: str
    product_text: str
    product_category: str
    origin_country: str
    notifying_country: str
    risk_level: RiskLevel
    alert_date: Optional[date] = None
    link: Optional[str] = None
    hazards: List[ParsedHazard] = field(default_factory=list)
    origin_countries: List[str] = field(default_factory=list)


@dataclass
class RawRecordEnvelope:
    """A raw feed record wrapped with its deterministic identity."""
    id: str
    source_id: str
    payload: Dict[str, Any]
    published_at: Optional[str] = None
    ingested_at: int = 0


@dataclass
class AlertFact:
    """One stored row per (source record, hazard)."""
    id: str
    raw_id: Optional[str]
    hazard: str
    hazard_category: str
    product_text: str
    product_category: str
    origin_country: str
    notifying_country: str
    risk_level: RiskLevel = RiskLevel.UNKNOWN
    alert_date: Optional[date] = None
    link: Optional[str] = None
    origin_countries: List[str] = field(default_factory=list)


@dataclass
class AggregatedAlert:
    """One logical alert rebuilt from the facts of a single source record."""
    id: str
    raw_id: str
    hazards: List[str]
    countries: List[str]
    product_category: str
    product_text: str
    alert_date: Optional[date]
    link: Optional[str]
    fact_ids: List[str]
    hazard_categories: List[str] = field(default_factory=list)
    notifying_country: str = UNKNOWN
    risk_level: RiskLevel = RiskLevel.UNKNOWN


@dataclass
class Subscriber:
    """Contact details of a subscribed user."""
    id: str
    email: str


@dataclass
class Subscription:
    id: str
    user_id: str
    frequency: Frequency
    is_active: bool = True
    last_digest_at: Optional[int] = None


@dataclass
class FilterRule:
    filter_id: str
    rule_type: RuleType
    rule_value: str


@dataclass
class FilterCriteria:
    """A subscriber's filter rules grouped by dimension."""
    hazards: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    countries: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.hazards or self.categories or self.countries)


@dataclass
class Delivery:
    subscription_id: str
    status: DeliveryStatus
    id: Optional[int] = None
    delivery_type: str = "digest"
    created_at: int = 0
    sent_at: Optional[int] = None


@dataclass
class NormalizationMapping:
    """A reviewed raw value to canonical value mapping."""
    mapping_type: MappingType
    raw_value: str
    normalized_value: str
    confidence: float = 1.0
    usage_count: int = 1
    id: Optional[int] = None
    created_at: int = 0
    updated_at: int = 0


@dataclass
class UnknownValue:
    """A raw value that fell through to a generic bucket, queued for review."""
    value_type: MappingType
    raw_value: str
    occurrence_count: int = 1
    first_seen: int = 0
    last_seen: int = 0
    suggested_mapping: Optional[str] = None
    is_reviewed: bool = False
    id: Optional[int] = None


@dataclass
class IngestResult:
    pages_processed: int = 0
    records_seen: int = 0
    records_failed: int = 0
    facts_upserted: int = 0
    aborted: bool = False
    error: Optional[str] = None


@dataclass
class DigestRequest:
    """Everything the email collaborator needs to send one digest."""
    subscription_id: str
    user_id: str
    email: str
    frequency: Frequency
    kind: DigestKind
    alerts: List[AggregatedAlert]
    window_start: datetime
    window_end: datetime


@dataclass
class DigestOutcome:
    subscription_id: str
    status: str
    alert_count: int = 0
    delivery_id: Optional[int] = None
    error: Optional[str] = None


@dataclass
class DigestRunResult:
    processed: int = 0
    sent: int = 0
    all_clear: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: List[DigestOutcome] = field(default_factory=list)
