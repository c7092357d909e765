"""
Database operations for the food alert pipeline.

Uses SQLAlchemy ORM for database access. The public API uses dataclass models
from models.py, with conversion to/from ORM models handled internally.
"""

import time
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, select

from food_alerts.constants import MIN_MAPPING_CONFIDENCE
from food_alerts.db_engine import get_engine, get_session
from food_alerts.models import (
    AlertFact,
    Delivery,
    DeliveryStatus,
    FilterRule,
    Frequency,
    MappingType,
    NormalizationMapping,
    RawRecordEnvelope,
    RuleType,
    Subscriber,
    Subscription,
    UnknownValue,
)
from food_alerts.orm_models import (
    Base,
    AlertFactORM,
    DeliveryItemORM,
    DeliveryORM,
    FilterORM,
    FilterRuleORM,
    NormalizationMappingORM,
    RawRecordORM,
    SubscriptionORM,
    UnknownValueORM,
    UserORM,
    copy_fact_to_orm,
    delivery_orm_to_dataclass,
    fact_orm_to_dataclass,
    filter_rule_orm_to_dataclass,
    mapping_orm_to_dataclass,
    raw_record_dataclass_to_orm,
    raw_record_orm_to_dataclass,
    subscription_orm_to_dataclass,
    unknown_value_orm_to_dataclass,
    user_orm_to_dataclass,
)


def init_db():
    """Initialize the database schema."""
    engine = get_engine()
    Base.metadata.create_all(engine)


# Raw records and facts


def upsert_raw_record(envelope: RawRecordEnvelope) -> str:
    """Insert or replace a raw record, keyed by its deterministic id.

    Returns the record id.
    """
    with get_session() as session:
        orm = session.get(RawRecordORM, envelope.id)
        if orm is None:
            session.add(raw_record_dataclass_to_orm(envelope))
        else:
            orm.source_id = envelope.source_id
            orm.payload = envelope.payload
            orm.published_at = envelope.published_at
            orm.ingested_at = envelope.ingested_at
    return envelope.id


def get_raw_record(record_id: str) -> Optional[RawRecordEnvelope]:
    with get_session() as session:
        orm = session.get(RawRecordORM, record_id)
        if orm is None:
            return None
        return raw_record_orm_to_dataclass(orm)


def upsert_facts(facts: Iterable[AlertFact], now: Optional[int] = None) -> int:
    """Insert or update facts by id in one transaction. Returns the number written."""
    updated_at = now if now is not None else int(time.time())
    count = 0
    with get_session() as session:
        for fact in facts:
            orm = session.get(AlertFactORM, fact.id)
            if orm is None:
                orm = AlertFactORM(id=fact.id)
                session.add(orm)
            copy_fact_to_orm(fact, orm, updated_at)
            count += 1
    return count


def get_fact(fact_id: str) -> Optional[AlertFact]:
    with get_session() as session:
        orm = session.get(AlertFactORM, fact_id)
        if orm is None:
            return None
        return fact_orm_to_dataclass(orm)


def get_facts_between(start: datetime, end: datetime) -> List[AlertFact]:
    """Facts whose alert date falls in [start, end), newest first.

    Facts without an alert date cannot be time-filtered and are never returned.
    """
    with get_session() as session:
        stmt = (
            select(AlertFactORM)
            .where(
                AlertFactORM.alert_date.is_not(None),
                AlertFactORM.alert_date >= start.date(),
                AlertFactORM.alert_date < end.date(),
            )
            .order_by(AlertFactORM.alert_date.desc(), AlertFactORM.raw_id, AlertFactORM.id)
        )
        orms = session.execute(stmt).scalars().all()
        return [fact_orm_to_dataclass(orm) for orm in orms]


# Subscribers, subscriptions and filters. These are owned by the signup
# flow; the pipeline only reads them, the writers exist for setup and tests.


def add_user(user_id: str, email: str) -> str:
    with get_session() as session:
        session.add(UserORM(id=user_id, email=email, created_at=int(time.time())))
    return user_id


def add_subscription(subscription_id: str, user_id: str, frequency: Frequency,
                     is_active: bool = True) -> str:
    with get_session() as session:
        session.add(SubscriptionORM(
            id=subscription_id,
            user_id=user_id,
            frequency=frequency.value,
            is_active=is_active,
        ))
    return subscription_id


def add_filter(filter_id: str, subscription_id: str, rules: Iterable[tuple],
               name: Optional[str] = None) -> str:
    """Create a filter with its (rule_type, rule_value) rules."""
    with get_session() as session:
        session.add(FilterORM(id=filter_id, subscription_id=subscription_id, name=name))
        for rule_type, rule_value in rules:
            session.add(FilterRuleORM(
                filter_id=filter_id,
                rule_type=RuleType(rule_type).value,
                rule_value=rule_value,
            ))
    return filter_id


def get_active_subscriptions() -> List[Subscription]:
    with get_session() as session:
        stmt = (
            select(SubscriptionORM)
            .where(SubscriptionORM.is_active.is_(True))
            .order_by(SubscriptionORM.id)
        )
        orms = session.execute(stmt).scalars().all()
        return [subscription_orm_to_dataclass(orm) for orm in orms]


def get_subscriber(user_id: str) -> Optional[Subscriber]:
    with get_session() as session:
        orm = session.get(UserORM, user_id)
        if orm is None:
            return None
        return user_orm_to_dataclass(orm)


def get_filter_rules(subscription_id: str) -> List[FilterRule]:
    """Every rule of every filter belonging to the subscription."""
    with get_session() as session:
        stmt = (
            select(FilterRuleORM)
            .join(FilterORM, FilterORM.id == FilterRuleORM.filter_id)
            .where(FilterORM.subscription_id == subscription_id)
            .order_by(FilterRuleORM.id)
        )
        orms = session.execute(stmt).scalars().all()
        return [filter_rule_orm_to_dataclass(orm) for orm in orms]


# Deliveries


def create_delivery(subscription_id: str, delivery_type: str = "digest",
                    fact_ids: Iterable[str] = ()) -> int:
    """Create a pending delivery together with its items. Returns the delivery id.

    The delivery and its items are written in one transaction, so a failure
    while recording the items leaves no delivery behind.
    """
    orm = DeliveryORM(
        subscription_id=subscription_id,
        delivery_type=delivery_type,
        status=DeliveryStatus.PENDING.value,
        created_at=int(time.time()),
    )

    with get_session() as session:
        session.add(orm)
        session.flush()
        seen = set()
        for fact_id in fact_ids:
            if fact_id in seen:
                continue
            seen.add(fact_id)
            session.add(DeliveryItemORM(delivery_id=orm.id, alert_fact_id=fact_id))
        return orm.id


def set_delivery_status(delivery_id: int, status: DeliveryStatus):
    with get_session() as session:
        orm = session.get(DeliveryORM, delivery_id)
        if orm is not None:
            orm.status = status.value
            if status == DeliveryStatus.SENT:
                orm.sent_at = int(time.time())


def get_delivery(delivery_id: int) -> Optional[Delivery]:
    with get_session() as session:
        orm = session.get(DeliveryORM, delivery_id)
        if orm is None:
            return None
        return delivery_orm_to_dataclass(orm)


def get_delivered_fact_ids(subscription_id: str) -> Set[str]:
    """Ids of every fact linked to any delivery of the subscription, whatever its status."""
    with get_session() as session:
        stmt = (
            select(DeliveryItemORM.alert_fact_id)
            .join(DeliveryORM, DeliveryORM.id == DeliveryItemORM.delivery_id)
            .where(DeliveryORM.subscription_id == subscription_id)
        )
        return set(session.execute(stmt).scalars().all())


# Normalization mappings and the unknown value queue


def load_mappings(min_confidence: float = MIN_MAPPING_CONFIDENCE) -> List[NormalizationMapping]:
    """Mappings trusted enough to be applied during normalization."""
    with get_session() as session:
        stmt = select(NormalizationMappingORM).where(
            NormalizationMappingORM.confidence >= min_confidence
        )
        orms = session.execute(stmt).scalars().all()
        return [mapping_orm_to_dataclass(orm) for orm in orms]


def upsert_mapping(mapping_type: MappingType, raw_value: str, normalized_value: str,
                   confidence: float = 1.0) -> NormalizationMapping:
    """Add a mapping, or overwrite the one with the same type and raw value.

    Any matching entry in the unknown value queue is marked reviewed.
    """
    raw_value = raw_value.strip()
    normalized_value = normalized_value.strip()
    now = int(time.time())

    with get_session() as session:
        stmt = select(NormalizationMappingORM).where(
            NormalizationMappingORM.mapping_type == mapping_type.value,
            NormalizationMappingORM.raw_value == raw_value,
        )
        orm = session.execute(stmt).scalar_one_or_none()
        if orm is None:
            orm = NormalizationMappingORM(
                mapping_type=mapping_type.value,
                raw_value=raw_value,
                normalized_value=normalized_value,
                confidence=confidence,
                usage_count=1,
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
        else:
            orm.normalized_value = normalized_value
            orm.confidence = confidence
            orm.usage_count += 1
            orm.updated_at = now

        unknown = _get_unknown_orm(session, mapping_type, raw_value)
        if unknown is not None:
            unknown.is_reviewed = True

        session.flush()
        return mapping_orm_to_dataclass(orm)


def list_mappings(mapping_type: Optional[MappingType] = None, limit: int = 100) -> List[NormalizationMapping]:
    with get_session() as session:
        stmt = select(NormalizationMappingORM)
        if mapping_type is not None:
            stmt = stmt.where(NormalizationMappingORM.mapping_type == mapping_type.value)
        stmt = stmt.order_by(
            NormalizationMappingORM.usage_count.desc(),
            NormalizationMappingORM.id,
        ).limit(limit)
        orms = session.execute(stmt).scalars().all()
        return [mapping_orm_to_dataclass(orm) for orm in orms]


def _get_unknown_orm(session, value_type: MappingType, raw_value: str) -> Optional[UnknownValueORM]:
    stmt = select(UnknownValueORM).where(
        UnknownValueORM.value_type == value_type.value,
        UnknownValueORM.raw_value == raw_value,
    )
    return session.execute(stmt).scalar_one_or_none()


def track_unknown_value(value_type: MappingType, raw_value: str,
                        suggested_mapping: Optional[str] = None, now: Optional[int] = None):
    """Record a sighting of an unmapped value, counting repeat sightings."""
    raw_value = raw_value.strip()
    if not raw_value:
        return
    seen_at = now if now is not None else int(time.time())

    with get_session() as session:
        orm = _get_unknown_orm(session, value_type, raw_value)
        if orm is None:
            session.add(UnknownValueORM(
                value_type=value_type.value,
                raw_value=raw_value,
                occurrence_count=1,
                first_seen=seen_at,
                last_seen=seen_at,
                suggested_mapping=suggested_mapping,
                is_reviewed=False,
            ))
        else:
            orm.occurrence_count += 1
            orm.last_seen = seen_at
            if suggested_mapping and not orm.suggested_mapping:
                orm.suggested_mapping = suggested_mapping


def list_unknown_values(value_type: Optional[MappingType] = None, include_reviewed: bool = False,
                        limit: int = 50) -> List[UnknownValue]:
    """Unknown values, most frequently seen first."""
    with get_session() as session:
        stmt = select(UnknownValueORM)
        if value_type is not None:
            stmt = stmt.where(UnknownValueORM.value_type == value_type.value)
        if not include_reviewed:
            stmt = stmt.where(UnknownValueORM.is_reviewed.is_(False))
        stmt = stmt.order_by(
            UnknownValueORM.occurrence_count.desc(),
            UnknownValueORM.id,
        ).limit(limit)
        orms = session.execute(stmt).scalars().all()
        return [unknown_value_orm_to_dataclass(orm) for orm in orms]


def mark_unknown_reviewed(value_type: MappingType, raw_value: str) -> bool:
    """Mark an unknown value as reviewed. Returns False if it was never tracked."""
    with get_session() as session:
        orm = _get_unknown_orm(session, value_type, raw_value.strip())
        if orm is None:
            return False
        orm.is_reviewed = True
        return True


def count_mappings() -> int:
    with get_session() as session:
        return session.execute(select(func.count()).select_from(NormalizationMappingORM)).scalar()


def recent_mappings(limit: int = 10) -> List[NormalizationMapping]:
    with get_session() as session:
        stmt = (
            select(NormalizationMappingORM)
            .order_by(NormalizationMappingORM.created_at.desc(), NormalizationMappingORM.id.desc())
            .limit(limit)
        )
        orms = session.execute(stmt).scalars().all()
        return [mapping_orm_to_dataclass(orm) for orm in orms]


def count_facts() -> Dict[str, int]:
    """Row counts of the raw and fact tables."""
    with get_session() as session:
        return {
            "raw_records": session.execute(select(func.count()).select_from(RawRecordORM)).scalar(),
            "facts": session.execute(select(func.count()).select_from(AlertFactORM)).scalar(),
        }
