"""
SQLAlchemy ORM models for the food alert pipeline.

These models are internal to the database layer. The public interface
uses the dataclass models from models.py.
"""

import json
from datetime import date
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    Float,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from food_alerts.models import (
    AlertFact,
    Delivery,
    DeliveryStatus,
    FilterRule,
    Frequency,
    MappingType,
    NormalizationMapping,
    RawRecordEnvelope,
    RiskLevel,
    RuleType,
    Subscriber,
    Subscription,
    UnknownValue,
)


class JSONEncodedList(TypeDecorator):
    """Represents a list as a JSON-encoded string."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[List], dialect) -> Optional[str]:
        if value is None or value == []:
            return None
        return json.dumps(value)

    def process_result_value(self, value: Optional[str], dialect) -> List:
        if value is None:
            return []
        return json.loads(value)


class JSONEncodedDict(TypeDecorator):
    """Represents a dict as a JSON-encoded string."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[dict], dialect) -> Optional[str]:
        if value is None or value == {}:
            return None
        return json.dumps(value, default=str)

    def process_result_value(self, value: Optional[str], dialect) -> dict:
        if value is None:
            return {}
        return json.loads(value)


class Base(DeclarativeBase):
    pass


class RawRecordORM(Base):
    """SQLAlchemy model for alerts_raw table."""

    __tablename__ = "alerts_raw"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    source_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    payload: Mapped[dict] = mapped_column(JSONEncodedDict, nullable=True)
    published_at: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ingested_at: Mapped[int] = mapped_column(Integer, nullable=False)


class AlertFactORM(Base):
    """SQLAlchemy model for alerts_fact table."""

    __tablename__ = "alerts_fact"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    raw_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hazard: Mapped[str] = mapped_column(Text, nullable=False)
    hazard_category: Mapped[str] = mapped_column(Text, nullable=False)
    product_text: Mapped[str] = mapped_column(Text, nullable=False)
    product_category: Mapped[str] = mapped_column(Text, nullable=False)
    origin_country: Mapped[str] = mapped_column(Text, nullable=False)
    origin_countries: Mapped[List[str]] = mapped_column(JSONEncodedList, nullable=True)
    notifying_country: Mapped[str] = mapped_column(Text, nullable=False)
    risk_level: Mapped[str] = mapped_column(Text, nullable=False, default=RiskLevel.UNKNOWN.value)
    alert_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_alerts_fact_raw_id", "raw_id"),
        Index("idx_alerts_fact_alert_date", "alert_date"),
    )


class UserORM(Base):
    """SQLAlchemy model for users table."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)


class SubscriptionORM(Base):
    """SQLAlchemy model for subscriptions table."""

    __tablename__ = "subscriptions"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False)
    frequency: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_digest_at: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_subscriptions_user_id", "user_id"),
    )


class FilterORM(Base):
    """SQLAlchemy model for filters table."""

    __tablename__ = "filters"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    subscription_id: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_filters_subscription_id", "subscription_id"),
    )


class FilterRuleORM(Base):
    """SQLAlchemy model for filter_rules table."""

    __tablename__ = "filter_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    filter_id: Mapped[str] = mapped_column(Text, nullable=False)
    rule_type: Mapped[str] = mapped_column(Text, nullable=False)
    rule_value: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_filter_rules_filter_id", "filter_id"),
    )


class DeliveryORM(Base):
    """SQLAlchemy model for deliveries table."""

    __tablename__ = "deliveries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subscription_id: Mapped[str] = mapped_column(Text, nullable=False)
    delivery_type: Mapped[str] = mapped_column(Text, nullable=False, default="digest")
    status: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)
    sent_at: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_deliveries_subscription_id", "subscription_id"),
    )


class DeliveryItemORM(Base):
    """SQLAlchemy model for delivery_items table."""

    __tablename__ = "delivery_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    delivery_id: Mapped[int] = mapped_column(Integer, nullable=False)
    alert_fact_id: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("delivery_id", "alert_fact_id", name="uq_delivery_fact"),
        Index("idx_delivery_items_delivery_id", "delivery_id"),
    )


class NormalizationMappingORM(Base):
    """SQLAlchemy model for normalization_mappings table."""

    __tablename__ = "normalization_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mapping_type: Mapped[str] = mapped_column(Text, nullable=False)
    raw_value: Mapped[str] = mapped_column(Text, nullable=False)
    normalized_value: Mapped[str] = mapped_column(Text, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("mapping_type", "raw_value", name="uq_mapping_type_raw"),
    )


class UnknownValueORM(Base):
    """SQLAlchemy model for unknown_normalization_values table."""

    __tablename__ = "unknown_normalization_values"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    value_type: Mapped[str] = mapped_column(Text, nullable=False)
    raw_value: Mapped[str] = mapped_column(Text, nullable=False)
    occurrence_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    first_seen: Mapped[int] = mapped_column(Integer, nullable=False)
    last_seen: Mapped[int] = mapped_column(Integer, nullable=False)
    suggested_mapping: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_reviewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("value_type", "raw_value", name="uq_unknown_type_raw"),
        Index("idx_unknown_values_reviewed", "is_reviewed"),
    )


# Conversion functions between ORM models and dataclasses


def raw_record_dataclass_to_orm(envelope: RawRecordEnvelope) -> RawRecordORM:
    return RawRecordORM(
        id=envelope.id,
        source_id=envelope.source_id,
        payload=envelope.payload,
        published_at=envelope.published_at,
        ingested_at=envelope.ingested_at,
    )


def raw_record_orm_to_dataclass(orm: RawRecordORM) -> RawRecordEnvelope:
    return RawRecordEnvelope(
        id=orm.id,
        source_id=orm.source_id,
        payload=orm.payload or {},
        published_at=orm.published_at,
        ingested_at=orm.ingested_at,
    )


def fact_orm_to_dataclass(orm: AlertFactORM) -> AlertFact:
    """Convert an AlertFactORM instance to an AlertFact dataclass."""
    return AlertFact(
        id=orm.id,
        raw_id=orm.raw_id,
        hazard=orm.hazard,
        hazard_category=orm.hazard_category,
        product_text=orm.product_text,
        product_category=orm.product_category,
        origin_country=orm.origin_country,
        notifying_country=orm.notifying_country,
        risk_level=RiskLevel(orm.risk_level),
        alert_date=orm.alert_date,
        link=orm.link,
        origin_countries=orm.origin_countries or [orm.origin_country],
    )


def copy_fact_to_orm(fact: AlertFact, orm: AlertFactORM, updated_at: int) -> AlertFactORM:
    """Write every fact attribute onto a new or existing ORM row."""
    orm.raw_id = fact.raw_id
    orm.hazard = fact.hazard
    orm.hazard_category = fact.hazard_category
    orm.product_text = fact.product_text
    orm.product_category = fact.product_category
    orm.origin_country = fact.origin_country
    orm.origin_countries = fact.origin_countries if fact.origin_countries else None
    orm.notifying_country = fact.notifying_country
    orm.risk_level = fact.risk_level.value
    orm.alert_date = fact.alert_date
    orm.link = fact.link
    orm.updated_at = updated_at
    return orm


def user_orm_to_dataclass(orm: UserORM) -> Subscriber:
    return Subscriber(id=orm.id, email=orm.email)


def subscription_orm_to_dataclass(orm: SubscriptionORM) -> Subscription:
    return Subscription(
        id=orm.id,
        user_id=orm.user_id,
        frequency=Frequency(orm.frequency),
        is_active=bool(orm.is_active),
        last_digest_at=orm.last_digest_at,
    )


def filter_rule_orm_to_dataclass(orm: FilterRuleORM) -> FilterRule:
    return FilterRule(
        filter_id=orm.filter_id,
        rule_type=RuleType(orm.rule_type),
        rule_value=orm.rule_value,
    )


def delivery_orm_to_dataclass(orm: DeliveryORM) -> Delivery:
    return Delivery(
        id=orm.id,
        subscription_id=orm.subscription_id,
        delivery_type=orm.delivery_type,
        status=DeliveryStatus(orm.status),
        created_at=orm.created_at,
        sent_at=orm.sent_at,
    )


def mapping_orm_to_dataclass(orm: NormalizationMappingORM) -> NormalizationMapping:
    """Convert a NormalizationMappingORM instance to a NormalizationMapping dataclass."""
    return NormalizationMapping(
        id=orm.id,
        mapping_type=MappingType(orm.mapping_type),
        raw_value=orm.raw_value,
        normalized_value=orm.normalized_value,
        confidence=orm.confidence,
        usage_count=orm.usage_count,
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


def unknown_value_orm_to_dataclass(orm: UnknownValueORM) -> UnknownValue:
    """Convert an UnknownValueORM instance to an UnknownValue dataclass."""
    return UnknownValue(
        id=orm.id,
        value_type=MappingType(orm.value_type),
        raw_value=orm.raw_value,
        occurrence_count=orm.occurrence_count,
        first_seen=orm.first_seen,
        last_seen=orm.last_seen,
        suggested_mapping=orm.suggested_mapping,
        is_reviewed=bool(orm.is_reviewed),
    )
