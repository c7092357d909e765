"""Initial schema baseline

Revision ID: 001
Revises:
Create Date: 2026-10-19

Raw and fact alert tables, the subscription tables read by the digest job,
delivery tracking, and the normalization mapping and unknown value tables.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # alerts_raw table
    op.create_table(
        "alerts_raw",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("source_id", sa.Text(), nullable=False),
        sa.Column("payload", sa.Text(), nullable=True),
        sa.Column("published_at", sa.Text(), nullable=True),
        sa.Column("ingested_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("source_id"),
    )

    # alerts_fact table
    op.create_table(
        "alerts_fact",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("raw_id", sa.Text(), nullable=True),
        sa.Column("hazard", sa.Text(), nullable=False),
        sa.Column("hazard_category", sa.Text(), nullable=False),
        sa.Column("product_text", sa.Text(), nullable=False),
        sa.Column("product_category", sa.Text(), nullable=False),
        sa.Column("origin_country", sa.Text(), nullable=False),
        sa.Column("origin_countries", sa.Text(), nullable=True),
        sa.Column("notifying_country", sa.Text(), nullable=False),
        sa.Column("risk_level", sa.Text(), nullable=False),
        sa.Column("alert_date", sa.Date(), nullable=True),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_alerts_fact_raw_id", "alerts_fact", ["raw_id"])
    op.create_index("idx_alerts_fact_alert_date", "alerts_fact", ["alert_date"])

    # users table
    op.create_table(
        "users",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    # subscriptions table
    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("frequency", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_digest_at", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_subscriptions_user_id", "subscriptions", ["user_id"])

    # filters table
    op.create_table(
        "filters",
        sa.Column("id", sa.Text(), nullable=False),
        sa.Column("subscription_id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_filters_subscription_id", "filters", ["subscription_id"])

    # filter_rules table
    op.create_table(
        "filter_rules",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("filter_id", sa.Text(), nullable=False),
        sa.Column("rule_type", sa.Text(), nullable=False),
        sa.Column("rule_value", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_filter_rules_filter_id", "filter_rules", ["filter_id"])

    # deliveries table
    op.create_table(
        "deliveries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("subscription_id", sa.Text(), nullable=False),
        sa.Column("delivery_type", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.Column("sent_at", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_deliveries_subscription_id", "deliveries", ["subscription_id"])

    # delivery_items table
    op.create_table(
        "delivery_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("delivery_id", sa.Integer(), nullable=False),
        sa.Column("alert_fact_id", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("delivery_id", "alert_fact_id", name="uq_delivery_fact"),
    )
    op.create_index("idx_delivery_items_delivery_id", "delivery_items", ["delivery_id"])

    # normalization_mappings table
    op.create_table(
        "normalization_mappings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("mapping_type", sa.Text(), nullable=False),
        sa.Column("raw_value", sa.Text(), nullable=False),
        sa.Column("normalized_value", sa.Text(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("mapping_type", "raw_value", name="uq_mapping_type_raw"),
    )

    # unknown_normalization_values table
    op.create_table(
        "unknown_normalization_values",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("value_type", sa.Text(), nullable=False),
        sa.Column("raw_value", sa.Text(), nullable=False),
        sa.Column("occurrence_count", sa.Integer(), nullable=False),
        sa.Column("first_seen", sa.Integer(), nullable=False),
        sa.Column("last_seen", sa.Integer(), nullable=False),
        sa.Column("suggested_mapping", sa.Text(), nullable=True),
        sa.Column("is_reviewed", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("value_type", "raw_value", name="uq_unknown_type_raw"),
    )
    op.create_index("idx_unknown_values_reviewed", "unknown_normalization_values", ["is_reviewed"])


def downgrade() -> None:
    op.drop_index("idx_unknown_values_reviewed", table_name="unknown_normalization_values")
    op.drop_table("unknown_normalization_values")
    op.drop_table("normalization_mappings")
    op.drop_index("idx_delivery_items_delivery_id", table_name="delivery_items")
    op.drop_table("delivery_items")
    op.drop_index("idx_deliveries_subscription_id", table_name="deliveries")
    op.drop_table("deliveries")
    op.drop_index("idx_filter_rules_filter_id", table_name="filter_rules")
    op.drop_table("filter_rules")
    op.drop_index("idx_filters_subscription_id", table_name="filters")
    op.drop_table("filters")
    op.drop_index("idx_subscriptions_user_id", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_table("users")
    op.drop_index("idx_alerts_fact_alert_date", table_name="alerts_fact")
    op.drop_index("idx_alerts_fact_raw_id", table_name="alerts_fact")
    op.drop_table("alerts_fact")
    op.drop_table("alerts_raw")
