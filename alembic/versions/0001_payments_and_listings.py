from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_payments_and_listings"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "payment_intents",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("payment_intent_id", sa.String(length=120), nullable=False),
        sa.Column("user_id", sa.String(length=120), nullable=False),

        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="usd"),
        sa.Column("description", sa.String(length=300), nullable=True),

        sa.Column("status", sa.String(length=30), nullable=False, server_default="created"),
        sa.Column("gateway_status", sa.String(length=60), nullable=True),

        sa.Column("listing_data", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("draft_id", sa.String(length=80), nullable=True),
        sa.Column("listing_id", sa.String(), nullable=True),

        sa.Column("needs_reconciliation", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("last_swept_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("listing_removed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),

        sa.UniqueConstraint("payment_intent_id", name="uq_payment_intents_payment_intent_id"),
        sa.UniqueConstraint("listing_id", name="uq_payment_intents_listing_id"),
    )
    op.create_index("ix_payment_intents_user_id", "payment_intents", ["user_id"])
    op.create_index(
        "ix_payment_intents_needs_reconciliation",
        "payment_intents",
        ["needs_reconciliation"],
        postgresql_where=sa.text("needs_reconciliation"),
    )

    op.create_table(
        "properties",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("landlord_id", sa.String(length=120), nullable=False),

        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),

        sa.Column("address", sa.String(length=300), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column("state", sa.String(length=60), nullable=False),
        sa.Column("zip_code", sa.String(length=20), nullable=False),
        sa.Column("college_id", sa.String(length=200), nullable=True),

        sa.Column("rent", sa.Numeric(10, 2), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False),
        sa.Column("bathrooms", sa.Numeric(4, 1), nullable=False),
        sa.Column("available_from", sa.Date(), nullable=False),

        sa.Column(
            "images",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "amenities",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),

        sa.Column("available", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.text("false")),

        sa.Column("payment_intent_id", sa.String(length=120), nullable=False),
        *_timestamps(),

        sa.ForeignKeyConstraint(
            ["payment_intent_id"],
            ["payment_intents.payment_intent_id"],
            name="fk_properties_payment_intent_id",
        ),
        # one listing per paid intent; concurrent publishers rely on this
        sa.UniqueConstraint("payment_intent_id", name="uq_properties_payment_intent_id"),
    )
    op.create_index("ix_properties_landlord_id", "properties", ["landlord_id"])
    op.create_index("ix_properties_college_id", "properties", ["college_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("actor", sa.String(length=120), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("target_type", sa.String(length=120), nullable=True),
        sa.Column("target_id", sa.String(length=200), nullable=True),
        sa.Column(
            "detail",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_target", "audit_logs", ["target_type", "target_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_target", table_name="audit_logs")
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_index("ix_audit_logs_created_at", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_properties_college_id", table_name="properties")
    op.drop_index("ix_properties_landlord_id", table_name="properties")
    op.drop_table("properties")

    op.drop_index("ix_payment_intents_needs_reconciliation", table_name="payment_intents")
    op.drop_index("ix_payment_intents_user_id", table_name="payment_intents")
    op.drop_table("payment_intents")
