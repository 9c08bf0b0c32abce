# backend/alembic/versions/001_booking_payments.py
"""Booking and payments schema - tenants, reservations, transactions, ledger, webhooks

Revision ID: 001_booking_payments
Revises:
Create Date: 2025-06-01 00:00:00.000000

Creates the reservation table with the per-staff no-overlap exclusion
constraint (PostgreSQL, btree_gist) and the transaction table with the
one-active-deposit partial unique index.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001_booking_payments"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PENDING_DEPOSIT_WHERE = "type = 'deposit' AND status = 'pending'"


def _is_postgres() -> bool:
    bind = op.get_bind()
    return bind is not None and bind.dialect.name == "postgresql"


def _json_type() -> sa.types.TypeEngine:
    return JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite")


def _create_extension_prefer_extensions_schema(extension_name: str) -> None:
    """Create extension using extensions schema when available."""
    if not _is_postgres():
        return

    op.execute(
        f"""
        DO $$
        DECLARE
            extensions_schema_exists BOOLEAN;
            extension_installed BOOLEAN;
        BEGIN
            SELECT EXISTS (
                SELECT 1 FROM pg_namespace WHERE nspname = 'extensions'
            ) INTO extensions_schema_exists;

            SELECT EXISTS (
                SELECT 1 FROM pg_extension WHERE extname = '{extension_name}'
            ) INTO extension_installed;

            IF NOT extension_installed THEN
                IF extensions_schema_exists THEN
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name} WITH SCHEMA extensions';
                ELSE
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name}';
                END IF;
            END IF;
        END
        $$;
        """
    )


def upgrade() -> None:
    is_postgres = _is_postgres()

    op.create_table(
        "tenants",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("deposit_pct", sa.Numeric(5, 2), nullable=True),
        sa.Column("default_currency", sa.String(3), nullable=False, server_default="NGN"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "reservations",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("staff_id", sa.String(64), nullable=True),
        sa.Column("service_id", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="confirmed"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.CheckConstraint("start_at < end_at", name="ck_reservations_start_before_end"),
    )
    op.create_index("ix_reservations_tenant_id", "reservations", ["tenant_id"])
    op.create_index("ix_reservations_status", "reservations", ["status"])
    op.create_index(
        "ix_reservations_tenant_staff_start", "reservations", ["tenant_id", "staff_id", "start_at"]
    )
    op.create_index("ix_reservations_tenant_status", "reservations", ["tenant_id", "status"])

    if is_postgres:
        _create_extension_prefer_extensions_schema("btree_gist")
        op.execute(
            """
            ALTER TABLE reservations
              ADD CONSTRAINT reservations_no_overlap_per_staff
              EXCLUDE USING gist (
                tenant_id WITH =,
                staff_id WITH =,
                tstzrange(start_at, end_at, '[)') WITH &&
              )
              WHERE (staff_id IS NOT NULL AND status <> 'cancelled')
            """
        )

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=True),
        sa.Column("reservation_id", sa.String(64), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("provider", sa.String(20), nullable=True),
        sa.Column("provider_reference", sa.String(255), nullable=True),
        sa.Column("authorization_url", sa.Text(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("next_retry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_retry_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("raw", _json_type(), nullable=True),
        sa.Column("reconciliation_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("reconciled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_transactions_pending_deposit",
        "transactions",
        ["tenant_id", "reservation_id"],
        unique=True,
        postgresql_where=sa.text(PENDING_DEPOSIT_WHERE),
        sqlite_where=sa.text(PENDING_DEPOSIT_WHERE),
    )
    op.create_index("ix_transactions_retry_due", "transactions", ["status", "next_retry_at"])
    op.create_index("ix_transactions_tenant_created", "transactions", ["tenant_id", "created_at"])
    op.create_index("ix_transactions_provider_reference", "transactions", ["provider_reference"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("tenant_id", sa.String(64), nullable=True),
        sa.Column("transaction_id", sa.String(26), nullable=True),
        sa.Column("entry_type", sa.String(50), nullable=False, server_default="credit"),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("posted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ledger_entries_transaction_id", "ledger_entries", ["transaction_id"])
    op.create_index("ix_ledger_entries_tenant_posted", "ledger_entries", ["tenant_id", "posted_at"])

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("provider", sa.String(20), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("event_id", sa.String(255), nullable=True),
        sa.Column("transaction_id", sa.String(26), nullable=True),
        sa.Column("payload", _json_type(), nullable=False),
        sa.Column("headers", _json_type(), nullable=True),
        sa.Column("delivery_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("first_received_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_received_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider", "event_id", name="uq_webhook_events_provider_event_id"),
    )
    op.create_index("ix_webhook_events_event_type", "webhook_events", ["event_type"])
    op.create_index("ix_webhook_events_last_received_at", "webhook_events", ["last_received_at"])


def downgrade() -> None:
    op.drop_index("ix_webhook_events_last_received_at", table_name="webhook_events")
    op.drop_index("ix_webhook_events_event_type", table_name="webhook_events")
    op.drop_table("webhook_events")

    op.drop_index("ix_ledger_entries_tenant_posted", table_name="ledger_entries")
    op.drop_index("ix_ledger_entries_transaction_id", table_name="ledger_entries")
    op.drop_table("ledger_entries")

    op.drop_index("ix_transactions_provider_reference", table_name="transactions")
    op.drop_index("ix_transactions_tenant_created", table_name="transactions")
    op.drop_index("ix_transactions_retry_due", table_name="transactions")
    op.drop_index("uq_transactions_pending_deposit", table_name="transactions")
    op.drop_table("transactions")

    if _is_postgres():
        op.execute("ALTER TABLE reservations DROP CONSTRAINT IF EXISTS reservations_no_overlap_per_staff")
    op.drop_index("ix_reservations_tenant_status", table_name="reservations")
    op.drop_index("ix_reservations_tenant_staff_start", table_name="reservations")
    op.drop_index("ix_reservations_status", table_name="reservations")
    op.drop_index("ix_reservations_tenant_id", table_name="reservations")
    op.drop_table("reservations")

    op.drop_table("tenants")
