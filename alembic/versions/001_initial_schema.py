"""Initial schema - trust accounting tables

Revision ID: 0001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Clients & Matters ────────────────────────────────────────────

    op.create_table(
        "clients",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, index=True),
        sa.Column("email", sa.String(255), nullable=True, index=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", "archived", name="clientstatus"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "matters",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clients.id"), nullable=False, index=True),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("matter_number", sa.String(20), unique=True, nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.Enum("open", "pending", "closed", name="matterstatus"), nullable=False),
        sa.Column("practice_area", sa.String(255), nullable=True),
        sa.Column("responsible_attorney", sa.String(255), nullable=True),
        sa.Column("open_date", sa.Date(), nullable=False),
        sa.Column("close_date", sa.Date(), nullable=True),
        sa.Column("external_account_id", sa.String(255), nullable=True, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── Trust ledger ─────────────────────────────────────────────────

    op.create_table(
        "transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("matter_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("matters.id"), nullable=False, index=True),
        sa.Column("type", sa.Enum("deposit", "disbursement", name="transactiontype"), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("payee", sa.String(255), nullable=True),
        sa.Column("payor", sa.String(255), nullable=True),
        sa.Column("check_number", sa.String(50), nullable=True),
        sa.Column("reference", sa.String(255), nullable=True),
        sa.Column("transaction_date", sa.Date(), nullable=False, index=True),
        sa.Column("status", sa.Enum("completed", name="transactionstatus"), nullable=False),
        sa.Column("source", sa.Enum("manual", "document_import", name="transactionsource"), nullable=False),
        sa.Column("external_transaction_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("amount_cents > 0", name="ck_transactions_amount_positive"),
    )

    op.create_table(
        "holds",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("matter_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("matters.id"), nullable=False, index=True),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column(
            "type",
            sa.Enum("retainer", "settlement", "escrow", "compliance", name="holdtype"),
            nullable=False,
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "released", "cancelled", name="holdstatus"),
            nullable=False,
            index=True,
        ),
        sa.Column("external_hold_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("released_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("released_by", sa.String(255), nullable=True),
        sa.Column("release_reason", sa.Text(), nullable=True),
        sa.CheckConstraint("amount_cents > 0", name="ck_holds_amount_positive"),
    )

    # ── Settings, audit & reports ────────────────────────────────────

    op.create_table(
        "trust_account_settings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("firm_name", sa.String(255), nullable=True),
        sa.Column("firm_logo", sa.Text(), nullable=True),
        sa.Column("bank_name", sa.String(255), nullable=True),
        sa.Column("account_number_encrypted", sa.Text(), nullable=True),
        sa.Column("routing_number_encrypted", sa.Text(), nullable=True),
        sa.Column("state", sa.String(2), nullable=True),
        sa.Column("external_trust_account_id", sa.String(255), nullable=True),
        sa.Column("external_operating_account_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Audit Log (hash chain; rows are never updated)
    op.create_table(
        "audit_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("entity_type", sa.String(50), nullable=False, index=True),
        sa.Column("entity_id", sa.String(100), nullable=False, index=True),
        sa.Column("action", sa.String(50), nullable=False, index=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("severity", sa.String(20), nullable=False, server_default="info"),
        sa.Column("integrity_hash", sa.String(64), nullable=False, index=True),
        sa.Column("previous_hash", sa.String(64), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )

    op.create_table(
        "report_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "report_type",
            sa.Enum("monthly_trust", "client_ledger", "reconciliation", name="reporttype"),
            nullable=False,
            index=True,
        ),
        sa.Column("report_name", sa.String(255), nullable=False),
        sa.Column("parameters", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="completed"),
        sa.Column("generated_by", sa.String(255), nullable=True),
        sa.Column("generated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table("report_history")
    op.drop_table("audit_log")
    op.drop_table("trust_account_settings")
    op.drop_table("holds")
    op.drop_table("transactions")
    op.drop_table("matters")
    op.drop_table("clients")
    for enum_name in (
        "reporttype",
        "holdstatus",
        "holdtype",
        "transactionsource",
        "transactionstatus",
        "transactiontype",
        "matterstatus",
        "clientstatus",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
