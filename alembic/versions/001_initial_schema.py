"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates the supplier booking tables:
- Suppliers and packages
- Bookings, payments and blocked dates
- Supplier dashboard views
- Audit logs and notifications
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== SUPPLIERS ====================

    op.create_table(
        "suppliers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(128), unique=True, nullable=False, index=True),
        sa.Column("business_name", sa.String(200), nullable=False),
        sa.Column("category", sa.String(60)),
        sa.Column("account_status", sa.String(30), default="pendingReview", index=True),
        sa.Column("identity_verified", sa.Boolean, default=False),
        sa.Column("accepting_bookings", sa.Boolean, default=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "packages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("supplier_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("category", sa.String(60), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("price", sa.Integer, nullable=False),
        sa.Column("duration", sa.String(60)),
        sa.Column("includes", postgresql.JSONB, server_default="[]"),
        sa.Column("customizations", postgresql.JSONB, server_default="[]"),
        sa.Column("photos", postgresql.JSONB, server_default="[]"),
        sa.Column("is_active", sa.Boolean, default=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================

    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_number", sa.String(20), unique=True, nullable=False, index=True),
        sa.Column("client_id", sa.String(128), nullable=False, index=True),
        sa.Column("supplier_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("suppliers.id"), nullable=False, index=True),
        sa.Column("event_date", sa.Date, nullable=False, index=True),
        sa.Column("event_name", sa.String(200)),
        sa.Column("event_location", sa.String(300)),
        sa.Column("event_type", sa.String(60)),
        sa.Column("event_time", sa.String(5)),
        sa.Column("guest_count", sa.Integer),
        sa.Column("package_id", postgresql.UUID(as_uuid=True)),
        sa.Column("package_name", sa.String(200), nullable=False),
        sa.Column("selected_customizations", postgresql.JSONB, server_default="[]"),
        sa.Column("total_price", sa.Integer, nullable=False),
        sa.Column("paid_amount", sa.Integer, default=0),
        sa.Column("currency", sa.String(3), default="AOA"),
        sa.Column("status", sa.String(20), default="pending", index=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("confirmed_by", sa.String(128)),
        sa.Column("started_at", sa.DateTime(timezone=True)),
        sa.Column("started_by", sa.String(128)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("completed_by", sa.String(128)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_by", sa.String(128)),
        sa.Column("cancelled_by_role", sa.String(10)),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("notes", sa.Text),
        sa.Column("client_notes", sa.Text),
        sa.Column("supplier_notes", sa.Text),
        sa.Column("hidden_by_client", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("hidden_by_client_at", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "booking_payments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("method", sa.String(30), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("requires_reconciliation", sa.Boolean, default=False, index=True),
        sa.Column("recorded_by", sa.String(128)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "blocked_dates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("supplier_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("date", sa.Date, nullable=False, index=True),
        sa.Column("reason", sa.Text),
        sa.Column("block_type", sa.String(20), default="blocked"),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id", ondelete="CASCADE")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("booking_id", name="uq_blocked_dates_booking_id"),
    )

    # ==================== PROJECTIONS ====================

    op.create_table(
        "supplier_views",
        sa.Column("supplier_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("suppliers.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("business_name", sa.String(200), nullable=False),
        sa.Column("pending_count", sa.Integer, default=0),
        sa.Column("confirmed_count", sa.Integer, default=0),
        sa.Column("pending_bookings", postgresql.JSONB, server_default="[]"),
        sa.Column("confirmed_bookings", postgresql.JSONB, server_default="[]"),
        sa.Column("recent_bookings", postgresql.JSONB, server_default="[]"),
        sa.Column("upcoming_events", postgresql.JSONB, server_default="[]"),
        sa.Column("blocked_dates", postgresql.JSONB, server_default="[]"),
        sa.Column("dashboard_stats", postgresql.JSONB, server_default="{}"),
        sa.Column("account_flags", postgresql.JSONB, server_default="{}"),
        sa.Column("rebuilt_at", sa.DateTime(timezone=True)),
        sa.Column("source_version", sa.String(10), nullable=False),
        sa.Column("reason", sa.String(10), nullable=False),
    )

    # ==================== ADMIN ====================

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False, index=True),
        sa.Column("action", sa.String(50), nullable=False, index=True),
        sa.Column("resource_type", sa.String(30), nullable=False),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("old_values", postgresql.JSONB),
        sa.Column("new_values", postgresql.JSONB),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(128), nullable=False, index=True),
        sa.Column("notification_type", sa.String(40), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True)),
        sa.Column("is_read", sa.Boolean, default=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("notifications")
    op.drop_table("audit_logs")
    op.drop_table("supplier_views")
    op.drop_table("blocked_dates")
    op.drop_table("booking_payments")
    op.drop_table("bookings")
    op.drop_table("packages")
    op.drop_table("suppliers")
