"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from datetime import date as date_type
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from boda_backend.database import Base
from boda_backend.models.types import JSONType, utcnow

if TYPE_CHECKING:
    from boda_backend.models.supplier import Supplier


class Booking(Base):
    """A client's purchase of a supplier package for an event."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )  # BK-XXXXXX

    # Parties (immutable after creation)
    client_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("suppliers.id"), nullable=False, index=True
    )

    # Event
    event_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    event_name: Mapped[str | None] = mapped_column(String(200))
    event_location: Mapped[str | None] = mapped_column(String(300))
    event_type: Mapped[str | None] = mapped_column(String(60))
    event_time: Mapped[str | None] = mapped_column(String(5))  # HH:MM
    guest_count: Mapped[int | None] = mapped_column(Integer)

    # Package snapshot as purchased (immutable after creation)
    package_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    package_name: Mapped[str] = mapped_column(String(200), nullable=False)
    selected_customizations: Mapped[list] = mapped_column(JSONType, default=list)

    # Money (smallest currency unit)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    paid_amount: Mapped[int] = mapped_column(Integer, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="AOA")

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="pending", index=True
    )  # pending, confirmed, inProgress, completed, cancelled, disputed, refunded

    # Who moved the booking, and when
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    confirmed_by: Mapped[str | None] = mapped_column(String(128))
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    started_by: Mapped[str | None] = mapped_column(String(128))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_by: Mapped[str | None] = mapped_column(String(128))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_by: Mapped[str | None] = mapped_column(String(128))
    cancelled_by_role: Mapped[str | None] = mapped_column(String(10))  # client, supplier, admin
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Notes
    notes: Mapped[str | None] = mapped_column(Text)
    client_notes: Mapped[str | None] = mapped_column(Text)
    supplier_notes: Mapped[str | None] = mapped_column(Text)

    # Client list visibility; finished bookings only
    hidden_by_client: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    hidden_by_client_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Optimistic concurrency
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    payments: Mapped[list["Payment"]] = relationship(
        "Payment", back_populates="booking", order_by="Payment.paid_at"
    )

    __mapper_args__ = {"version_id_col": version}


class Payment(Base):
    """A payment received for a booking."""

    __tablename__ = "booking_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, index=True
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    method: Mapped[str] = mapped_column(String(30), nullable=False)  # card, transfer, reference, cash
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Arrived after the booking was cancelled/refunded; left for manual handling.
    requires_reconciliation: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    recorded_by: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    # Relationships
    booking: Mapped["Booking"] = relationship("Booking", back_populates="payments")


class BlockedDate(Base):
    """Supplier calendar entry marking a date as unavailable."""

    __tablename__ = "blocked_dates"
    __table_args__ = (UniqueConstraint("booking_id", name="uq_blocked_dates_booking_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    reason: Mapped[str | None] = mapped_column(Text)
    block_type: Mapped[str] = mapped_column(
        String(20), default="blocked"
    )  # blocked, unavailable (manual); reserved, requested (booking-derived)
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="CASCADE")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    supplier: Mapped["Supplier"] = relationship("Supplier", back_populates="blocked_dates")
