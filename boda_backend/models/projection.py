"""Read-optimized supplier projection."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from boda_backend.database import Base
from boda_backend.models.types import JSONType, utcnow


class SupplierView(Base):
    """Dashboard view of one supplier, rebuilt from the booking store.

    All lists are stored already ordered; readers never re-sort.
    """

    __tablename__ = "supplier_views"

    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("suppliers.id", ondelete="CASCADE"), primary_key=True
    )
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)

    pending_count: Mapped[int] = mapped_column(Integer, default=0)
    confirmed_count: Mapped[int] = mapped_column(Integer, default=0)

    pending_bookings: Mapped[list] = mapped_column(JSONType, default=list)
    confirmed_bookings: Mapped[list] = mapped_column(JSONType, default=list)
    recent_bookings: Mapped[list] = mapped_column(JSONType, default=list)
    upcoming_events: Mapped[list] = mapped_column(JSONType, default=list)
    blocked_dates: Mapped[list] = mapped_column(JSONType, default=list)
    dashboard_stats: Mapped[dict] = mapped_column(JSONType, default=dict)
    account_flags: Mapped[dict] = mapped_column(JSONType, default=dict)

    # Rebuild metadata
    rebuilt_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    source_version: Mapped[str] = mapped_column(String(10), nullable=False)
    reason: Mapped[str] = mapped_column(String(10), nullable=False)  # trigger, backfill, manual
