"""Supplier and package database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from boda_backend.database import Base
from boda_backend.domain.supplier_eligibility import is_eligible_for_bookings
from boda_backend.models.types import JSONType, utcnow

if TYPE_CHECKING:
    from boda_backend.models.booking import BlockedDate


class Supplier(Base):
    """Vendor account offering packages."""

    __tablename__ = "suppliers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Locked once set; every package must carry the same category.
    category: Mapped[str | None] = mapped_column(String(60))
    account_status: Mapped[str] = mapped_column(
        String(30), default="pendingReview", index=True
    )  # pendingReview, active, needsClarification, rejected, suspended
    identity_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    accepting_bookings: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    packages: Mapped[list["Package"]] = relationship(
        "Package", back_populates="supplier", cascade="all, delete-orphan"
    )
    blocked_dates: Mapped[list["BlockedDate"]] = relationship(
        "BlockedDate", back_populates="supplier", cascade="all, delete-orphan"
    )

    @property
    def is_eligible_for_bookings(self) -> bool:
        """Active account with completed verification."""
        return is_eligible_for_bookings(self.account_status, self.identity_verified)


class Package(Base):
    """A supplier's offering."""

    __tablename__ = "packages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category: Mapped[str] = mapped_column(String(60), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    price: Mapped[int] = mapped_column(Integer, nullable=False)  # smallest currency unit
    duration: Mapped[str | None] = mapped_column(String(60))
    includes: Mapped[list] = mapped_column(JSONType, default=list)
    customizations: Mapped[list] = mapped_column(JSONType, default=list)  # [{name, price, description?}]
    photos: Mapped[list] = mapped_column(JSONType, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    supplier: Mapped["Supplier"] = relationship("Supplier", back_populates="packages")

    def customization_price(self, name: str) -> int | None:
        for item in self.customizations or []:
            if item.get("name") == name:
                return int(item.get("price", 0))
        return None
