"""Supplier, package and calendar schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class SupplierCreate(BaseModel):
    """Supplier onboarding for the current user."""

    business_name: str = Field(..., min_length=2, max_length=200)
    category: str | None = Field(None, min_length=2, max_length=60)


class SupplierUpdate(BaseModel):
    """Supplier self-service profile edit."""

    business_name: str | None = Field(None, min_length=2, max_length=200)
    category: str | None = Field(None, min_length=2, max_length=60)
    accepting_bookings: bool | None = None


class SupplierReviewUpdate(BaseModel):
    """Admin review decision."""

    account_status: str = Field(
        ..., pattern="^(pendingReview|active|needsClarification|rejected|suspended)$"
    )
    identity_verified: bool | None = None


class SupplierResponse(BaseModel):
    """Schema for supplier response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: str
    business_name: str
    category: str | None
    account_status: str
    identity_verified: bool
    accepting_bookings: bool
    is_eligible_for_bookings: bool
    created_at: datetime


class EligibilityResponse(BaseModel):
    eligible: bool
    reasons: list[str]


class CustomizationItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    price: int = Field(..., ge=0)
    description: str | None = Field(None, max_length=500)


class PackageCreate(BaseModel):
    """Schema for creating a package.

    The category is not accepted from the caller; it is always the
    supplier's locked category.
    """

    name: str = Field(..., min_length=2, max_length=200)
    description: str | None = Field(None, max_length=5000)
    price: int = Field(..., ge=0)
    duration: str | None = Field(None, max_length=60)
    includes: list[str] = Field(default_factory=list)
    customizations: list[CustomizationItem] = Field(default_factory=list)
    photos: list[HttpUrl] = Field(default_factory=list)


class PackageUpdate(BaseModel):
    name: str | None = Field(None, min_length=2, max_length=200)
    description: str | None = Field(None, max_length=5000)
    price: int | None = Field(None, ge=0)
    duration: str | None = Field(None, max_length=60)
    includes: list[str] | None = None
    customizations: list[CustomizationItem] | None = None
    photos: list[HttpUrl] | None = None
    is_active: bool | None = None


class PackageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    supplier_id: UUID
    category: str
    name: str
    description: str | None
    price: int
    duration: str | None
    includes: list[str]
    customizations: list[CustomizationItem]
    photos: list[str]
    is_active: bool
    created_at: datetime


class BlockedDateCreate(BaseModel):
    date: date
    reason: str | None = Field(None, max_length=500)
    block_type: str = Field(default="blocked", pattern="^(blocked|unavailable)$")


class BlockedDateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    date: date
    reason: str | None
    block_type: str
    booking_id: UUID | None
    can_unblock: bool
