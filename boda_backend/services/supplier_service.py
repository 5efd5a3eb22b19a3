"""Supplier profile, packages and availability calendar."""

import logging
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boda_backend.config import settings
from boda_backend.core.exceptions import (
    AlreadyExists,
    AuthorizationError,
    CategoryLockViolation,
    NotFoundError,
    ValidationError,
)
from boda_backend.core.security import Actor
from boda_backend.domain.availability import assert_can_delete, assert_manual_block_type
from boda_backend.domain.supplier_eligibility import EligibilityResult, evaluate_eligibility
from boda_backend.models.booking import BlockedDate
from boda_backend.models.supplier import Package, Supplier
from boda_backend.schemas.supplier import (
    BlockedDateCreate,
    PackageCreate,
    PackageUpdate,
    SupplierCreate,
    SupplierReviewUpdate,
    SupplierUpdate,
)
from boda_backend.services.audit_service import audit_service
from boda_backend.services.projection_service import projection_service

logger = logging.getLogger(__name__)


class SupplierService:
    """Supplier self-service operations."""

    async def get(self, db: AsyncSession, supplier_id: UUID) -> Supplier:
        supplier = await db.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier", str(supplier_id))
        return supplier

    async def get_owned(self, db: AsyncSession, supplier_id: UUID, actor: Actor) -> Supplier:
        """Supplier owned by ``actor`` (admins pass).

        Raises:
            NotFoundError: supplier does not exist
            AuthorizationError: actor does not own it
        """
        supplier = await self.get(db, supplier_id)
        if supplier.user_id != actor.user_id and not actor.is_admin:
            raise AuthorizationError("Only the owner of this supplier profile can do this")
        return supplier

    # ==================== PROFILE ====================

    async def create_profile(self, db: AsyncSession, actor: Actor, data: SupplierCreate) -> Supplier:
        existing = await db.execute(select(Supplier.id).where(Supplier.user_id == actor.user_id))
        if existing.scalar_one_or_none() is not None:
            raise AlreadyExists("A supplier profile already exists for this user")

        supplier = Supplier(
            user_id=actor.user_id,
            business_name=data.business_name,
            category=data.category,
        )
        db.add(supplier)
        await db.flush()
        logger.info(f"Supplier {supplier.id} registered by {actor.user_id}")
        return supplier

    async def update_profile(
        self, db: AsyncSession, supplier_id: UUID, actor: Actor, data: SupplierUpdate
    ) -> Supplier:
        """Edit name, set the category once, or pause new bookings."""
        supplier = await self.get_owned(db, supplier_id, actor)
        changes = data.model_dump(exclude_unset=True)

        category = changes.pop("category", None)
        if category is not None and category != supplier.category:
            if supplier.category is not None:
                raise CategoryLockViolation(
                    f"Supplier category is locked to '{supplier.category}' and cannot be changed"
                )
            supplier.category = category

        for field, value in changes.items():
            if value is not None:
                setattr(supplier, field, value)

        await db.flush()
        await db.commit()
        await projection_service.sync_supplier_view(db, supplier.id)
        return supplier

    async def review(
        self, db: AsyncSession, supplier_id: UUID, actor: Actor, data: SupplierReviewUpdate
    ) -> Supplier:
        """Admin decision on a supplier registration."""
        if not actor.is_admin:
            raise AuthorizationError("Admin access required")
        supplier = await self.get(db, supplier_id)

        old_values = {
            "account_status": supplier.account_status,
            "identity_verified": supplier.identity_verified,
        }
        supplier.account_status = data.account_status
        if data.identity_verified is not None:
            supplier.identity_verified = data.identity_verified

        await audit_service.log_action(
            db,
            user_id=actor.user_id,
            action="supplier_review",
            resource_type="supplier",
            resource_id=supplier.id,
            old_values=old_values,
            new_values={
                "account_status": supplier.account_status,
                "identity_verified": supplier.identity_verified,
            },
        )
        await db.flush()
        await db.commit()
        await projection_service.sync_supplier_view(db, supplier.id)
        return supplier

    def eligibility(self, supplier: Supplier) -> EligibilityResult:
        return evaluate_eligibility(
            supplier.account_status, supplier.identity_verified, supplier.accepting_bookings
        )

    # ==================== PACKAGES ====================

    async def list_packages(
        self, db: AsyncSession, supplier_id: UUID, include_inactive: bool = False
    ) -> list[Package]:
        query = select(Package).where(Package.supplier_id == supplier_id)
        if not include_inactive:
            query = query.where(Package.is_active.is_(True))
        result = await db.execute(query.order_by(Package.created_at, Package.id))
        return list(result.scalars().all())

    async def create_package(
        self, db: AsyncSession, supplier_id: UUID, actor: Actor, data: PackageCreate
    ) -> Package:
        """New package in the supplier's locked category."""
        supplier = await self.get_owned(db, supplier_id, actor)
        if supplier.category is None:
            raise CategoryLockViolation("Set the supplier category before creating packages")

        payload = data.model_dump(mode="json")
        package = Package(supplier_id=supplier.id, category=supplier.category, **payload)
        db.add(package)
        await db.flush()
        logger.info(f"Package {package.id} created for supplier {supplier.id}")
        return package

    async def _owned_package(
        self, db: AsyncSession, supplier_id: UUID, package_id: UUID, actor: Actor
    ) -> Package:
        await self.get_owned(db, supplier_id, actor)
        package = await db.get(Package, package_id)
        if package is None or package.supplier_id != supplier_id:
            raise NotFoundError("Package", str(package_id))
        return package

    async def update_package(
        self,
        db: AsyncSession,
        supplier_id: UUID,
        package_id: UUID,
        actor: Actor,
        data: PackageUpdate,
    ) -> Package:
        package = await self._owned_package(db, supplier_id, package_id, actor)
        for field, value in data.model_dump(mode="json", exclude_unset=True).items():
            if value is not None:
                setattr(package, field, value)
        await db.flush()
        return package

    async def deactivate_package(
        self, db: AsyncSession, supplier_id: UUID, package_id: UUID, actor: Actor
    ) -> Package:
        """Packages are never deleted; existing bookings keep their snapshot."""
        package = await self._owned_package(db, supplier_id, package_id, actor)
        package.is_active = False
        await db.flush()
        return package

    # ==================== AVAILABILITY ====================

    async def list_blocked_dates(
        self,
        db: AsyncSession,
        supplier_id: UUID,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[BlockedDate]:
        date_from = date_from or date.today()
        date_to = date_to or date_from + timedelta(days=settings.blocked_dates_horizon_days)
        if date_to < date_from:
            raise ValidationError("date_to must not be before date_from")

        result = await db.execute(
            select(BlockedDate)
            .where(
                BlockedDate.supplier_id == supplier_id,
                BlockedDate.date >= date_from,
                BlockedDate.date <= date_to,
            )
            .order_by(BlockedDate.date, BlockedDate.created_at)
        )
        return list(result.scalars().all())

    async def block_date(
        self, db: AsyncSession, supplier_id: UUID, actor: Actor, data: BlockedDateCreate
    ) -> BlockedDate:
        """Manually mark a date as blocked or unavailable."""
        supplier = await self.get_owned(db, supplier_id, actor)
        assert_manual_block_type(data.block_type)
        if data.date < date.today():
            raise ValidationError("Cannot block a date in the past")

        existing = await db.execute(
            select(BlockedDate.id).where(
                BlockedDate.supplier_id == supplier.id,
                BlockedDate.date == data.date,
                BlockedDate.booking_id.is_(None),
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise AlreadyExists("This date is already blocked")

        block = BlockedDate(
            supplier_id=supplier.id,
            date=data.date,
            reason=data.reason,
            block_type=data.block_type,
        )
        db.add(block)
        await db.flush()
        await db.commit()

        await projection_service.sync_supplier_view(db, supplier.id)
        return block

    async def unblock_date(
        self, db: AsyncSession, supplier_id: UUID, block_id: UUID, actor: Actor
    ) -> None:
        """Delete a manual block. Booking-held dates cannot be removed here."""
        supplier = await self.get_owned(db, supplier_id, actor)
        block = await db.get(BlockedDate, block_id)
        if block is None or block.supplier_id != supplier.id:
            raise NotFoundError("Blocked date", str(block_id))
        assert_can_delete(block.block_type)

        await db.delete(block)
        await db.flush()
        await db.commit()

        await projection_service.sync_supplier_view(db, supplier.id)


supplier_service = SupplierService()
