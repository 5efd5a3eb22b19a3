"""Tests for the supplier category lock and booking snapshot immutability."""

import pytest

from boda_backend.core.exceptions import AuthorizationError, CategoryLockViolation, PreconditionFailed
from boda_backend.models.supplier import Package
from boda_backend.schemas.supplier import PackageCreate, PackageUpdate, SupplierUpdate
from boda_backend.services.supplier_service import supplier_service

from tests.conftest import make_booking, make_supplier


async def test_category_can_be_set_once(db, supplier_actor):
    supplier = await make_supplier(db, category=None)

    updated = await supplier_service.update_profile(
        db, supplier.id, supplier_actor, SupplierUpdate(category="catering")
    )
    assert updated.category == "catering"

    with pytest.raises(CategoryLockViolation):
        await supplier_service.update_profile(
            db, supplier.id, supplier_actor, SupplierUpdate(category="music")
        )


async def test_same_category_is_not_a_change(db, supplier, supplier_actor):
    updated = await supplier_service.update_profile(
        db, supplier.id, supplier_actor, SupplierUpdate(category="photography", accepting_bookings=False)
    )
    assert updated.category == "photography"
    assert updated.accepting_bookings is False


async def test_direct_category_write_is_rejected(db, supplier):
    supplier.category = "music"

    with pytest.raises(CategoryLockViolation):
        await db.flush()
    await db.rollback()


async def test_package_takes_supplier_category(db, supplier, supplier_actor):
    package = await supplier_service.create_package(
        db,
        supplier.id,
        supplier_actor,
        PackageCreate(name="Essential", price=50_000, customizations=[{"name": "Album", "price": 5_000}]),
    )
    await db.commit()

    assert package.category == "photography"
    assert package.customization_price("Album") == 5_000
    assert package.customization_price("Drone") is None


async def test_package_requires_supplier_category(db, supplier_actor):
    supplier = await make_supplier(db, category=None)

    with pytest.raises(CategoryLockViolation):
        await supplier_service.create_package(
            db, supplier.id, supplier_actor, PackageCreate(name="Essential", price=1)
        )


async def test_mismatched_package_category_is_rejected(db, supplier):
    db.add(Package(supplier_id=supplier.id, category="music", name="DJ set", price=1))

    with pytest.raises(CategoryLockViolation):
        await db.flush()
    await db.rollback()


async def test_package_update_and_deactivate(db, supplier, package, supplier_actor):
    updated = await supplier_service.update_package(
        db, supplier.id, package.id, supplier_actor, PackageUpdate(price=120_000)
    )
    assert updated.price == 120_000

    await supplier_service.deactivate_package(db, supplier.id, package.id, supplier_actor)
    await db.commit()

    assert await supplier_service.list_packages(db, supplier.id) == []
    assert len(await supplier_service.list_packages(db, supplier.id, include_inactive=True)) == 1


async def test_only_owner_edits_packages(db, supplier, package, other_supplier_actor):
    with pytest.raises(AuthorizationError):
        await supplier_service.update_package(
            db, supplier.id, package.id, other_supplier_actor, PackageUpdate(price=1)
        )


async def test_booking_snapshot_is_immutable(db, supplier, package):
    booking = await make_booking(db, supplier, package)
    booking.package_name = "Something else"

    with pytest.raises(PreconditionFailed):
        await db.flush()
    await db.rollback()


def test_eligibility_reasons():
    from boda_backend.domain.supplier_eligibility import evaluate_eligibility

    assert evaluate_eligibility("active", True, True).eligible
    result = evaluate_eligibility("suspended", False, False)
    assert not result.eligible
    assert result.reasons == [
        "Supplier account is suspended",
        "Identity verification pending",
        "Supplier has paused new bookings",
    ]
