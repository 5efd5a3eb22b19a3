import asyncio
import os
from datetime import date, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from boda_backend import models  # noqa: F401
from boda_backend.core.immutability import register_immutability_enforcement
from boda_backend.core.security import Actor, create_actor_token
from boda_backend.database import Base, get_db
from boda_backend.models.booking import Booking
from boda_backend.models.supplier import Package, Supplier
from boda_backend.services.transition_service import sync_blocked_date
from boda_backend.utils.booking_number import generate_booking_number

register_immutability_enforcement()

SUPPLIER_USER = "supplier-user-1"
OTHER_SUPPLIER_USER = "supplier-user-2"
CLIENT_USER = "client-user-1"
OTHER_CLIENT_USER = "client-user-2"


def future(days: int = 30) -> date:
    return date.today() + timedelta(days=days)


async def _create_all(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'boda.db'}", poolclass=NullPool)
    asyncio.run(_create_all(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def override_db(session_factory):
    """Point the app's ``get_db`` dependency at the test database."""
    from boda_backend.main import app

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(override_db):
    async with AsyncClient(transport=ASGITransport(app=override_db), base_url="http://test") as ac:
        yield ac


# ==================== ACTORS ====================


@pytest.fixture
def supplier_actor() -> Actor:
    return Actor(user_id=SUPPLIER_USER, role="supplier")


@pytest.fixture
def other_supplier_actor() -> Actor:
    return Actor(user_id=OTHER_SUPPLIER_USER, role="supplier")


@pytest.fixture
def client_actor() -> Actor:
    return Actor(user_id=CLIENT_USER, role="client")


def auth_headers(user_id: str, role: str = "client") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_actor_token(user_id, role)}"}


# ==================== FACTORIES ====================


async def make_supplier(
    db: AsyncSession,
    user_id: str = SUPPLIER_USER,
    category: str | None = "photography",
    account_status: str = "active",
    identity_verified: bool = True,
    accepting_bookings: bool = True,
    business_name: str = "Lente Dourada",
) -> Supplier:
    supplier = Supplier(
        user_id=user_id,
        business_name=business_name,
        category=category,
        account_status=account_status,
        identity_verified=identity_verified,
        accepting_bookings=accepting_bookings,
    )
    db.add(supplier)
    await db.commit()
    return supplier


async def make_package(
    db: AsyncSession,
    supplier: Supplier,
    price: int = 100_000,
    customizations: list[dict] | None = None,
    is_active: bool = True,
    name: str = "Full day",
) -> Package:
    package = Package(
        supplier_id=supplier.id,
        category=supplier.category,
        name=name,
        price=price,
        customizations=customizations or [],
        is_active=is_active,
    )
    db.add(package)
    await db.commit()
    return package


async def make_booking(
    db: AsyncSession,
    supplier: Supplier,
    package: Package,
    client_id: str = CLIENT_USER,
    status: str = "pending",
    event_date: date | None = None,
    paid_amount: int = 0,
    total_price: int | None = None,
) -> Booking:
    """Insert a booking directly in ``status``, with its calendar entry."""
    booking = Booking(
        booking_number=await generate_booking_number(db),
        client_id=client_id,
        supplier_id=supplier.id,
        event_date=event_date or future(),
        event_name="Casamento",
        package_id=package.id,
        package_name=package.name,
        selected_customizations=[],
        total_price=package.price if total_price is None else total_price,
        paid_amount=paid_amount,
        status=status,
        payments=[],
    )
    db.add(booking)
    await db.flush()
    await sync_blocked_date(db, booking)
    await db.commit()
    return booking


@pytest.fixture
async def supplier(db) -> Supplier:
    return await make_supplier(db)


@pytest.fixture
async def package(db, supplier) -> Package:
    return await make_package(
        db, supplier, customizations=[{"name": "Drone", "price": 20_000}]
    )
