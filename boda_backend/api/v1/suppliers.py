"""Supplier profile, packages, calendar and dashboard view endpoints."""

import asyncio
import logging
from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boda_backend.api.deps import (
    get_current_actor,
    get_current_admin,
    get_current_supplier_actor,
    get_db,
    get_websocket_actor,
)
from boda_backend.core.exceptions import AppException, NotFoundError
from boda_backend.core.security import Actor
from boda_backend.domain.availability import can_unblock
from boda_backend.models.booking import BlockedDate
from boda_backend.models.supplier import Supplier
from boda_backend.schemas.projection import SupplierViewResponse
from boda_backend.schemas.supplier import (
    BlockedDateCreate,
    BlockedDateResponse,
    EligibilityResponse,
    PackageCreate,
    PackageResponse,
    PackageUpdate,
    SupplierCreate,
    SupplierResponse,
    SupplierReviewUpdate,
    SupplierUpdate,
)
from boda_backend.services.projection_service import projection_broadcaster, projection_service
from boda_backend.services.supplier_service import supplier_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _blocked_date_response(block: BlockedDate) -> BlockedDateResponse:
    return BlockedDateResponse(
        id=block.id,
        date=block.date,
        reason=block.reason,
        block_type=block.block_type,
        booking_id=block.booking_id,
        can_unblock=can_unblock(block.block_type),
    )


# ==================== PROFILE ====================


@router.post("", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    supplier_data: SupplierCreate,
    actor: Annotated[Actor, Depends(get_current_supplier_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Supplier:
    """Register a supplier profile for the current user."""
    return await supplier_service.create_profile(db, actor, supplier_data)


@router.get("/me", response_model=SupplierResponse)
async def get_my_supplier(
    actor: Annotated[Actor, Depends(get_current_supplier_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Supplier:
    """Supplier profile owned by the current user."""
    result = await db.execute(select(Supplier).where(Supplier.user_id == actor.user_id))
    supplier = result.scalar_one_or_none()
    if supplier is None:
        raise NotFoundError("Supplier profile")
    return supplier


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Supplier:
    """Public supplier profile."""
    return await supplier_service.get(db, supplier_id)


@router.patch("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: UUID,
    supplier_data: SupplierUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Supplier:
    """Edit the profile; the category can be set only once."""
    return await supplier_service.update_profile(db, supplier_id, actor, supplier_data)


@router.patch("/{supplier_id}/review", response_model=SupplierResponse)
async def review_supplier(
    supplier_id: UUID,
    review_data: SupplierReviewUpdate,
    actor: Annotated[Actor, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Supplier:
    """Set account status and verification (admin only)."""
    return await supplier_service.review(db, supplier_id, actor, review_data)


@router.get("/{supplier_id}/eligibility", response_model=EligibilityResponse)
async def get_eligibility(
    supplier_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EligibilityResponse:
    """Whether the supplier can take new bookings, and why not."""
    supplier = await supplier_service.get(db, supplier_id)
    result = supplier_service.eligibility(supplier)
    return EligibilityResponse(eligible=result.eligible, reasons=result.reasons)


# ==================== PACKAGES ====================


@router.get("/{supplier_id}/packages", response_model=list[PackageResponse])
async def list_packages(
    supplier_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list:
    """Active packages of a supplier."""
    return await supplier_service.list_packages(db, supplier_id)


@router.post(
    "/{supplier_id}/packages",
    response_model=PackageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_package(
    supplier_id: UUID,
    package_data: PackageCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a package in the supplier's category."""
    return await supplier_service.create_package(db, supplier_id, actor, package_data)


@router.patch("/{supplier_id}/packages/{package_id}", response_model=PackageResponse)
async def update_package(
    supplier_id: UUID,
    package_id: UUID,
    package_data: PackageUpdate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await supplier_service.update_package(db, supplier_id, package_id, actor, package_data)


@router.delete("/{supplier_id}/packages/{package_id}", response_model=PackageResponse)
async def deactivate_package(
    supplier_id: UUID,
    package_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Deactivate a package; bookings keep their snapshot."""
    return await supplier_service.deactivate_package(db, supplier_id, package_id, actor)


# ==================== AVAILABILITY ====================


@router.get("/{supplier_id}/blocked-dates", response_model=list[BlockedDateResponse])
async def list_blocked_dates(
    supplier_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
) -> list[BlockedDateResponse]:
    """Calendar entries of the supplier, each marked with whether it can be removed."""
    await supplier_service.get_owned(db, supplier_id, actor)
    blocks = await supplier_service.list_blocked_dates(db, supplier_id, date_from, date_to)
    return [_blocked_date_response(b) for b in blocks]


@router.post(
    "/{supplier_id}/blocked-dates",
    response_model=BlockedDateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def block_date(
    supplier_id: UUID,
    block_data: BlockedDateCreate,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BlockedDateResponse:
    block = await supplier_service.block_date(db, supplier_id, actor, block_data)
    return _blocked_date_response(block)


@router.delete("/{supplier_id}/blocked-dates/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_date(
    supplier_id: UUID,
    block_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Remove a manual block. Dates held by bookings are rejected."""
    await supplier_service.unblock_date(db, supplier_id, block_id, actor)


# ==================== DASHBOARD VIEW ====================


@router.get("/{supplier_id}/view", response_model=SupplierViewResponse)
async def get_supplier_view(
    supplier_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Point read of the supplier dashboard view."""
    await supplier_service.get_owned(db, supplier_id, actor)
    view = await projection_service.get_view(db, supplier_id)
    if view is None:
        raise NotFoundError("Supplier", str(supplier_id))
    return view


@router.post("/{supplier_id}/view/rebuild", response_model=SupplierViewResponse)
async def rebuild_supplier_view(
    supplier_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Force a rebuild of the view from the booking store."""
    await supplier_service.get_owned(db, supplier_id, actor)
    view = await projection_service.rebuild_supplier_view(db, supplier_id, reason="manual")
    if view is None:
        raise NotFoundError("Supplier", str(supplier_id))
    await db.commit()
    projection_broadcaster.publish(supplier_id, projection_service.to_payload(view))
    return view


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/{supplier_id}/view/stream")
async def stream_supplier_view(
    websocket: WebSocket,
    supplier_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Live supplier view: the current snapshot, then every rebuild."""
    try:
        actor = get_websocket_actor(websocket)
        await supplier_service.get_owned(db, supplier_id, actor)
        view = await projection_service.get_view(db, supplier_id)
        await db.commit()
    except AppException as e:
        logger.info(f"Supplier view stream refused for {supplier_id}: {e.code}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.code)
        return

    await websocket.accept()
    queue = projection_broadcaster.subscribe(supplier_id)
    disconnect = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        if view is not None:
            await websocket.send_json(projection_service.to_payload(view))

        while True:
            next_view = asyncio.create_task(queue.get())
            done, _ = await asyncio.wait(
                {next_view, disconnect}, return_when=asyncio.FIRST_COMPLETED
            )
            if disconnect in done:
                next_view.cancel()
                break
            await websocket.send_json(next_view.result())
    except WebSocketDisconnect:
        pass
    finally:
        disconnect.cancel()
        projection_broadcaster.unsubscribe(supplier_id, queue)
        logger.info(f"Supplier view stream closed for {supplier_id}")
