"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from boda_backend.api.v1 import bookings, suppliers

api_router = APIRouter()

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Suppliers (profile, packages, calendar, dashboard view)
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["Suppliers"])
