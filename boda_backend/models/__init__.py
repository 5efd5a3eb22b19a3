"""Database models."""

from boda_backend.models.admin import AuditLog, Notification
from boda_backend.models.booking import BlockedDate, Booking, Payment
from boda_backend.models.projection import SupplierView
from boda_backend.models.supplier import Package, Supplier

__all__ = [
    # Supplier
    "Supplier",
    "Package",
    # Booking
    "Booking",
    "Payment",
    "BlockedDate",
    # Projection
    "SupplierView",
    # Admin
    "AuditLog",
    "Notification",
]
