"""Booking notifications.

In-app rows are added inside the caller's transaction so they commit or roll
back with the booking change. Pushes go out through an HTTP gateway only after
commit, and a failed push never fails the request.
"""

import logging
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from boda_backend.config import settings
from boda_backend.models.admin import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    BOOKING_REQUEST = "booking_request"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_STARTED = "booking_started"
    BOOKING_COMPLETED = "booking_completed"
    BOOKING_CANCELLED = "booking_cancelled"
    PAYMENT_RECEIVED = "payment_received"

    # action -> (type, title, body template) sent to the client
    ACTION_MESSAGES = {
        "confirm": (BOOKING_CONFIRMED, "Booking confirmed", "Your booking {number} was confirmed by the supplier."),
        "reject": (BOOKING_REJECTED, "Booking declined", "Your booking {number} was declined: {reason}"),
        "start": (BOOKING_STARTED, "Service started", "The service for booking {number} has started."),
        "complete": (BOOKING_COMPLETED, "Service completed", "Booking {number} is complete. Leave a review!"),
        "cancel": (BOOKING_CANCELLED, "Booking cancelled", "Your booking {number} was cancelled: {reason}"),
    }

    def __init__(self) -> None:
        self._client: httpx.AsyncClient | None = None

    def _gateway(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {}
            if settings.push_gateway_token:
                headers["Authorization"] = f"Bearer {settings.push_gateway_token}"
            self._client = httpx.AsyncClient(timeout=10.0, headers=headers)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def create_notification(
        self,
        db: AsyncSession,
        user_id: str,
        title: str,
        body: str,
        notification_type: str,
        booking_id: UUID | None = None,
    ) -> Notification:
        """Stage an in-app notification in ``db``; flushed, not committed."""
        notification = Notification(
            user_id=user_id,
            title=title,
            body=body,
            notification_type=notification_type,
            booking_id=booking_id,
        )
        db.add(notification)
        await db.flush()
        return notification

    async def notify_booking_action(
        self,
        db: AsyncSession,
        action: str,
        client_id: str,
        booking_id: UUID,
        booking_number: str,
        reason: str | None = None,
    ) -> Notification | None:
        message = self.ACTION_MESSAGES.get(action)
        if message is None:
            return None
        notification_type, title, template = message
        return await self.create_notification(
            db,
            user_id=client_id,
            title=title,
            body=template.format(number=booking_number, reason=reason or ""),
            notification_type=notification_type,
            booking_id=booking_id,
        )

    async def push_notification(self, notification: Notification) -> bool:
        """Deliver a stored notification as a push. Returns whether the gateway accepted it."""
        if not settings.push_gateway_url:
            return False

        data: dict[str, Any] = {"type": notification.notification_type}
        if notification.booking_id:
            data["booking_id"] = str(notification.booking_id)
        payload = {
            "user_id": notification.user_id,
            "notification": {"title": notification.title, "body": notification.body},
            "data": data,
        }

        try:
            response = await self._gateway().post(settings.push_gateway_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"push_rejected user={notification.user_id} type={notification.notification_type} "
                f"status={e.response.status_code}"
            )
            return False
        except httpx.HTTPError as e:
            logger.warning(f"push_failed user={notification.user_id}: {e}")
            return False
        return True


notification_service = NotificationService()
