"""Booking number generation."""

import random
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

BOOKING_NUMBER_PREFIX = "BK"


def _random_part(length: int = 6) -> str:
    chars = string.ascii_uppercase + string.digits
    return "".join(random.choices(chars, k=length))


async def generate_booking_number(db: AsyncSession) -> str:
    """Generate a unique booking number in format BK-XXXXXX.

    Args:
        db: Database session for uniqueness check

    Returns:
        str: Unique booking number like 'BK-A3B7K9'
    """
    from boda_backend.models.booking import Booking

    while True:
        booking_number = f"{BOOKING_NUMBER_PREFIX}-{_random_part()}"

        result = await db.execute(
            select(Booking.id).where(Booking.booking_number == booking_number)
        )
        if result.scalar_one_or_none() is None:
            return booking_number
