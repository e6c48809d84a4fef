"""
Booking request persistence.
Status changes are unconstrained: any allowed status can follow any other.
"""
from datetime import date
from typing import List, Optional, Sequence
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mcoj_api.errors import NotFoundError, ValidationError
from mcoj_api.models import BookingRequest
from mcoj_api.schemas import BOOKING_STATUSES, BookingCreate

logger = logging.getLogger(__name__)


async def create_booking(db: AsyncSession, data: BookingCreate) -> BookingRequest:
    booking = BookingRequest(
        name=data.name.strip(),
        email=str(data.email),
        phone=data.phone or None,
        venue=data.venue.strip(),
        event_date=data.date,
        event_time=data.time or None,
        event_type=data.event_type or None,
        additional_info=data.message or None,
        status="new",
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)

    logger.info(f"Booking request {booking.id} received for {booking.event_date}")
    return booking


async def list_bookings(
    db: AsyncSession,
    statuses: Optional[Sequence[str]] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> List[BookingRequest]:
    """Booking requests, most recent event date first, with optional filters."""
    query = select(BookingRequest)

    if statuses:
        unknown = [s for s in statuses if s not in BOOKING_STATUSES]
        if unknown:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(BOOKING_STATUSES)}")
        query = query.where(BookingRequest.status.in_(statuses))
    if from_date:
        query = query.where(BookingRequest.event_date >= from_date)
    if to_date:
        query = query.where(BookingRequest.event_date <= to_date)

    query = query.order_by(BookingRequest.event_date.desc(), BookingRequest.created_at.desc())

    if offset:
        query = query.offset(offset)
        # A bare offset pages through ten at a time
        query = query.limit(limit or 10)
    elif limit:
        query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_booking(db: AsyncSession, booking_id: str) -> BookingRequest:
    result = await db.execute(select(BookingRequest).where(BookingRequest.id == booking_id))
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFoundError(f"Booking request {booking_id} not found")
    return booking


async def update_status(db: AsyncSession, booking_id: str, status: str) -> BookingRequest:
    if status not in BOOKING_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(BOOKING_STATUSES)}")

    booking = await get_booking(db, booking_id)
    booking.status = status
    await db.commit()
    await db.refresh(booking)

    logger.info(f"Booking request {booking_id} set to {status}")
    return booking


async def delete_booking(db: AsyncSession, booking_id: str) -> None:
    booking = await get_booking(db, booking_id)
    await db.delete(booking)
    await db.commit()
    logger.info(f"Deleted booking request {booking_id}")
