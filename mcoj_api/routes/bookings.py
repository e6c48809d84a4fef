"""
Booking request routes.
The public booking form posts to /booking; the back-office manages requests
under /admin/bookings.
"""
from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from mcoj_api.database import get_db
from mcoj_api.errors import SiteError, UpstreamStoreError, ValidationError
from mcoj_api.schemas import BookingCreate, BookingResponse, BookingStatusUpdate
from mcoj_api.services import booking_service
from mcoj_api.utils.jwt_auth import verify_cms_token

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/booking", status_code=status.HTTP_201_CREATED)
async def submit_booking(body: BookingCreate, db: AsyncSession = Depends(get_db)):
    try:
        booking = await booking_service.create_booking(db, body)
        return {
            "success": True,
            "message": "Booking request submitted successfully",
            "bookingId": booking.id,
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error saving booking request: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to submit booking request: {str(e)}")


@router.get("/admin/bookings")
async def list_booking_requests(
    status_filter: Optional[str] = Query(None, alias="status", description="Comma separated statuses"),
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    token: dict = Depends(verify_cms_token),
):
    statuses = [s.strip() for s in status_filter.split(",") if s.strip()] if status_filter else None

    try:
        bookings = await booking_service.list_bookings(
            db, statuses=statuses, from_date=from_date, to_date=to_date, limit=limit, offset=offset
        )
        return {
            "success": True,
            "bookings": [BookingResponse.model_validate(b).model_dump(mode="json") for b in bookings],
            "count": len(bookings),
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error fetching booking requests: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to fetch booking requests: {str(e)}")


@router.patch("/admin/bookings")
async def update_booking_status(
    body: BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    token: dict = Depends(verify_cms_token),
):
    try:
        booking = await booking_service.update_status(db, body.id, body.status)
        return {
            "success": True,
            "booking": BookingResponse.model_validate(booking).model_dump(mode="json"),
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error updating booking request {body.id}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to update booking request: {str(e)}")


@router.delete("/admin/bookings")
async def delete_booking_request(
    booking_id: Optional[str] = Query(None, alias="id"),
    db: AsyncSession = Depends(get_db),
    token: dict = Depends(verify_cms_token),
):
    if not booking_id:
        raise ValidationError("Booking ID is required")

    try:
        await booking_service.delete_booking(db, booking_id)
        return {"success": True, "message": "Booking request deleted successfully"}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error deleting booking request {booking_id}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to delete booking request: {str(e)}")
