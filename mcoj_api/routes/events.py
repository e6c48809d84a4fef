"""
Events diary routes: public listing plus admin create, update, delete and reorder.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from mcoj_api.database import get_db
from mcoj_api.errors import SiteError, UpstreamStoreError
from mcoj_api.schemas import EventCreateRequest, EventReorderRequest, EventResponse, EventUpdateRequest
from mcoj_api.services import events_service
from mcoj_api.utils.jwt_auth import verify_cms_token

logger = logging.getLogger(__name__)

router = APIRouter()


def _event(event) -> dict:
    return EventResponse.model_validate(event).to_api()


@router.get("/events")
async def get_events(db: AsyncSession = Depends(get_db)):
    try:
        events = await events_service.list_events(db)
        return {"success": True, "events": [_event(e) for e in events]}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error fetching events: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to fetch events: {str(e)}")


@router.post("/events", status_code=status.HTTP_201_CREATED)
async def create_event(
    body: EventCreateRequest,
    db: AsyncSession = Depends(get_db),
    token: dict = Depends(verify_cms_token),
):
    try:
        event = await events_service.create_event(db, body.event)
        return {"success": True, "event": _event(event)}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error creating event: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to create event: {str(e)}")


@router.post("/events/reorder")
async def reorder_events(
    body: EventReorderRequest,
    db: AsyncSession = Depends(get_db),
    token: dict = Depends(verify_cms_token),
):
    try:
        events = await events_service.reorder_events(db, body.event_ids)
        return {
            "success": True,
            "message": "Events reordered successfully",
            "events": [_event(e) for e in events],
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error reordering events: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to reorder events: {str(e)}")


@router.put("/events/{event_id}")
async def update_event(
    event_id: str,
    body: EventUpdateRequest,
    db: AsyncSession = Depends(get_db),
    token: dict = Depends(verify_cms_token),
):
    try:
        event = await events_service.update_event(db, event_id, body.event)
        return {"success": True, "event": _event(event)}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error updating event {event_id}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to update event: {str(e)}")


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    db: AsyncSession = Depends(get_db),
    token: dict = Depends(verify_cms_token),
):
    try:
        await events_service.delete_event(db, event_id)
        return {"success": True, "message": "Event deleted successfully"}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error deleting event {event_id}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to delete event: {str(e)}")
