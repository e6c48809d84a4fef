"""
Events diary persistence.
"""
from typing import List
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mcoj_api.errors import NotFoundError
from mcoj_api.models import Event
from mcoj_api.schemas import EventCreate, EventFields

logger = logging.getLogger(__name__)


async def list_events(db: AsyncSession) -> List[Event]:
    result = await db.execute(select(Event).order_by(Event.position.asc(), Event.date.asc()))
    return list(result.scalars().all())


async def next_position(db: AsyncSession) -> int:
    result = await db.execute(select(func.max(Event.position)))
    return (result.scalar() or 0) + 1


async def get_event(db: AsyncSession, event_id: str) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()
    if event is None:
        raise NotFoundError("Event not found")
    return event


async def create_event(db: AsyncSession, data: EventCreate) -> Event:
    """Add an event; without an explicit position it goes after the last one."""
    values = data.model_dump()
    if not values.get("position"):
        values["position"] = await next_position(db)

    event = Event(**values)
    db.add(event)
    await db.commit()

    logger.info(f"Created event {event.id} ({event.event_name}) at position {event.position}")
    return event


async def update_event(db: AsyncSession, event_id: str, data: EventFields) -> Event:
    event = await get_event(db, event_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(event, field, value)
    await db.commit()

    logger.info(f"Updated event {event_id}")
    return event


async def delete_event(db: AsyncSession, event_id: str) -> None:
    event = await get_event(db, event_id)
    await db.delete(event)
    await db.commit()
    logger.info(f"Deleted event {event_id}")


async def reorder_events(db: AsyncSession, event_ids: List[str]) -> List[Event]:
    """
    Put the listed events first, in the given order, followed by the rest in
    their current relative order. Positions are renumbered from 1.
    Unknown IDs are ignored.
    """
    events = await list_events(db)
    by_id = {event.id: event for event in events}

    ordered = [by_id[event_id] for event_id in event_ids if event_id in by_id]
    listed = {event.id for event in ordered}
    ordered.extend(event for event in events if event.id not in listed)

    for position, event in enumerate(ordered, start=1):
        event.position = position
    await db.commit()

    logger.info(f"Reordered {len(listed)} events")
    return ordered
