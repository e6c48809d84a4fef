"""
SQLAlchemy models for the application.
All database models inherit from Base (declarative base).
"""
import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Text
from sqlalchemy.sql import func
from mcoj_api.database import Base


def generate_id() -> str:
    return uuid.uuid4().hex


class GalleryImage(Base):
    """
    Gallery image model.

    An active image holds one of the fixed gallery slots in
    placeholder_position; an archived image has no position. The unique
    constraint on placeholder_position keeps one image per slot even when two
    requests race (NULLs are distinct, so any number of archived rows fit).
    """
    __tablename__ = "gallery"

    id = Column(String, primary_key=True)
    filename = Column(String, nullable=False)
    src = Column(String, nullable=False, unique=True)
    blob_key = Column(String, nullable=True)
    alt = Column(String, nullable=False, default="")
    placeholder_position = Column(Integer, nullable=True, unique=True)
    is_archived = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class Event(Base):
    """Performance listed in the events diary. position is a sort key only."""
    __tablename__ = "events"

    id = Column(String, primary_key=True, default=generate_id)
    date = Column(String, nullable=False)
    venue = Column(String, nullable=False)
    event_name = Column(String, nullable=False)
    address = Column(String, nullable=True)
    postcode = Column(String, nullable=True)
    time_start = Column(String, nullable=True)
    time_end = Column(String, nullable=True)
    ticket_link = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0, index=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class BookingRequest(Base):
    """Booking enquiry submitted through the public booking form."""
    __tablename__ = "booking_requests"

    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    venue = Column(String, nullable=False)
    event_date = Column(Date, nullable=False, index=True)
    event_time = Column(String, nullable=True)
    event_type = Column(String, nullable=True)
    additional_info = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="new", index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class GalleryVideo(Base):
    """Video shown in the video gallery. order_index is a plain sort key."""
    __tablename__ = "videos"

    id = Column(String, primary_key=True, default=generate_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    src = Column(String, nullable=False)
    thumbnail_src = Column(String, nullable=False)
    video_key = Column(String, nullable=True)
    thumbnail_key = Column(String, nullable=True)
    auto_thumbnail = Column(Boolean, nullable=False, default=False)
    is_archived = Column(Boolean, nullable=False, default=False, index=True)
    order_index = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
