"""
Pydantic schemas for request and response data validation.
Field aliases keep the camelCase names the site frontend already speaks.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import date, datetime
from typing import Any, List, Literal, Optional


BOOKING_STATUSES = ("new", "contacted", "booked", "declined", "canceled")
BookingStatus = Literal["new", "contacted", "booked", "declined", "canceled"]


class GalleryImageResponse(BaseModel):
    """
    Gallery image as returned by the gallery endpoints.
    placeholderPosition is omitted for archived images.
    """
    id: str
    src: str
    alt: str
    placeholder_position: Optional[int] = Field(default=None, serialization_alias="placeholderPosition")
    is_archived: bool = Field(default=False, serialization_alias="isArchived")

    model_config = ConfigDict(from_attributes=True)

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class GalleryActionRequest(BaseModel):
    """Body of POST /api/gallery. Position is checked by the slot validator."""
    action: str
    position: Any = None


class GalleryRestoreRequest(BaseModel):
    archived_file: str = Field(alias="archivedFile")
    placeholder_position: Any = Field(alias="placeholderPosition")

    model_config = ConfigDict(populate_by_name=True)


class OrphanCleanupRequest(BaseModel):
    files_to_delete: List[str] = Field(alias="filesToDelete")

    model_config = ConfigDict(populate_by_name=True)


class EventFields(BaseModel):
    """Writable event fields; every field optional so partial updates validate."""
    date: Optional[str] = None
    venue: Optional[str] = None
    event_name: Optional[str] = Field(default=None, alias="eventName")
    address: Optional[str] = None
    postcode: Optional[str] = None
    time_start: Optional[str] = Field(default=None, alias="timeStart")
    time_end: Optional[str] = Field(default=None, alias="timeEnd")
    ticket_link: Optional[str] = Field(default=None, alias="ticketLink")
    position: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)


class EventCreate(EventFields):
    date: str
    venue: str
    event_name: str = Field(alias="eventName")


class EventCreateRequest(BaseModel):
    event: EventCreate


class EventUpdateRequest(BaseModel):
    event: EventFields


class EventReorderRequest(BaseModel):
    event_ids: List[str] = Field(alias="eventIds")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("event_ids")
    @classmethod
    def validate_unique_ids(cls, v):
        if len(v) != len(set(v)):
            raise ValueError("Duplicate event IDs are not allowed")
        return v


class EventResponse(BaseModel):
    id: str
    date: str
    venue: str
    event_name: str = Field(serialization_alias="eventName")
    address: Optional[str] = None
    postcode: Optional[str] = None
    time_start: Optional[str] = Field(default=None, serialization_alias="timeStart")
    time_end: Optional[str] = Field(default=None, serialization_alias="timeEnd")
    ticket_link: Optional[str] = Field(default=None, serialization_alias="ticketLink")
    position: int

    model_config = ConfigDict(from_attributes=True)

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True)


class BookingCreate(BaseModel):
    """Public booking form submission."""
    name: str = Field(min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    venue: str = Field(min_length=1)
    date: date
    time: Optional[str] = None
    event_type: Optional[str] = Field(default=None, alias="eventType")
    message: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class BookingStatusUpdate(BaseModel):
    id: str
    status: BookingStatus


class BookingResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    venue: str
    event_date: date
    event_time: Optional[str] = None
    event_type: Optional[str] = None
    additional_info: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VideoResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    src: str
    thumbnail_src: str = Field(serialization_alias="thumbnailSrc")
    auto_thumbnail: bool = Field(default=False, serialization_alias="autoThumbnail")
    is_archived: bool = False
    order_index: int = 0

    model_config = ConfigDict(from_attributes=True)

    def to_api(self) -> dict:
        return self.model_dump(by_alias=True)


class VideoUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    is_archived: Optional[bool] = None
    order_index: Optional[int] = None


class VideoReorderRequest(BaseModel):
    video_ids: List[str] = Field(alias="videoIds")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("video_ids")
    @classmethod
    def validate_unique_ids(cls, v):
        if len(v) != len(set(v)):
            raise ValueError("Duplicate video IDs are not allowed")
        return v


class VideoCleanupRequest(BaseModel):
    orphaned_videos: List[str] = Field(default_factory=list, alias="orphanedVideos")
    orphaned_thumbnails: List[str] = Field(default_factory=list, alias="orphanedThumbnails")

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseModel):
    password: str
