"""
Video gallery persistence.
Videos have the same active/archived split as gallery images but no slot
limit; order_index is only a sort key.
"""
from pathlib import Path
from typing import List, Optional, Tuple
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mcoj_api.errors import NotFoundError, UpstreamStoreError, ValidationError
from mcoj_api.models import GalleryVideo, generate_id
from mcoj_api.schemas import VideoUpdate
from mcoj_api.services.storage import BlobStore

logger = logging.getLogger(__name__)

VIDEO_BUCKET = "videos"
THUMBNAIL_BUCKET = "thumbnails"
PLACEHOLDER_THUMBNAIL = "/videos/thumbnails/placeholder.svg"


def _extension(filename: Optional[str], default: str) -> str:
    suffix = Path(filename or "").suffix.lstrip(".").lower()
    return suffix if suffix.isalnum() else default


async def list_videos(db: AsyncSession, include_archived: bool = False) -> List[GalleryVideo]:
    query = select(GalleryVideo)
    if not include_archived:
        query = query.where(GalleryVideo.is_archived.is_(False))
    result = await db.execute(query.order_by(GalleryVideo.order_index.asc(), GalleryVideo.created_at.asc()))
    return list(result.scalars().all())


async def get_video(db: AsyncSession, video_id: str) -> GalleryVideo:
    result = await db.execute(select(GalleryVideo).where(GalleryVideo.id == video_id))
    video = result.scalar_one_or_none()
    if video is None:
        raise NotFoundError(f"Video {video_id} not found")
    return video


async def create_video(
    db: AsyncSession,
    blobs: BlobStore,
    title: str,
    description: Optional[str],
    video: Tuple[bytes, Optional[str], Optional[str]],
    thumbnail: Optional[Tuple[bytes, Optional[str], Optional[str]]] = None,
    auto_thumbnail: bool = False,
) -> GalleryVideo:
    """
    Store a video and its thumbnail, then record it at the end of the list.

    video and thumbnail are (content, filename, content_type) tuples. Without
    a thumbnail the placeholder image is used.
    """
    if not title or not title.strip():
        raise ValidationError("Title and video file are required")

    video_bytes, video_name, video_type = video
    if not video_bytes:
        raise ValidationError("Title and video file are required")
    if video_type and not video_type.startswith("video/"):
        raise ValidationError(f"File '{video_name}' is not a valid video file")

    thumb_bytes, thumb_name, thumb_type = thumbnail if thumbnail and thumbnail[0] else (None, None, None)
    if thumb_bytes and thumb_type and not thumb_type.startswith("image/"):
        raise ValidationError(f"File '{thumb_name}' is not a valid image file")

    video_id = generate_id()
    video_key = f"{video_id}.{_extension(video_name, 'mp4')}"
    thumbnail_key = None
    thumbnail_src = PLACEHOLDER_THUMBNAIL
    uploaded = []
    try:
        src = await blobs.upload(VIDEO_BUCKET, video_key, video_bytes, video_type)
        uploaded.append((VIDEO_BUCKET, video_key))

        if thumb_bytes:
            thumbnail_key = f"{video_id}-thumb.{_extension(thumb_name, 'jpg')}"
            thumbnail_src = await blobs.upload(THUMBNAIL_BUCKET, thumbnail_key, thumb_bytes, thumb_type)
            uploaded.append((THUMBNAIL_BUCKET, thumbnail_key))

        max_order = (await db.execute(select(func.max(GalleryVideo.order_index)))).scalar()
        record = GalleryVideo(
            id=video_id,
            title=title.strip(),
            description=(description or "").strip(),
            src=src,
            thumbnail_src=thumbnail_src,
            video_key=video_key,
            thumbnail_key=thumbnail_key,
            auto_thumbnail=auto_thumbnail,
            is_archived=False,
            order_index=(max_order or 0) + 1,
        )
        db.add(record)
        await db.commit()
    except Exception:
        await db.rollback()
        for bucket, key in uploaded:
            await blobs.discard(bucket, key)
        raise

    logger.info(f"Video {video_id} uploaded: {record.title}")
    return record


async def update_video(db: AsyncSession, video_id: str, data: VideoUpdate) -> GalleryVideo:
    video = await get_video(db, video_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(video, field, value.strip() if isinstance(value, str) else value)
    await db.commit()

    logger.info(f"Updated video {video_id}")
    return video


async def reorder_videos(db: AsyncSession, video_ids: List[str]) -> List[GalleryVideo]:
    """Listed videos first in the given order, the rest after; order_index renumbered from 1."""
    videos = await list_videos(db, include_archived=True)
    by_id = {video.id: video for video in videos}

    ordered = [by_id[video_id] for video_id in video_ids if video_id in by_id]
    listed = {video.id for video in ordered}
    ordered.extend(video for video in videos if video.id not in listed)

    for index, video in enumerate(ordered, start=1):
        video.order_index = index
    await db.commit()
    return ordered


async def delete_video(db: AsyncSession, blobs: BlobStore, video_id: str) -> None:
    """Delete a video row together with its video and thumbnail blobs."""
    video = await get_video(db, video_id)

    if video.video_key:
        await blobs.delete(VIDEO_BUCKET, video.video_key)
    if video.thumbnail_key:
        await blobs.delete(THUMBNAIL_BUCKET, video.thumbnail_key)

    await db.delete(video)
    await db.commit()
    logger.info(f"Deleted video {video_id}")


async def find_orphaned_video_blobs(db: AsyncSession, blobs: BlobStore) -> dict:
    """Video and thumbnail blobs no video row references."""
    rows = (await db.execute(select(GalleryVideo.video_key, GalleryVideo.thumbnail_key))).all()
    orphaned_videos = await blobs.unreferenced(VIDEO_BUCKET, [row.video_key for row in rows])
    orphaned_thumbnails = await blobs.unreferenced(THUMBNAIL_BUCKET, [row.thumbnail_key for row in rows])
    return {
        "orphanedVideos": orphaned_videos,
        "orphanedThumbnails": orphaned_thumbnails,
        "totalOrphaned": len(orphaned_videos) + len(orphaned_thumbnails),
    }


async def cleanup_orphaned_video_blobs(
    db: AsyncSession,
    blobs: BlobStore,
    video_names: List[str],
    thumbnail_names: List[str],
) -> dict:
    orphans = await find_orphaned_video_blobs(db, blobs)
    orphaned = {
        VIDEO_BUCKET: {obj["id"] for obj in orphans["orphanedVideos"]},
        THUMBNAIL_BUCKET: {obj["id"] for obj in orphans["orphanedThumbnails"]},
    }

    deleted = {VIDEO_BUCKET: [], THUMBNAIL_BUCKET: []}
    errors = []
    for bucket, names in ((VIDEO_BUCKET, video_names), (THUMBNAIL_BUCKET, thumbnail_names)):
        for name in names:
            if blobs.object_id(bucket, name) not in orphaned[bucket]:
                errors.append(f"Error deleting {bucket} file {name}: still referenced or missing")
                continue
            try:
                await blobs.delete(bucket, name)
                deleted[bucket].append(name)
            except (UpstreamStoreError, ValidationError) as e:
                errors.append(f"Error deleting {bucket} file {name}: {e.message}")

    return {
        "deletedVideos": deleted[VIDEO_BUCKET],
        "deletedThumbnails": deleted[THUMBNAIL_BUCKET],
        "errors": errors or None,
    }
