"""
Video gallery routes.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from mcoj_api.database import get_db
from mcoj_api.dependencies import get_blob_store
from mcoj_api.errors import SiteError, UpstreamStoreError, ValidationError
from mcoj_api.schemas import VideoCleanupRequest, VideoReorderRequest, VideoResponse, VideoUpdate
from mcoj_api.services import video_service
from mcoj_api.services.storage import BlobStore
from mcoj_api.utils.jwt_auth import optional_cms_token, verify_cms_token

logger = logging.getLogger(__name__)

router = APIRouter()


def _video(video) -> dict:
    return VideoResponse.model_validate(video).to_api()


@router.get("/videos")
async def get_videos(
    include_archived: bool = Query(False, alias="includeArchived"),
    db: AsyncSession = Depends(get_db),
    token: Optional[dict] = Depends(optional_cms_token),
):
    """Videos in display order; archived ones only for admins."""
    if include_archived and token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Missing token", "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        videos = await video_service.list_videos(db, include_archived=include_archived)
        return {"videos": [_video(v) for v in videos]}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error fetching videos: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to fetch videos: {str(e)}")


@router.post("/videos", status_code=status.HTTP_201_CREATED)
async def upload_video(
    title: str = Form(""),
    description: Optional[str] = Form(None),
    auto_thumbnail: bool = Form(False, alias="autoThumbnail"),
    video: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
    token: dict = Depends(verify_cms_token),
):
    """Upload a video (multipart: title, description, video, optional thumbnail)."""
    if video is None:
        raise ValidationError("Title and video file are required")

    try:
        thumb = None
        if thumbnail is not None:
            thumb = (await thumbnail.read(), thumbnail.filename, thumbnail.content_type)

        record = await video_service.create_video(
            db,
            blobs,
            title=title,
            description=description,
            video=(await video.read(), video.filename, video.content_type),
            thumbnail=thumb,
            auto_thumbnail=auto_thumbnail,
        )
        return {"success": True, "video": _video(record)}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error uploading video: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to upload video: {str(e)}")


@router.put("/videos/reorder")
async def reorder_videos(
    body: VideoReorderRequest,
    db: AsyncSession = Depends(get_db),
    token: dict = Depends(verify_cms_token),
):
    try:
        videos = await video_service.reorder_videos(db, body.video_ids)
        return {"success": True, "videos": [_video(v) for v in videos]}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error reordering videos: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to reorder videos: {str(e)}")


@router.get("/videos/orphaned")
async def list_orphaned_video_files(
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
    token: dict = Depends(verify_cms_token),
):
    try:
        result = await video_service.find_orphaned_video_blobs(db, blobs)
        return {"success": True, **result}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error finding orphaned video files: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.post("/videos/orphaned")
async def delete_orphaned_video_files(
    body: VideoCleanupRequest,
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
    token: dict = Depends(verify_cms_token),
):
    if not body.orphaned_videos and not body.orphaned_thumbnails:
        raise ValidationError("No files specified for deletion")

    try:
        result = await video_service.cleanup_orphaned_video_blobs(
            db, blobs, body.orphaned_videos, body.orphaned_thumbnails
        )
        total = len(result["deletedVideos"]) + len(result["deletedThumbnails"])
        return {
            "success": True,
            **result,
            "message": f"Deleted {total} orphaned files",
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error deleting orphaned video files: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.patch("/videos/{video_id}")
async def update_video(
    video_id: str,
    body: VideoUpdate,
    db: AsyncSession = Depends(get_db),
    token: dict = Depends(verify_cms_token),
):
    try:
        video = await video_service.update_video(db, video_id, body)
        return {"success": True, "video": _video(video)}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error updating video {video_id}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to update video: {str(e)}")


@router.delete("/videos")
async def delete_video(
    video_id: Optional[str] = Query(None, alias="id"),
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
    token: dict = Depends(verify_cms_token),
):
    if not video_id:
        raise ValidationError("Video ID is required")

    try:
        await video_service.delete_video(db, blobs, video_id)
        return {"success": True, "message": "Video deleted successfully"}
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error deleting video {video_id}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to delete video: {str(e)}")
