"""
Gallery routes.
The public site reads the active slots; the admin back-office uploads,
archives, restores, deletes and finalizes gallery images.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from typing import Optional
import logging
import re

from mcoj_api.config import settings
from mcoj_api.dependencies import get_gallery_manager
from mcoj_api.errors import SiteError, UpstreamStoreError, ValidationError
from mcoj_api.schemas import (
    GalleryActionRequest,
    GalleryImageResponse,
    GalleryRestoreRequest,
    OrphanCleanupRequest,
)
from mcoj_api.services.gallery_service import GalleryManager
from mcoj_api.utils.jwt_auth import optional_cms_token, verify_cms_token

logger = logging.getLogger(__name__)

router = APIRouter()

GALLERY_FILENAME = re.compile(r"^[a-zA-Z0-9_.-]+\.(jpg|jpeg|png)$")


def check_gallery_filename(filename: str) -> str:
    if not filename or not GALLERY_FILENAME.match(filename):
        raise ValidationError("Invalid filename")
    return filename


def _image(image) -> dict:
    return GalleryImageResponse.model_validate(image).to_api()


@router.get("/gallery")
async def get_gallery(
    include_archived: bool = Query(False, alias="includeArchived"),
    manager: GalleryManager = Depends(get_gallery_manager),
    token: Optional[dict] = Depends(optional_cms_token),
):
    """
    Active gallery images in slot order.
    With includeArchived=true (admin only) the archive is listed as well.
    """
    if include_archived and token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Missing token", "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        active = await manager.list_active()
        response = {
            "images": [_image(img) for img in active],
            "totalActive": len(active),
            "maxGallerySize": manager.size,
        }

        if include_archived:
            archived = await manager.list_archived()
            response["archivedImages"] = [_image(img) for img in archived]
            response["totalArchived"] = len(archived)

        return response

    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error reading gallery: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to read gallery: {str(e)}")


@router.post("/gallery")
async def gallery_action(
    body: GalleryActionRequest,
    manager: GalleryManager = Depends(get_gallery_manager),
    token: dict = Depends(verify_cms_token),
):
    """Slot actions; "archive" is the only one."""
    if body.action != "archive":
        raise ValidationError(f"Invalid action: {body.action}")

    try:
        image = await manager.archive(body.position)
        return {
            "success": True,
            "message": f"Image at position {body.position} archived successfully",
            "archivedImage": _image(image),
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error archiving gallery position {body.position}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.post("/gallery/upload")
async def upload_gallery_image(
    file: Optional[UploadFile] = File(None),
    position: Optional[str] = Form(None),
    manager: GalleryManager = Depends(get_gallery_manager),
    token: dict = Depends(verify_cms_token),
):
    """
    Upload an image into a gallery slot (multipart: file, optional position).
    Without a position the lowest free slot is used.
    """
    if file is None:
        raise ValidationError("No file uploaded")

    try:
        content = await file.read()
        image, warning = await manager.upload(
            content,
            file.filename,
            file.content_type,
            requested_position=position if position not in (None, "") else None,
        )

        response = {
            "success": True,
            "message": f"Image uploaded to position {image.placeholder_position}",
            "image": _image(image),
        }
        if warning:
            response["warning"] = warning
        return response

    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error uploading gallery image {file.filename}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.post("/gallery/restore")
async def restore_gallery_image(
    body: GalleryRestoreRequest,
    manager: GalleryManager = Depends(get_gallery_manager),
    token: dict = Depends(verify_cms_token),
):
    try:
        check_gallery_filename(body.archived_file)
        image = await manager.restore(body.archived_file, body.placeholder_position)
        return {
            "success": True,
            "message": f"Image restored to position {image.placeholder_position}",
            "image": _image(image),
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error restoring {body.archived_file}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.delete("/gallery")
async def delete_archived_image(
    filename: Optional[str] = Query(None),
    manager: GalleryManager = Depends(get_gallery_manager),
    token: dict = Depends(verify_cms_token),
):
    """Delete an archived image for good. Active images must be archived first."""
    if not filename:
        raise ValidationError("Filename is required")
    check_gallery_filename(filename)

    try:
        await manager.delete_permanently(filename)
        return {
            "success": True,
            "message": "Archived image permanently deleted",
            "deletedFile": filename,
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error deleting archived image {filename}: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.post("/gallery/finalize")
async def finalize_gallery(
    manager: GalleryManager = Depends(get_gallery_manager),
    token: dict = Depends(verify_cms_token),
):
    """Publish the active images to the manifest the public site renders."""
    try:
        count = await manager.finalize(settings.GALLERY_MANIFEST_PATH)
        return {
            "success": True,
            "message": f"Gallery finalized successfully with {count} images",
            "imageCount": count,
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error finalizing gallery: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.get("/gallery/orphaned")
async def list_orphaned_gallery_files(
    manager: GalleryManager = Depends(get_gallery_manager),
    token: dict = Depends(verify_cms_token),
):
    try:
        orphaned = await manager.find_orphaned_blobs()
        return {
            "success": True,
            "orphanedFiles": orphaned,
            "count": len(orphaned),
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error finding orphaned gallery files: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.post("/gallery/orphaned")
async def delete_orphaned_gallery_files(
    body: OrphanCleanupRequest,
    manager: GalleryManager = Depends(get_gallery_manager),
    token: dict = Depends(verify_cms_token),
):
    if not body.files_to_delete:
        raise ValidationError("No files specified for deletion")

    try:
        deleted, errors = await manager.delete_orphaned_blobs(body.files_to_delete)
        return {
            "success": True,
            "deletedFiles": deleted,
            "errors": errors or None,
            "message": f"Deleted {len(deleted)} orphaned files",
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error deleting orphaned gallery files: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))
