"""
Gallery slot management.

The public gallery shows a fixed number of slots. Each active image holds one
slot; archiving frees the slot and keeps the image for later restoration;
only archived images can be deleted for good. Finalizing publishes the active
set as a JSON manifest the public site reads.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple
import json
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mcoj_api.errors import (
    EmptyGalleryError,
    GalleryFullError,
    NotFoundError,
    PositionOccupiedError,
    UpstreamStoreError,
    ValidationError,
)
from mcoj_api.models import GalleryImage
from mcoj_api.services.slots import GALLERY_SIZE, next_free_position, validate_position
from mcoj_api.services.storage import BlobStore
from mcoj_api.utils.image_converter import get_image_info, resize_for_gallery

logger = logging.getLogger(__name__)

GALLERY_BUCKET = "gallery"

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
}

# Stored extension follows the decoded format, not the declared MIME type
FORMAT_EXTENSIONS = {"JPEG": ("jpg", "image/jpeg"), "PNG": ("png", "image/png")}

RESIZE_WARNING = "Image could not be processed for resizing, original was saved instead"


def alt_text_from_filename(filename: Optional[str]) -> str:
    """Readable alt text from an upload name: 'live_at_koko.jpg' -> 'live at koko'."""
    if not filename:
        return "MC OJ gallery image"
    stem = Path(filename).stem.replace("_", " ").replace("-", " ").strip()
    return stem or "MC OJ gallery image"


class GalleryManager:
    """Gallery state backed by the gallery table and the gallery bucket."""

    def __init__(
        self,
        db: AsyncSession,
        blobs: BlobStore,
        size: int = GALLERY_SIZE,
        image_width: int = 1200,
        image_height: int = 800,
        max_upload_bytes: int = 5 * 1024 * 1024,
    ):
        self.db = db
        self.blobs = blobs
        self.size = size
        self.image_width = image_width
        self.image_height = image_height
        self.max_upload_bytes = max_upload_bytes

    async def list_active(self) -> List[GalleryImage]:
        result = await self.db.execute(
            select(GalleryImage)
            .where(GalleryImage.placeholder_position.is_not(None))
            .order_by(GalleryImage.placeholder_position.asc())
        )
        return list(result.scalars().all())

    async def list_archived(self) -> List[GalleryImage]:
        result = await self.db.execute(
            select(GalleryImage)
            .where(GalleryImage.placeholder_position.is_(None))
            .order_by(GalleryImage.updated_at.desc(), GalleryImage.id.asc())
        )
        return list(result.scalars().all())

    async def _occupant(self, position: int) -> Optional[GalleryImage]:
        result = await self.db.execute(
            select(GalleryImage).where(GalleryImage.placeholder_position == position)
        )
        return result.scalar_one_or_none()

    async def _archived(self, image_id: str) -> Optional[GalleryImage]:
        result = await self.db.execute(
            select(GalleryImage).where(
                GalleryImage.id == image_id,
                GalleryImage.placeholder_position.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def upload(
        self,
        content: bytes,
        filename: Optional[str],
        content_type: Optional[str],
        requested_position=None,
    ) -> Tuple[GalleryImage, Optional[str]]:
        """
        Store a new image in a gallery slot.

        Without requested_position the lowest free slot is used. A requested
        slot that is already taken is overwritten: the previous occupant's row
        and blob are removed.

        Returns:
            (image, warning): warning is set when resizing failed and the
            original bytes were stored instead

        Raises:
            InvalidPositionError: requested_position outside the gallery
            GalleryFullError: no free slot and none requested
            ValidationError: unsupported file type, empty or oversized file
        """
        if requested_position is not None:
            position = validate_position(requested_position, self.size)
        else:
            active = await self.list_active()
            position = next_free_position((img.placeholder_position for img in active), self.size)
            if position is None:
                raise GalleryFullError("Gallery is full. Please archive an existing image first.")

        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError("Invalid file type. Only JPEG and PNG are supported.")
        if not content:
            raise ValidationError("No file uploaded")
        if len(content) > self.max_upload_bytes:
            raise ValidationError(f"File size exceeds {self.max_upload_bytes // (1024 * 1024)}MB limit.")

        warning = None
        try:
            data = resize_for_gallery(content, self.image_width, self.image_height)
        except Exception as e:
            logger.warning(f"Error resizing {filename}: {str(e)}; storing original")
            data = content
            warning = RESIZE_WARNING

        info = get_image_info(data)
        extension, stored_type = FORMAT_EXTENSIONS.get(
            info["format"] if info else None, (ALLOWED_IMAGE_TYPES[content_type], content_type)
        )
        key = f"{uuid.uuid4().hex}.{extension}"
        src = await self.blobs.upload(GALLERY_BUCKET, key, data, stored_type)

        previous = await self._occupant(position)
        previous_key = previous.blob_key if previous else None
        try:
            if previous:
                logger.info(f"Overwriting image {previous.id} at position {position}")
                await self.db.delete(previous)
                await self.db.flush()

            image = GalleryImage(
                id=key,
                filename=filename or key,
                src=src,
                blob_key=key,
                alt=alt_text_from_filename(filename),
                placeholder_position=position,
                is_archived=False,
            )
            self.db.add(image)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            await self.blobs.discard(GALLERY_BUCKET, key)
            raise PositionOccupiedError(f"Position {position} was taken by another request")
        except Exception:
            await self.db.rollback()
            await self.blobs.discard(GALLERY_BUCKET, key)
            raise

        if previous_key:
            try:
                await self.blobs.delete(GALLERY_BUCKET, previous_key)
            except UpstreamStoreError as e:
                # Row is gone already; the blob shows up in the orphan report
                logger.error(f"Failed to delete overwritten blob {previous_key}: {e.message}")

        logger.info(f"Image {key} uploaded to gallery position {position}")
        return image, warning

    async def archive(self, position) -> GalleryImage:
        """
        Move the image at position into the archive, freeing the slot.

        Raises:
            InvalidPositionError: position outside the gallery
            NotFoundError: no image at position
        """
        position = validate_position(position, self.size)
        image = await self._occupant(position)
        if image is None:
            raise NotFoundError(f"No image at position {position}")

        image.placeholder_position = None
        image.is_archived = True
        await self.db.commit()

        logger.info(f"Archived image {image.id} from position {position}")
        return image

    async def restore(self, archived_id: str, target_position) -> GalleryImage:
        """
        Put an archived image back into a free slot.

        Raises:
            InvalidPositionError: target_position outside the gallery
            PositionOccupiedError: an active image already holds target_position
            NotFoundError: archived_id is not in the archive
        """
        position = validate_position(target_position, self.size)

        if await self._occupant(position) is not None:
            raise PositionOccupiedError(f"Position {position} is already in use")

        image = await self._archived(archived_id)
        if image is None:
            raise NotFoundError(f"Archived image not found: {archived_id}")

        image.placeholder_position = position
        image.is_archived = False
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise PositionOccupiedError(f"Position {position} is already in use")

        logger.info(f"Restored image {archived_id} to position {position}")
        return image

    async def delete_permanently(self, archived_id: str) -> GalleryImage:
        """
        Delete an archived image and its blob. Active images must be archived first.

        Raises:
            NotFoundError: archived_id is not in the archive
        """
        image = await self._archived(archived_id)
        if image is None:
            raise NotFoundError("File not found in archive")

        if image.blob_key:
            await self.blobs.delete(GALLERY_BUCKET, image.blob_key)

        await self.db.delete(image)
        await self.db.commit()

        logger.info(f"Permanently deleted archived image {archived_id}")
        return image

    async def finalize(self, manifest_path) -> int:
        """
        Publish the active images to the manifest the public site renders from.

        Returns:
            int: number of images published

        Raises:
            EmptyGalleryError: there are no active images (nothing is written)
        """
        active = await self.list_active()
        if not active:
            raise EmptyGalleryError("No images to finalize. Please add images to the gallery first.")

        manifest = {
            "images": [
                {
                    "src": image.src,
                    "alt": image.alt or f"Gallery image {image.placeholder_position}",
                    "position": image.placeholder_position,
                }
                for image in active
            ],
            "imageCount": len(active),
            "finalizedAt": datetime.now(timezone.utc).isoformat(),
        }

        path = Path(manifest_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write gallery manifest {path}: {str(e)}")
            raise UpstreamStoreError(f"Failed to write gallery manifest: {str(e)}")

        logger.info(f"Gallery finalized with {len(active)} images -> {path}")
        return len(active)

    async def find_orphaned_blobs(self) -> List[dict]:
        """Blobs in the gallery bucket that no gallery row references."""
        result = await self.db.execute(select(GalleryImage.blob_key))
        return [
            {**obj, "path": f"{GALLERY_BUCKET}/{obj['name']}"}
            for obj in await self.blobs.unreferenced(GALLERY_BUCKET, result.scalars().all())
        ]

    async def delete_orphaned_blobs(self, keys: List[str]) -> Tuple[List[str], List[str]]:
        """
        Delete the given orphaned blobs. Keys still referenced by a row are refused.

        Returns:
            (deleted, errors)
        """
        orphaned = {obj["id"] for obj in await self.find_orphaned_blobs()}
        deleted, errors = [], []
        for key in keys:
            if self.blobs.object_id(GALLERY_BUCKET, key) not in orphaned:
                errors.append(f"Error deleting {key}: not an orphaned gallery file")
                continue
            try:
                await self.blobs.delete(GALLERY_BUCKET, key)
                deleted.append(key)
            except (UpstreamStoreError, ValidationError) as e:
                errors.append(f"Error deleting {key}: {e.message}")
        return deleted, errors
