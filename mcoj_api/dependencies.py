"""
FastAPI dependencies shared by the routers.
The blob store is built once at startup and kept on app.state; routes receive
it through get_blob_store, so tests can swap in their own store.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
import logging

from mcoj_api.config import Settings, settings
from mcoj_api import database
from mcoj_api.database import get_db
from mcoj_api.errors import ConfigurationError
from mcoj_api.services.cloudinary_service import CloudinaryBlobStore
from mcoj_api.services.gallery_service import GalleryManager
from mcoj_api.services.storage import BlobStore, LocalBlobStore

logger = logging.getLogger(__name__)


def build_blob_store(config: Settings = settings) -> BlobStore:
    """
    Construct the object store selected by STORAGE_BACKEND.

    Raises:
        ConfigurationError: Unknown backend or missing Cloudinary credentials
    """
    backend = config.STORAGE_BACKEND.lower()
    if backend == "local":
        logger.info(f"Using local blob store at {config.MEDIA_ROOT}")
        return LocalBlobStore(config.MEDIA_ROOT, base_url=config.MEDIA_URL)
    if backend == "cloudinary":
        logger.info(f"Using Cloudinary blob store ({config.CLOUDINARY_CLOUD_NAME})")
        return CloudinaryBlobStore(
            cloud_name=config.CLOUDINARY_CLOUD_NAME,
            api_key=config.CLOUDINARY_API_KEY,
            api_secret=config.CLOUDINARY_API_SECRET,
        )
    raise ConfigurationError(f"Unknown STORAGE_BACKEND: {config.STORAGE_BACKEND}")


def get_blob_store(request: Request) -> BlobStore:
    store = getattr(request.app.state, "blob_store", None)
    if store is None:
        store = build_blob_store()
        request.app.state.blob_store = store
    return store


def get_gallery_manager(
    db: AsyncSession = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
) -> GalleryManager:
    return GalleryManager(
        db,
        blobs,
        size=settings.GALLERY_SIZE,
        image_width=settings.GALLERY_IMAGE_WIDTH,
        image_height=settings.GALLERY_IMAGE_HEIGHT,
        max_upload_bytes=settings.MAX_UPLOAD_BYTES,
    )


def get_engine() -> AsyncEngine:
    """The engine schema provisioning and inspection run against."""
    return database.engine
