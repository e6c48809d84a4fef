"""
Admin back-office routes: login, storage and schema setup, the one-time JSON
migration, storage statistics and the standalone image optimizer.
"""
from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from pathlib import Path
from typing import Optional
import logging
import uuid

from mcoj_api.config import settings
from mcoj_api.database import get_db
from mcoj_api.dependencies import get_blob_store, get_engine
from mcoj_api.errors import SiteError, UpstreamStoreError, ValidationError
from mcoj_api.schemas import LoginRequest
from mcoj_api.services import migration, provisioning
from mcoj_api.services.storage import REQUIRED_BUCKETS, BlobStore, check_key
from mcoj_api.utils.image_converter import convert_to_webp, get_image_info
from mcoj_api.utils.jwt_auth import COOKIE_NAME, authenticate_user, create_access_token, verify_cms_token
from mcoj_api.utils.rate_limit import RATE_LIMITS, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")

OPTIMIZABLE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}


@router.post("/auth/login")
@limiter.limit(RATE_LIMITS["login"])
async def login(request: Request, response: Response, body: LoginRequest):
    """
    Exchange the admin password for a session token.
    The token is set as an httpOnly cookie and also returned in the body.
    """
    claims = authenticate_user(body.password)
    token = create_access_token(claims)
    max_age = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=request.url.scheme == "https",
    )
    logger.info("Admin login successful")
    return {
        "success": True,
        "token": token,
        "tokenType": "bearer",
        "expiresIn": max_age,
    }


@router.post("/auth/logout")
async def logout(response: Response):
    response.delete_cookie(COOKIE_NAME)
    return {"success": True, "message": "Logged out"}


@router.post("/setup-database")
async def setup_database(
    bind: AsyncEngine = Depends(get_engine),
    token: dict = Depends(verify_cms_token),
):
    """Create any missing tables. Safe to run repeatedly."""
    try:
        result = await provisioning.provision_schema(bind)
        return {
            "success": True,
            "message": "Database tables are ready",
            **result,
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error setting up database: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to set up database: {str(e)}")


@router.post("/setup-buckets")
async def setup_buckets(
    blobs: BlobStore = Depends(get_blob_store),
    token: dict = Depends(verify_cms_token),
):
    try:
        result = await provisioning.ensure_buckets(blobs)
        result["message"] = (
            "Storage buckets setup completed successfully"
            if result["success"]
            else f"Failed to create buckets: {', '.join(result['failed'])}"
        )
        return result
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error setting up buckets: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to set up buckets: {str(e)}")


@router.get("/migration/status")
async def migration_status(
    bind: AsyncEngine = Depends(get_engine),
    blobs: BlobStore = Depends(get_blob_store),
    token: dict = Depends(verify_cms_token),
):
    """Whether the tables and buckets the migration needs are in place."""
    try:
        tables = await provisioning.check_tables(bind)
        buckets = await provisioning.check_buckets(blobs)
        return {
            "success": True,
            "ready": tables["allExist"] and buckets["allExist"],
            "tablesCheck": tables,
            "bucketsCheck": buckets,
        }
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error checking migration status: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.post("/migrate")
async def run_migration(
    db: AsyncSession = Depends(get_db),
    bind: AsyncEngine = Depends(get_engine),
    blobs: BlobStore = Depends(get_blob_store),
    token: dict = Depends(verify_cms_token),
):
    """Import the legacy JSON data files and their media."""
    try:
        result = await migration.migrate_all(
            db,
            blobs,
            Path(settings.MIGRATION_DATA_DIR),
            Path(settings.MIGRATION_PUBLIC_DIR),
            bind=bind,
        )
        if not result["success"]:
            logger.warning(f"Migration did not complete: {result.get('error', 'see results')}")
        return result
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Migration failed: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Migration failed: {str(e)}")


@router.get("/storage/stats")
async def get_storage_stats(
    blobs: BlobStore = Depends(get_blob_store),
    token: dict = Depends(verify_cms_token),
):
    try:
        return await provisioning.storage_stats(blobs)
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error getting storage stats: {str(e)}", exc_info=True)
        raise UpstreamStoreError(str(e))


@router.post("/optimize-image")
async def optimize_image(
    image: Optional[UploadFile] = File(None),
    destination: Optional[str] = Form(None),
    filename: Optional[str] = Form(None),
    blobs: BlobStore = Depends(get_blob_store),
    token: dict = Depends(verify_cms_token),
):
    """
    Convert an image to WebP and report the size saving.
    With a destination bucket the optimized file is also stored there.
    """
    if image is None:
        raise ValidationError("No image provided")
    if image.content_type not in OPTIMIZABLE_TYPES:
        raise ValidationError("Invalid file type. Only JPEG, PNG and WebP are supported.")
    if destination and destination not in REQUIRED_BUCKETS:
        raise ValidationError(f"Invalid destination: {destination}")

    try:
        original = await image.read()
        if not original:
            raise ValidationError("No image provided")

        optimized, ok = await convert_to_webp(original)
        if not ok:
            raise ValidationError("Failed to optimize image")

        original_size = len(original)
        optimized_size = len(optimized)
        response = {
            "success": True,
            "originalSize": original_size,
            "optimizedSize": optimized_size,
            "compressionRate": round((1 - optimized_size / original_size) * 100, 2),
            "info": get_image_info(optimized),
        }

        if destination:
            stem = Path(filename).stem if filename else uuid.uuid4().hex
            key = check_key(f"{stem}.webp")
            response["url"] = await blobs.upload(destination, key, optimized, "image/webp")
            response["path"] = f"{destination}/{key}"

        return response
    except SiteError:
        raise
    except Exception as e:
        logger.error(f"Error optimizing image: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Failed to optimize image: {str(e)}")
