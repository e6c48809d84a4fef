"""
FastAPI application entry point.
Main application instance with middleware, error handlers and route configuration.
"""
from fastapi import FastAPI, Request, status, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from pathlib import Path
import logging
import asyncio

from mcoj_api.config import settings
from mcoj_api.database import get_db, init_db, close_db
from mcoj_api.dependencies import build_blob_store, get_blob_store
from mcoj_api.errors import SiteError
from mcoj_api.routes import admin, bookings, events, gallery, videos
from mcoj_api.services.provisioning import check_buckets
from mcoj_api.services.storage import BlobStore
from mcoj_api.utils.rate_limit import limiter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI application instance
app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
)
app.state.limiter = limiter

# The admin session lives in a cookie, so origins must be listed explicitly
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    max_age=3600,  # Cache preflight requests for 1 hour
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its response status."""
    method = request.method
    path = request.url.path

    try:
        response = await call_next(request)
        logger.info(f"Response status: {response.status_code} for {method} {path}")
        return response
    except Exception as e:
        logger.error(
            f"Error processing {method} {path}: {str(e)}\n"
            f"  Error type: {type(e).__name__}",
            exc_info=True
        )
        raise


app.include_router(gallery.router, prefix="/api", tags=["gallery"])
app.include_router(events.router, prefix="/api", tags=["events"])
app.include_router(videos.router, prefix="/api", tags=["videos"])
app.include_router(bookings.router, prefix="/api", tags=["bookings"])
app.include_router(admin.router, prefix="/api", tags=["admin"])

# Local blob store files are served straight from disk
if settings.STORAGE_BACKEND.lower() == "local":
    app.mount(
        settings.MEDIA_URL,
        StaticFiles(directory=settings.MEDIA_ROOT, check_dir=False),
        name="media",
    )


def error_envelope(status_code: int, message: str, **extra) -> JSONResponse:
    """The {success: false, error, message} body every failing endpoint returns."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "message": message, **extra},
    )


# Exception Handlers
@app.exception_handler(SiteError)
async def site_error_handler(request: Request, exc: SiteError):
    """Domain errors raised by the services."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return error_envelope(exc.status_code, exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions (401, 404, etc.)."""
    logger.warning(
        f"HTTPException on {request.method} {request.url.path}:\n"
        f"  Status: {exc.status_code}\n"
        f"  Detail: {exc.detail}"
    )

    # Handle both string and dict detail formats
    if isinstance(exc.detail, dict):
        error = exc.detail.get("error", "Request failed")
        message = exc.detail.get("message", error)
    else:
        error = message = str(exc.detail)

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": error, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    logger.warning(
        f"Validation error on {request.method} {request.url.path}:\n"
        f"  Errors: {exc.errors()}"
    )
    return error_envelope(
        status.HTTP_400_BAD_REQUEST,
        "Validation error",
        detail=jsonable_encoder(exc.errors()),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded on {request.method} {request.url.path}: {exc.detail}")
    return error_envelope(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Too many requests. Please try again later.",
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}:\n"
        f"  Error: {str(exc)}\n"
        f"  Error type: {type(exc).__name__}",
        exc_info=True
    )
    return error_envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")


# Root Endpoints
@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": settings.API_TITLE,
        "status": "healthy",
        "version": settings.API_VERSION
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    """
    Database health check endpoint.
    Tests database connection and returns status.
    """
    try:
        result = await db.execute(text("SELECT 1"))
        return {
            "database": "connected",
            "status": "healthy",
            "result": result.scalar()
        }
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}", exc_info=True)
        return {
            "database": "error",
            "status": "unhealthy",
            "error": "Database connection failed"
        }


@app.get("/health/storage")
async def health_check_storage(blobs: BlobStore = Depends(get_blob_store)):
    """Object store health: backend name and any missing buckets."""
    try:
        buckets = await check_buckets(blobs)
        return {
            "storage": blobs.name,
            "status": "healthy" if buckets["allExist"] else "warning",
            "missingBuckets": buckets["missing"],
        }
    except Exception as e:
        logger.error(f"Storage health check failed: {str(e)}", exc_info=True)
        return {
            "storage": blobs.name,
            "status": "unhealthy",
            "error": str(e)
        }


@app.on_event("startup")
async def startup_event():
    """
    Build the blob store and check the database connection.
    Non-blocking: the app starts even if the database is unreachable.
    """
    logger.info(f"CORS allowed origins: {settings.CORS_ORIGINS}")

    if getattr(app.state, "blob_store", None) is None:
        app.state.blob_store = build_blob_store()
    if settings.STORAGE_BACKEND.lower() == "local":
        Path(settings.MEDIA_ROOT).mkdir(parents=True, exist_ok=True)

    try:
        await init_db()
        logger.info("Database connection established successfully")
    except Exception as e:
        logger.error(
            f"Failed to initialize database on startup: {str(e)}\n"
            f"The application will continue to run, but database-dependent endpoints will fail.\n"
            f"Please check your DATABASE_URL configuration and network connectivity."
        )


@app.on_event("shutdown")
async def shutdown_event():
    """Close database connections on application shutdown."""
    try:
        await close_db()
    except asyncio.CancelledError:
        # Expected when the server is interrupted
        pass
    except Exception as e:
        logger.warning(f"Error during database shutdown: {str(e)}")
