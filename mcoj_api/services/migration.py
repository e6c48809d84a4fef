"""
One-time migration of the legacy flat JSON files into the database and object store.

Each part reads a JSON array, bulk upserts it keyed by its natural key (src
for gallery images, id for events and videos), then re-uploads the files the
records point at. Upload failures are collected as warnings; rows already
written stay written.
"""
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional
import hashlib
import json
import logging
import mimetypes
import re

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from mcoj_api.errors import ConfigurationError, UpstreamStoreError, ValidationError
from mcoj_api.models import Event, GalleryImage, GalleryVideo
from mcoj_api.services.gallery_service import GALLERY_BUCKET, alt_text_from_filename
from mcoj_api.services.provisioning import check_buckets, check_tables
from mcoj_api.services.slots import GALLERY_SIZE
from mcoj_api.services.storage import BlobStore
from mcoj_api.services.video_service import PLACEHOLDER_THUMBNAIL, THUMBNAIL_BUCKET, VIDEO_BUCKET

logger = logging.getLogger(__name__)

EVENTS_BUCKET = "events"

_FILENAME_ID = re.compile(r"^[a-zA-Z0-9_.-]+\.(jpg|jpeg|png)$")


def _load_records(path: Path, label: str) -> Optional[list]:
    """Read a JSON array; None when the file does not exist."""
    if not path.exists():
        logger.info(f"{label} JSON file not found, skipping {label.lower()} migration")
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"{label} data is not valid JSON: {str(e)}")

    if not isinstance(data, list):
        raise ValidationError(f"{label} data is not an array")

    logger.info(f"Found {len(data)} {label.lower()} records to migrate")
    return data


def _skipped() -> Dict:
    return {"success": True, "skipped": True, "migrated": 0, "warnings": []}


async def upsert_rows(db: AsyncSession, model, rows: List[dict], key: str) -> None:
    """INSERT ... ON CONFLICT (key) DO UPDATE for PostgreSQL and SQLite."""
    if not rows:
        return

    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        insert = postgresql.insert
    elif dialect == "sqlite":
        insert = sqlite.insert
    else:
        raise ConfigurationError(f"Upsert is not supported on {dialect}")

    stmt = insert(model).values(rows)
    updatable = [column for column in rows[0] if column not in (key, "id")]
    set_ = {column: stmt.excluded[column] for column in updatable}
    # onupdate does not fire for ON CONFLICT DO UPDATE
    if "updated_at" in model.__table__.c:
        set_["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(index_elements=[key], set_=set_)
    await db.execute(stmt)
    await db.commit()


async def _upload_local_file(
    blobs: BlobStore,
    bucket: str,
    path: Path,
    warnings: List[str],
    label: str = "",
    key: Optional[str] = None,
) -> None:
    key = key or path.name
    if not path.is_file():
        logger.warning(f"{label}File not found: {path}")
        warnings.append(f"{label}{path}: File not found")
        return

    try:
        content_type, _ = mimetypes.guess_type(path.name)
        await blobs.upload(bucket, key, path.read_bytes(), content_type)
        logger.info(f"Uploaded {path} as {bucket}/{key}")
    except (OSError, UpstreamStoreError, ValidationError) as e:
        message = e.message if hasattr(e, "message") else str(e)
        logger.error(f"Error uploading {path} to {bucket}: {message}")
        warnings.append(f"{label}{path.name}: {message}")


def _public_path(public_dir: Path, src: str) -> Path:
    return public_dir / src.lstrip("/")


def _key_for_src(src: str) -> str:
    """
    Blob key for a legacy path whose file name is ambiguous, derived from the
    whole path so re-running the migration picks the same key.

    Example: "/images/archive/photo.jpg" -> "photo-<8 hex chars>.jpg"
    """
    path = Path(src)
    stem = re.sub(r"[^a-zA-Z0-9_-]", "-", path.stem) or "image"
    digest = hashlib.sha1(src.encode("utf-8")).hexdigest()[:8]
    suffix = re.sub(r"[^a-zA-Z0-9.]", "", path.suffix.lower())
    return f"{stem}-{digest}{suffix}"


async def migrate_gallery(
    db: AsyncSession,
    blobs: BlobStore,
    data_dir: Path,
    public_dir: Path,
    size: int = GALLERY_SIZE,
) -> Dict:
    """
    Migrate gallery.json records.

    A record whose position is outside the gallery, repeated in the file, or
    already held by a different image in the database is imported archived.
    """
    records = _load_records(Path(data_dir) / "gallery.json", "Gallery")
    if records is None:
        return _skipped()

    warnings: List[str] = []

    existing = (await db.execute(
        select(GalleryImage.id, GalleryImage.src, GalleryImage.placeholder_position)
    )).all()
    held = {row.placeholder_position: row.src for row in existing if row.placeholder_position is not None}
    ids_by_src = {row.src: row.id for row in existing}
    taken = {row.id: row.src for row in existing}
    basenames = Counter(
        Path(record["src"]).name for record in records if isinstance(record, dict) and record.get("src")
    )

    rows = []
    seen = set()
    for record in records:
        src = record.get("src") if isinstance(record, dict) else None
        if not src:
            warnings.append(f"Skipped gallery record without src: {record!r}")
            continue
        if src in seen:
            warnings.append(f"Skipped duplicate gallery record for {src}")
            continue
        seen.add(src)

        # The id doubles as the blob key; a file name shared by several paths is not unique
        name = Path(src).name
        image_id = ids_by_src.get(src)
        if image_id is None:
            unique_name = basenames[name] == 1 and taken.get(name, src) == src
            image_id = name if unique_name and _FILENAME_ID.match(name) else _key_for_src(src)
        taken[image_id] = src
        filename = record.get("filename") or name

        position = record.get("placeholder_position")
        archived = bool(record.get("is_archived")) or position is None
        if not archived:
            if not isinstance(position, int) or isinstance(position, bool) or not 1 <= position <= size:
                warnings.append(f"{src}: invalid position {position!r}, imported as archived")
                archived = True
            elif held.get(position, src) != src:
                warnings.append(f"{src}: position {position} already taken by {held[position]}, imported as archived")
                archived = True
            else:
                held[position] = src

        rows.append({
            "id": image_id,
            "filename": filename,
            "src": src,
            "blob_key": image_id,
            "alt": alt_text_from_filename(filename),
            "placeholder_position": None if archived else position,
            "is_archived": archived,
        })

    try:
        await upsert_rows(db, GalleryImage, rows, "src")
    except Exception as e:
        await db.rollback()
        logger.error(f"Gallery upsert error: {str(e)}")
        raise UpstreamStoreError(f"Failed to insert gallery items: {str(e)}")

    for row in rows:
        await _upload_local_file(
            blobs, GALLERY_BUCKET, _public_path(Path(public_dir), row["src"]), warnings, key=row["blob_key"]
        )

    if warnings:
        logger.warning(f"Gallery migration completed with {len(warnings)} warnings")
    logger.info(f"Migrated {len(rows)} gallery images")
    return {"success": True, "migrated": len(rows), "warnings": warnings}


async def migrate_events(db: AsyncSession, blobs: BlobStore, data_dir: Path, public_dir: Path) -> Dict:
    """Migrate events.json records, then upload everything under public/events."""
    records = _load_records(Path(data_dir) / "events.json", "Events")
    if records is None:
        return _skipped()

    warnings: List[str] = []
    rows = []
    for index, record in enumerate(records, start=1):
        if not isinstance(record, dict) or not all(record.get(f) for f in ("id", "date", "venue", "eventName")):
            warnings.append(f"Skipped event record missing id, date, venue or eventName: {record!r}")
            continue
        rows.append({
            "id": str(record["id"]),
            "date": record["date"],
            "venue": record["venue"],
            "event_name": record["eventName"],
            "address": record.get("address") or None,
            "postcode": record.get("postcode") or None,
            "time_start": record.get("timeStart") or None,
            "time_end": record.get("timeEnd") or None,
            "ticket_link": record.get("ticketLink") or None,
            "position": record.get("position") or index,
            "is_archived": bool(record.get("is_archived", False)),
        })

    try:
        await upsert_rows(db, Event, rows, "id")
    except Exception as e:
        await db.rollback()
        logger.error(f"Events upsert error: {str(e)}")
        raise UpstreamStoreError(f"Failed to insert events: {str(e)}")

    events_dir = Path(public_dir) / "events"
    if events_dir.is_dir():
        for path in sorted(events_dir.iterdir()):
            if path.is_file():
                await _upload_local_file(blobs, EVENTS_BUCKET, path, warnings)
    else:
        logger.warning(f"Events directory not found: {events_dir}")

    logger.info(f"Migrated {len(rows)} events")
    return {"success": True, "migrated": len(rows), "warnings": warnings}


async def migrate_videos(db: AsyncSession, blobs: BlobStore, data_dir: Path, public_dir: Path) -> Dict:
    """Migrate videos.json records and upload each video and its thumbnail."""
    records = _load_records(Path(data_dir) / "videos.json", "Videos")
    if records is None:
        return _skipped()

    warnings: List[str] = []
    rows = []
    for index, record in enumerate(records, start=1):
        if not isinstance(record, dict) or not all(record.get(f) for f in ("id", "src", "title")):
            warnings.append(f"Skipped video record missing id, src or title: {record!r}")
            continue

        thumbnail_src = record.get("thumbnailSrc") or PLACEHOLDER_THUMBNAIL
        has_thumbnail = thumbnail_src != PLACEHOLDER_THUMBNAIL and "default-thumbnail" not in thumbnail_src
        rows.append({
            "id": str(record["id"]),
            "title": record["title"],
            "description": record.get("description") or None,
            "src": record["src"],
            "thumbnail_src": thumbnail_src,
            "video_key": Path(record["src"]).name,
            "thumbnail_key": Path(thumbnail_src).name if has_thumbnail else None,
            "auto_thumbnail": bool(record.get("autoThumbnail", False)),
            "is_archived": bool(record.get("is_archived", False)),
            "order_index": record.get("order_index") or index,
        })

    try:
        await upsert_rows(db, GalleryVideo, rows, "id")
    except Exception as e:
        await db.rollback()
        logger.error(f"Videos upsert error: {str(e)}")
        raise UpstreamStoreError(f"Failed to insert videos: {str(e)}")

    public_dir = Path(public_dir)
    for row in rows:
        await _upload_local_file(blobs, VIDEO_BUCKET, _public_path(public_dir, row["src"]), warnings)
        if row["thumbnail_key"]:
            await _upload_local_file(
                blobs, THUMBNAIL_BUCKET, _public_path(public_dir, row["thumbnail_src"]), warnings, label="Thumbnail "
            )

    logger.info(f"Migrated {len(rows)} videos")
    return {"success": True, "migrated": len(rows), "warnings": warnings}


async def migrate_all(
    db: AsyncSession,
    blobs: BlobStore,
    data_dir: Path,
    public_dir: Path,
    bind: AsyncEngine = None,
) -> Dict:
    """
    Run every migration part.

    Aborts before writing anything when a required bucket or table is
    missing; run provisioning first. A failing part does not stop the others.
    """
    buckets_check = await check_buckets(blobs)
    if not buckets_check["allExist"]:
        return {
            "success": False,
            "results": {"bucketsCheck": buckets_check},
            "error": f"Missing required storage buckets: {', '.join(buckets_check['missing'])}",
        }

    tables_check = await check_tables(bind)
    if not tables_check["allExist"]:
        return {
            "success": False,
            "results": {"bucketsCheck": buckets_check, "tablesCheck": tables_check},
            "error": f"Missing required database tables: {', '.join(tables_check['missing'])}",
        }

    results = {"bucketsCheck": buckets_check, "tablesCheck": tables_check}
    parts = (
        ("gallery", migrate_gallery),
        ("events", migrate_events),
        ("videos", migrate_videos),
    )
    for name, migrate in parts:
        try:
            results[name] = await migrate(db, blobs, data_dir, public_dir)
        except Exception as e:
            logger.error(f"{name.capitalize()} migration failed: {str(e)}", exc_info=True)
            message = e.message if hasattr(e, "message") else str(e)
            results[name] = {"success": False, "error": message}

    return {
        "success": all(results[name]["success"] for name, _ in parts),
        "results": results,
    }
