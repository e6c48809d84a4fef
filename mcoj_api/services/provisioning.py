"""
Schema and bucket provisioning.

Provisioning is an explicit, idempotent setup step. Table existence is read
through SQLAlchemy schema inspection; nothing here checks for a table by writing rows.
"""
from typing import Dict, List
import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from mcoj_api import models  # noqa: F401  registers the tables on Base.metadata
from mcoj_api.database import Base, engine, get_table_names
from mcoj_api.errors import UpstreamStoreError
from mcoj_api.services.storage import PUBLIC_BUCKETS, REQUIRED_BUCKETS, BlobStore

logger = logging.getLogger(__name__)

# Tables the JSON migration writes into
REQUIRED_TABLES = ["gallery", "events", "videos"]


async def provision_schema(bind: AsyncEngine = None) -> Dict[str, List[str]]:
    """Create any missing tables. Existing tables are left untouched."""
    bind = bind or engine
    before = set(await get_table_names(bind))

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    after = set(await get_table_names(bind))
    created = sorted(after - before)
    existing = sorted(before & set(Base.metadata.tables))

    for table in created:
        logger.info(f"Created table {table}")
    return {"created": created, "existing": existing}


async def check_tables(bind: AsyncEngine = None, required: List[str] = None) -> Dict:
    required = required or REQUIRED_TABLES
    try:
        present = set(await get_table_names(bind or engine))
    except Exception as e:
        logger.error(f"Error checking tables: {str(e)}", exc_info=True)
        raise UpstreamStoreError(f"Error checking tables: {str(e)}")

    missing = [table for table in required if table not in present]
    return {"allExist": not missing, "missing": missing}


async def check_buckets(blobs: BlobStore, required: List[str] = None) -> Dict:
    missing = [bucket for bucket in (required or REQUIRED_BUCKETS) if not await blobs.bucket_exists(bucket)]
    return {"allExist": not missing, "missing": missing}


async def ensure_buckets(blobs: BlobStore) -> Dict:
    """Create every required bucket that does not exist yet."""
    result = {"success": True, "created": [], "existing": [], "failed": []}

    for bucket in REQUIRED_BUCKETS:
        if await blobs.bucket_exists(bucket):
            logger.info(f"Bucket \"{bucket}\" already exists")
            result["existing"].append(bucket)
            continue

        if await blobs.create_bucket(bucket, public=bucket in PUBLIC_BUCKETS):
            result["created"].append(bucket)
        else:
            result["success"] = False
            result["failed"].append(bucket)

    return result


async def storage_stats(blobs: BlobStore) -> Dict:
    """File count and total size per bucket, plus the overall total."""
    stats = {"total": {"size": 0, "files": 0}}
    missing = []

    for bucket in REQUIRED_BUCKETS:
        if not await blobs.bucket_exists(bucket):
            missing.append(bucket)
            continue
        objects = await blobs.list(bucket)
        size = sum(obj.get("size", 0) for obj in objects)
        stats[bucket] = {"size": size, "files": len(objects)}
        stats["total"]["size"] += size
        stats["total"]["files"] += len(objects)

    return {
        "success": len(missing) < len(REQUIRED_BUCKETS),
        "setupRequired": len(missing) == len(REQUIRED_BUCKETS),
        "missingBuckets": missing,
        "stats": stats,
    }
