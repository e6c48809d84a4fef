import json
from datetime import datetime

import pytest
from sqlalchemy import select, update

from mcoj_api.config import settings
from mcoj_api.models import Event, GalleryImage, GalleryVideo
from mcoj_api.services import migration, provisioning
from mcoj_api.services.storage import REQUIRED_BUCKETS


@pytest.fixture
def legacy(tmp_path):
    """A legacy public/ tree with data files and the media they reference."""
    public = tmp_path / "public"
    data = public / "data"
    (public / "gallery").mkdir(parents=True)
    (public / "events").mkdir()
    (public / "videos" / "thumbnails").mkdir(parents=True)
    data.mkdir()

    for name in ("g1.jpg", "g2.jpg", "g3.jpg"):
        (public / "gallery" / name).write_bytes(b"jpeg " + name.encode())
    (public / "events" / "flyer.png").write_bytes(b"png")
    (public / "videos" / "set.mp4").write_bytes(b"mp4")
    (public / "videos" / "thumbnails" / "set.jpg").write_bytes(b"thumb")

    (data / "gallery.json").write_text(json.dumps([
        {"src": "/gallery/g1.jpg", "placeholder_position": 1, "is_archived": False},
        {"src": "/gallery/g2.jpg", "placeholder_position": 1, "is_archived": False},
        {"src": "/gallery/g3.jpg", "placeholder_position": None, "is_archived": True},
        {"src": "/gallery/missing.jpg", "placeholder_position": 12, "is_archived": False},
    ]))
    (data / "events.json").write_text(json.dumps([
        {"id": "1", "date": "2026-05-01", "venue": "Fabric", "eventName": "Garage Nation",
         "timeStart": "22:00", "timeEnd": "04:00", "ticketLink": ""},
        {"id": "2", "date": "2026-06-01", "venue": "XOYO", "eventName": "Sunday Social"},
    ]))
    (data / "videos.json").write_text(json.dumps([
        {"id": "v1", "title": "Live", "src": "/videos/set.mp4", "thumbnailSrc": "/videos/thumbnails/set.jpg"},
    ]))
    return data, public


async def test_migrate_all_aborts_without_buckets(db, blobs, engine, legacy):
    data, public = legacy

    result = await migration.migrate_all(db, blobs, data, public, bind=engine)

    assert result["success"] is False
    assert "Missing required storage buckets" in result["error"]
    assert (await db.execute(select(GalleryImage))).scalars().all() == []


async def test_check_tables_uses_introspection(engine):
    result = await provisioning.check_tables(engine, required=["gallery", "events", "videos", "nope"])
    assert result == {"allExist": False, "missing": ["nope"]}


async def test_provision_schema_is_idempotent(engine):
    result = await provisioning.provision_schema(engine)
    assert result["created"] == []
    assert set(result["existing"]) >= {"gallery", "events", "videos", "booking_requests"}


async def test_ensure_buckets(blobs):
    first = await provisioning.ensure_buckets(blobs)
    second = await provisioning.ensure_buckets(blobs)

    assert first["created"] == REQUIRED_BUCKETS
    assert second["existing"] == REQUIRED_BUCKETS
    assert (await provisioning.check_buckets(blobs))["allExist"] is True


async def test_migrate_all(db, blobs, engine, legacy, media_root):
    data, public = legacy
    await provisioning.ensure_buckets(blobs)

    result = await migration.migrate_all(db, blobs, data, public, bind=engine)

    assert result["success"] is True
    gallery = result["results"]["gallery"]
    assert gallery["migrated"] == 4
    # g2 loses the position clash, the out-of-range record is archived, missing.jpg has no file
    assert len(gallery["warnings"]) == 3

    rows = {row.src: row for row in (await db.execute(select(GalleryImage))).scalars().all()}
    assert rows["/gallery/g1.jpg"].placeholder_position == 1
    assert rows["/gallery/g2.jpg"].placeholder_position is None
    assert rows["/gallery/g2.jpg"].is_archived is True
    assert rows["/gallery/missing.jpg"].placeholder_position is None
    assert (media_root / "gallery" / "g1.jpg").read_bytes() == b"jpeg g1.jpg"

    events = (await db.execute(select(Event).order_by(Event.position))).scalars().all()
    assert [(e.id, e.event_name, e.position) for e in events] == [("1", "Garage Nation", 1), ("2", "Sunday Social", 2)]
    assert events[0].ticket_link is None
    assert (media_root / "events" / "flyer.png").is_file()

    video = (await db.execute(select(GalleryVideo))).scalar_one()
    assert video.video_key == "set.mp4"
    assert video.thumbnail_key == "set.jpg"
    assert (media_root / "thumbnails" / "set.jpg").is_file()


async def test_migration_is_repeatable(db, blobs, engine, legacy):
    data, public = legacy
    await provisioning.ensure_buckets(blobs)

    await migration.migrate_all(db, blobs, data, public, bind=engine)
    await migration.migrate_all(db, blobs, data, public, bind=engine)

    assert len((await db.execute(select(GalleryImage))).scalars().all()) == 4
    assert len((await db.execute(select(Event))).scalars().all()) == 2


async def test_same_file_name_in_different_folders(db, blobs, engine, tmp_path, media_root):
    public = tmp_path / "public"
    data = public / "data"
    for folder in ("gallery", "archive"):
        (public / "images" / folder).mkdir(parents=True)
        (public / "images" / folder / "photo.jpg").write_bytes(folder.encode())
    data.mkdir()
    (data / "gallery.json").write_text(json.dumps([
        {"src": "/images/gallery/photo.jpg", "placeholder_position": 1, "is_archived": False},
        {"src": "/images/archive/photo.jpg", "placeholder_position": None, "is_archived": True},
    ]))
    await provisioning.ensure_buckets(blobs)

    first = await migration.migrate_all(db, blobs, data, public, bind=engine)
    second = await migration.migrate_all(db, blobs, data, public, bind=engine)

    assert first["results"]["gallery"] == {"success": True, "migrated": 2, "warnings": []}
    assert second["results"]["gallery"]["success"] is True
    rows = {row.src: row for row in (await db.execute(select(GalleryImage))).scalars().all()}
    assert len(rows) == 2
    live, archived = rows["/images/gallery/photo.jpg"], rows["/images/archive/photo.jpg"]
    assert live.id != archived.id
    assert live.blob_key == live.id and archived.blob_key == archived.id
    # Both files survive under their own keys, and re-running reuses them
    assert (media_root / "gallery" / live.blob_key).read_bytes() == b"gallery"
    assert (media_root / "gallery" / archived.blob_key).read_bytes() == b"archive"
    assert len(list((media_root / "gallery").iterdir())) == 2


async def test_rerun_refreshes_updated_at(db, blobs, engine, legacy):
    data, public = legacy
    await provisioning.ensure_buckets(blobs)
    await migration.migrate_all(db, blobs, data, public, bind=engine)

    await db.execute(update(GalleryImage).values(updated_at=datetime(2000, 1, 1)))
    await db.commit()
    await migration.migrate_all(db, blobs, data, public, bind=engine)

    result = await db.execute(select(GalleryImage).execution_options(populate_existing=True))
    assert all(row.updated_at.year > 2000 for row in result.scalars().all())


async def test_missing_json_is_skipped(db, blobs, tmp_path):
    result = await migration.migrate_events(db, blobs, tmp_path / "nowhere", tmp_path)
    assert result == {"success": True, "skipped": True, "migrated": 0, "warnings": []}


async def test_malformed_json_fails_that_part_only(db, blobs, engine, legacy):
    data, public = legacy
    await provisioning.ensure_buckets(blobs)
    (data / "events.json").write_text("{not json")

    result = await migration.migrate_all(db, blobs, data, public, bind=engine)

    assert result["success"] is False
    assert result["results"]["events"]["success"] is False
    assert result["results"]["gallery"]["success"] is True
    assert result["results"]["videos"]["success"] is True


async def test_migration_api(client, auth_headers, blobs, legacy, monkeypatch):
    data, public = legacy
    monkeypatch.setattr(settings, "MIGRATION_DATA_DIR", str(data))
    monkeypatch.setattr(settings, "MIGRATION_PUBLIC_DIR", str(public))

    status = (await client.get("/api/admin/migration/status", headers=auth_headers)).json()
    assert status["ready"] is False
    assert status["bucketsCheck"]["missing"] == REQUIRED_BUCKETS

    response = await client.post("/api/admin/setup-buckets", headers=auth_headers)
    assert response.json()["success"] is True
    response = await client.post("/api/admin/setup-database", headers=auth_headers)
    assert response.json()["created"] == []

    assert (await client.get("/api/admin/migration/status", headers=auth_headers)).json()["ready"] is True

    result = (await client.post("/api/admin/migrate", headers=auth_headers)).json()
    assert result["success"] is True

    gallery = (await client.get("/api/gallery")).json()
    assert [img["placeholderPosition"] for img in gallery["images"]] == [1]
