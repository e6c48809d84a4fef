import pytest
from cloudinary.exceptions import Error as CloudinaryError

from mcoj_api.errors import ConfigurationError, UpstreamStoreError
from mcoj_api.models import GalleryImage, GalleryVideo
from mcoj_api.services import video_service
from mcoj_api.services import cloudinary_service
from mcoj_api.services.cloudinary_service import CloudinaryBlobStore, public_id_for, resource_type_for
from mcoj_api.services.gallery_service import GalleryManager


@pytest.fixture
def store(monkeypatch):
    async def no_sleep(seconds):
        return None

    monkeypatch.setattr(cloudinary_service.asyncio, "sleep", no_sleep)
    return CloudinaryBlobStore("demo", "key", "secret", max_retries=3)


def test_resource_types_and_public_ids():
    assert resource_type_for("a.JPG") == "image"
    assert resource_type_for("clip.mp4") == "video"
    assert resource_type_for("notes.pdf") == "raw"
    assert public_id_for("gallery", "ab12.jpg") == "gallery/ab12"
    assert public_id_for("temp", "notes.pdf") == "temp/notes.pdf"


def test_missing_credentials():
    with pytest.raises(ConfigurationError):
        CloudinaryBlobStore("", "key", "secret")


async def test_upload_retries_then_succeeds(store, monkeypatch):
    calls = []

    def fake_upload(data, **options):
        calls.append(options)
        if len(calls) < 3:
            raise CloudinaryError("timeout")
        return {"public_id": options["public_id"], "secure_url": "https://cdn.example/gallery/ab12.jpg"}

    monkeypatch.setattr(cloudinary_service.cloudinary.uploader, "upload", fake_upload)

    url = await store.upload("gallery", "ab12.jpg", b"data", "image/jpeg")

    assert url == "https://cdn.example/gallery/ab12.jpg"
    assert len(calls) == 3
    assert calls[0]["public_id"] == "gallery/ab12"
    assert calls[0]["overwrite"] is True


async def test_upload_gives_up_after_retries(store, monkeypatch):
    def failing_upload(data, **options):
        raise CloudinaryError("down")

    monkeypatch.setattr(cloudinary_service.cloudinary.uploader, "upload", failing_upload)

    with pytest.raises(UpstreamStoreError, match="down"):
        await store.upload("gallery", "ab12.jpg", b"data")


async def test_delete_reports_missing_objects(store, monkeypatch):
    results = iter([{"result": "ok"}, {"result": "not found"}])
    monkeypatch.setattr(cloudinary_service.cloudinary.uploader, "destroy", lambda public_id, **options: next(results))

    assert await store.delete("gallery", "ab12.jpg") is True
    assert await store.delete("gallery", "ab12.jpg") is False


async def test_list_adds_format_back_to_names(store, monkeypatch):
    def fake_resources(**options):
        if options["resource_type"] == "image":
            return {"resources": [{"public_id": "gallery/ab12", "format": "jpg", "bytes": 10}]}
        return {"resources": []}

    monkeypatch.setattr(cloudinary_service.cloudinary.api, "resources", fake_resources)

    assert await store.list("gallery") == [{"name": "ab12.jpg", "size": 10, "id": "gallery/ab12"}]


def fake_cloud(monkeypatch, listed):
    """Serve listed[(resource_type, folder)] from resources() and record destroy() calls."""
    destroyed = []

    def fake_resources(**options):
        return {"resources": listed.get((options["resource_type"], options["prefix"].rstrip("/")), [])}

    def fake_destroy(public_id, **options):
        destroyed.append(public_id)
        return {"result": "ok"}

    monkeypatch.setattr(cloudinary_service.cloudinary.api, "resources", fake_resources)
    monkeypatch.setattr(cloudinary_service.cloudinary.uploader, "destroy", fake_destroy)
    return destroyed


async def test_gallery_orphans_match_on_public_id(store, db, monkeypatch):
    # Cloudinary reports the jpeg upload back with its normalized jpg format
    db.add(GalleryImage(
        id="gallery_image_1.jpeg",
        filename="gallery_image_1.jpeg",
        src="https://cdn.example/gallery/gallery_image_1.jpeg",
        blob_key="gallery_image_1.jpeg",
        alt="",
        placeholder_position=1,
        is_archived=False,
    ))
    await db.commit()
    destroyed = fake_cloud(monkeypatch, {
        ("image", "gallery"): [
            {"public_id": "gallery/gallery_image_1", "format": "jpg", "bytes": 10},
            {"public_id": "gallery/stray", "format": "png", "bytes": 5},
        ],
    })
    manager = GalleryManager(db, store)

    assert [obj["name"] for obj in await manager.find_orphaned_blobs()] == ["stray.png"]

    deleted, errors = await manager.delete_orphaned_blobs(["gallery_image_1.jpg", "stray.png"])

    assert deleted == ["stray.png"]
    assert len(errors) == 1
    assert destroyed == ["gallery/stray"]


async def test_video_orphans_match_on_public_id(store, db, monkeypatch):
    db.add(GalleryVideo(
        id="a1",
        title="Live",
        src="https://cdn.example/videos/a1.mp4",
        thumbnail_src="https://cdn.example/thumbnails/a1-thumb.jpeg",
        video_key="a1.mp4",
        thumbnail_key="a1-thumb.jpeg",
        order_index=1,
    ))
    await db.commit()
    destroyed = fake_cloud(monkeypatch, {
        ("video", "videos"): [{"public_id": "videos/a1", "format": "mp4", "bytes": 100}],
        ("image", "thumbnails"): [{"public_id": "thumbnails/a1-thumb", "format": "jpg", "bytes": 10}],
    })

    orphans = await video_service.find_orphaned_video_blobs(db, store)
    assert orphans["totalOrphaned"] == 0

    result = await video_service.cleanup_orphaned_video_blobs(db, store, [], ["a1-thumb.jpg"])
    assert result["deletedThumbnails"] == []
    assert destroyed == []
