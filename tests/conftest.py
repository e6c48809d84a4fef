"""
Shared fixtures: an in-memory SQLite database, a blob store in tmp_path and
an HTTP client wired to both through dependency overrides.
"""
import io

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mcoj_api import models  # noqa: F401
from mcoj_api.config import settings
from mcoj_api.database import Base, get_db
from mcoj_api.dependencies import get_blob_store, get_engine
from mcoj_api.main import app
from mcoj_api.services.gallery_service import GalleryManager
from mcoj_api.services.storage import LocalBlobStore
from mcoj_api.utils.jwt_auth import create_access_token
from mcoj_api.utils.rate_limit import limiter


def make_image(fmt="JPEG", size=(1600, 1200), color=(200, 40, 40)) -> bytes:
    mode = "RGBA" if fmt == "PNG" else "RGB"
    fill = color + (255,) if mode == "RGBA" else color
    buffer = io.BytesIO()
    Image.new(mode, size, fill).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes():
    return make_image()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def media_root(tmp_path):
    return tmp_path / "media"


@pytest.fixture
def blobs(media_root):
    return LocalBlobStore(media_root, base_url="/media")


@pytest.fixture
def gallery(db, blobs):
    return GalleryManager(db, blobs)


@pytest.fixture
def manifest_path(tmp_path, monkeypatch):
    path = tmp_path / "data" / "gallery-manifest.json"
    monkeypatch.setattr(settings, "GALLERY_MANIFEST_PATH", str(path))
    return path


@pytest.fixture
async def client(session_factory, engine, blobs, manifest_path):
    async def override_get_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blobs
    app.dependency_overrides[get_engine] = lambda: engine
    limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token({"role": "admin", "sub": "cms_admin"})
    return {"Authorization": f"Bearer {token}"}
