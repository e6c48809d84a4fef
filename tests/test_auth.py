from datetime import timedelta

import pytest

from mcoj_api.config import settings
from mcoj_api.errors import ConfigurationError
from mcoj_api.utils.auth import hash_password, verify_admin_password, verify_password
from mcoj_api.utils.jwt_auth import COOKIE_NAME, create_access_token


@pytest.fixture
def admin_password(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", hash_password("rewind-selecta"))
    return "rewind-selecta"


def test_password_hashing():
    hashed = hash_password("secret")

    assert hashed != "secret"
    assert verify_password("secret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret", "not-a-bcrypt-hash")


def test_unconfigured_admin_password(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", "")
    with pytest.raises(ConfigurationError):
        verify_admin_password("anything")


async def test_login_sets_cookie_and_returns_token(client, admin_password):
    response = await client.post("/api/admin/auth/login", json={"password": admin_password})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["expiresIn"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    token = body["token"]
    set_cookie = response.headers["set-cookie"]
    assert f"{COOKIE_NAME}={token}" in set_cookie
    assert "httponly" in set_cookie.lower()

    response = await client.get("/api/admin/storage/stats", headers={"Cookie": f"{COOKIE_NAME}={token}"})
    assert response.status_code == 200


async def test_login_rejects_wrong_password(client, admin_password):
    response = await client.post("/api/admin/auth/login", json={"password": "nope"})

    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


async def test_login_without_configured_hash(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_PASSWORD_HASH", "")

    response = await client.post("/api/admin/auth/login", json={"password": "x"})

    assert response.status_code == 500
    assert response.json()["error"] == "ADMIN_PASSWORD_HASH not configured"


async def test_login_is_rate_limited(client, admin_password):
    for _ in range(5):
        response = await client.post("/api/admin/auth/login", json={"password": "guess"})
        assert response.status_code == 401

    response = await client.post("/api/admin/auth/login", json={"password": admin_password})
    assert response.status_code == 429
    assert response.json()["success"] is False


async def test_logout_clears_cookie(client):
    response = await client.post("/api/admin/auth/logout")

    assert response.status_code == 200
    assert f'{COOKIE_NAME}=""' in response.headers["set-cookie"]


async def test_expired_and_forged_tokens_are_rejected(client):
    expired = create_access_token({"role": "admin"}, expires_delta=timedelta(minutes=-5))
    response = await client.get("/api/admin/storage/stats", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401

    response = await client.get("/api/admin/storage/stats", headers={"Authorization": "Bearer not.a.token"})
    assert response.status_code == 401

    response = await client.get("/api/admin/storage/stats", headers={"Authorization": "Basic abc"})
    assert response.status_code == 401


async def test_storage_stats(client, auth_headers, blobs):
    response = await client.get("/api/admin/storage/stats", headers=auth_headers)
    assert response.json()["setupRequired"] is True

    await blobs.create_bucket("gallery")
    await blobs.upload("gallery", "a.jpg", b"12345")

    body = (await client.get("/api/admin/storage/stats", headers=auth_headers)).json()
    assert body["setupRequired"] is False
    assert body["stats"]["gallery"] == {"size": 5, "files": 1}
    assert body["stats"]["total"] == {"size": 5, "files": 1}
    assert "videos" in body["missingBuckets"]


async def test_health_endpoints(client, blobs):
    assert (await client.get("/health")).json() == {"status": "healthy"}
    assert (await client.get("/health/db")).json()["database"] == "connected"

    storage = (await client.get("/health/storage")).json()
    assert storage["storage"] == "local"
    assert storage["status"] == "warning"
