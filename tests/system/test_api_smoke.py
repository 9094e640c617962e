"""
System smoke test: full API flow in-process with SQLite.
Verifies health, identity, the observation moderation workflow, search
visibility, image upload and the error mapping.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from sightings.api.deps import get_blob_store
from sightings.database import get_db
from sightings.kernel.models import UserRoleAssignment
from sightings.kernel.permissions import Role
from sightings.main import app

API = "/api/v1"
OWNER = {"X-User-Id": "user-u"}
OTHER = {"X-User-Id": "user-v"}
MODERATOR = {"X-User-Id": "mod-m"}
ADMIN = {"X-User-Id": "admin-a"}

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest_asyncio.fixture
async def client(session_maker, blob_store) -> AsyncGenerator[AsyncClient, None]:
    """Async client on a scratch database with in-memory blob storage."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async with session_maker() as session:
        session.add(UserRoleAssignment(user_id="mod-m", role=Role.MODERATOR.value, assigned_by="setup"))
        session.add(UserRoleAssignment(user_id="admin-a", role=Role.SECURITY_ADMIN.value, assigned_by="setup"))
        await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_blob_store, None)


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert "version" in data
    assert "X-Request-ID" in r.headers


@pytest.mark.asyncio
async def test_observation_workflow(client: AsyncClient):
    """Create -> revise -> publish -> public read."""
    r = await client.post(
        f"{API}/observations",
        json={"description": "sighting A", "location": {"latitude": 10, "longitude": 20}},
        headers=OWNER,
    )
    assert r.status_code == 201, r.text
    obs = r.json()
    item_id = obs["item_id"]
    assert obs["revision_id"] == 0
    assert obs["owner"] == "user-u"
    assert obs["published"] is False
    assert obs["can_edit"] is True
    assert obs["can_publish"] is False

    # Drafts are private
    r = await client.get(f"{API}/observations/{item_id}")
    assert r.status_code == 401
    r = await client.get(f"{API}/observations/{item_id}", headers=OTHER)
    assert r.status_code == 403
    assert r.json()["code"] == "NotAuthorizedError"

    r = await client.post(
        f"{API}/observations/{item_id}/revisions",
        json={"description": "sighting A, revised"},
        headers=OWNER,
    )
    assert r.status_code == 201, r.text
    rev1 = r.json()
    assert rev1["revision_id"] == 1
    assert rev1["location"] == {"latitude": 10, "longitude": 20}

    # Owners without validated-user cannot publish
    r = await client.post(f"{API}/observations/{item_id}/revisions/1/publish", headers=OWNER)
    assert r.status_code == 403

    # New revisions are drafts until the owner submits them
    assert rev1["submitted"] is False
    r = await client.get(f"{API}/observations/pending", headers=MODERATOR)
    assert r.status_code == 200
    assert {(p["item_id"], p["revision_id"]) for p in r.json()} == {(item_id, 0)}

    r = await client.post(f"{API}/observations/{item_id}/revisions/1/submit", headers=OWNER)
    assert r.status_code == 200, r.text
    assert r.json()["submitted"] is True

    r = await client.get(f"{API}/observations/pending", headers=MODERATOR)
    assert {(p["item_id"], p["revision_id"]) for p in r.json()} == {(item_id, 0), (item_id, 1)}

    r = await client.post(f"{API}/observations/{item_id}/revisions/1/publish", headers=MODERATOR)
    assert r.status_code == 200, r.text
    assert r.json()["published"] is True

    r = await client.get(f"{API}/observations/{item_id}/published")
    assert r.status_code == 200
    published = r.json()
    assert published["revision_id"] == 1
    assert published["images"] == []

    r = await client.get(f"{API}/observations", params={"min_lat": 0, "max_lat": 60, "min_lng": 0, "max_lng": 60})
    assert r.status_code == 200
    page = r.json()
    assert [(o["item_id"], o["revision_id"]) for o in page["items"]] == [(item_id, 1)]

    # Published revisions are append-only
    r = await client.patch(
        f"{API}/observations/{item_id}/revisions/1",
        json={"description": "rewrite"},
        headers=OWNER,
    )
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidStateError"


@pytest.mark.asyncio
async def test_anonymous_cannot_create(client: AsyncClient):
    r = await client.post(f"{API}/observations", json={"description": "x"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_missing_item(client: AsyncClient):
    r = await client.get(f"{API}/observations/does-not-exist", headers=OWNER)
    assert r.status_code == 404
    body = r.json()
    assert body["code"] == "NotFoundError"
    assert body["item_id"] == "does-not-exist"


@pytest.mark.asyncio
async def test_validation_errors(client: AsyncClient):
    r = await client.post(
        f"{API}/observations",
        json={"location": {"latitude": 200, "longitude": 0}},
        headers=OWNER,
    )
    assert r.status_code == 422
    assert r.json()["detail"] == "Validation error"

    # A box needs all four bounds
    r = await client.get(f"{API}/observations", params={"min_lat": 0})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_image_upload_and_pin(client: AsyncClient, blob_store):
    r = await client.post(
        f"{API}/images",
        content=PNG_BYTES,
        params={"description": "kingfisher", "latitude": 51.5, "longitude": -0.1},
        headers={**OWNER, "Content-Type": "image/png"},
    )
    assert r.status_code == 201, r.text
    image = r.json()
    assert image["content_type"] == "image/png"
    assert image["url"].startswith("https://blobs.test/images/")
    assert blob_store.objects[image["storage_key"]] == PNG_BYTES

    r = await client.get(f"{API}/images/{image['item_id']}/revisions/0/payload", headers=OWNER)
    assert r.status_code == 200
    assert r.content == PNG_BYTES
    assert r.headers["content-type"] == "image/png"

    r = await client.post(
        f"{API}/observations",
        json={"image_refs": [{"item_id": image["item_id"], "revision_id": 0}]},
        headers=OWNER,
    )
    assert r.status_code == 201, r.text
    obs = r.json()

    r = await client.get(f"{API}/observations/{obs['item_id']}", headers=OWNER)
    assert r.status_code == 200
    assert [i["item_id"] for i in r.json()["images"]] == [image["item_id"]]

    r = await client.delete(f"{API}/images/{image['item_id']}", headers=OWNER)
    assert r.status_code == 204
    assert image["storage_key"] not in blob_store.objects
    r = await client.get(f"{API}/images/{image['item_id']}", headers=OWNER)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_image_upload_rejections(client: AsyncClient, blob_store):
    r = await client.post(
        f"{API}/images",
        content=b"not an image",
        headers={**OWNER, "Content-Type": "text/plain"},
    )
    assert r.status_code == 415

    r = await client.post(
        f"{API}/images",
        content=PNG_BYTES,
        headers={"Content-Type": "image/png"},
    )
    assert r.status_code == 401
    assert blob_store.objects == {}


@pytest.mark.asyncio
async def test_role_administration(client: AsyncClient):
    r = await client.post(f"{API}/admin/users/user-u/roles", json={"role": "validated-user"}, headers=OTHER)
    assert r.status_code == 403

    r = await client.post(f"{API}/admin/users/user-u/roles", json={"role": "validated-user"}, headers=ADMIN)
    assert r.status_code == 201, r.text
    assert r.json()["roles"] == ["validated-user"]

    r = await client.get(f"{API}/admin/users/user-u/roles", headers=OWNER)
    assert r.status_code == 200
    assert "publish-own" in r.json()["permissions"]

    # The new role takes effect on the next request
    r = await client.post(f"{API}/observations", json={"description": "mine"}, headers=OWNER)
    item_id = r.json()["item_id"]
    r = await client.post(f"{API}/observations/{item_id}/revisions/0/publish", headers=OWNER)
    assert r.status_code == 200

    r = await client.delete(f"{API}/admin/users/user-u/roles/validated-user", headers=ADMIN)
    assert r.status_code == 204
