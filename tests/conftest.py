"""
Pytest fixtures for Sightings tests.
"""

import os
import tempfile
from typing import AsyncGenerator, Callable, Dict

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

# Point the app's own engine at a scratch file before anything imports it
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp.name}"

from sightings.config import get_settings  # noqa: E402

get_settings.cache_clear()

from sightings.database import build_engine, build_session_maker  # noqa: E402
from sightings.kernel.errors import NotFoundError  # noqa: E402
from sightings.kernel.identity import AuthContext  # noqa: E402
from sightings.kernel.models import Base  # noqa: E402
from sightings.kernel.permissions import Role  # noqa: E402
from sightings.kernel.revisions import ImageStore, ObservationStore  # noqa: E402


OWNER_ID = "user-u"
OTHER_ID = "user-v"
MODERATOR_ID = "mod-m"
ADMIN_ID = "admin-a"


class FakeBlobStore:
    """In-memory BlobStore."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        self.objects[key] = data
        self.content_types[key] = content_type
        return key

    async def get(self, key: str) -> bytes:
        if key not in self.objects:
            raise NotFoundError(f"Blob {key} not found")
        return self.objects[key]

    async def delete(self, key: str) -> None:
        self.objects.pop(key, None)
        self.content_types.pop(key, None)

    async def signed_url(self, key: str, ttl_seconds: int) -> str:
        return f"https://blobs.test/{key}?expires={ttl_seconds}"


def pytest_sessionfinish(session, exitstatus):
    """Clean up the scratch DB file after the run."""
    if os.path.exists(_tmp.name):
        os.unlink(_tmp.name)


# Database

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Engine on a throw-away SQLite file with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'sightings-test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return build_session_maker(db_engine)


@pytest_asyncio.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
        await session.rollback()


# Callers

@pytest.fixture
def owner() -> AuthContext:
    """Plain authenticated user U."""
    return AuthContext.for_user(OWNER_ID)


@pytest.fixture
def other_user() -> AuthContext:
    """Plain authenticated user V, not the owner."""
    return AuthContext.for_user(OTHER_ID)


@pytest.fixture
def validated_owner() -> AuthContext:
    """User U with publish-own."""
    return AuthContext.for_user(OWNER_ID, [Role.VALIDATED_USER])


@pytest.fixture
def moderator() -> AuthContext:
    return AuthContext.for_user(MODERATOR_ID, [Role.MODERATOR])


@pytest.fixture
def security_admin() -> AuthContext:
    return AuthContext.for_user(ADMIN_ID, [Role.SECURITY_ADMIN])


@pytest.fixture
def anonymous() -> AuthContext:
    return AuthContext.anonymous()


# Stores

@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def image_store_for(db_session, blob_store) -> Callable[[AuthContext], ImageStore]:
    """Build an ImageStore for a caller on the shared test session."""

    def _make(context: AuthContext) -> ImageStore:
        return ImageStore(db_session, context, blob_store=blob_store, url_ttl_seconds=600)

    return _make


@pytest.fixture
def observation_store_for(db_session, image_store_for) -> Callable[[AuthContext], ObservationStore]:
    """Build an ObservationStore (with image checks) for a caller."""

    def _make(context: AuthContext) -> ObservationStore:
        return ObservationStore(db_session, context, image_store=image_store_for(context))

    return _make
