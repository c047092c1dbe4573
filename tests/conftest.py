import os

import httpx
import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

# Ensure required env vars exist before the app imports settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_REQUESTS", "false")

from qa_center.audio.router import get_audio_http_client  # noqa: E402
from qa_center.auth.permissions import admin_permissions, empty_permissions  # noqa: E402
from qa_center.core.database import Base, get_db  # noqa: E402
from qa_center.core.security import get_password_hash, create_access_token  # noqa: E402
from qa_center.main import app as fastapi_app  # noqa: E402
from qa_center.models.user import User  # noqa: E402
from qa_center.scheduler.service import SchedulerService, get_scheduler_service  # noqa: E402


AUDIO_BYTES = b"ID3" + bytes(range(256)) * 4


async def _stream(data: bytes, chunk_size: int = 256):
    """Yield ``data`` in chunks so responses stay unread until the proxy streams them."""
    for offset in range(0, len(data), chunk_size):
        yield data[offset:offset + chunk_size]


def audio_upstream(request: httpx.Request) -> httpx.Response:
    """Fake recording host used by the audio proxy tests."""
    if request.url.path.endswith("/missing.mp3"):
        return httpx.Response(404)
    if request.url.path.endswith("/broken.mp3"):
        raise httpx.ConnectError("connection refused", request=request)

    range_header = request.headers.get("range")
    if range_header:
        start, end = range_header.removeprefix("bytes=").split("-")
        start = int(start)
        end = int(end) if end else len(AUDIO_BYTES) - 1
        chunk = AUDIO_BYTES[start:end + 1]
        return httpx.Response(
            206,
            content=_stream(chunk),
            headers={
                "content-type": "audio/mpeg",
                "content-range": f"bytes {start}-{end}/{len(AUDIO_BYTES)}",
                "content-length": str(len(chunk)),
            },
        )
    return httpx.Response(
        200,
        content=_stream(AUDIO_BYTES),
        headers={"content-type": "audio/mpeg", "content-length": str(len(AUDIO_BYTES)), "etag": '"abc"'},
    )


@pytest.fixture()
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        os.environ["DATABASE_URL"],
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory):
    """Yield a database session for direct model access."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def scheduler_service(session_factory):
    """Scheduler service whose APScheduler instance is never started."""
    return SchedulerService(session_factory=session_factory, scheduler=AsyncIOScheduler())


@pytest.fixture()
async def client(session_factory, scheduler_service):
    """API client with DB, scheduler and audio upstream overridden."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    audio_client = httpx.AsyncClient(transport=httpx.MockTransport(audio_upstream))

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_scheduler_service] = lambda: scheduler_service
    fastapi_app.dependency_overrides[get_audio_http_client] = lambda: audio_client

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()
    await audio_client.aclose()


@pytest.fixture()
async def user_factory(db_session):
    """Factory to create users in the test DB."""

    async def _create_user(
        username: str = "user",
        email: str | None = None,
        password: str = "secret123",
        is_agent: bool = True,
        permissions: dict | None = None,
        **kwargs,
    ) -> User:
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            hashed_password=get_password_hash(password),
            is_agent=is_agent,
            **kwargs,
        )
        if permissions is None:
            permissions = empty_permissions() if is_agent else admin_permissions()
        user.permissions = permissions
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create_user


def bearer(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user.id})}"}


@pytest.fixture()
async def admin_user(user_factory):
    return await user_factory(username="admin", password="admin12345", is_agent=False)


@pytest.fixture()
async def agent_user(user_factory):
    return await user_factory(username="agent", agent_id="1001")


@pytest.fixture()
def admin_header(admin_user):
    return bearer(admin_user)


@pytest.fixture()
def agent_header(agent_user):
    return bearer(agent_user)


@pytest.fixture()
def auth_headers():
    """Build an Authorization header for any user."""
    return bearer


@pytest.fixture()
def audio_bytes():
    """Body served by the fake recording host."""
    return AUDIO_BYTES
