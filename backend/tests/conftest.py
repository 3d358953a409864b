"""
Pytest fixtures for test database, client, identities and seed data.

Each test gets a fresh database (in-memory SQLite through aiosqlite unless
TEST_DATABASE_URL points elsewhere): tables are created before the test and
dropped after it. Seed fixtures return ids, not ORM objects, so they stay
valid after a request rolls the session back.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("SMS_BACKEND", "console")

import asyncio
from datetime import date, time
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rehearsal.main import app
from rehearsal.db.base import Base
from rehearsal.db.session import build_engine, get_db
from rehearsal.core.exceptions import TransportError
from rehearsal.core.security import Identity, create_access_token
from rehearsal.infrastructure.transport_factory import get_transport
from rehearsal.models import Capability, RehearsalSession, SessionSong, Song, User
from rehearsal.models.capability import song_capabilities, user_capabilities
from rehearsal.services.interfaces.transport import MessageTransport

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


class FakeTransport(MessageTransport):
    """Records sends; destinations listed in ``fail`` raise, in ``hang`` never return."""

    name = "fake"

    def __init__(self):
        self.sent: list[tuple[str, str]] = []
        self.fail: set[str] = set()
        self.hang: set[str] = set()

    async def send(self, destination: str, message: str) -> None:
        if destination in self.hang:
            await asyncio.sleep(3600)
        if destination in self.fail:
            raise TransportError("carrier rejected number")
        self.sent.append((destination, message))


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    engine = build_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, fake_transport: FakeTransport) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test session and the recording transport."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transport] = lambda: fake_transport

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def capabilities(db_session: AsyncSession) -> dict[str, int]:
    """Catalog: bass, drums, guitar, vocals -> id."""
    rows = [Capability(name=name, icon="🎸") for name in ("bass", "drums", "guitar", "vocals")]
    db_session.add_all(rows)
    await db_session.commit()
    return {c.name: c.id for c in rows}


@pytest_asyncio.fixture
async def members(db_session: AsyncSession, capabilities: dict[str, int]) -> dict[str, int]:
    """
    Band members -> id.

    alice: bass (phone)        bob: bass, drums (phone)
    carol: bass (no phone)     dave: drums, vocals (phone)
    admin: no capabilities (phone)
    """
    people = {
        "alice": ("Alice", "(555) 010-0001", ["bass"]),
        "bob": ("Bob", "555-010-0002", ["bass", "drums"]),
        "carol": ("Carol", None, ["bass"]),
        "dave": ("Dave", "+1 555 010 0004", ["drums", "vocals"]),
        "admin": ("Zed Admin", "5550100009", []),
    }
    users = {
        key: User(name=name, email=f"{key}@band.test", phone=phone, user_type="admin" if key == "admin" else "user")
        for key, (name, phone, _) in people.items()
    }
    db_session.add_all(users.values())
    await db_session.flush()

    links = [
        {"user_id": users[key].id, "capability_id": capabilities[cap]}
        for key, (_, _, caps) in people.items()
        for cap in caps
    ]
    await db_session.execute(insert(user_capabilities), links)
    await db_session.commit()
    return {key: user.id for key, user in users.items()}


@pytest_asyncio.fixture
async def songs(db_session: AsyncSession, capabilities: dict[str, int]) -> dict[str, int]:
    """Catalog songs -> id. Seven Nation Army needs bass and drums; Free Jam needs nothing."""
    seven = Song(title="Seven Nation Army", artist="The White Stripes")
    jam = Song(title="Free Jam", artist=None)
    db_session.add_all([seven, jam])
    await db_session.flush()
    await db_session.execute(
        insert(song_capabilities),
        [
            {"song_id": seven.id, "capability_id": capabilities["bass"]},
            {"song_id": seven.id, "capability_id": capabilities["drums"]},
        ],
    )
    await db_session.commit()
    return {"seven": seven.id, "jam": jam.id}


@pytest_asyncio.fixture
async def session_id(db_session: AsyncSession, songs: dict[str, int], members: dict[str, int]) -> int:
    """A session playing Seven Nation Army and Free Jam."""
    session = RehearsalSession(
        date=date(2026, 11, 5),
        start_time=time(19, 30),
        end_time=time(0, 0),
        created_by=members["admin"],
    )
    db_session.add(session)
    await db_session.flush()
    db_session.add_all([
        SessionSong(session_id=session.id, song_name="Seven Nation Army", song_url="https://example.com/sna", position=0),
        SessionSong(session_id=session.id, song_name="Free Jam", position=1),
    ])
    await db_session.commit()
    return session.id


@pytest.fixture
def admin(members: dict[str, int]) -> Identity:
    return Identity(user_id=members["admin"], is_admin=True)


def headers_for(user_id: int, role: str = "member") -> dict:
    token = create_access_token(data={"sub": str(user_id), "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Factory: bearer headers for any user id and role."""
    return headers_for


@pytest.fixture
def admin_headers(members: dict[str, int]) -> dict:
    return headers_for(members["admin"], role="admin")


@pytest.fixture
def alice_headers(members: dict[str, int]) -> dict:
    return headers_for(members["alice"])
