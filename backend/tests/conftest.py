"""
Pytest fixtures for test database, client, collaborators and seed data.

Every test gets its own SQLite file database, so concurrency tests can open
several independent sessions against the same data.
"""

import json
import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("EVENT_GUARD", "local")

from datetime import timedelta
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.main import app
from app.clients.likes import LikesClient, get_likes_client
from app.clients.stats import StatsClient, get_stats_client
from app.core.clock import utcnow
from app.db.base import Base
from app.db.session import get_db
from app.models.event import ActorRole, Event, StateAction
from app.models.user import User
from app.schemas.category import CategoryCreate
from app.schemas.event import EventCreate, LocationSchema
from app.schemas.user import UserCreate
from app.services.category_service import create_category
from app.services.event_service import create_event
from app.services.interfaces.local_guard import LocalEventGuard
from app.services.lifecycle_service import transition_event
from app.services.strategy_factory import set_event_guard
from app.services.user_service import create_user


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Fresh schema in a per-test SQLite file."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def event_guard():
    """In-process guard, isolated per test."""
    guard = LocalEventGuard(wait_timeout=5.0)
    set_event_guard(guard)
    yield guard
    set_event_guard(None)


class StatsRecorder:
    """Fake statistics service: remembers hits and serves configured views."""

    def __init__(self):
        self.hits: list[dict] = []
        self.views: dict[str, int] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/hit":
            self.hits.append(json.loads(request.content))
            return httpx.Response(201)
        uris = request.url.params.get_list("uris") or list(self.views)
        rows = [
            {"app": "ewm-main-service", "uri": uri, "hits": self.views[uri]}
            for uri in uris if uri in self.views
        ]
        return httpx.Response(200, json=rows)


@pytest.fixture
def stats_recorder() -> StatsRecorder:
    return StatsRecorder()


@pytest_asyncio.fixture
async def stats_client(stats_recorder: StatsRecorder) -> AsyncGenerator[StatsClient, None]:
    client = StatsClient(
        "http://stats",
        app_id="ewm-main-service",
        transport=httpx.MockTransport(stats_recorder.handler),
    )
    yield client
    await client.aclose()


class LikesRecorder:
    """Fake likes service serving configured like counts."""

    def __init__(self):
        self.likes: dict[int, int] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/top"):
            count = int(request.url.params.get("count", 10))
            top = sorted(self.likes.items(), key=lambda kv: -kv[1])[:count]
            return httpx.Response(200, json={str(k): v for k, v in top})
        ids = [int(i) for i in request.url.params.get_list("eventIdList")]
        return httpx.Response(200, json={str(i): self.likes[i] for i in ids if i in self.likes})


@pytest.fixture
def likes_recorder() -> LikesRecorder:
    return LikesRecorder()


@pytest_asyncio.fixture
async def likes_client(likes_recorder: LikesRecorder) -> AsyncGenerator[LikesClient, None]:
    client = LikesClient("http://likes", transport=httpx.MockTransport(likes_recorder.handler))
    yield client
    await client.aclose()


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession, stats_client: StatsClient, likes_client: LikesClient
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and collaborator dependencies."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stats_client] = lambda: stats_client
    app.dependency_overrides[get_likes_client] = lambda: likes_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _user(db: AsyncSession, name: str) -> User:
    user = await create_user(db, UserCreate(name=name, email=f"{name.lower()}@example.com"))
    await db.commit()
    # Detached objects keep their loaded values when a failing call rolls the session back
    db.expunge(user)
    return user


@pytest_asyncio.fixture
async def initiator(db_session: AsyncSession) -> User:
    return await _user(db_session, "Initiator")


@pytest_asyncio.fixture
async def participants(db_session: AsyncSession) -> list[User]:
    return [await _user(db_session, f"Participant{i}") for i in range(1, 11)]


@pytest_asyncio.fixture
async def category(db_session: AsyncSession):
    created = await create_category(db_session, CategoryCreate(name="Concerts"))
    await db_session.commit()
    db_session.expunge(created)
    return created


def event_payload(category_id: int, **overrides) -> EventCreate:
    data = dict(
        title="Spring Concert",
        annotation="An evening of chamber music in the old hall",
        description="Strings and piano, two sets with an intermission in between",
        category=category_id,
        event_date=utcnow() + timedelta(days=3),
        location=LocationSchema(lat=55.75, lon=37.62),
    )
    data.update(overrides)
    return EventCreate(**data)


@pytest.fixture
def make_event(db_session: AsyncSession, initiator: User, category):
    """Factory: create an event, published unless told otherwise."""

    async def _make(publish: bool = True, **overrides) -> Event:
        event = await create_event(db_session, initiator.id, event_payload(category.id, **overrides))
        await db_session.commit()
        if publish:
            event = await transition_event(
                db_session, event.id, ActorRole.ADMIN, StateAction.PUBLISH_EVENT
            )
        db_session.expunge(event)
        return event

    return _make
