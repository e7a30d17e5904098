import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import voice_pos.db as db
from voice_pos.models import Base
from voice_pos.main import app
from voice_pos.relay.hub import RelayHub


@pytest.fixture
def session_factory():
    """sessionmaker bound to a fresh in-memory SQLite database.

    Uses StaticPool so all connections share the same in-memory database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def client(session_factory):
    """Shared FastAPI TestClient using an in-memory SQLite DB."""
    original_engine = db.engine
    original_session_local = db.SessionLocal

    # Patch the db module used by the app
    db.engine = session_factory.kw["bind"]
    db.SessionLocal = session_factory

    # Override FastAPI DB dependency
    def override_get_db():
        db_sess = session_factory()
        try:
            yield db_sess
        finally:
            db_sess.close()

    app.dependency_overrides[db.get_db] = override_get_db

    # Fresh relay hub so peers never leak between tests
    app.state.relay_hub = RelayHub()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    db.engine = original_engine
    db.SessionLocal = original_session_local


async def settle(rounds: int = 10) -> None:
    """Let queued reader tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeConnection:
    """In-memory relay connection registered with a RelayHub.

    Acts as the hub's peer (send_text) and as the endpoint's connection
    (send / close / async iteration).
    """

    def __init__(self, hub):
        self.hub = hub
        self.inbox = asyncio.Queue()
        self.closed = False

    async def send_text(self, data):
        if self.closed:
            raise ConnectionError("peer closed")
        await self.inbox.put(data)

    async def send(self, message):
        if self.closed:
            raise ConnectionError("connection closed")
        await self.hub.handle_frame(self, message)

    async def close(self):
        if self.closed:
            return
        self.closed = True
        await self.hub.disconnect(self)
        await self.inbox.put(None)

    async def __aiter__(self):
        while True:
            raw = await self.inbox.get()
            if raw is None:
                return
            yield raw


class LoopbackConnector:
    """Connector that attaches endpoints to an in-process RelayHub."""

    def __init__(self, hub):
        self.hub = hub
        self.up = True
        self.connections = []

    async def __call__(self, url):
        if not self.up:
            raise ConnectionRefusedError(f"relay at {url} is down")
        conn = FakeConnection(self.hub)
        await self.hub.connect(conn)
        self.connections.append(conn)
        return conn
