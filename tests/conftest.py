"""
Test configuration and fixtures for schemaboard-api tests.
"""
import datetime
from typing import Any, List, Tuple

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from schemaboard.config import settings
from schemaboard.db.database import create_tables
from schemaboard.db.identity_directory import SqlIdentityDirectory
from schemaboard.db.models import Session, User, utc_now
from schemaboard.dependencies import get_gatekeeper_chain
from schemaboard.realtime.engine import DiagramSyncEngine
from schemaboard.realtime.gatekeeper import GatekeeperChain, TokenAuthGatekeeper
from schemaboard.services.cache.memory_store import InMemoryCacheStore
from schemaboard.storage.filesystem import FilesystemStorage


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingConnection:
    """Connection double that keeps every event sent to it."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        self.sent: List[Tuple[str, Any]] = []

    async def send(self, event: str, data: Any) -> None:
        self.sent.append((event, data))

    def events(self, name: str) -> List[Any]:
        return [data for event, data in self.sent if event == name]

    def names(self) -> List[str]:
        return [event for event, _ in self.sent]


def sample_node(node_id: str = "n1", label: str = "users", fields=None) -> dict:
    return {
        "id": node_id,
        "type": "table",
        "position": {"x": 10, "y": 20},
        "data": {"label": label, "description": "", "fields": list(fields or [])},
    }


@pytest.fixture
def clock():
    return FakeClock(1_700_000_000.0)


@pytest.fixture
def cache(clock):
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def storage(tmp_path):
    return FilesystemStorage(base_dir=str(tmp_path / "designs"))


@pytest_asyncio.fixture
async def engine(cache, storage):
    """Isolated sync engine with a short write-back delay."""
    sync_engine = DiagramSyncEngine(cache=cache, storage=storage, cache_ttl=3600, write_back_delay=0.05)
    yield sync_engine
    await sync_engine.close()


@pytest.fixture
def session_factory():
    """In-memory SQLite identity database seeded with one user and two sessions."""
    db_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(db_engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    now = utc_now()
    with factory() as db:
        db.add(User(id="user-1", name="Alice", email="alice@example.com"))
        db.add(Session(id="session-live", user_id="user-1", expired_at=now + datetime.timedelta(days=1)))
        db.add(Session(id="session-old", user_id="user-1", expired_at=now - datetime.timedelta(days=1)))
        db.commit()

    yield factory
    db_engine.dispose()


@pytest.fixture
def directory(session_factory):
    return SqlIdentityDirectory(session_factory)


@pytest.fixture
def gatekeepers(directory):
    return GatekeeperChain([TokenAuthGatekeeper(directory)])


@pytest.fixture
def test_settings(monkeypatch, tmp_path):
    """Point the application at in-process backends."""
    storage_dir = tmp_path / "storage"
    monkeypatch.setattr(settings, "CACHE_BACKEND", "memory")
    monkeypatch.setattr(settings, "STORAGE_TYPE", "filesystem")
    monkeypatch.setattr(settings, "DESIGN_STORAGE_DIR", str(storage_dir))
    monkeypatch.setattr(settings, "WRITE_BACK_DELAY_SECONDS", 0.05)
    return settings


@pytest.fixture
def client(test_settings, gatekeepers, monkeypatch):
    """Test client with the lifespan running and SQLite-backed authentication."""
    from schemaboard import main
    from schemaboard.main import app

    monkeypatch.setattr(main, "build_gatekeeper_chain", lambda: gatekeepers)
    app.dependency_overrides[get_gatekeeper_chain] = lambda: gatekeepers
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_connection():
    return RecordingConnection


@pytest.fixture
def make_node():
    return sample_node
