from __future__ import annotations

from fastapi import Depends
from fastapi.requests import HTTPConnection

from schemaboard.config import settings
from schemaboard.application.design_service import DesignService
from schemaboard.application.throttle_service import ThrottleService
from schemaboard.db.database import get_session_factory
from schemaboard.db.identity_directory import SqlIdentityDirectory
from schemaboard.realtime.engine import DiagramSyncEngine
from schemaboard.realtime.gatekeeper import GatekeeperChain, TokenAuthGatekeeper
from schemaboard.services.cache.memory_store import InMemoryCacheStore
from schemaboard.services.cache.redis_store import RedisCacheStore
from schemaboard.services.cache.store import CacheStore
from schemaboard.storage.interface import DesignStorage


# --------------- Builders (called once from the application lifespan) ---------------
def build_cache_store() -> CacheStore:
    if settings.CACHE_BACKEND.lower() == "memory":
        return InMemoryCacheStore()
    return RedisCacheStore.from_url(settings.REDIS_URL)


def build_sync_engine(cache: CacheStore, storage: DesignStorage) -> DiagramSyncEngine:
    return DiagramSyncEngine(
        cache=cache,
        storage=storage,
        cache_ttl=settings.DIAGRAM_CACHE_TTL_SECONDS,
        write_back_delay=settings.WRITE_BACK_DELAY_SECONDS,
    )


def build_gatekeeper_chain() -> GatekeeperChain:
    directory = SqlIdentityDirectory(get_session_factory())
    return GatekeeperChain([TokenAuthGatekeeper(directory)])


# --------------- Request-scoped accessors ---------------
def get_cache_store(conn: HTTPConnection) -> CacheStore:
    return conn.app.state.cache


def get_design_storage(conn: HTTPConnection) -> DesignStorage:
    return conn.app.state.storage


def get_sync_engine(conn: HTTPConnection) -> DiagramSyncEngine:
    return conn.app.state.engine


def get_gatekeeper_chain(conn: HTTPConnection) -> GatekeeperChain:
    return conn.app.state.gatekeepers


def get_design_service(
    storage: DesignStorage = Depends(get_design_storage),
    engine: DiagramSyncEngine = Depends(get_sync_engine),
) -> DesignService:
    return DesignService(storage=storage, engine=engine)


def get_throttle_service(cache: CacheStore = Depends(get_cache_store)) -> ThrottleService:
    return ThrottleService(cache)
