"""
Liveness and dependency health checks.
"""
from fastapi import APIRouter, Depends
from typing import Dict, Any
from datetime import datetime

from schemaboard.config import settings
from schemaboard.dependencies import get_cache_store, get_design_storage, get_sync_engine
from schemaboard.realtime.engine import DiagramSyncEngine
from schemaboard.services.cache.store import CacheStore
from schemaboard.storage.interface import DesignStorage

router = APIRouter()

# Path checked for storage reachability; never written
STORAGE_CHECK_PATH = "design/.healthcheck"


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Process liveness with version information.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }

@router.get("/health/cache")
async def cache_health(cache: CacheStore = Depends(get_cache_store)) -> Dict[str, Any]:
    """
    Ping the cache backend holding live diagrams.
    """
    reachable = await cache.ping()
    return {
        "status": "healthy" if reachable else "unhealthy",
        "timestamp": datetime.now().isoformat(),
        "backend": settings.CACHE_BACKEND,
    }

@router.get("/health/storage")
async def storage_health(
    storage: DesignStorage = Depends(get_design_storage)
) -> Dict[str, Any]:
    """
    Check that durable design storage answers lookups.
    """
    try:
        await storage.exists(STORAGE_CHECK_PATH)
    except Exception as e:
        return {
            "status": "unhealthy",
            "timestamp": datetime.now().isoformat(),
            "storage_type": settings.STORAGE_TYPE,
            "error": str(e)
        }
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "storage_type": settings.STORAGE_TYPE,
    }

@router.get("/health/realtime")
async def realtime_health(engine: DiagramSyncEngine = Depends(get_sync_engine)) -> Dict[str, Any]:
    """
    Connection, room and write-back counters of the sync engine.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "write_back_delay_seconds": engine.debouncer.delay,
        **engine.stats(),
    }
