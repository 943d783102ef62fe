import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schemaboard.config import settings
from schemaboard.dependencies import build_cache_store, build_gatekeeper_chain, build_sync_engine
from schemaboard.domain.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    StorageError,
    TooManyRequestsError,
    ValidationError,
)
from schemaboard.routers import designs, health, realtime
from schemaboard.storage.factory import get_storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cache = build_cache_store()
    storage = get_storage()
    engine = build_sync_engine(cache, storage)

    app.state.cache = cache
    app.state.storage = storage
    app.state.engine = engine
    app.state.gatekeepers = build_gatekeeper_chain()

    engine.start()
    logger.info(f"Diagram sync engine started (cache={settings.CACHE_BACKEND}, storage={settings.STORAGE_TYPE})")
    try:
        yield
    finally:
        # Pending write-backs are dropped; the cache still holds the edits
        await engine.close()
        await cache.close()
        logger.info("Diagram sync engine stopped")


app = FastAPI(
    title="Schemaboard API",
    description="Realtime collaboration backend for database schema diagrams",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.APP_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Domain error handlers
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(TooManyRequestsError)
async def too_many_requests_handler(request: Request, exc: TooManyRequestsError):
    return JSONResponse(status_code=429, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})

# Include routers
app.include_router(health.router, tags=["Health"])  # Health check endpoints first
app.include_router(designs.router, tags=["Designs"])
app.include_router(realtime.router, tags=["Realtime"])

@app.get("/")
async def root():
    return {"message": "Welcome to Schemaboard API. See /docs for API documentation"}
