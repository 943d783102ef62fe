import uvicorn
from schemaboard.config import settings

if __name__ == "__main__":
    # Reload only makes sense for local development
    reload = settings.API_RELOAD and settings.ENVIRONMENT == "development"
    print(f"Starting schemaboard realtime server on {settings.API_HOST}:{settings.API_PORT} (reload={reload})...")
    uvicorn.run(
        "schemaboard.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )
