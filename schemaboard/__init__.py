"""
schemaboard-api Application Package

Directory Structure:
├── routers/           # FastAPI HTTP and websocket endpoints
├── schemas/           # Pydantic models for API responses
├── domain/            # Diagram entities, pure diagram mutations, realtime events, errors
├── realtime/          # Gatekeepers, presence, debounced write-back, sync engine
├── application/       # Design bootstrap and throttling services
├── services/cache/    # Cache store contract with Redis and in-memory backends
├── storage/           # Durable design storage (filesystem, S3)
├── db/                # SQLAlchemy identity records read by the gatekeeper
└── config.py          # Application configuration

Consistency model:
The cache entry of a project diagram is the live document every editor works
against. Durable storage receives a copy a few seconds after the last edit, so
it trails the cache by at most the write-back delay.
"""
