from schemaboard.db.models import Base, Session, User
from schemaboard.db.database import get_engine, get_session_factory, create_tables

__all__ = ["Base", "Session", "User", "get_engine", "get_session_factory", "create_tables"]
