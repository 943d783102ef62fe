from functools import lru_cache
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from schemaboard.config import settings
from schemaboard.db.models import Base

logger = logging.getLogger(__name__)


@lru_cache
def get_engine() -> Engine:
    """Create the SQLAlchemy engine on first use."""
    return create_engine(str(settings.DATABASE_URL), pool_pre_ping=True)


def get_session_factory() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def create_tables(engine: Engine = None):
    """Create all tables defined in models."""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine or get_engine())
    logger.info("All tables created successfully")
