"""
Database engine, session factory, and declarative base for the SQL entity store.

Uses synchronous SQLAlchemy 2.0; traversal is single-threaded and blocking.
"""

from typing import Optional

import structlog
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from gdpr_traversal.config import settings

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for entity store models."""

    pass


def create_store_engine(database_url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Create an engine for the configured (or given) database URL."""
    url = database_url or settings.database_url
    engine = create_engine(url, echo=settings.db_echo if echo is None else echo)
    logger.info("entity_store_engine_created", db=url.split("@")[-1])
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create entity store tables if they do not exist."""
    import gdpr_traversal.store.models  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info("entity_store_tables_created")
