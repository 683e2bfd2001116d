"""
Relational store setup: engine, session factory and declarative base.
"""
import logging
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from examhub.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the connection pool and hands out sessions."""

    def __init__(self, settings: Settings):
        self.url = settings.database_url
        if self.url.startswith("sqlite"):
            self.engine: Engine = create_engine(self.url, connect_args={"check_same_thread": False})
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_engine(
                self.url,
                pool_size=settings.database_pool_size,
                pool_pre_ping=True,
            )
        self.session_factory = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def init_db(self) -> None:
        """Create tables that do not exist yet."""
        import examhub.models  # noqa: F401  register models on Base

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema ready (%s)", self.engine.dialect.name)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    """Borrow one session for the lifetime of a request."""
    session = request.app.state.database.session()
    try:
        yield session
    finally:
        session.close()
