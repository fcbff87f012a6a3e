"""Database engine and session management.

Every request gets its own SQLModel session. Services commit explicitly, so a
purchase or a product deletion is applied as a single database transaction.
"""
from typing import Generator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings
from app.core.logging import get_logger
# Import the tables so they are registered on SQLModel.metadata
from app.domain.user import User  # noqa: F401
from app.domain.product import Product  # noqa: F401
from app.domain.transaction import Transaction  # noqa: F401

logger = get_logger(__name__)

_engine: Optional[Engine] = None


def create_engine_for_url(url: str, echo: bool = False) -> Engine:
    """Return an engine for the given URL.

    SQLite connections are shared across threads (FastAPI runs sync
    dependencies in a threadpool); in-memory SQLite keeps a single
    connection so every session sees the same database.
    """
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
        return create_engine(url, echo=echo, connect_args=connect_args)

    return create_engine(url, echo=echo, pool_pre_ping=True)


def get_engine() -> Engine:
    """Get or lazily create the global engine from settings."""
    global _engine

    if _engine is None:
        logger.info(f"Creating database engine for {settings.database_url.split('@')[-1]}")
        _engine = create_engine_for_url(settings.database_url, echo=settings.database_echo)

    return _engine


def init_db(engine: Optional[Engine] = None) -> None:
    """Ensure all tables exist."""
    SQLModel.metadata.create_all(engine or get_engine())


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a database session."""
    with Session(get_engine(), expire_on_commit=False) as session:
        yield session
