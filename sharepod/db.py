"""Engine and session factory for the share store."""

from collections.abc import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sharepod.config import settings

IN_MEMORY_SQLITE_URLS = {"sqlite://", "sqlite+pysqlite://", "sqlite:///:memory:"}


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    # shared_files rows rely on ON DELETE CASCADE
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str | None = None, connect_args: dict | None = None) -> Engine:
    url = database_url or settings.database_url
    if not url.startswith("sqlite"):
        return create_engine(
            url,
            pool_pre_ping=True,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
        )

    args = {"check_same_thread": False, **(connect_args or {})}
    if url in IN_MEMORY_SQLITE_URLS:
        engine = create_engine(url, connect_args=args, poolclass=StaticPool)
    else:
        engine = create_engine(url, connect_args=args)
    _enable_sqlite_foreign_keys(engine)
    return engine


SessionLocal = sessionmaker(bind=build_engine(), autoflush=False, autocommit=False)


def get_db() -> Iterator[Session]:
    """Request-scoped session; anything left uncommitted is rolled back on close."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
