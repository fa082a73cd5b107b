"""Database connection manager for the store."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from coursereg.store.models import Base

if TYPE_CHECKING:
    from sqlalchemy import Engine

MEMORY = ":memory:"

# Milliseconds a writer waits for the SQLite write lock before failing
BUSY_TIMEOUT_MS = 5000

CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
    f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}",
)


def _apply_pragmas(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    for pragma in CONNECTION_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


def _create_engine(db_path: str) -> Engine:
    if db_path == MEMORY:
        # One shared connection so every request thread sees the same database
        engine = create_engine(
            f"sqlite:///{MEMORY}",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{db_path}",
            connect_args={"check_same_thread": False},
        )
    event.listen(engine, "connect", _apply_pragmas)
    return engine


class Database:
    """SQLite engine and session factory for users, courses and enrollments.

    Every connection runs with WAL, enforced foreign keys and a busy timeout,
    so concurrent request threads queue on the write lock instead of failing.
    The engine is created lazily and recreated after ``close``.
    """

    def __init__(self, db_path: str = "coursereg.db") -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Use ":memory:" for in-memory DB.
        """
        self.db_path = db_path
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = _create_engine(self.db_path)
        return self._engine

    def get_session(self) -> Session:
        """Get a new database session. Loaded objects stay usable after commit."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        return self._session_factory()

    def create_tables(self) -> None:
        """Create all tables and indexes if they don't exist."""
        Base.metadata.create_all(self.engine)

    def _pragma(self, name: str) -> Any:
        with self.engine.connect() as conn:
            return conn.execute(text(f"PRAGMA {name}")).scalar()

    def is_wal_mode(self) -> bool:
        """Check if WAL mode is enabled. In-memory databases report ``memory``."""
        return self._pragma("journal_mode") == "wal"

    def foreign_keys_enabled(self) -> bool:
        return self._pragma("foreign_keys") == 1

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
