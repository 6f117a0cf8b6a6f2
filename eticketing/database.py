"""Database connection, sessions and schema creation."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .config import Config, ConfigError
from .models import Base

log = logging.getLogger(__name__)


class RecordNotFoundError(LookupError):
    """Raised when a lookup matches no row."""


def build_url(config: Config) -> URL:
    """Build the MySQL connection URL described by the configuration."""
    db = config.database
    try:
        port = int(db.port)
    except ValueError:
        raise ConfigError(f"invalid database port {db.port!r}") from None
    return URL.create(
        "mysql+pymysql",
        username=db.user,
        password=db.password or None,
        host=db.host,
        port=port,
        database=db.name,
        query={"charset": "utf8mb4"},
    )


class Database:
    """An engine together with a factory for short-lived sessions."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        session = self._sessions()
        try:
            yield session
            session.commit()
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Release every pooled connection."""
        self.engine.dispose()

    def ping(self) -> None:
        """Run a trivial query; raises if the database cannot be reached."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def auto_migrate(self) -> None:
        """Create any missing tables."""
        log.info("Running database migrations...")
        Base.metadata.create_all(self.engine)
        log.info("Database migrations completed successfully")

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def connect(config: Config) -> Database:
    """Open a pooled connection to the configured database and check it answers."""
    db_cfg = config.database
    engine = create_engine(
        build_url(config),
        pool_size=max(1, db_cfg.max_idle),
        max_overflow=max(0, db_cfg.max_conns - db_cfg.max_idle),
        pool_recycle=3600,
    )
    database = Database(engine)
    try:
        database.ping()
    except SQLAlchemyError as exc:
        engine.dispose()
        raise ConnectionError(f"failed to connect to database: {exc}") from exc
    return database