"""SQLite engine and session factory."""

import logging
from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from revsnap.db.tables import Base

logger = logging.getLogger(__name__)


def create_db_engine(db_path: Path | str) -> Engine:
    """Create an engine for a SQLite database file, creating its directory.

    pysqlite's own transaction handling is switched off and ``BEGIN`` is
    emitted explicitly, so SAVEPOINTs (``Session.begin_nested``) behave.
    Foreign keys are enforced so that deletes cascade.
    """
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def init_db(engine: Engine) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(engine)
    logger.debug("Database schema ready at %s", engine.url)


def create_session_factory(db_path: Path | str) -> sessionmaker[Session]:
    engine = create_db_engine(db_path)
    init_db(engine)
    return sessionmaker(engine, expire_on_commit=False)
