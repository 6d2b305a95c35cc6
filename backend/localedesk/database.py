from contextlib import contextmanager
from typing import Iterator
import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from localedesk.tables import metadata

logger = logging.getLogger(__name__)


class Database:
    """Engine plus session factory, built once and passed to every store."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory = sessionmaker(
            bind=engine, expire_on_commit=False, class_=Session
        )

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self) -> None:
        metadata.create_all(bind=self.engine)

    def ping(self) -> str:
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Database health check failed")
            return "error"
        return "ok"


def _on_sqlite_connect(dbapi_connection, _record) -> None:  # noqa: ANN001
    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; take over.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(connection) -> None:  # noqa: ANN001
    connection.exec_driver_sql("BEGIN")


def create_database(url: str) -> Database:
    if not url:
        raise RuntimeError("LOCALEDESK_DATABASE_URL must be set.")
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, future=True, **kwargs)
        event.listen(engine, "connect", _on_sqlite_connect)
        event.listen(engine, "begin", _on_sqlite_begin)
    else:
        engine = create_engine(url, future=True, pool_pre_ping=True)
    return Database(engine)
