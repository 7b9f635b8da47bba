# src/app/infra/db/session.py
"""
Engine, session factory and unit-of-work helper for the catalog store.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.app.config import settings
from src.app.domain.errors import CatalogRepositoryError
from src.app.infra.db.tables import Base

logger = logging.getLogger(__name__)

SessionFactory = sessionmaker[Session]


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _install_sqlite_hooks(engine: Engine) -> None:
    # pysqlite's own transaction handling breaks SAVEPOINT; take over BEGIN
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def create_catalog_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    url = url or settings.DATABASE_URL
    echo = settings.SQL_ECHO if echo is None else echo

    if not _is_sqlite(url):
        return create_engine(url, echo=echo, pool_pre_ping=True)

    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool

    engine = create_engine(url, echo=echo, **kwargs)
    _install_sqlite_hooks(engine)
    return engine


def create_session_factory(engine: Engine) -> SessionFactory:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create all catalog tables that do not exist yet."""
    Base.metadata.create_all(engine)
    logger.info("Catalog schema ready on %s", engine.url.render_as_string(hide_password=True))


@contextmanager
def unit_of_work(session_factory: SessionFactory) -> Iterator[Session]:
    """
    Run a block inside a single transaction.

    Commits when the block exits cleanly and rolls everything back on any
    exception. Domain errors propagate unchanged; driver errors are wrapped
    in CatalogRepositoryError.
    """
    session = session_factory()
    try:
        with session.begin():
            yield session
    except SQLAlchemyError as error:
        logger.error("Catalog transaction rolled back: %s", error)
        raise CatalogRepositoryError("transaction", str(error)) from error
    finally:
        session.close()


@contextmanager
def joined_or_new(
    session_factory: SessionFactory,
    session: Optional[Session] = None,
) -> Iterator[Session]:
    """Join the caller's transaction when a session is given, else open a new one."""
    if session is not None:
        yield session
        return
    with unit_of_work(session_factory) as own_session:
        yield own_session
