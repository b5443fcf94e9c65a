"""Connection-managing facade over the repository helpers."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from hotelrates.logging_config import get_logger
from hotelrates.models import Target

from . import repo
from .db import get_engine, init_db, make_session

LOGGER = get_logger(__name__)


class TargetStore:
    """Owns the engine lifecycle and exposes the operations a run needs.

    Every public method swallows database errors into a falsy return value
    and logs them, so callers decide how to react to an unhealthy store.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            raise RuntimeError("Store is not connected")
        return self._session_factory

    def connect(self) -> bool:
        if self._engine is not None and self._connected:
            LOGGER.debug("Store already connected")
            return True

        self._dispose()
        try:
            engine = get_engine(self.database_url)
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            init_db(engine)
        except SQLAlchemyError as exc:
            LOGGER.error("Failed to connect to database: %s", exc)
            self._connected = False
            return False

        self._engine = engine
        self._session_factory = make_session(engine)
        self._connected = True
        LOGGER.info("Database connected")
        return True

    def reconnect(self) -> bool:
        LOGGER.warning("Attempting database reconnect")
        self._connected = False
        return self.connect()

    def check_connection(self) -> bool:
        if self._engine is None or not self._connected:
            return False
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            LOGGER.error("Database connection check failed: %s", exc)
            self._connected = False
            return False
        return True

    def get_targets(self, max_count: int | None = None) -> list[Target]:
        if not self._connected:
            LOGGER.warning("Database not connected; no targets available")
            return []
        try:
            with self.session_factory() as session:
                return repo.list_targets(session, max_count)
        except SQLAlchemyError as exc:
            LOGGER.error("Failed to load hotels for collection: %s", exc)
            return []

    def add_target(self, name: str, search_key: str, price: float | None = None) -> int | None:
        if not self._connected:
            LOGGER.warning("Database not connected; cannot add hotel %s", name)
            return None
        try:
            with self.session_factory() as session:
                hotel = repo.add_hotel(session, name, search_key, rate=price)
                session.commit()
                return hotel.id
        except SQLAlchemyError as exc:
            LOGGER.error("Failed to add hotel %s: %s", name, exc)
            return None

    def start_scrape_log(self, hotel_id: int, search_key: str) -> int | None:
        if not self._connected:
            return None
        try:
            with self.session_factory() as session:
                log = repo.start_scrape_log(session, hotel_id, search_key)
                session.commit()
                return log.id
        except SQLAlchemyError as exc:
            LOGGER.error(
                "Failed to open scrape log: %s", exc, extra={"search_key": search_key}
            )
            return None

    def mark_scrape_success(self, log_id: int, price: float) -> bool:
        if not self._connected:
            return False
        try:
            with self.session_factory() as session:
                log = repo.mark_scrape_success(session, log_id, price)
                session.commit()
                return log is not None
        except SQLAlchemyError as exc:
            LOGGER.error("Failed to record scrape success for log %s: %s", log_id, exc)
            return False

    def mark_scrape_error(self, log_id: int, message: str) -> bool:
        if not self._connected:
            return False
        try:
            with self.session_factory() as session:
                log = repo.mark_scrape_error(session, log_id, message)
                session.commit()
                return log is not None
        except SQLAlchemyError as exc:
            LOGGER.error("Failed to record scrape error for log %s: %s", log_id, exc)
            return False

    def cleanup_stale_logs(self, older_than: timedelta = timedelta(hours=1)) -> int:
        if not self._connected:
            return 0
        try:
            with self.session_factory() as session:
                removed = repo.delete_stale_in_progress(session, older_than=older_than)
                session.commit()
        except SQLAlchemyError as exc:
            LOGGER.error("Failed to clean stale scrape logs: %s", exc)
            return 0
        LOGGER.info("Removed %d stale in_progress scrape logs", removed)
        return removed

    def close(self) -> None:
        if self._engine is None:
            return
        self._dispose()
        LOGGER.info("Database connection closed")

    def _dispose(self) -> None:
        if self._engine is not None:
            try:
                self._engine.dispose()
            except SQLAlchemyError as exc:
                LOGGER.warning("Error disposing engine: %s", exc)
        self._engine = None
        self._session_factory = None
        self._connected = False
