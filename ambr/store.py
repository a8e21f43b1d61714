"""
Event Store: the append-only `traffic` table.

One EventStore is built at startup and shared by the recorder thread (which
appends) and the query layer (which reads). It owns the Engine and the
session factory; there is no module-level handle.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ambr.database import Base, make_engine, make_session_factory
from ambr.models import TrafficEvent, utcnow

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the event store cannot be initialized or written to."""


class QueryError(StorageError):
    """Raised when an aggregation query fails."""


class EventStore:
    """
    Durable append-only log of traffic deltas with store-assigned timestamps.

    `clock` returns naive UTC datetimes; it defaults to the wall clock and is
    the single notion of "now" for both appends and recency windows.
    """

    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utcnow):
        self.engine = engine
        self.clock = clock
        self._session_factory = make_session_factory(engine)
        self._write_lock = threading.Lock()
        self._last_timestamp: Optional[datetime] = None

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> "EventStore":
        try:
            engine = make_engine(database_url)
        except (OSError, SQLAlchemyError) as exc:
            raise StorageError(f"could not open event store: {exc}") from exc
        return cls(engine, **kwargs)

    def initialize(self) -> None:
        """Create the schema if it does not exist yet. Safe to call repeatedly."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"could not initialize event store: {exc}") from exc
        logger.info("Event store ready at %s", self.engine.url.render_as_string(hide_password=True))

    def now(self) -> datetime:
        return self.clock()

    @contextmanager
    def session(self) -> Iterator[Session]:
        with self._session_factory() as db:
            yield db

    def append(self, interface: str, rx_delta: int, tx_delta: int) -> TrafficEvent:
        """
        Insert one delta row stamped with the store's clock.

        Timestamps never move backwards between appends of the same store,
        even if the wall clock does.
        """
        if rx_delta < 0 or tx_delta < 0:
            raise ValueError(
                f"deltas must be non-negative, got rx={rx_delta} tx={tx_delta}"
            )

        with self._write_lock:
            ts = self.clock()
            if self._last_timestamp is not None and ts < self._last_timestamp:
                ts = self._last_timestamp

            event = TrafficEvent(
                interface=interface,
                rx_bytes=int(rx_delta),
                tx_bytes=int(tx_delta),
                timestamp=ts,
            )
            try:
                with self._session_factory() as db:
                    db.add(event)
                    db.commit()
                    db.refresh(event)
                    db.expunge(event)
            except SQLAlchemyError as exc:
                raise StorageError(
                    f"could not append delta for {interface}: {exc}"
                ) from exc

            self._last_timestamp = ts

        return event

    def count(self) -> int:
        """Number of stored events."""
        try:
            with self.session() as db:
                return db.query(TrafficEvent).count()
        except SQLAlchemyError as exc:
            raise QueryError(str(exc)) from exc

    def dispose(self) -> None:
        self.engine.dispose()
