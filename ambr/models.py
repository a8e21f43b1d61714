"""
SQLAlchemy ORM models.

There is a single append-only table:

- TrafficEvent: one row per (interface, sampling window) delta
"""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
)

from ambr.database import Base


def utcnow() -> datetime:
    """Naive UTC "now", the format timestamps are stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TrafficEvent(Base):
    """
    Bytes received/transmitted by one interface during one sampling window.

    Rows are written by the recorder through EventStore.append and are never
    updated or deleted.
    """

    __tablename__ = "traffic"
    __table_args__ = (
        CheckConstraint("rx_bytes >= 0", name="ck_traffic_rx_non_negative"),
        CheckConstraint("tx_bytes >= 0", name="ck_traffic_tx_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    interface = Column(String(128), index=True, nullable=False)

    # Deltas, not cumulative counters
    rx_bytes = Column(BigInteger, nullable=False)
    tx_bytes = Column(BigInteger, nullable=False)

    # When the delta was stored (UTC). Assigned in Python only, so every row
    # shares SQLAlchemy's "YYYY-MM-DD HH:MM:SS.ffffff" text format.
    timestamp = Column(DateTime, index=True, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return (
            f"TrafficEvent(interface={self.interface!r}, rx_bytes={self.rx_bytes}, "
            f"tx_bytes={self.tx_bytes}, timestamp={self.timestamp})"
        )
