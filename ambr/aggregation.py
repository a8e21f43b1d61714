"""
Aggregation engine: read queries over the `traffic` table.

Calendar queries
----------------
- usage_by_hour   -> "%Y-%m-%d %H:00", last 7 days only
- usage_by_day    -> "%Y-%m-%d"
- usage_by_week   -> "%Y-W%W" (Monday-started weeks, week 00 before the
                     year's first Monday; treat it as an opaque sortable label)
- usage_by_month  -> "%Y-%m"

Each groups events by the label, sums bytes, and returns the newest `limit`
buckets first. Labels are zero-padded so ordering by label is ordering by
time.

Recency queries
---------------
- recent_totals        -> all interfaces, last N minutes
- recent_by_interface  -> per interface, last N minutes, biggest first

Windows are anchored to the store's clock. Bucketing uses SQLite's
strftime(), as the store is SQLite-backed.
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ambr.models import TrafficEvent
from ambr.schemas import InterfaceUsage, PeriodUsage, TrafficTotals
from ambr.store import EventStore, QueryError

HOURLY_LOOKBACK = timedelta(days=7)

HOUR_FORMAT = "%Y-%m-%d %H:00"
DAY_FORMAT = "%Y-%m-%d"
WEEK_FORMAT = "%Y-W%W"
MONTH_FORMAT = "%Y-%m"


def _check_limit(limit: int) -> None:
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")


def _check_minutes(since_minutes: int) -> None:
    if since_minutes < 0:
        raise ValueError(f"since_minutes must be non-negative, got {since_minutes}")


def _usage_by_format(
    store: EventStore,
    fmt: str,
    limit: int,
    since: Optional[datetime] = None,
) -> List[PeriodUsage]:
    """Group events by `strftime(fmt, timestamp)`, newest bucket first."""
    _check_limit(limit)

    period = func.strftime(fmt, TrafficEvent.timestamp).label("period")
    try:
        with store.session() as db:
            q = db.query(
                period,
                func.sum(TrafficEvent.rx_bytes).label("rx"),
                func.sum(TrafficEvent.tx_bytes).label("tx"),
            )
            if since is not None:
                q = q.filter(TrafficEvent.timestamp >= since)
            rows = q.group_by(period).order_by(period.desc()).limit(limit).all()
    except SQLAlchemyError as exc:
        raise QueryError(f"usage query ({fmt}) failed: {exc}") from exc

    return [PeriodUsage.from_bytes(r.period, r.rx, r.tx) for r in rows]


def usage_by_hour(store: EventStore, limit: int) -> List[PeriodUsage]:
    """Hourly buckets, restricted to events from the last 7 days."""
    return _usage_by_format(
        store, HOUR_FORMAT, limit, since=store.now() - HOURLY_LOOKBACK
    )


def usage_by_day(store: EventStore, limit: int) -> List[PeriodUsage]:
    return _usage_by_format(store, DAY_FORMAT, limit)


def usage_by_week(store: EventStore, limit: int) -> List[PeriodUsage]:
    return _usage_by_format(store, WEEK_FORMAT, limit)


def usage_by_month(store: EventStore, limit: int) -> List[PeriodUsage]:
    return _usage_by_format(store, MONTH_FORMAT, limit)


PERIOD_QUERIES: Dict[str, Callable[[EventStore, int], List[PeriodUsage]]] = {
    "hourly": usage_by_hour,
    "daily": usage_by_day,
    "weekly": usage_by_week,
    "monthly": usage_by_month,
}

# Number of buckets shown by default for each period.
DEFAULT_LIMITS: Dict[str, int] = {
    "hourly": 24,
    "daily": 31,
    "weekly": 12,
    "monthly": 12,
}


def usage_by_period(store: EventStore, period: str, limit: int) -> List[PeriodUsage]:
    """Dispatch to the calendar query named by `period` (see PERIOD_QUERIES)."""
    try:
        query = PERIOD_QUERIES[period]
    except KeyError:
        raise ValueError(
            f"unknown period {period!r}, expected one of {sorted(PERIOD_QUERIES)}"
        ) from None
    return query(store, limit)


def recent_totals(store: EventStore, since_minutes: int) -> TrafficTotals:
    """
    Total rx/tx across all interfaces for the last `since_minutes` minutes.

    An empty window yields zeros.
    """
    _check_minutes(since_minutes)
    since = store.now() - timedelta(minutes=since_minutes)

    try:
        with store.session() as db:
            rx, tx = (
                db.query(
                    func.coalesce(func.sum(TrafficEvent.rx_bytes), 0),
                    func.coalesce(func.sum(TrafficEvent.tx_bytes), 0),
                )
                .filter(TrafficEvent.timestamp >= since)
                .one()
            )
    except SQLAlchemyError as exc:
        raise QueryError(f"recent totals query failed: {exc}") from exc

    return TrafficTotals.from_bytes(rx, tx)


def recent_by_interface(store: EventStore, since_minutes: int) -> List[InterfaceUsage]:
    """
    Per-interface usage for the last `since_minutes` minutes.

    Only interfaces with at least one event in the window appear. Rows are
    ordered by total bytes descending, then by interface name.
    """
    _check_minutes(since_minutes)
    since = store.now() - timedelta(minutes=since_minutes)

    rx = func.sum(TrafficEvent.rx_bytes)
    tx = func.sum(TrafficEvent.tx_bytes)
    try:
        with store.session() as db:
            rows = (
                db.query(
                    TrafficEvent.interface,
                    rx.label("rx"),
                    tx.label("tx"),
                )
                .filter(TrafficEvent.timestamp >= since)
                .group_by(TrafficEvent.interface)
                .order_by((rx + tx).desc(), TrafficEvent.interface)
                .all()
            )
    except SQLAlchemyError as exc:
        raise QueryError(f"recent by-interface query failed: {exc}") from exc

    return [InterfaceUsage.from_bytes(r.interface, r.rx, r.tx) for r in rows]
