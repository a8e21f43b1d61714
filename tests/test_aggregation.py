from datetime import datetime, timedelta

import pytest

from ambr import aggregation
from ambr.schemas import MIB
from ambr.store import EventStore, QueryError

MIB_BYTES = 1024 * 1024


def assert_total_is_sum(rows):
    for r in rows:
        assert r.total_mib == pytest.approx(r.rx_mib + r.tx_mib, rel=1e-6)


def test_recent_totals_sums_all_events(store):
    store.append("eth0", 1024, 2048)
    store.append("eth0", 512, 256)

    totals = aggregation.recent_totals(store, 60)

    assert totals.rx_mib == pytest.approx(1536 / MIB, rel=1e-6)
    assert totals.tx_mib == pytest.approx(2304 / MIB, rel=1e-6)
    assert totals.total_mib == pytest.approx(totals.rx_mib + totals.tx_mib, rel=1e-6)


def test_recent_by_interface_orders_by_total(store):
    store.append("eth0", 1000, 500)
    store.append("wlan0", 2000, 1000)

    rows = aggregation.recent_by_interface(store, 60)

    assert [r.interface for r in rows] == ["wlan0", "eth0"]
    assert rows[0].total_mib == pytest.approx(3000 / MIB, rel=1e-6)
    assert rows[1].total_mib == pytest.approx(1500 / MIB, rel=1e-6)
    assert_total_is_sum(rows)


def test_usage_by_day_single_event(store):
    store.append("eth0", 100_000, 50_000)

    rows = aggregation.usage_by_day(store, 10)

    assert len(rows) == 1
    assert rows[0].period == "2026-10-19"
    assert rows[0].total_mib > 0
    assert_total_is_sum(rows)


def test_empty_windows_are_zero(store):
    totals = aggregation.recent_totals(store, 5)
    assert (totals.rx_mib, totals.tx_mib, totals.total_mib) == (0.0, 0.0, 0.0)
    assert aggregation.recent_by_interface(store, 5) == []


def test_empty_store_has_no_buckets(store):
    for period in aggregation.PERIOD_QUERIES:
        assert aggregation.usage_by_period(store, period, 10) == []


def test_recency_window_excludes_older_events(store, clock):
    store.append("eth0", 1000, 1000)
    clock.advance(minutes=10)
    store.append("wlan0", 10, 20)

    totals = aggregation.recent_totals(store, 5)
    assert totals.rx_mib == pytest.approx(10 / MIB)
    assert totals.tx_mib == pytest.approx(20 / MIB)

    rows = aggregation.recent_by_interface(store, 5)
    assert [r.interface for r in rows] == ["wlan0"]

    rows = aggregation.recent_by_interface(store, 15)
    assert [r.interface for r in rows] == ["eth0", "wlan0"]


def test_recent_by_interface_groups_and_breaks_ties_by_name(store):
    store.append("wlan0", 100, 0)
    store.append("eth0", 50, 50)
    store.append("docker0", 1, 1)
    store.append("docker0", 1, 1)

    rows = aggregation.recent_by_interface(store, 1)

    assert [r.interface for r in rows] == ["eth0", "wlan0", "docker0"]
    assert rows[2].rx_mib == pytest.approx(2 / MIB)
    totals = [r.total_mib for r in rows]
    assert totals == sorted(totals, reverse=True)


def test_usage_by_hour_only_covers_last_seven_days(store, clock):
    now = clock.current
    clock.set(now - timedelta(days=8))
    store.append("eth0", 111, 111)
    clock.set(now - timedelta(hours=3))
    store.append("eth0", 222, 222)
    clock.set(now)
    store.append("eth0", 333, 333)

    hourly = aggregation.usage_by_hour(store, 100)
    assert [r.period for r in hourly] == ["2026-10-19 14:00", "2026-10-19 11:00"]

    daily = aggregation.usage_by_day(store, 100)
    assert [r.period for r in daily] == ["2026-10-19", "2026-10-11"]


def test_usage_by_hour_sums_within_the_hour(store, clock):
    clock.set(datetime(2026, 10, 19, 14, 5))
    store.append("eth0", 1000, 0)
    clock.set(datetime(2026, 10, 19, 14, 55))
    store.append("wlan0", 3000, 10)

    rows = aggregation.usage_by_hour(store, 24)

    assert len(rows) == 1
    assert rows[0].period == "2026-10-19 14:00"
    assert rows[0].rx_mib == pytest.approx(4000 / MIB)
    assert rows[0].tx_mib == pytest.approx(10 / MIB)


def _spread_events(store, clock, start, step, count):
    clock.set(start)
    for i in range(count):
        store.append("eth0", 1000 * (i + 1), 10 * (i + 1))
        clock.advance(**step)


@pytest.mark.parametrize(
    "period, step, count",
    [
        ("hourly", {"hours": 1}, 30),
        ("daily", {"days": 1}, 40),
        ("weekly", {"days": 7}, 20),
        ("monthly", {"days": 31}, 15),
    ],
)
def test_buckets_are_strictly_descending_and_limited(store, clock, period, step, count):
    _spread_events(store, clock, datetime(2025, 6, 1, 0, 30), step, count)

    limit = aggregation.DEFAULT_LIMITS[period]
    rows = aggregation.usage_by_period(store, period, limit)

    assert len(rows) == limit
    labels = [r.period for r in rows]
    assert all(a > b for a, b in zip(labels, labels[1:]))
    assert_total_is_sum(rows)


def test_week_and_month_labels(store, clock):
    when = datetime(2026, 10, 19, 9, 0)
    clock.set(when)
    store.append("eth0", 1, 1)

    assert aggregation.usage_by_week(store, 5)[0].period == when.strftime("%Y-W%W")
    assert aggregation.usage_by_month(store, 5)[0].period == "2026-10"


def test_week_label_before_first_monday_is_week_zero(store, clock):
    # 2026-01-01 is a Thursday.
    clock.set(datetime(2026, 1, 1, 12, 0))
    store.append("eth0", 1, 1)

    assert aggregation.usage_by_week(store, 5)[0].period == "2026-W00"


def test_monthly_totals_add_up(store, clock):
    clock.set(datetime(2026, 9, 30, 23, 59))
    store.append("eth0", MIB_BYTES, 0)
    clock.set(datetime(2026, 10, 1, 0, 1))
    store.append("eth0", 2 * MIB_BYTES, MIB_BYTES)
    store.append("wlan0", 0, MIB_BYTES)

    rows = aggregation.usage_by_month(store, 12)

    assert [(r.period, r.rx_mib, r.tx_mib, r.total_mib) for r in rows] == [
        ("2026-10", 2.0, 2.0, 4.0),
        ("2026-09", 1.0, 0.0, 1.0),
    ]


def test_invalid_arguments(store):
    with pytest.raises(ValueError):
        aggregation.usage_by_day(store, 0)
    with pytest.raises(ValueError):
        aggregation.recent_totals(store, -1)
    with pytest.raises(ValueError):
        aggregation.usage_by_period(store, "yearly", 5)


def test_query_failure_is_typed():
    uninitialized = EventStore.from_url("sqlite://")
    with pytest.raises(QueryError):
        aggregation.usage_by_month(uninitialized, 5)
    with pytest.raises(QueryError):
        aggregation.recent_totals(uninitialized, 5)
    with pytest.raises(QueryError):
        aggregation.recent_by_interface(uninitialized, 5)
