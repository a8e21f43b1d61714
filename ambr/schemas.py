"""
Pydantic models ("schemas") for aggregated traffic.

These are what the aggregation engine returns and what the API serializes.
They never carry a database handle.

All of them are built from summed byte counts via `from_bytes`, which
converts to MiB first and derives `total_mib` from the converted values.
"""

from pydantic import BaseModel

MIB = 1024.0 * 1024.0


def bytes_to_mib(value) -> float:
    return (value or 0) / MIB


class TrafficTotals(BaseModel):
    """rx/tx/total in MiB over a recency window."""

    rx_mib: float
    tx_mib: float
    total_mib: float

    @classmethod
    def from_bytes(cls, rx_bytes, tx_bytes) -> "TrafficTotals":
        rx_mib = bytes_to_mib(rx_bytes)
        tx_mib = bytes_to_mib(tx_bytes)
        return cls(rx_mib=rx_mib, tx_mib=tx_mib, total_mib=rx_mib + tx_mib)


class PeriodUsage(BaseModel):
    """
    Usage for one calendar bucket.

    - period: bucket label, e.g. "2026-10-19 14:00", "2026-10-19",
      "2026-W42" or "2026-10". Labels sort in period order.
    """

    period: str
    rx_mib: float
    tx_mib: float
    total_mib: float

    @classmethod
    def from_bytes(cls, period: str, rx_bytes, tx_bytes) -> "PeriodUsage":
        rx_mib = bytes_to_mib(rx_bytes)
        tx_mib = bytes_to_mib(tx_bytes)
        return cls(period=period, rx_mib=rx_mib, tx_mib=tx_mib, total_mib=rx_mib + tx_mib)


class InterfaceUsage(BaseModel):
    """Usage for one interface over a recency window."""

    interface: str
    rx_mib: float
    tx_mib: float
    total_mib: float

    @classmethod
    def from_bytes(cls, interface: str, rx_bytes, tx_bytes) -> "InterfaceUsage":
        rx_mib = bytes_to_mib(rx_bytes)
        tx_mib = bytes_to_mib(tx_bytes)
        return cls(
            interface=interface, rx_mib=rx_mib, tx_mib=tx_mib, total_mib=rx_mib + tx_mib
        )
