"""
Counter sources: where cumulative per-interface byte counters come from.

We support two modes:

1. psutil: the host's real counters (`psutil.net_io_counters(pernic=True)`).
2. Stub mode: generate realistic-looking counters in-memory.

This lets you:
- run the dashboard on a machine with no interesting traffic
- exercise the recorder without touching the OS
"""

from __future__ import annotations

import logging
import os
import random
from typing import Dict, Iterable, Optional, Protocol, Tuple

import psutil

from ambr.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

# interface name -> (cumulative rx bytes, cumulative tx bytes)
Snapshot = Dict[str, Tuple[int, int]]


class CounterSourceError(Exception):
    """Raised when interface counters cannot be read."""


class CounterSource(Protocol):
    def list(self) -> Snapshot:
        """Return the full current interface set with cumulative counters."""
        ...


# ---------------------------------------------------------------------------
# Real counters
# ---------------------------------------------------------------------------


class PsutilCounterSource:
    """
    Reads per-NIC counters through psutil.

    Interfaces that are not returned by the OS are absent from the snapshot,
    not zero.
    """

    def __init__(self, ignored: Iterable[str] = ()):
        self.ignored = frozenset(ignored)

    def list(self) -> Snapshot:
        try:
            counters = psutil.net_io_counters(pernic=True)
        except (OSError, psutil.Error) as exc:
            raise CounterSourceError(f"could not read interface counters: {exc}") from exc

        return {
            name: (c.bytes_recv, c.bytes_sent)
            for name, c in counters.items()
            if name not in self.ignored
        }


# ---------------------------------------------------------------------------
# Stub implementation: fake counters for demo purposes
# ---------------------------------------------------------------------------


class StubCounterSource:
    """
    Fake counters that grow on every call to simulate traffic.

    Each interface starts from a random baseline, like a host that has been
    up for a while.
    """

    def __init__(
        self,
        interfaces: Iterable[str] = ("stub-eth0", "stub-wlan0"),
        rng: Optional[random.Random] = None,
    ):
        self._rng = rng or random.Random()
        self._state: Dict[str, list] = {}
        for name in interfaces:
            self._state[name] = [
                self._rng.randint(1_000_000, 10_000_000),
                self._rng.randint(1_000_000, 10_000_000),
            ]

    def list(self) -> Snapshot:
        for st in self._state.values():
            st[0] += self._rng.randint(10_000, 1_000_000)
            st[1] += self._rng.randint(10_000, 200_000)
        return {name: (st[0], st[1]) for name, st in self._state.items()}


# ---------------------------------------------------------------------------
# Public factory used by the recorder entry points
# ---------------------------------------------------------------------------


def get_counter_source(settings: Settings = default_settings) -> CounterSource:
    """
    Pick the counter source.

    Decision logic:
    - If USE_COUNTER_STUB env var or settings.use_counter_stub is true, use stub.
    - Else, read real counters through psutil.
    """
    # Shell env overrides settings.use_counter_stub if present
    use_stub_env = os.getenv("USE_COUNTER_STUB")
    if use_stub_env is not None:
        use_stub = use_stub_env not in ("0", "false", "False", "")
    else:
        use_stub = settings.use_counter_stub

    if use_stub:
        logger.info("Using stub counter source")
        return StubCounterSource()

    if settings.ignored_interfaces:
        logger.info("Ignoring interfaces: %s", ", ".join(settings.ignored_interfaces))
    return PsutilCounterSource(ignored=settings.ignored_interfaces)
