"""
Background delta recorder.

This module:
- samples cumulative per-interface byte counters at a fixed interval
- turns them into non-negative deltas against the previous sample
- appends one TrafficEvent per interface and window to the event store

Run it in the foreground as:

    ambr record

or let `ambr dashboard` / `ambr serve` start it on a daemon thread.
"""

import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from ambr.config import settings
from ambr.counters import CounterSource, CounterSourceError, get_counter_source
from ambr.logging_setup import configure_logging
from ambr.store import EventStore, StorageError

logger = logging.getLogger(__name__)


def saturating_delta(new: int, prev: int) -> int:
    """`new - prev` floored at zero; a counter that went backwards was reset."""
    return max(0, new - prev)


class DeltaRecorder:
    """
    Converts cumulative, possibly-resetting counters into stored deltas.

    - An interface seen for the first time only sets a baseline; nothing is
      stored for it on that tick.
    - Interfaces missing from a snapshot are forgotten, and are first-seen
      again if they come back.
    - With `record_idle=False`, (0, 0) deltas are not stored.
    """

    def __init__(
        self,
        store: EventStore,
        source: CounterSource,
        interval_seconds: float = 10,
        record_idle: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.source = source
        self.interval_seconds = interval_seconds
        self.record_idle = record_idle
        self._sleep = sleep
        self._last: Dict[str, Tuple[int, int]] = {}

    @property
    def tracked_interfaces(self) -> Dict[str, Tuple[int, int]]:
        return dict(self._last)

    def tick(self) -> int:
        """
        Sample once and store deltas. Returns the number of rows written.

        A failed counter read, expected or not, writes nothing and keeps the
        previous baseline.
        A failed append is logged and dropped; the remaining interfaces are
        still processed.
        """
        try:
            snapshot = self.source.list()
        except CounterSourceError as exc:
            # Baseline kept: the next good read covers both windows instead of losing them.
            logger.warning("Counter read failed, skipping this tick: %s", exc)
            return 0
        except Exception:
            logger.exception("Unexpected counter source failure, skipping this tick")
            return 0

        written = 0
        for name, (rx, tx) in snapshot.items():
            prev = self._last.get(name)
            if prev is None:
                logger.debug("New interface %s, baseline rx=%d tx=%d", name, rx, tx)
                continue

            rx_delta = saturating_delta(rx, prev[0])
            tx_delta = saturating_delta(tx, prev[1])
            if rx < prev[0] or tx < prev[1]:
                logger.info("Counter reset detected on %s", name)

            if not self.record_idle and rx_delta == 0 and tx_delta == 0:
                continue

            try:
                self.store.append(name, rx_delta, tx_delta)
            except StorageError as exc:
                logger.warning("Dropping delta for %s: %s", name, exc)
                continue
            except Exception:
                logger.exception("Unexpected error storing delta for %s, dropping it", name)
                continue
            written += 1

        self._last = dict(snapshot)
        return written

    def run(self) -> None:
        """
        Main recorder loop: baseline now, then sleep, sample, store, repeat.

        Never returns; stop it by ending the process.
        """
        logger.info(
            "Starting recorder loop (interval %s seconds)", self.interval_seconds
        )
        self._guarded_tick()
        while True:
            self._sleep(self.interval_seconds)
            self._guarded_tick()

    def _guarded_tick(self) -> None:
        """One tick whose failure never ends the loop."""
        try:
            written = self.tick()
        except Exception:
            logger.exception("Recorder tick failed")
            return
        logger.debug("Stored %d deltas", written)

    def start(self) -> threading.Thread:
        """Run the loop on a daemon thread and return the thread."""
        thread = threading.Thread(target=self.run, name="ambr-recorder", daemon=True)
        thread.start()
        return thread


def build_recorder(store: EventStore, source: Optional[CounterSource] = None) -> DeltaRecorder:
    """Recorder wired from the global settings."""
    return DeltaRecorder(
        store,
        source if source is not None else get_counter_source(settings),
        interval_seconds=settings.sample_interval_seconds,
        record_idle=settings.record_idle_ticks,
    )


def main(database_url: Optional[str] = None) -> None:
    """
    Foreground recorder: open the store, then sample forever.
    """
    configure_logging(settings.log_level, settings.log_file)

    store = EventStore.from_url(database_url or settings.resolved_database_url)
    store.initialize()

    build_recorder(store).run()


if __name__ == "__main__":
    main()
