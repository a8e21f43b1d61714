"""
Terminal dashboard (Textual).

Tabs: Live, Hourly, Daily, Weekly, Monthly.

- Live data (1 min / 5 min totals, per-interface table) refreshes every
  `live_refresh_seconds` while the Live tab is shown and every
  `background_refresh_seconds` otherwise.
- Historical tables refresh when the user switches tabs.
- A refresh that fails keeps the rows already on screen.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer, Header, Static, TabbedContent, TabPane

from ambr import aggregation
from ambr.config import settings
from ambr.schemas import InterfaceUsage, PeriodUsage, TrafficTotals
from ambr.store import EventStore, QueryError

logger = logging.getLogger(__name__)

HISTORY_TABS = ("hourly", "daily", "weekly", "monthly")
LIVE_TAB = "live"
TAB_ORDER = (LIVE_TAB,) + HISTORY_TABS

ZERO_TOTALS = TrafficTotals(rx_mib=0.0, tx_mib=0.0, total_mib=0.0)


@dataclass
class DashboardState:
    """Last-known-good rows for every view."""

    history: Dict[str, List[PeriodUsage]] = field(
        default_factory=lambda: {name: [] for name in HISTORY_TABS}
    )
    live_1min: TrafficTotals = field(default_factory=lambda: ZERO_TOTALS.model_copy())
    live_5min: TrafficTotals = field(default_factory=lambda: ZERO_TOTALS.model_copy())
    live_by_interface: List[InterfaceUsage] = field(default_factory=list)

    def refresh_history(self, store: EventStore) -> None:
        for name in HISTORY_TABS:
            try:
                self.history[name] = aggregation.usage_by_period(
                    store, name, aggregation.DEFAULT_LIMITS[name]
                )
            except QueryError as exc:
                logger.warning("Keeping previous %s rows: %s", name, exc)

    def refresh_live(self, store: EventStore) -> None:
        try:
            self.live_1min = aggregation.recent_totals(store, 1)
            self.live_5min = aggregation.recent_totals(store, 5)
            self.live_by_interface = aggregation.recent_by_interface(store, 1)
        except QueryError as exc:
            logger.warning("Keeping previous live rows: %s", exc)


def cycle_tab(current: str, step: int) -> str:
    """Tab `step` places away from `current`, wrapping at both ends."""
    return TAB_ORDER[(TAB_ORDER.index(current) + step) % len(TAB_ORDER)]


def format_totals(label: str, totals: TrafficTotals) -> str:
    return (
        f"{label:<12}[cyan]↓ {totals.rx_mib:.2f} MiB[/]  "
        f"[green]↑ {totals.tx_mib:.2f} MiB[/]  "
        f"[yellow]◆ {totals.total_mib:.2f} MiB[/]"
    )


class AmbrDashboard(App):
    """Interactive view over the event store."""

    TITLE = "ambr"

    CSS = """
    #live-totals {
        height: auto;
        padding: 1 2;
    }
    DataTable {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("escape", "quit", "Quit", show=False),
        # priority: DataTable would otherwise take left/right for its cursor
        Binding("right", "switch_tab(1)", "Next tab", priority=True),
        Binding("tab", "switch_tab(1)", "Next tab", show=False, priority=True),
        Binding("left", "switch_tab(-1)", "Previous tab", priority=True),
    ]

    def __init__(self, store: EventStore, **kwargs):
        super().__init__(**kwargs)
        self.store = store
        self.state = DashboardState()
        self._last_live_refresh = 0.0
        self._tables_ready = False

    def compose(self) -> ComposeResult:
        yield Header()
        with TabbedContent(initial=LIVE_TAB, id="tabs"):
            with TabPane("Live", id=LIVE_TAB):
                yield Static(id="live-totals")
                yield DataTable(id="table-live", zebra_stripes=True)
            for name in HISTORY_TABS:
                with TabPane(name.capitalize(), id=name):
                    yield DataTable(id=f"table-{name}", zebra_stripes=True)
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#table-live", DataTable).add_columns(
            "Interface", "↓ Rx (MiB)", "↑ Tx (MiB)", "Total (MiB)"
        )
        for name in HISTORY_TABS:
            self.query_one(f"#table-{name}", DataTable).add_columns(
                "Period", "↓ Rx (MiB)", "↑ Tx (MiB)", "Total (MiB)"
            )

        self._tables_ready = True
        self.refresh_history()
        self.refresh_live()
        # Poll often; _poll_live decides whether a refresh is due.
        poll = min(settings.live_refresh_seconds, settings.background_refresh_seconds) / 4
        self.set_interval(poll, self._poll_live)

    # -- refresh ---------------------------------------------------------

    def _live_interval(self) -> float:
        active = self.query_one("#tabs", TabbedContent).active
        if active == LIVE_TAB:
            return settings.live_refresh_seconds
        return settings.background_refresh_seconds

    def _poll_live(self) -> None:
        if time.monotonic() - self._last_live_refresh >= self._live_interval():
            self.refresh_live()

    def refresh_live(self) -> None:
        self.state.refresh_live(self.store)
        self._last_live_refresh = time.monotonic()

        self.query_one("#live-totals", Static).update(
            format_totals("Last 1 min", self.state.live_1min)
            + "\n\n"
            + format_totals("Last 5 min", self.state.live_5min)
        )
        table = self.query_one("#table-live", DataTable)
        table.clear()
        for r in self.state.live_by_interface:
            table.add_row(r.interface, f"{r.rx_mib:.2f}", f"{r.tx_mib:.2f}", f"{r.total_mib:.2f}")

    def refresh_history(self) -> None:
        self.state.refresh_history(self.store)
        for name in HISTORY_TABS:
            table = self.query_one(f"#table-{name}", DataTable)
            table.clear()
            for r in self.state.history[name]:
                table.add_row(r.period, f"{r.rx_mib:.2f}", f"{r.tx_mib:.2f}", f"{r.total_mib:.2f}")

    def action_switch_tab(self, step: int) -> None:
        tabs = self.query_one("#tabs", TabbedContent)
        tabs.active = cycle_tab(tabs.active, step)

    def on_tabbed_content_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        if not self._tables_ready:
            return
        self.refresh_history()


def run_dashboard(store: EventStore) -> None:
    AmbrDashboard(store).run()
