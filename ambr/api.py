"""
FastAPI application exposing recorded traffic.

Endpoints
---------
- GET /health                 -> Simple liveness check
- GET /usage/{period}         -> Calendar buckets (hourly/daily/weekly/monthly)
- GET /live/totals            -> rx/tx/total over the last N minutes
- GET /live/interfaces        -> Per-interface usage over the last N minutes
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from ambr import aggregation
from ambr.config import settings
from ambr.recorder import build_recorder
from ambr.schemas import InterfaceUsage, PeriodUsage, TrafficTotals
from ambr.store import EventStore, QueryError

logger = logging.getLogger(__name__)


def create_app(
    store: Optional[EventStore] = None,
    start_recorder: Optional[bool] = None,
) -> FastAPI:
    """
    Build the API around one EventStore.

    Without `store`, the lifespan opens the configured database and
    initializes it; a failure there aborts startup. With `start_recorder`
    (default: only when the app opened its own store), a recorder thread
    writes into the same store.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = store is None
        app.state.store = store or EventStore.from_url(settings.resolved_database_url)
        app.state.store.initialize()

        run_recorder = owned if start_recorder is None else start_recorder
        if run_recorder:
            build_recorder(app.state.store).start()
        yield
        if owned:
            app.state.store.dispose()

    app = FastAPI(
        title="ambr traffic API",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(QueryError)
    async def query_error_handler(request: Request, exc: QueryError):
        logger.warning("Query failed for %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    _register_routes(app)
    return app


# ---------------------------------------------------------------------------
# Dependency: the shared store
# ---------------------------------------------------------------------------

def get_store(request: Request) -> EventStore:
    """FastAPI dependency returning the store opened by the lifespan."""
    return request.app.state.store


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def _register_routes(app: FastAPI) -> None:

    @app.get("/health")
    def health() -> dict:
        """Simple liveness endpoint used for health checks."""
        return {"status": "ok"}

    @app.get("/usage/{period}", response_model=List[PeriodUsage])
    def get_usage(
        period: str,
        limit: Optional[int] = Query(default=None, gt=0, le=10_000),
        store: EventStore = Depends(get_store),
    ):
        """
        Return calendar buckets, newest first.

        `period` is one of hourly, daily, weekly, monthly. Hourly buckets only
        cover the last 7 days.
        """
        if period not in aggregation.PERIOD_QUERIES:
            raise HTTPException(status_code=404, detail=f"unknown period {period!r}")
        if limit is None:
            limit = aggregation.DEFAULT_LIMITS[period]
        return aggregation.usage_by_period(store, period, limit)

    @app.get("/live/totals", response_model=TrafficTotals)
    def get_live_totals(
        minutes: int = Query(default=1, ge=0),
        store: EventStore = Depends(get_store),
    ):
        """Totals across all interfaces for the last `minutes` minutes."""
        return aggregation.recent_totals(store, minutes)

    @app.get("/live/interfaces", response_model=List[InterfaceUsage])
    def get_live_interfaces(
        minutes: int = Query(default=1, ge=0),
        store: EventStore = Depends(get_store),
    ):
        """Per-interface usage for the last `minutes` minutes, biggest first."""
        return aggregation.recent_by_interface(store, minutes)
