"""Read-only status API using FastAPI."""
from typing import Callable, Optional
import logging
import threading
import time

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel

from metview.config import Config
from metview.projector import all_rows, pagination
from metview.self_metrics import SelfMetrics
from metview.view import ViewState

logger = logging.getLogger(__name__)


class LogLevelRequest(BaseModel):
    """Request to change log level."""
    level: str


class ControlAPI:
    """FastAPI app exposing the current view and the viewer's own metrics."""

    def __init__(
        self,
        config: Config,
        state_provider: Callable[[], ViewState],
        self_metrics: Optional[SelfMetrics] = None,
    ):
        """
        Initialize control API.

        Args:
            config: Validated configuration
            state_provider: Returns the latest ViewState
            self_metrics: Optional self-monitoring metrics to expose
        """
        self.config = config
        self.state_provider = state_provider
        self.self_metrics = self_metrics
        self.start_time = time.time()
        self.app = FastAPI(title="metview status API")

        self._setup_routes()

    def _setup_routes(self):
        """Setup API routes."""

        @self.app.get("/healthz")
        async def healthz():
            """Health check endpoint."""
            return {"status": "healthy", "timestamp": time.time()}

        @self.app.get("/status")
        async def status():
            """Summary of the scrape loop and the view."""
            state = self.state_provider()
            first, last, total = pagination(state)
            selected = state.selected_series
            return {
                "uptime_seconds": time.time() - self.start_time,
                "endpoint": self.config.scrape.endpoint,
                "interval_s": self.config.scrape.interval_s,
                "scrapes": state.scrapes,
                "error": state.error,
                "series": total,
                "selected": str(selected.key) if selected else None,
                "page": {"first": first, "last": last, "size": state.page_size},
                "filters": {
                    "include": list(state.metric_filter.includes),
                    "exclude": list(state.metric_filter.excludes),
                    "labels": [f"{k}={v}" for k, v in state.metric_filter.labels],
                },
            }

        @self.app.get("/series")
        async def series():
            """All tracked series as displayed rows."""
            state = self.state_provider()
            return [
                {
                    "key": row.key,
                    "selected": bool(row.cursor.strip()),
                    "value": row.value,
                    "delta": row.delta,
                    "total": row.total,
                }
                for row in all_rows(state)
            ]

        @self.app.get("/metrics")
        async def metrics():
            """Self-monitoring metrics in the text exposition format."""
            if self.self_metrics is None:
                raise HTTPException(status_code=404, detail="Self metrics disabled")
            return Response(content=self.self_metrics.render(), media_type=CONTENT_TYPE_LATEST)

        @self.app.post("/control/loglevel")
        async def set_log_level(request: LogLevelRequest):
            """Change log level at runtime."""
            level = request.level.upper()

            if level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
                raise HTTPException(
                    status_code=400,
                    detail=f"Invalid log level: {level}"
                )

            logging.getLogger().setLevel(getattr(logging, level))
            logger.info(f"Log level changed to: {level}")

            return {
                "status": "log_level_changed",
                "level": level,
                "timestamp": time.time()
            }

    def run(self, host: str = "127.0.0.1", port: int = 8081):
        """Run the API server (blocking)."""
        import uvicorn
        uvicorn.run(self.app, host=host, port=port, log_level="warning")

    def start(self) -> threading.Thread:
        """
        Run the API server in a daemon thread.

        Handlers only read the latest immutable ViewState, so no locking
        is needed between the server thread and the event loop.
        """
        thread = threading.Thread(
            target=self.run,
            kwargs={"host": self.config.api.bind_address, "port": self.config.api.port},
            daemon=True,
        )
        thread.start()
        logger.info(
            f"Status API listening on {self.config.api.bind_address}:{self.config.api.port}"
        )
        return thread
