"""Event loop tying scrapes, key presses and rendering to the view reducer."""
from typing import Optional
import asyncio
import logging
import signal
import time

import httpx
from rich.console import Console, RenderableType
from rich.live import Live

from metview import __version__
from metview.config import Config
from metview.filters import MetricFilter
from metview.keys import TerminalKeys
from metview.render import fit_page_size, render_view
from metview.scrape import ScrapeError, scrape
from metview.self_metrics import SelfMetrics
from metview.view import (
    DEFAULT_PAGE_SIZE,
    Message,
    NavAction,
    Navigate,
    Resize,
    ScrapeFailed,
    ScrapeSucceeded,
    ViewState,
    reduce,
)

logger = logging.getLogger(__name__)


def initial_state(config: Config) -> ViewState:
    """Empty view carrying the configured filters and page size."""
    return ViewState(
        page_size=config.display.page_size or DEFAULT_PAGE_SIZE,
        metric_filter=MetricFilter.from_config(config.filters),
    )


class MetricsViewer:
    """
    Owns the view state and the single message queue feeding `reduce`.

    Scrapes run as tasks that post their outcome to the queue; only the
    main loop applies messages, one at a time.
    """

    def __init__(
        self,
        config: Config,
        self_metrics: Optional[SelfMetrics] = None,
        console: Optional[Console] = None,
    ):
        self.config = config
        self.self_metrics = self_metrics
        self.console = console or Console()
        self.state = initial_state(config)
        self.queue: "asyncio.Queue[Message]" = asyncio.Queue()
        self._scrape_task: Optional[asyncio.Task] = None

    @property
    def auto_page_size(self) -> bool:
        return self.config.display.page_size is None

    def dispatch(self, message: Message) -> ViewState:
        """Apply one message to the state."""
        self.state = reduce(self.state, message)
        if self.self_metrics:
            self.self_metrics.set_tracked_series(len(self.state.series))
        return self.state

    def post(self, message: Message):
        self.queue.put_nowait(message)

    def post_action(self, action: NavAction):
        self.post(Navigate(action))

    async def scrape_once(self, client: httpx.AsyncClient):
        """Run one scrape and post its outcome."""
        scrape_cfg = self.config.scrape
        started = time.monotonic()
        try:
            samples = await scrape(client, scrape_cfg.endpoint, scrape_cfg.timeout_s)
        except ScrapeError as e:
            duration = time.monotonic() - started
            logger.warning(f"Scrape of {scrape_cfg.endpoint} failed: {e}")
            if self.self_metrics:
                self.self_metrics.record_scrape_error(e.kind, duration)
            self.post(ScrapeFailed(str(e)))
            return

        duration = time.monotonic() - started
        if self.self_metrics:
            self.self_metrics.record_scrape(duration)
        self.post(ScrapeSucceeded(tuple(samples)))

    def start_scrape(self, client: httpx.AsyncClient) -> bool:
        """Start a scrape unless one is still in flight."""
        if self._scrape_task is not None and not self._scrape_task.done():
            logger.debug("Previous scrape still running, skipping tick")
            if self.self_metrics:
                self.self_metrics.record_skipped_tick()
            return False
        self._scrape_task = asyncio.create_task(self.scrape_once(client))
        return True

    async def tick_loop(self, client: httpx.AsyncClient):
        """Start a scrape immediately, then once per interval."""
        interval = self.config.scrape.interval_s
        while True:
            self.start_scrape(client)
            await asyncio.sleep(interval)

    def render(self) -> RenderableType:
        display = self.config.display
        return render_view(
            self.state,
            endpoint=self.config.scrape.endpoint,
            interval=self.config.scrape.interval_s,
            show_graph=display.show_graph,
            graph_height=display.graph_height,
            graph_width=display.graph_width,
        )

    def fit_to_terminal(self):
        """Follow the terminal height when no fixed page size is configured."""
        if not self.auto_page_size:
            return
        display = self.config.display
        page_size = fit_page_size(self.console.size.height, display.show_graph, display.graph_height)
        if page_size != self.state.page_size:
            self.dispatch(Resize(page_size))

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop):
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.post_action, NavAction.QUIT)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Cannot install handler for signal {signum}")

    async def run(self, screen: bool = False):
        """Run until the user quits."""
        loop = asyncio.get_running_loop()
        self._install_signal_handlers(loop)
        keys = TerminalKeys(loop, self.post_action)

        async with httpx.AsyncClient(
            headers={"User-Agent": f"metview/{__version__}"},
            follow_redirects=True,
        ) as client:
            tick_task = asyncio.create_task(self.tick_loop(client))
            try:
                keys.enable()
                with Live(
                    console=self.console,
                    screen=screen,
                    auto_refresh=False,
                    transient=False,
                ) as live:
                    self.fit_to_terminal()
                    live.update(self.render(), refresh=True)

                    while not self.state.quit:
                        message = await self.queue.get()
                        self.dispatch(message)
                        self.fit_to_terminal()
                        if not self.state.quit:
                            live.update(self.render(), refresh=True)
            finally:
                keys.disable()
                tick_task.cancel()
                tasks = [tick_task]
                if self._scrape_task is not None:
                    self._scrape_task.cancel()
                    tasks.append(self._scrape_task)
                await asyncio.gather(*tasks, return_exceptions=True)

        logger.info("Viewer stopped")
