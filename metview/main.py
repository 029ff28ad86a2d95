"""Main entry point for the metrics viewer."""
from typing import Any, Dict, List, Optional
import argparse
import asyncio
import json
import logging
import sys

from rich.console import Console
from rich.highlighter import NullHighlighter
from rich.logging import RichHandler

from metview import __version__
from metview.app import MetricsViewer
from metview.config import Config, load_config
from metview.control_api import ControlAPI
from metview.filters import MetricFilter
from metview.self_metrics import SelfMetrics

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def build_log_handler(
    log_format: str,
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> logging.Handler:
    """
    Handler for the root logger.

    Without a log file, records go through the viewer's rich console so
    they are printed above the live display instead of into it.
    """
    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file)
        if log_format == "json":
            handler.setFormatter(JsonFormatter(datefmt=DATE_FORMAT))
        else:
            handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT))
        return handler

    if log_format == "json":
        handler = RichHandler(
            console=console,
            show_time=False,
            show_level=False,
            show_path=False,
            highlighter=NullHighlighter(),
        )
        handler.setFormatter(JsonFormatter(datefmt=DATE_FORMAT))
        return handler

    return RichHandler(console=console, show_path=False)


def setup_logging(
    log_level: str,
    log_format: str,
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        handlers=[build_log_handler(log_format, log_file, console)],
    )

    # Reduce noise from some libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """Command line definition."""
    parser = argparse.ArgumentParser(
        prog="metview",
        description="An interactive terminal-based viewer for Prometheus metrics"
    )
    parser.add_argument(
        "--endpoint", "-x",
        help="Metrics endpoint to poll (env: MET_ENDPOINT)"
    )
    parser.add_argument(
        "--interval", "-s",
        help="Poll interval, e.g. 2s or 500ms (env: MET_INTERVAL, default: 2s)"
    )
    parser.add_argument(
        "--timeout",
        help="Scrape timeout (default: 5s)"
    )
    parser.add_argument(
        "--include", "-i",
        action="append",
        help="Include metrics whose name contains this substring (repeatable)"
    )
    parser.add_argument(
        "--exclude", "-e",
        action="append",
        help="Exclude metrics whose name contains this substring (repeatable)"
    )
    parser.add_argument(
        "--labels", "-l",
        action="append",
        help="Show only metrics with label=value (repeatable, ANDed)"
    )
    parser.add_argument(
        "--show-graph",
        action="store_true",
        default=None,
        help="Display an ASCII graph for the selected metric"
    )
    parser.add_argument(
        "--page-size",
        type=int,
        help="Rows per page (default: fit the terminal)"
    )
    parser.add_argument(
        "--config", "-c",
        help="Optional YAML configuration file"
    )
    parser.add_argument(
        "--log-level",
        help="Log level (env: LOG_LEVEL, default: WARNING)"
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to this file instead of the terminal"
    )
    parser.add_argument(
        "--api-port",
        type=int,
        help="Serve the status API on this port"
    )
    parser.add_argument(
        "--screen",
        action="store_true",
        help="Use the terminal's alternate screen"
    )
    parser.add_argument(
        "--version", "-v",
        action="store_true",
        help="Print version information"
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """Map parsed flags onto configuration sections; unset flags are None."""
    api: Dict[str, Any] = {}
    if args.api_port is not None:
        api = {"enabled": True, "port": args.api_port}

    return {
        "global": {"log_level": args.log_level, "log_file": args.log_file},
        "scrape": {
            "endpoint": args.endpoint,
            "interval_s": args.interval,
            "timeout_s": args.timeout,
        },
        "filters": {
            "include": args.include,
            "exclude": args.exclude,
            "labels": args.labels,
        },
        "display": {"show_graph": args.show_graph, "page_size": args.page_size},
        "api": api,
    }


def run(config: Config, screen: bool = False, console: Optional[Console] = None):
    """Start the optional status API and run the viewer until quit."""
    logger = logging.getLogger(__name__)

    self_metrics = SelfMetrics()
    viewer = MetricsViewer(config, self_metrics=self_metrics, console=console)

    if config.api.enabled:
        control_api = ControlAPI(config, lambda: viewer.state, self_metrics)
        control_api.start()

    logger.info(f"Polling {config.scrape.endpoint} every {config.scrape.interval_s:g}s")
    asyncio.run(viewer.run(screen=screen))


def main(argv: Optional[List[str]] = None):
    """Main function."""
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"metview {__version__}")
        return

    # Load configuration; any error here is fatal before polling starts
    try:
        config = load_config(args.config, overrides_from_args(args))
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Logs share the viewer's console so they print above the live table
    console = Console()
    setup_logging(
        config.global_.log_level,
        config.global_.log_format,
        config.global_.log_file,
        console=console,
    )
    logger = logging.getLogger(__name__)
    logger.info(f"metview {__version__}")
    if MetricFilter.from_config(config.filters).active:
        logger.info(f"Include: {config.filters.include} Exclude: {config.filters.exclude}")
        logger.info(f"Label filters: {[str(lf) for lf in config.filters.labels]}")
    else:
        logger.info("No filters configured, showing every series")

    try:
        run(config, screen=args.screen, console=console)
    except Exception as e:
        logger.error(f"Viewer error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
