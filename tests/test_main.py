"""Tests for the command line entry point."""
import json
import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from metview.config import load_config
from metview.main import build_log_handler, build_parser, main, overrides_from_args


def parse(*argv):
    return build_parser().parse_args(list(argv))


def test_flags_map_to_config():
    args = parse(
        "-x", "http://target/metrics",
        "-s", "500ms",
        "-i", "http_", "-i", "grpc_",
        "-e", "bucket",
        "-l", "job=api",
        "--show-graph",
        "--page-size", "10",
        "--api-port", "9999",
    )
    config = load_config(args.config, overrides_from_args(args))
    assert config.scrape.endpoint == "http://target/metrics"
    assert config.scrape.interval_s == 0.5
    assert config.filters.include == ["http_", "grpc_"]
    assert config.filters.exclude == ["bucket"]
    assert [str(lf) for lf in config.filters.labels] == ["job=api"]
    assert config.display.show_graph is True
    assert config.display.page_size == 10
    assert config.api.enabled is True
    assert config.api.port == 9999


def test_unset_flags_keep_defaults():
    args = parse("--endpoint", "http://target/metrics")
    config = load_config(args.config, overrides_from_args(args))
    assert config.scrape.interval_s == 2.0
    assert config.display.show_graph is False
    assert config.api.enabled is False


def test_version(capsys):
    main(["--version"])
    assert capsys.readouterr().out.startswith("metview ")


def test_bad_label_filter_exits_before_polling(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["-x", "http://target/metrics", "-l", "job"])
    assert excinfo.value.code == 1
    assert "name=value" in capsys.readouterr().err


def test_missing_endpoint_exits(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 1
    assert "endpoint" in capsys.readouterr().err


def isolated_logger(name, handler):
    log = logging.getLogger(name)
    log.handlers = [handler]
    log.setLevel(logging.DEBUG)
    log.propagate = False
    return log


def test_json_log_lines_stay_valid_json(tmp_path):
    log_file = tmp_path / "metview.log"
    handler = build_log_handler("json", str(log_file))
    log = isolated_logger("metview.tests.json", handler)

    log.warning('Scrape of http://target/metrics failed: unexpected token "}" at line 3')
    log.info("path C:\\metrics\ttab")
    handler.close()

    entries = [json.loads(line) for line in log_file.read_text().splitlines()]
    assert len(entries) == 2
    assert entries[0]["level"] == "WARNING"
    assert entries[0]["logger"] == "metview.tests.json"
    assert entries[0]["message"] == 'Scrape of http://target/metrics failed: unexpected token "}" at line 3'
    assert entries[1]["message"] == "path C:\\metrics\ttab"


def test_text_log_file_format(tmp_path):
    log_file = tmp_path / "metview.log"
    handler = build_log_handler("text", str(log_file))
    log = isolated_logger("metview.tests.text", handler)

    log.warning("scrape failed")
    handler.close()

    assert "| WARNING  | metview.tests.text | scrape failed" in log_file.read_text()


def test_terminal_logs_go_through_viewer_console():
    console = Console(record=True, width=120)
    handler = build_log_handler("text", console=console)
    assert isinstance(handler, RichHandler)
    assert handler.console is console

    log = isolated_logger("metview.tests.console", handler)
    log.warning("Scrape of http://target/metrics failed: connection refused")

    assert "connection refused" in console.export_text()
