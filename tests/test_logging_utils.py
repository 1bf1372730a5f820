from __future__ import annotations

import json
import logging
from pathlib import Path

from demtiles.logging_utils import (
    NOISY_LOGGERS,
    HumanFormatter,
    JsonFormatter,
    LogOptions,
    configure_logging,
)


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("demtiles.test", logging.INFO, __file__, 1, message, (), None)


def test_configure_logging_writes_json(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "demtiles.jsonl"
    configure_logging(LogOptions(log_file=log_path))
    logger = logging.getLogger("demtiles.test")
    logger.info("hello", extra={"raster": "n34_w093.tif"})
    logging.shutdown()

    lines = log_path.read_text(encoding="utf-8").strip().splitlines()
    assert lines
    payload = json.loads(lines[-1])
    assert payload["message"] == "hello"
    assert payload["level"] == "info"
    assert payload["raster"] == "n34_w093.tif"
    assert "extra" not in payload


def test_json_formatter_keeps_other_extras() -> None:
    record = _record("tiles")
    record.raster = "dem.tif"
    record.tiles = 9
    payload = json.loads(JsonFormatter().format(record))
    assert payload["raster"] == "dem.tif"
    assert payload["extra"] == {"tiles": 9}
    assert payload["timestamp"].endswith("Z")


def test_quiet_sets_warning_level() -> None:
    root = configure_logging(LogOptions(quiet=True))
    assert root.handlers[0].level == logging.WARNING


def test_verbose_keeps_libraries_at_info() -> None:
    root = configure_logging(LogOptions(verbose=1))
    assert root.handlers[0].level == logging.DEBUG
    assert all(logging.getLogger(name).level == logging.INFO for name in NOISY_LOGGERS)

    configure_logging(LogOptions(verbose=2))
    assert all(logging.getLogger(name).level == logging.DEBUG for name in NOISY_LOGGERS)
    configure_logging(LogOptions())


def test_human_formatter_prefixes_raster() -> None:
    formatter = HumanFormatter()
    record = _record("Tiling")
    record.raster = "dem.tif"
    assert formatter.format(record) == "[dem.tif] INFO: Tiling"
    assert formatter.format(_record("Done!")) == "INFO: Done!"
