"""Console and file logging for the demtiles CLI.

Records logged while a raster is being processed carry its file name in
``extra={"raster": ...}``. The human formatter prints it as a prefix and the
JSON formatter promotes it to a top-level ``raster`` key.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

CONTEXT_KEY = "raster"
# Libraries that log per-block or per-chunk detail at DEBUG.
NOISY_LOGGERS = ("rasterio", "PIL", "pyproj")

_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message"}


@dataclass(frozen=True)
class LogOptions:
    """Configuration for logging output."""

    verbose: int = 0
    quiet: bool = False
    log_file: Path | None = None
    json_console: bool = False


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with the raster context at top level."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, timezone.utc)
        payload: dict[str, Any] = {
            "timestamp": stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {key: value for key, value in vars(record).items() if key not in _RESERVED}
        raster = extra.pop(CONTEXT_KEY, None)
        if raster is not None:
            payload[CONTEXT_KEY] = raster
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """``LEVEL: message`` lines, prefixed with ``[raster]`` when known."""

    def __init__(self) -> None:
        super().__init__("%(levelname)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        raster = getattr(record, CONTEXT_KEY, None)
        return f"[{raster}] {message}" if raster else message


def console_level(options: LogOptions) -> int:
    """Map --quiet and -v counts to a console level."""
    if options.quiet:
        return logging.WARNING
    return logging.DEBUG if options.verbose > 0 else logging.INFO


def configure_logging(options: LogOptions) -> logging.Logger:
    """Install console and optional JSON file handlers on the root logger.

    Third-party loggers stay at INFO unless -vv is given.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level(options))
    console.setFormatter(JsonFormatter() if options.json_console else HumanFormatter())
    root.addHandler(console)

    if options.log_file:
        options.log_file.parent.mkdir(parents=True, exist_ok=True)
        log_file = logging.FileHandler(options.log_file, encoding="utf-8")
        log_file.setFormatter(JsonFormatter())
        root.addHandler(log_file)

    library_level = logging.DEBUG if options.verbose > 1 else logging.INFO
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
    return root
