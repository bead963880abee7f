"""Structured logging for the LIFX bridge.

Every module logs through `get_logger(__name__)`. Records carry the current
correlation id and an optional `extra=` mapping, and are written as JSON
lines, as human-readable lines, or both, depending on `LIFX_LOG_FORMAT`.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import override

from lifx_bridge.const import (
    LIFX_DEBUG,
    LIFX_LOG_FORMAT,
    LIFX_LOG_HUMAN_OUTPUT,
    LIFX_LOG_JSON_FILE,
)
from lifx_bridge.correlation import get_correlation_id, log_tag

__all__ = [
    "HumanReadableFormatter",
    "JSONFormatter",
    "LifxLogger",
    "get_logger",
]

Context = Mapping[str, object]


def _context_of(record: logging.LogRecord) -> dict[str, object]:
    context = getattr(record, "extra_data", None)
    return dict(context) if isinstance(context, Mapping) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shipping."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        if context := _context_of(record):
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """`time level [module:line] [corr-id] > message | key=value ...`"""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        record.correlation_id = f"[{log_tag()}]"
        line = super().format(record)
        if context := _context_of(record):
            line += " | " + " | ".join(f"{key}={value}" for key, value in context.items())
        return line


def _open_handler(destination: str | Path) -> logging.Handler:
    """stdout, stderr, or an appended file whose parent is created on demand."""
    if destination == "stdout":
        return logging.StreamHandler(sys.stdout)
    if destination == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(destination)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a")


class LifxLogger:
    """Wraps a stdlib logger so callers can pass structured `extra=` context."""

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stdout",
    ) -> None:
        self.name: str = name
        self.log_format: str = log_format
        self.logger: logging.Logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if LIFX_DEBUG else logging.INFO)
        # loggers are process-wide; only the first wrapper attaches handlers
        if not self.logger.handlers:
            self._attach_handlers(json_file, human_output)

    def _attach_handlers(self, json_file: str | Path | None, human_output: str | None) -> None:
        outputs: list[tuple[str | Path, logging.Formatter]] = []
        if self.log_format in ("json", "both") and json_file:
            outputs.append((json_file, JSONFormatter()))
        if self.log_format in ("human", "both"):
            outputs.append((human_output or "stdout", HumanReadableFormatter()))

        for destination, formatter in outputs:
            try:
                handler = _open_handler(destination)
            except OSError as e:
                print(f"Warning: cannot open log output {destination}: {e}", file=sys.stderr)
                if isinstance(formatter, JSONFormatter):
                    continue
                handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(formatter)
            handler.setLevel(self.logger.level)
            self.logger.addHandler(handler)

    def _log(self, level: int, msg: str, *args: object, extra: Context | None = None, exc_info: bool = False) -> None:
        self.logger.log(
            level,
            msg,
            *args,
            extra={"extra_data": dict(extra)} if extra else None,
            exc_info=exc_info,
            stacklevel=3,
        )

    def debug(self, msg: str, *args: object, extra: Context | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Context | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Context | None = None) -> None:
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Context | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Context | None = None) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, msg, *args, extra=extra, exc_info=True)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> LifxLogger:
    """Return a `LifxLogger` for `name`; unset arguments come from the LIFX_LOG_* settings."""
    return LifxLogger(
        name,
        log_format=log_format or LIFX_LOG_FORMAT,
        json_file=json_file or LIFX_LOG_JSON_FILE,
        human_output=human_output or LIFX_LOG_HUMAN_OUTPUT,
    )
