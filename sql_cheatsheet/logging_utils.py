from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any, Dict, Optional, TextIO

LEVEL_ENV = ("SQL_CHEATSHEET_LOG_LEVEL", "LOG_LEVEL")


class _PlainFormatter(logging.Formatter):
    """Single-line human formatter (stderr)."""

    default_fmt = "%(levelname)s %(name)s - %(message)s"
    verbose_fmt = "%(asctime)s %(levelname)s %(name)s %(filename)s:%(lineno)d - %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    def __init__(self, debug: bool = False) -> None:
        super().__init__(fmt=self.verbose_fmt if debug else self.default_fmt, datefmt=self.datefmt)


# Catalog fields passed through `extra=` by load and search records
CATALOG_FIELDS = ("event", "source", "topics", "concepts", "keyword", "mode", "hits", "ms")


class _JsonFormatter(logging.Formatter):
    """One JSON object per record, with any catalog fields attached."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "file": record.filename,
            "line": record.lineno,
        }
        for name in CATALOG_FIELDS:
            if hasattr(record, name):
                payload[name] = getattr(record, name)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _coerce_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        upper = level.strip().upper()
        if upper in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}:
            return getattr(logging, upper)
        if upper == "WARN":
            return logging.WARNING
        if upper.isdigit():
            return int(upper)
    return logging.INFO


def _env_level() -> Optional[str]:
    for name in LEVEL_ENV:
        val = os.getenv(name)
        if val:
            return val
    return None


def setup_logging(
    level: str | int | None = None,
    json_logs: bool = False,
    stream: Optional[TextIO] = None,
) -> int:
    """
    Configure root logging for the process and return the effective level.

    Precedence: explicit level, then SQL_CHEATSHEET_LOG_LEVEL / LOG_LEVEL,
    then INFO. Existing root handlers are replaced so repeated calls (tests,
    REPL) do not duplicate output.
    """
    final_level = _coerce_level(level or _env_level() or logging.INFO)

    root = logging.getLogger()
    root.setLevel(final_level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream=stream or sys.stderr)
    if json_logs:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(_PlainFormatter(debug=(final_level <= logging.DEBUG)))
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "httpx", "urllib3"):
        logging.getLogger(noisy).setLevel(max(final_level, logging.WARNING))
    return final_level
