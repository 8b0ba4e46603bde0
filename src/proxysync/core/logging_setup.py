"""
Central logging for proxysync.

- Console handler: INFO..CRITICAL on stderr (stdout is reserved for reports)
- Timed rotated file handler: DEBUG (logs/app.log, daily rotation)
- Action-based file handler: DEBUG (logs/YYYY-MM-DD/<action>_<run_id>.log)
- Context defaults for records emitted by plain module loggers
- UTC timestamps in ISO-8601
"""

from __future__ import annotations

import logging
import sys
import logging.handlers
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pathlib import Path

_CONTEXT_FIELDS = ("run_id", "action", "proxy")


class ContextDefaultsFilter(logging.Filter):
    """
    Fill run/action/proxy attributes on records that were not emitted through
    the LoggerAdapter, so the shared format string never fails.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for field in _CONTEXT_FIELDS:
            if getattr(record, field, None) is None:
                setattr(record, field, "-")
        return True


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _utc_formatter(fmt: str) -> logging.Formatter:
    f = logging.Formatter(fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%SZ")
    f.converter = time.gmtime  # type: ignore[attr-defined]
    return f


def _level(name: str, default: int) -> int:
    return getattr(logging, str(name).upper(), default)


def _ensure_single_console_handler(
    base_logger: logging.Logger,
    *,
    console_level: str,
    formatter: logging.Formatter,
    context: logging.Filter,
) -> None:
    """
    Make sure there is exactly ONE console StreamHandler bound to sys.stderr
    (pytest may close/replace stdio between tests; also avoid duplicates).
    """
    for h in list(base_logger.handlers):
        # FileHandler subclasses StreamHandler; only drop console handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            base_logger.removeHandler(h)
            h.close()

    sh = logging.StreamHandler(stream=sys.stderr)
    sh.setLevel(_level(console_level, logging.INFO))
    sh.setFormatter(formatter)
    sh.addFilter(context)
    base_logger.addHandler(sh)


def _ensure_app_file_handler(
    base_logger: logging.Logger,
    *,
    base_dir: str,
    file_level: str,
    formatter: logging.Formatter,
    context: logging.Filter,
) -> None:
    """
    Ensure a single TimedRotatingFileHandler points to <base_dir>/app.log.
    A handler left over from a previous call with another base_dir is replaced.
    """
    _ensure_dir(base_dir)
    desired = os.path.abspath(os.path.join(base_dir, "app.log"))

    for h in list(base_logger.handlers):
        if isinstance(h, logging.handlers.TimedRotatingFileHandler):
            current = os.path.abspath(getattr(h, "baseFilename", ""))
            if current != desired:
                base_logger.removeHandler(h)
                h.close()

    if not any(
        isinstance(h, logging.handlers.TimedRotatingFileHandler)
        and os.path.abspath(getattr(h, "baseFilename", "")) == desired
        for h in base_logger.handlers
    ):
        rh = logging.handlers.TimedRotatingFileHandler(
            desired,
            when="midnight",
            backupCount=14,
            encoding="utf-8",
            utc=True,
            delay=False,
        )
        rh.setLevel(_level(file_level, logging.DEBUG))
        rh.setFormatter(formatter)
        rh.addFilter(context)
        base_logger.addHandler(rh)


def build_logger(
    *,
    name: str = "ps",
    run_id: str,
    action: str,
    base_dir: str = "logs",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    extra: Optional[Dict[str, Any]] = None,
) -> logging.LoggerAdapter:
    """
    Configure and return a LoggerAdapter.

    Design:
      - A base logger `<name>` holds console + rotating file handlers.
      - A child logger `<name>.<action>.<run_id>` holds a per-run file handler.
      - Records propagate to base logger so they appear in all sinks.
      - Module loggers (`<name>.decode`, `<name>.report`, ...) reach the
        same base sinks with placeholder context.
    """
    context = ContextDefaultsFilter()

    fmt = (
        "%(asctime)s | %(levelname)-8s | %(name)s | "
        "run=%(run_id)s action=%(action)s proxy=%(proxy)s | "
        "%(message)s"
    )
    formatter = _utc_formatter(fmt)

    base = logging.getLogger(name)
    base.setLevel(logging.DEBUG)

    _ensure_single_console_handler(
        base_logger=base,
        console_level=console_level,
        formatter=formatter,
        context=context,
    )
    _ensure_app_file_handler(
        base_logger=base,
        base_dir=base_dir,
        file_level=file_level,
        formatter=formatter,
        context=context,
    )

    child_name = f"{name}.{action}.{run_id}"
    child = logging.getLogger(child_name)
    child.setLevel(logging.DEBUG)
    child.propagate = True

    if not getattr(child, "_ps_action_configured", False):
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        dated_dir = os.path.join(base_dir, today)
        _ensure_dir(dated_dir)

        action_file = os.path.join(dated_dir, f"{action}_{run_id}.log")
        Path(action_file).touch(exist_ok=True)
        fh = logging.FileHandler(action_file, encoding="utf-8", delay=False)
        fh.setLevel(_level(file_level, logging.DEBUG))
        fh.setFormatter(formatter)
        fh.addFilter(context)

        child.addHandler(fh)
        child._ps_action_configured = True  # type: ignore[attr-defined]

    adapter = logging.LoggerAdapter(
        child,
        {
            "run_id": run_id,
            "action": action,
            "proxy": (extra or {}).get("proxy"),
        },
    )
    adapter.debug("Logger initialised")
    return adapter


def close_logger(logger: logging.LoggerAdapter) -> None:
    """Close and detach the per-run file handler created by `build_logger`."""
    child = logger.logger
    for h in list(child.handlers):
        child.removeHandler(h)
        h.close()
    child._ps_action_configured = False  # type: ignore[attr-defined]
