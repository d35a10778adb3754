"""Logging setup.

Console output always; an optional daily-rotated file when `log_file` is set.
"""
from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler

_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Handlers we installed, removed again on reconfiguration.
_handlers: list[logging.Handler] = []


def _parse_level(level: str | None) -> int:
    level_str = (level or "INFO").strip().upper()
    if level_str not in _LEVELS:
        level_str = "INFO"
    return getattr(logging, level_str)


def setup_logging(level: str = "INFO", log_file: str = "", retention_days: int = 30) -> None:
    log_level = _parse_level(level)
    retention_days = max(1, min(365, int(retention_days or 30)))

    root = logging.getLogger()
    for h in _handlers:
        root.removeHandler(h)
        h.close()
    _handlers.clear()

    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)

    ch = logging.StreamHandler()
    ch.setLevel(log_level)
    ch.setFormatter(formatter)
    _handlers.append(ch)

    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        fh = TimedRotatingFileHandler(
            log_file,
            when="midnight",
            interval=1,
            backupCount=retention_days,
            encoding="utf-8",
            utc=True,
        )
        fh.suffix = "%Y-%m-%d"
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        _handlers.append(fh)

    root.setLevel(log_level)
    for h in _handlers:
        root.addHandler(h)

    # ldap3 logs every PDU at DEBUG.
    logging.getLogger("ldap3").setLevel(max(log_level, logging.WARNING))

    logging.getLogger("pwmanager").info(
        "Logging configured: level=%s, file=%s", logging.getLevelName(log_level), log_file or "-"
    )
