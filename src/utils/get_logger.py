"""
Per-module loggers for the collaboration finder.
Console output uses local wall-clock time in LOG_TIMEZONE.

LOG_LEVEL and LOG_TIMEZONE are read at import time and again by
configure_from_env(), which the CLI calls once its env file is loaded.
"""

import logging
import os
from datetime import UTC, datetime

import pytz

DEFAULT_TIMEZONE = "America/New_York"


def _timezone_from_env():
    name = os.getenv("LOG_TIMEZONE") or DEFAULT_TIMEZONE
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValueError(f"Invalid LOG_TIMEZONE: {name!r}")


def _level_from_env() -> int:
    raw = os.getenv("LOG_LEVEL") or "INFO"
    level = logging.getLevelName(raw.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid LOG_LEVEL: {raw!r}")
    return level


try:
    TIMEZONE = _timezone_from_env()
except ValueError:
    TIMEZONE = pytz.timezone(DEFAULT_TIMEZONE)

Logger_Cache: dict[str, logging.Logger] = {}
try:
    Default_Level = _level_from_env()
except ValueError:
    Default_Level = logging.INFO


def set_level(level):
    """Change the level of every logger handed out so far and of future ones."""
    global Default_Level
    Default_Level = level
    for logger in Logger_Cache.values():
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)


def configure_from_env():
    """Re-read LOG_LEVEL and LOG_TIMEZONE and apply them to every cached logger.

    Raises:
        ValueError: If either variable holds an unknown value
    """
    global TIMEZONE
    level = _level_from_env()
    TIMEZONE = _timezone_from_env()
    set_level(level)


class LocalTimeFormatter(logging.Formatter):
    def format(self, record):
        utc_dt = datetime.fromtimestamp(record.created, UTC).replace(tzinfo=pytz.utc)
        record.local_time = utc_dt.astimezone(TIMEZONE).strftime("%I:%M:%S %p")
        record.short_name = record.name[0:24]
        if record.levelno == logging.WARNING:
            self._style._fmt = "%(local_time)-10s %(short_name)-24s:%(levelname)-8s =====> %(message)s"
        elif record.levelno >= logging.ERROR:
            self._style._fmt = "\n%(local_time)-10s %(short_name)-24s =====> ERROR\n%(message)s\n---END ERROR ---"
        else:
            self._style._fmt = "%(local_time)-10s %(short_name)-24s:%(levelname)-8s %(message)s"
        return super().format(record)


def get_logger(name: str, level=None) -> logging.Logger:
    """Return a cached logger with a single console handler."""
    if name in Logger_Cache:
        return Logger_Cache[name]

    if level is None:
        level = Default_Level
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(LocalTimeFormatter())
    logger.addHandler(ch)

    logger.propagate = False
    Logger_Cache[name] = logger
    return logger
