"""
Structured logging for the gigboard backend.

Four named loggers share one configuration:
- api: Routers, exception handlers, application lifecycle
- services: Group, membership, event, calendar and song operations
- auth: Credential resolution, failed-credential tracking, access denials
- db: Storage failures

Output depends on GIGBOARD_ENV:
- production: one rotating JSON file per logger in GIGBOARD_LOG_DIR
- development (default): readable console lines, extra fields appended
- test: console, WARNING and above unless GIGBOARD_LOG_LEVEL says otherwise

Context is passed with ``extra={...}`` and ends up as JSON keys or as
``key=value`` pairs on the console line.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional


LOGGER_NAMES = ("api", "services", "auth", "db")
LOGGER_PREFIX = "gigboard"

_ROTATE_BYTES = 10 * 1024 * 1024
_ROTATE_BACKUPS = 5

# Attributes present on every LogRecord; anything else came from extra={...}
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per line.

    Keys: timestamp (UTC, ISO 8601), level, logger, message, module,
    function, line, exception (when present), then every extra field.
    """

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        data.update(_extra_fields(record))
        return json.dumps(data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Readable single-line format for development.

    Example:
        [2026-03-01 10:30:45] WARNING - gigboard.auth - Repeated invalid credentials client_ip=10.0.0.4 failure_count=5
    """

    def __init__(self):
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s - %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extra_fields(record)
        if not extras:
            return line
        pairs = " ".join(f"{k}={v}" for k, v in extras.items())
        # Traceback (if any) stays on the lines after the message
        head, sep, tail = line.partition("\n")
        return f"{head} {pairs}{sep}{tail}"


class LoggingOptions(NamedTuple):
    level: int
    json_files: bool
    log_dir: Optional[Path]


def options_from_env() -> LoggingOptions:
    """
    Read logging options from the environment.

    Environment Variables:
        GIGBOARD_ENV: production, development (default) or test
        GIGBOARD_LOG_LEVEL: DEBUG/INFO/WARNING/ERROR/CRITICAL; defaults to
            INFO, or WARNING under test
        GIGBOARD_LOG_DIR: Directory for production log files (default: ./logs)
    """
    env = os.environ.get("GIGBOARD_ENV", "development").lower()
    default_level = "WARNING" if env == "test" else "INFO"
    level_name = os.environ.get("GIGBOARD_LOG_LEVEL", default_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    if env != "production":
        return LoggingOptions(level=level, json_files=False, log_dir=None)

    log_dir = Path(os.environ.get("GIGBOARD_LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)
    return LoggingOptions(level=level, json_files=True, log_dir=log_dir)


def _build_handler(name: str, options: LoggingOptions) -> logging.Handler:
    if options.json_files:
        handler = logging.handlers.RotatingFileHandler(
            options.log_dir / f"{name}.log",
            maxBytes=_ROTATE_BYTES,
            backupCount=_ROTATE_BACKUPS,
            encoding="utf-8",
        )
        handler.setFormatter(JSONFormatter())
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ConsoleFormatter())
    handler.setLevel(options.level)
    return handler


def configure_logging(options: Optional[LoggingOptions] = None) -> Dict[str, logging.Logger]:
    """
    (Re)configure every gigboard logger.

    Calling it again replaces the handlers instead of stacking them, so it is
    safe under reloaders and repeated app imports in tests.

    Returns:
        Mapping of short name ("api", "services", "auth", "db") to Logger
    """
    options = options or options_from_env()
    loggers = {}
    for name in LOGGER_NAMES:
        logger = logging.getLogger(f"{LOGGER_PREFIX}.{name}")
        logger.setLevel(options.level)
        logger.propagate = False
        logger.handlers.clear()
        logger.addHandler(_build_handler(name, options))
        loggers[name] = logger
    return loggers


_loggers: Optional[Dict[str, logging.Logger]] = None


def get_logger(name: str) -> logging.Logger:
    """
    Get one of the gigboard loggers, configuring logging on first use.

    Raises:
        ValueError: If name is not one of LOGGER_NAMES

    Example:
        >>> logger = get_logger("services")
        >>> logger.info("Added member", extra={"group_guid": "grp_01hgw2bbg..."})
    """
    global _loggers
    if name not in LOGGER_NAMES:
        raise ValueError(
            f"Unknown logger name: {name}. Valid names: {', '.join(LOGGER_NAMES)}"
        )
    if _loggers is None:
        _loggers = configure_logging()
    return _loggers[name]


def init_logging() -> Dict[str, logging.Logger]:
    """Configure logging at application start (called from main.py)."""
    global _loggers
    _loggers = configure_logging()
    return _loggers
