"""Logging setup for applications embedding showkeeper.

Handlers go on the "showkeeper" package logger only; the root logger
belongs to the host. Modules log through logging.getLogger(__name__) with
a bracketed tag, e.g. logger.info("[MIGRATE] ...").

Environment variables:
    LOG_LEVEL: console level (default: INFO)
    LOG_DIR: directory for showkeeper.log and showkeeper_errors.log (default: ./logs)
    LOG_FORMAT: "text" or "json" (default: text)
"""

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

PACKAGE_LOGGER = "showkeeper"

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

_MAX_LOG_BYTES = 10 * 1024 * 1024

_configured = False


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, UTC)
        payload = {
            "timestamp": created.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _rotating_file(path: Path, level: int, backups: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path, maxBytes=_MAX_LOG_BYTES, backupCount=backups, encoding="utf-8"
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    log_level: str | None = None,
    log_dir: str | Path | None = None,
    use_json: bool | None = None,
) -> logging.Logger:
    """Attach console and rotating file handlers to the package logger.

    Arguments override the environment. Later calls change nothing.

    Returns:
        The package logger
    """
    global _configured
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _configured:
        return package_logger

    level_name = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelNamesMapping().get(level_name, logging.INFO)
    log_path = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    log_path.mkdir(parents=True, exist_ok=True)
    if use_json is None:
        use_json = os.getenv("LOG_FORMAT", "text").lower() == "json"

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    handlers = [
        console,
        _rotating_file(log_path / "showkeeper.log", logging.DEBUG, backups=5),
        _rotating_file(log_path / "showkeeper_errors.log", logging.ERROR, backups=3),
    ]
    formatter = JSONFormatter() if use_json else logging.Formatter(TEXT_FORMAT, "%Y-%m-%d %H:%M:%S")

    package_logger.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
    package_logger.propagate = False
    _configured = True

    from showkeeper.config import VERSION

    package_logger.info(
        "[STARTUP] showkeeper %s, level %s, logs in %s",
        VERSION,
        logging.getLevelName(level),
        log_path,
    )
    return package_logger
