"""Structured logging utilities for the filesystem source."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "filesystem_source"

_HOME = str(Path.home())
_LOG_FORMAT = "%(message)s"
_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5

logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())


def _sanitize(value: str) -> str:
    """Replace the home directory prefix with ``~/``."""

    if not value.startswith(_HOME):
        return value
    remainder = value[len(_HOME):]
    if remainder and remainder[0] not in ("/", "\\"):
        return value
    remainder = remainder[1:]
    return f"~/{remainder}" if remainder else "~"


def configure_logging(
    log_path: Path | None = None,
    *,
    level: int = logging.INFO,
    max_bytes: int = _MAX_BYTES,
    backup_count: int = _BACKUP_COUNT,
) -> logging.Logger:
    """Configure and return the package logger shared by all components."""

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False
    for null_handler in [h for h in logger.handlers if isinstance(h, logging.NullHandler)]:
        logger.removeHandler(null_handler)

    if logger.handlers:
        if log_path:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()
        else:
            for handler in logger.handlers:
                handler.setLevel(level)
            return logger

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    else:
        handler = logging.StreamHandler()

    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    return logger


def get_logger(name: str, logger: logging.Logger | None = None) -> logging.Logger:
    """Return *logger* or the component logger ``filesystem_source.<name>``.

    Output goes wherever the host application routes the ``filesystem_source``
    logger; call :func:`configure_logging` to attach a handler directly.
    """

    return logger or logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def _prepare_payload(data: dict[str, Any]) -> dict[str, Any]:
    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            sanitized[key] = _sanitize(value)
        elif isinstance(value, dict):
            sanitized[key] = _prepare_payload(value)
        elif isinstance(value, (list, tuple)):
            sanitized[key] = [
                _sanitize(item) if isinstance(item, str) else item for item in value
            ]
        else:
            sanitized[key] = value
    return sanitized


def log_event(
    logger: logging.Logger,
    *,
    level: int,
    action: str,
    message: str,
    path: str | None = None,
    count: int | None = None,
    bytes_processed: int | None = None,
    duration_ms: float | None = None,
    extra: dict[str, Any] | None = None,
) -> None:
    """Emit a single JSON log line."""

    if not logger.isEnabledFor(level):
        return

    payload: dict[str, Any] = {
        "ts": _utcnow_iso(),
        "level": logging.getLevelName(level),
        "action": action,
        "message": _sanitize(message),
    }
    if path is not None:
        payload["path"] = _sanitize(path)
    if count is not None:
        payload["count"] = count
    if bytes_processed is not None:
        payload["bytes"] = bytes_processed
    if duration_ms is not None:
        payload["ms"] = round(duration_ms, 3)
    if extra:
        payload.update(_prepare_payload(extra))

    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


def _utcnow_iso() -> str:
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.isoformat(timespec="milliseconds") + "Z"


__all__ = ["ROOT_LOGGER_NAME", "configure_logging", "get_logger", "log_event"]
