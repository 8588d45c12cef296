"""Logging utilities with JSON formatting and payload redaction.

This module centralizes logging configuration, including:
- Redaction of sensitive or bulky fields on log records
- JSON formatter for machine-friendly logs
- Configurable stdout/file handlers with rotation support
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from ratethrottler.core.config import LogSettings, settings

# Structured fields replaced by "[REDACTED]"
SENSITIVE_KEYS_DEFAULT: set[str] = {
    "token",
    "secret",
    "password",
    "authorization",
}

# Structured fields replaced by a size marker; snapshot payloads can hold
# every key and timestamp in the process.
PAYLOAD_KEYS_DEFAULT: set[str] = {
    "snapshot",
    "payload",
}

# Logging fields we intentionally exclude from extra payload capture
_EXCLUDED_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "stack",
}


def _payload_marker(value: Any) -> str:
    if isinstance(value, str) and value.startswith("[PAYLOAD "):
        return value
    size = len(value) if hasattr(value, "__len__") else 0
    return f"[PAYLOAD {size} chars]" if isinstance(value, str) else f"[PAYLOAD {size} items]"


def _mask(key: str, value: Any, sensitive_keys: set[str], payload_keys: set[str]) -> Any:
    """Mask a single field by name, recursing into containers otherwise.

    Args:
        key: Field name on the log record or nested mapping.
        value: Field value.
        sensitive_keys: Keys that must be redacted.
        payload_keys: Keys whose values are replaced by their size.

    Returns:
        The masked value.
    """

    lowered = key.lower()
    if lowered in sensitive_keys:
        return "[REDACTED]"
    if lowered in payload_keys:
        return _payload_marker(value)
    return _redact_value(value, sensitive_keys, payload_keys)


def _redact_value(value: Any, sensitive_keys: set[str], payload_keys: set[str]) -> Any:
    if isinstance(value, Mapping):
        return {k: _mask(str(k), v, sensitive_keys, payload_keys) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_value(v, sensitive_keys, payload_keys) for v in value)
    return value


def _sanitize_record(
    record: LogRecord,
    sensitive_keys: set[str],
    payload_keys: set[str],
) -> dict[str, Any]:
    """Convert a LogRecord's extra fields to a dict with masking applied.

    Args:
        record: LogRecord instance to sanitize.
        sensitive_keys: Keys that must be redacted.
        payload_keys: Keys whose values are replaced by their size.

    Returns:
        Dict with safe fields ready for formatting.
    """

    data: dict[str, Any] = {}

    for key, value in record.__dict__.items():
        if key in _EXCLUDED_ATTRS or key.startswith("_"):
            continue
        data[key] = _mask(key, value, sensitive_keys, payload_keys)

    return data


def _default_timestamp() -> str:
    """Generate an ISO-8601 UTC timestamp string."""

    return datetime.now(timezone.utc).isoformat()


class SensitiveDataFilter(logging.Filter):
    """Mask sensitive and bulky fields on the record before formatting."""

    def __init__(
        self,
        sensitive_keys: Iterable[str] | None = None,
        payload_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__()
        self.sensitive_keys = set(sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        self.payload_keys = set(payload_keys or PAYLOAD_KEYS_DEFAULT)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        sanitized = _sanitize_record(record, self.sensitive_keys, self.payload_keys)
        for key, value in sanitized.items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """Format LogRecord as a single JSON line."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        payload_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.sensitive_keys = set(sensitive_keys or SENSITIVE_KEYS_DEFAULT)
        self.payload_keys = set(payload_keys or PAYLOAD_KEYS_DEFAULT)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        record_data = {
            "timestamp": _default_timestamp(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = _sanitize_record(record, self.sensitive_keys, self.payload_keys)
        record_data.update(extras)

        if record.exc_info:
            record_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(record_data, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Construct the logging handler based on configuration.

    Args:
        log_settings: Resolved logging settings from environment.

    Returns:
        Configured logging handler (stdout or rotating file).
    """

    if log_settings.output == "file":
        file_path = Path(log_settings.file_path or "logs/throttler.log")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if log_settings.max_bytes:
            return RotatingFileHandler(
                file_path,
                maxBytes=log_settings.max_bytes,
                backupCount=log_settings.backup_count,
                encoding="utf-8",
            )
        return logging.FileHandler(file_path, encoding="utf-8")

    return logging.StreamHandler(sys.stdout)


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Configure the root logger with the JSON (or plain) formatter.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    level = getattr(logging, cfg.level.upper(), logging.INFO)
    handler = _build_handler(cfg)
    handler.addFilter(SensitiveDataFilter())

    if cfg.format == "plain":
        formatter: logging.Formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
    else:
        formatter = JsonFormatter()

    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
