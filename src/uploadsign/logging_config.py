from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any


_RESERVED_RECORD_FIELDS = set(logging.makeLogRecord({}).__dict__.keys())

# Extra fields carrying key material or signed documents never reach a log line.
_SENSITIVE_FIELDS = frozenset({"secret_key", "secret", "password", "token", "signature", "policy"})
_REDACTED = "***"


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def mask_key(value: str | None, visible: int = 4) -> str:
    """Shorten an access key to its first and last characters for log output."""
    if not value:
        return ""
    if len(value) <= visible * 2:
        return _REDACTED
    return f"{value[:visible]}{_REDACTED}{value[-visible:]}"


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _RESERVED_RECORD_FIELDS or key.startswith("_"):
            continue
        extras[key] = _REDACTED if key.lower() in _SENSITIVE_FIELDS else value
    return extras


class _ServiceFormatter(logging.Formatter):
    def __init__(self, service: str, datefmt: str | None = None) -> None:
        super().__init__(datefmt=datefmt)
        self.service = service

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)


class JsonFormatter(_ServiceFormatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self._now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "service": self.service,
            "message": record.getMessage(),
        }
        extras = _extract_extra_fields(record)
        if extras:
            payload["context"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


class TextFormatter(_ServiceFormatter):
    def __init__(self, service: str) -> None:
        super().__init__(service, datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            self._now().strftime(self.datefmt),
            record.levelname,
            record.name,
            f"service={self.service}",
            f"message={record.getMessage()}",
        ]
        extras = _extract_extra_fields(record)
        parts.extend(f"{key}={value!r}" for key, value in sorted(extras.items()))
        message = " ".join(parts)
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def build_handler(service: str, use_json: bool) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter(service=service) if use_json else TextFormatter(service=service))
    return handler


def configure_logging(level: str | None = None, service: str = "uploadsign") -> None:
    env_level = level or os.getenv("UPLOADSIGN_LOG_LEVEL") or os.getenv("LOG_LEVEL", "INFO")
    resolved_level = getattr(logging, env_level.upper(), logging.INFO)
    aws_runtime = bool(os.getenv("AWS_LAMBDA_FUNCTION_NAME"))
    use_json = _parse_bool(os.getenv("UPLOADSIGN_LOG_JSON") or os.getenv("LOG_JSON"), default=aws_runtime)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(build_handler(service, use_json))
    root_logger.setLevel(resolved_level)
    logging.captureWarnings(True)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def with_context(logger: logging.Logger, **context: Any) -> logging.LoggerAdapter:
    return logging.LoggerAdapter(logger, extra=context)
