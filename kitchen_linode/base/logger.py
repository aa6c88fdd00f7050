"""
Structured logging for kitchen-linode.

Provides a pre-configured logger that emits JSON-structured log records
with lifecycle context (instance, label, operation) so a test run's
provisioning output can be filtered per instance in CI logs.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

_CONTEXT_KEYS = ("request_id", "instance", "label", "operation")


class StructuredFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Attach any extras injected via DriverLogger.log_operation
        for key in _CONTEXT_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


class DriverLogger:
    """Convenience wrapper around :mod:`logging` for lifecycle operations."""

    def __init__(self, name: str = "kitchen_linode", *, context: dict[str, str] | None = None) -> None:
        self.logger = logging.getLogger(name)
        self.context: dict[str, str] = dict(context or {})
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def bind(self, **context: str | None) -> DriverLogger:
        """Return a logger that stamps *context* on every record.

        The bound logger keeps one ``request_id`` for all of its records, so
        every line of a single create or destroy shares the same id.
        """
        merged = {**self.context, **{k: v for k, v in context.items() if v is not None}}
        merged.setdefault("request_id", uuid.uuid4().hex[:12])
        return DriverLogger(self.logger.name, context=merged)

    def log_operation(
        self,
        level: int,
        message: str,
        *,
        instance: str | None = None,
        label: str | None = None,
        operation: str | None = None,
        request_id: str | None = None,
        exc_info: bool = False,
    ) -> None:
        """Emit a structured log record with lifecycle context.

        Args:
            level: Logging level (e.g. logging.INFO).
            message: Human-readable message.
            instance: Orchestrator instance name (e.g. ``default-ubuntu``).
            label: Linode label, once one is known.
            operation: Lifecycle step (e.g. 'create', 'resolve_region').
            request_id: Optional correlation ID; defaults to the bound one,
                or a fresh one for an unbound logger.
            exc_info: Whether to include exception info.
        """
        given = {
            "instance": instance,
            "label": label,
            "operation": operation,
            "request_id": request_id,
        }
        extra: dict[str, Any] = {key: self.context.get(key) for key in _CONTEXT_KEYS}
        extra.update({k: v for k, v in given.items() if v is not None})
        if extra["request_id"] is None:
            extra["request_id"] = uuid.uuid4().hex[:12]
        self.logger.log(level, message, extra=extra, exc_info=exc_info)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.DEBUG, message, **kwargs)


# Module-level singleton
kl_logger = DriverLogger()
