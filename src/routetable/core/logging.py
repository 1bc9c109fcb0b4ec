"""Logging module for routetable.

Provides structured logging with JSON format, correlation IDs, and sensitive data redaction.
"""

import json
import logging
import sys
import uuid
from datetime import UTC, datetime
from typing import Any

from routetable.core.config import LoggingConfig

ROOT_LOGGER = "routetable"

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "correlation_id",
    "extra_fields",
}


def _custom_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES}


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds correlation ID to log records."""

    def __init__(self) -> None:
        super().__init__()
        self._correlation_id: str | None = None

    def set_correlation_id(self, correlation_id: str) -> None:
        """Set the correlation ID for the current request."""
        self._correlation_id = correlation_id

    def clear_correlation_id(self) -> None:
        self._correlation_id = None

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = self._correlation_id or "none"  # type: ignore
        return True


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def __init__(self, redact_patterns: list[str] | None = None):
        """Initialize the JSON formatter.

        Args:
            redact_patterns: List of field names to redact from logs
        """
        super().__init__()
        self.redact_patterns = redact_patterns or []

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as JSON.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted log string
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "none"),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = getattr(record, "extra_fields", None)
        if isinstance(extra, dict):
            log_data.update(self._redact_sensitive_data(extra))

        log_data.update(self._redact_sensitive_data(_custom_fields(record)))

        return json.dumps(log_data, default=str)

    def _redact_sensitive_data(self, data: dict[str, Any]) -> dict[str, Any]:
        """Redact sensitive data from log fields."""
        redacted: dict[str, Any] = {}
        for key, value in data.items():
            if any(pattern.lower() in key.lower() for pattern in self.redact_patterns):
                redacted[key] = "***REDACTED***"
            elif isinstance(value, dict):
                redacted[key] = self._redact_sensitive_data(value)
            else:
                redacted[key] = value
        return redacted


class TextFormatter(logging.Formatter):
    """Human-readable formatter.

    Fields passed through ``extra`` are appended as ``key=value`` pairs.
    """

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", "none")
        line = (
            f"{datetime.now(UTC).isoformat()} [{record.levelname}] [{correlation_id}] "
            f"{record.name}: {record.getMessage()}"
        )

        fields = " ".join(f"{key}={value}" for key, value in _custom_fields(record).items())
        if fields:
            line = f"{line} ({fields})"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


class RouterLogger:
    """Router logger with structured logging and correlation ID support."""

    def __init__(self, config: LoggingConfig):
        """Initialize the router logger.

        Args:
            config: Logging configuration
        """
        self.config = config
        self.correlation_filter = CorrelationIdFilter()
        self._setup_logging()

    def _setup_logging(self) -> None:
        """Set up the ``routetable`` logger hierarchy."""
        logger = logging.getLogger(ROOT_LOGGER)
        logger.setLevel(getattr(logging, self.config.level))
        logger.handlers.clear()

        handler: logging.Handler
        if self.config.output == "stdout":
            handler = logging.StreamHandler(sys.stdout)
        elif self.config.output == "stderr":
            handler = logging.StreamHandler(sys.stderr)
        else:
            # Anything else is a file path
            handler = logging.FileHandler(self.config.output)

        formatter: logging.Formatter
        if self.config.format == "json":
            formatter = JsonFormatter(redact_patterns=self.config.redact_fields)
        else:
            formatter = TextFormatter()

        handler.setFormatter(formatter)
        handler.addFilter(self.correlation_filter)
        logger.addHandler(handler)

        logger.propagate = False

    def set_correlation_id(self, correlation_id: str | None = None) -> str:
        """Set or generate a correlation ID for the current request.

        Args:
            correlation_id: Optional correlation ID. If None, generates a new one.

        Returns:
            The correlation ID that was set
        """
        if correlation_id is None:
            correlation_id = self.generate_correlation_id()
        self.correlation_filter.set_correlation_id(correlation_id)
        return correlation_id

    def clear_correlation_id(self) -> None:
        self.correlation_filter.clear_correlation_id()

    @staticmethod
    def generate_correlation_id() -> str:
        return f"req-{uuid.uuid4().hex[:16]}"

    def get_logger(self, name: str = ROOT_LOGGER) -> logging.Logger:
        return logging.getLogger(name)

    def log_table_built(self, source: str, counts: dict[str, int], **kwargs: Any) -> None:
        """Log a compiled or imported routing table.

        Args:
            source: Where the table came from (file, ``<memory>``, compiled table)
            counts: Routes per kind
            **kwargs: Additional fields to log
        """
        extra_fields: dict[str, Any] = {
            "event_type": "table_built",
            "table": {"source": source, **counts},
        }
        extra_fields.update(kwargs)

        self.get_logger().info(
            f"Routing table loaded from {source}: "
            f"{counts.get('static', 0)} static, {counts.get('dynamic', 0)} dynamic",
            extra={"extra_fields": extra_fields},
        )

    def log_resolution(
        self,
        method: str,
        path: str,
        controller: str | None,
        parameters: dict[str, Any] | None = None,
        matched: bool = True,
        **kwargs: Any,
    ) -> None:
        """Log a route resolution.

        Args:
            method: HTTP method
            path: Request path
            controller: Resolved controller (or the default)
            parameters: Captured path parameters
            matched: Whether a route matched
            **kwargs: Additional fields to log
        """
        extra_fields: dict[str, Any] = {
            "event_type": "route_resolved" if matched else "route_not_found",
            "request": {"method": method, "path": path},
            "route": {"controller": controller, "parameters": parameters or {}},
        }
        extra_fields.update(kwargs)

        log_level = logging.DEBUG if matched else logging.INFO
        self.get_logger().log(
            log_level,
            f"{method} {path} -> {controller}",
            extra={"extra_fields": extra_fields},
        )

    def log_response(
        self,
        method: str,
        path: str,
        status_code: int,
        latency_ms: float,
        controller: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Log a response.

        Args:
            method: HTTP method
            path: Request path
            status_code: HTTP status code
            latency_ms: Request latency in milliseconds
            controller: Controller that handled the request
            **kwargs: Additional fields to log
        """
        extra_fields: dict[str, Any] = {
            "event_type": "request_completed",
            "request": {"method": method, "path": path},
            "response": {"status_code": status_code, "latency_ms": latency_ms},
            "route": {"controller": controller},
        }
        extra_fields.update(kwargs)

        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        self.get_logger().log(
            log_level,
            f"{method} {path} -> {status_code} ({latency_ms:.2f}ms)",
            extra={"extra_fields": extra_fields},
        )


# Global logger instance (initialized by the application)
_router_logger: RouterLogger | None = None


def initialize_logging(config: LoggingConfig) -> RouterLogger:
    """Initialize the global router logger."""
    global _router_logger
    _router_logger = RouterLogger(config)
    return _router_logger


def get_logger() -> RouterLogger:
    """Get the global router logger.

    Raises:
        RuntimeError: If logging has not been initialized
    """
    if _router_logger is None:
        raise RuntimeError("Logging not initialized. Call initialize_logging() first.")
    return _router_logger
