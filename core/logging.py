"""
core/logging.py - Structured JSON logging.

All logs include:
- timestamp (ISO 8601)
- level
- logger
- message
- context (sender, recipient, amount, direction, etc.)

Contextual fields are passed only via extra={"context": {...}}.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Global context that gets added to all log entries
_global_context: dict[str, Any] = {}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Output format:
    {
        "timestamp": "2026-01-04T12:00:00.000Z",
        "level": "INFO",
        "logger": "fees.interceptor",
        "message": "Transfer: SELL alice -> pair",
        "context": {
            "sender": "alice",
            "amount": 10000,
            "amount_remaining": 9500
        }
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {}
        context.update(_global_context)

        if hasattr(record, "context") and record.context:
            context.update(record.context)

        if record.exc_info:
            context["exception"] = self.formatException(record.exc_info)

        if context:
            log_entry["context"] = context

        return json.dumps(log_entry, default=str)


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds context to all log entries.
    """

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        # Merge adapter context with call context
        extra = kwargs.get("extra", {})
        context = {**self.extra, **extra.get("context", {})}

        kwargs["extra"] = {"context": context}
        return msg, kwargs


def set_global_context(**kwargs: Any) -> None:
    """
    Set global context that gets added to all log entries.

    Example:
        set_global_context(token="FEE", environment="simulation")
    """
    _global_context.update(kwargs)


def clear_global_context() -> None:
    """Clear global logging context."""
    _global_context.clear()


def get_logger(name: str, **context: Any) -> ContextAdapter:
    """
    Get a logger with optional default context.

    Args:
        name: Logger name (e.g., "fees.conversion")
        **context: Default context for all log entries from this logger

    Returns:
        ContextAdapter with structured logging

    Example:
        logger = get_logger("fees.token", token="FEE")
        logger.info("Recipient added", extra={"context": {"address": "0xabc"}})
    """
    logger = logging.getLogger(name)
    return ContextAdapter(logger, context)


def setup_logging(
    level: str = "INFO",
    json_output: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Use JSON formatting (recommended for production)
        log_file: Optional file path for logging
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    if json_output:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def log_transfer(
    logger: ContextAdapter,
    sender: str,
    recipient: str,
    direction: str,
    amount: int,
    amount_remaining: int,
    **extra: Any,
) -> None:
    """Log an intercepted transfer with standard context."""
    logger.info(
        f"Transfer: {direction} {sender} -> {recipient}",
        extra={
            "context": {
                "sender": sender,
                "recipient": recipient,
                "direction": direction,
                "amount": amount,
                "amount_remaining": amount_remaining,
                **extra,
            }
        },
    )


def log_conversion(
    logger: ContextAdapter,
    status: str,
    to_convert: int,
    received: int,
    **extra: Any,
) -> None:
    """Log a conversion engine run with standard context."""
    logger.info(
        f"Conversion: {status} | in={to_convert} out={received}",
        extra={
            "context": {
                "status": status,
                "to_convert": to_convert,
                "received": received,
                **extra,
            }
        },
    )


def log_admin_change(
    logger: ContextAdapter,
    setting: str,
    old_value: Any,
    new_value: Any,
    **extra: Any,
) -> None:
    """Log an administrative mutation with old and new values."""
    logger.info(
        f"Admin: {setting} {old_value} -> {new_value}",
        extra={
            "context": {
                "setting": setting,
                "old_value": old_value,
                "new_value": new_value,
                **extra,
            }
        },
    )


def log_error(
    logger: ContextAdapter,
    error_code: str,
    message: str,
    **extra: Any,
) -> None:
    """Log an error with standard context."""
    logger.error(
        f"[{error_code}] {message}",
        extra={
            "context": {
                "error_code": error_code,
                **extra,
            }
        },
    )
