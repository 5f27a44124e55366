"""Structured logging configuration for trust-match.

Decision logs name the application, trust and approval they concern. Bind
those ids once with ``get_logger(__name__, application_id=..., trust_id=...)``;
the JSON format emits them as top-level keys and the standard format appends
them as ``key=value`` pairs, so one application's history can be grepped out
of a shared log.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Record attributes treated as decision context
CONTEXT_FIELDS = ("application_id", "trust_id", "approval_id")


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
) -> None:
    """Configure logging for trust-match.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    format_type : str
        Format type: "standard" or "json".
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = ContextFormatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("trust_match").setLevel(log_level)

    # Client libraries log every connection and delivery at INFO/DEBUG
    for name in ("confluent_kafka", "psycopg", "faker"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class ContextFormatter(logging.Formatter):
    """Pipe-separated formatter that appends bound decision ids."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _context(record)
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in context.items())
        # Keep a traceback, if any, after the context
        head, sep, tail = line.partition("\n")
        return f"{head} | {pairs}{sep}{tail}"


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Bound decision ids become top-level keys. Free-form context can still be
    attached with ``logger.info(..., extra={"extra": {...}})``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_context(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra"):
            log_data.update(record.extra)

        # Decimals and datetimes from ledger records
        return json.dumps(log_data, default=str)


def get_logger(name: str, **context: Any) -> logging.Logger | logging.LoggerAdapter:
    """Get a logger, optionally bound to decision ids.

    Parameters
    ----------
    name : str
        Logger name (usually __name__).
    **context : Any
        ``application_id``, ``trust_id`` or ``approval_id`` to attach to
        every record.

    Returns
    -------
    logging.Logger | logging.LoggerAdapter
        The named logger, wrapped in an adapter when context is given.
    """
    logger = logging.getLogger(name)
    unknown = set(context) - set(CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
    if not context:
        return logger
    return logging.LoggerAdapter(logger, context)
