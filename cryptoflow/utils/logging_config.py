"""
Structured logging configuration.

Supports text and JSON log formats. Exchange context fields (order id,
currency pair, rate source) are carried on log records, either through
LogContext or a call's ``extra`` mapping, and rendered by both formats.
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path

from pythonjsonlogger import jsonlogger

# Record attributes rendered as context by both formatters, in this order
CONTEXT_FIELDS = ("order_id", "pair", "source", "rate_source")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def context_fields(record: logging.LogRecord) -> dict:
    """Exchange context fields present on a record."""
    fields = {}
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value
    return fields


class JSONFormatter(jsonlogger.JsonFormatter):
    """JSON log formatter with a UTC timestamp and exchange context fields."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(record.created, timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record.update(context_fields(record))


class ContextTextFormatter(logging.Formatter):
    """Human-readable formatter; appends context as ``[key=value ...]``."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = context_fields(record)
        if not fields:
            return text
        context = " ".join(f"{k}={v}" for k, v in fields.items())
        return f"{text} [{context}]"


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: Path | str | None = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Configure application logging.

    Replaces any handlers on the root logger, so calling it again (CLI then
    web app lifespan) reconfigures rather than duplicates output.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "text" for human-readable, "json" for structured.
        log_file: Optional file path for log output.
        max_bytes: Max log file size before rotation.
        backup_count: Number of backup files to keep.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    root_logger.handlers.clear()

    if log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    else:
        formatter = ContextTextFormatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging configured: level={level}, format={log_format}")


class LogContext:
    """
    Attach exchange context fields to every record created in a block.

    Contexts nest: an inner block adds to the outer block's fields and
    wins on conflicts. A call inside the block must not repeat one of
    these fields in its ``extra`` mapping; logging rejects the overwrite.

    Intended for synchronous sections; the record factory is process-wide,
    so do not hold a context across an ``await``.

    Example:
        with LogContext(logger, order_id=order.id, rate_source="live"):
            logger.info("Created order")
    """

    def __init__(self, logger: logging.Logger, **fields):
        self.logger = logger
        self.fields = {k: v for k, v in fields.items() if v is not None}
        self.old_factory = None

    def __enter__(self):
        self.old_factory = logging.getLogRecordFactory()
        fields = self.fields
        old_factory = self.old_factory

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            for name, value in fields.items():
                setattr(record, name, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self.old_factory)
        return False
