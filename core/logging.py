"""
Logging setup for the seating service.

JSON records (python-json-logger) outside development, plain text lines in
development. Booking identifiers passed through ``extra`` are carried as
top-level JSON fields so a reservation can be followed across log lines.
"""
import logging
import sys
from typing import Any, Dict, Optional, Tuple

from pythonjsonlogger import jsonlogger

from core.config import Settings, settings as default_settings


BOOKING_FIELDS: Tuple[str, ...] = (
    "restaurant_id",
    "reservation_id",
    "confirmation_code",
    "table_id",
    "waitlist_entry_id",
)

QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "redis": logging.WARNING,
}


class SeatingJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping service identity and booking identifiers."""

    def __init__(self, *args: Any, app_name: str = "", environment: str = "", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.app_name = app_name
        self.environment = environment

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = self.formatTime(record, self.datefmt)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['function'] = record.funcName
        log_record['service'] = self.app_name
        log_record['environment'] = self.environment

        for field in BOOKING_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value


def build_formatter(config: Settings) -> logging.Formatter:
    """
    Pick the formatter for the configured environment.

    Args:
        config: Application settings

    Returns:
        JSON formatter for staging/production, text formatter otherwise
    """
    if config.app_env in ("production", "staging"):
        return SeatingJsonFormatter(
            fmt='%(timestamp)s %(level)s %(name)s %(message)s',
            datefmt='%Y-%m-%dT%H:%M:%S',
            app_name=config.app_name,
            environment=config.app_env,
        )
    return logging.Formatter(
        fmt='%(asctime)s %(levelname)-7s [%(name)s] %(message)s',
        datefmt='%H:%M:%S',
    )


def setup_logging(config: Optional[Settings] = None, stream=None) -> logging.Handler:
    """
    Install a single console handler on the root logger.

    Calling it again replaces the previous handler rather than stacking a
    second one.

    Args:
        config: Application settings (module settings when omitted)
        stream: Output stream, stdout by default

    Returns:
        The installed handler
    """
    config = config or default_settings

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(build_formatter(config))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(config.log_level)

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
    if config.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    logging.getLogger(__name__).info(
        f"Logging configured at {config.log_level} for {config.app_env}"
    )
    return handler
