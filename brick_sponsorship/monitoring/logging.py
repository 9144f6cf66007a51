"""
Structured logging configuration.

structlog builds the event dict (context vars, app context, exception
info) and hands it to the stdlib logger as record extras. The stdout
handler's python-json-logger formatter then writes one flat JSON object
per line, so structlog fields and stdlib fields share one document.
"""
import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

from ..config import get_settings

# Library loggers that log request lines at INFO
NOISY_LOGGERS = ("stripe", "urllib3")


def add_app_context(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Stamp every event with the service name and environment."""
    settings = get_settings()
    event_dict.setdefault("app_name", settings.app_name)
    event_dict.setdefault("app_env", settings.app_env)
    return event_dict


def build_json_handler(stream: Any = None) -> logging.Handler:
    """
    Create the stdout handler with the JSON formatter.

    Timestamp, level and logger name come from the log record; everything
    structlog bound travels in the record extras.
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={
                "asctime": "timestamp",
                "levelname": "level",
                "name": "logger",
                "message": "event",
            },
        )
    )
    return handler


def setup_logging() -> None:
    """
    Configure structlog and the root logger.

    Safe to call more than once: existing root handlers are replaced.
    """
    settings = get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_app_context,
            structlog.stdlib.render_to_log_kwargs,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.addHandler(build_json_handler())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "logging_configured",
        log_level=settings.log_level,
        app_env=settings.app_env,
    )
