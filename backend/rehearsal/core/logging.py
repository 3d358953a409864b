"""
Structured logging configuration using structlog.
Outputs JSON in production, pretty-printed in development.
Request context (request ID, method, path) is merged in from contextvars.

Member phone numbers never reach the log stream in clear: any event key
listed in CONTACT_KEYS is masked down to its last four digits.
"""

import logging
import sys
from typing import Any

import structlog
from rehearsal.core.config import Settings, get_settings

CONTACT_KEYS = frozenset({"phone", "to", "destination"})

_configured = False


def mask_phone(phone: str | None) -> str:
    """Keep the last four digits of a phone number for log lines."""
    if not phone:
        return ""
    return "*" * max(len(phone) - 4, 0) + phone[-4:]


def mask_contact_fields(logger: Any, method_name: str, event_dict: dict) -> dict:
    for key in CONTACT_KEYS.intersection(event_dict):
        value = event_dict[key]
        if isinstance(value, str) and not value.startswith("*"):
            event_dict[key] = mask_phone(value)
    return event_dict


def _shared_processors(settings: Settings) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        mask_contact_fields,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.ENVIRONMENT == "production":
        processors.append(structlog.processors.format_exc_info)
    return processors


def _renderer(settings: Settings):
    if settings.ENVIRONMENT == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=settings.DEBUG or sys.stdout.isatty())


def setup_logging() -> None:
    """Configure structlog and the stdlib root handler once per process."""
    global _configured
    if _configured:
        return
    settings = get_settings()

    structlog.configure(
        processors=[
            *_shared_processors(settings),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ]
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Silence noisy third-party loggers
    for name in ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
