"""Structured logging for the engine and its host application.

structlog is bridged into stdlib logging so httpx/redis records render in the
same format: JSON in production, ConsoleRenderer in development. Every entry
carries the service name, and account-scoped operations bind ``account_id``
through structlog.contextvars (see bind_account).
"""

import logging
import logging.config
from contextlib import contextmanager

import structlog

from dealflow.core.config import Settings, get_settings


def add_service_name(logger, method, event_dict):
    """Tag every entry with the configured application name."""
    event_dict.setdefault("service", get_settings().app_name)
    return event_dict


def _stdlib_config(log_level: str, renderer, shared_processors: list) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    renderer,
                ],
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": log_level},
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    }


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Install the structlog processor chain and the stdlib bridge.

    Call once at host start-up, before the first engine call: structlog
    caches the processor chain on first use.

    Args:
        log_level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
        json_logs: True for JSON output, False for ConsoleRenderer
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    logging.config.dictConfig(_stdlib_config(log_level, renderer, shared_processors))

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    configure_structlog(log_level=settings.log_level, json_logs=settings.json_logs)


@contextmanager
def bind_account(account_id: str):
    """Bind account_id into every log entry emitted inside the block."""
    with structlog.contextvars.bound_contextvars(account_id=account_id):
        yield
