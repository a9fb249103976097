import logging

import structlog

from . import config


def configure_logging(level: str | None = None, json: bool | None = None) -> None:
    """Configure structlog once for the process.

    Request-scoped values bound with ``structlog.contextvars`` (request id,
    method, path) are merged into every event.
    """
    settings = config.settings
    level_name = (level or settings.log_level).upper()
    use_json = settings.log_json if json is None else json

    renderer = structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)
