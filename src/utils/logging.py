"""Structured logging setup using structlog.

Every record carries ``service="furniture-vectors"`` plus the usual level,
ISO timestamp and any context vars bound by the caller.  Development gets a
coloured console; ``APP_ENV=production`` switches to one JSON object per line.

Standard-library loggers from the HTTP and model clients are routed through
the same formatter and turned down to WARNING: the request middleware and
the providers already log each call once with the fields we care about.
"""

import logging
import os
import sys

import structlog

SERVICE_NAME = "furniture-vectors"

# Third-party loggers that repeat what our own events already record.
NOISY_LOGGERS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.WARNING,
    "uvicorn.access": logging.WARNING,
    "PIL": logging.INFO,
}


def _add_service(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool | None = None,
) -> structlog.BoundLogger:
    """Configure structlog and the stdlib root logger.

    ``json_output=None`` follows ``APP_ENV``; pass a bool to force either
    renderer (the app passes its own ``Settings.app_env`` decision).
    """
    if json_output is None:
        json_output = os.environ.get("APP_ENV", "development") == "production"
    level = logging.getLevelName(log_level.upper())

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *processors,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(max(noisy_level, level))

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound with ``logger_name``, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
