"""
Logging setup for registry searches.

structlog renders either JSON lines (log_format="json") or colored console
output. The provider SDKs and litellm log every HTTP exchange at INFO, which
would bury the search events, so their loggers are held at WARNING unless the
search itself runs at DEBUG.
"""
import logging
import sys

import structlog

from ..config import settings

NOISY_LOGGERS = ("LiteLLM", "litellm", "httpx", "httpcore", "openai", "anthropic")


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (defaults to settings.log_level)
        log_format: "json" or "console" (defaults to settings.log_format)
    """
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, level))

    third_party_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)


def get_logger(name: str, **context):
    """Structured logger for name, with context bound to every event."""
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


setup_logging()
