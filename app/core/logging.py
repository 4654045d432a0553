import logging
import logging.config
import sys
from typing import Any, Dict, List

import sentry_sdk
import structlog

from app.core.config import settings


def _shared_processors() -> List[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def _init_sentry() -> None:
    if not settings.SENTRY_DSN:
        return
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=1.0 if settings.ENVIRONMENT == "local" else 0.1,
    )


def setup_logging() -> None:
    """
    Configure structured logging for the API, the SSE streams and the reminder poller.
    - Local/dev: pretty console logging.
    - Everything else: JSON logging.
    - Sentry included if DSN is set.
    """
    shared_processors = _shared_processors()
    _init_sentry()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer_processor = (
        structlog.dev.ConsoleRenderer()
        if settings.ENVIRONMENT in ["local", "dev"]
        else structlog.processors.JSONRenderer()
    )

    # Route uvicorn and library loggers through the same formatter
    quiet_loggers = ("uvicorn", "uvicorn.error", "uvicorn.access")
    logging_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": renderer_processor,
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "default": {
                "level": settings.LOG_LEVEL,
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
            },
        },
        "loggers": {
            "": {
                "handlers": ["default"],
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            **{
                name: {"handlers": ["default"], "level": "INFO", "propagate": False}
                for name in quiet_loggers
            },
            "pymongo": {"handlers": ["default"], "level": "WARNING", "propagate": False},
        },
    }

    logging.config.dictConfig(logging_config)
