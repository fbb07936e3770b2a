"""Structured logging configuration — structlog + stdlib logging."""

from __future__ import annotations

import logging
import logging.config
import os

import structlog


# structlog logger names used across the package and their level overrides.
_COMPONENT_ENV = {
    "starlens.engine": "STARLENS_ENGINE_LOG_LEVEL",
    "starlens.cache": "STARLENS_CACHE_LOG_LEVEL",
    "starlens.api": "STARLENS_API_LOG_LEVEL",
}


def setup_logging() -> None:
    """Configure structlog and stdlib logging.

    Reads from environment variables:
        STARLENS_LOG_LEVEL  — business log level (default: INFO)
        STARLENS_LOG_FORMAT — console | json (default: console)
        STARLENS_ENGINE_LOG_LEVEL, STARLENS_CACHE_LOG_LEVEL, STARLENS_API_LOG_LEVEL
            — per-component overrides (default: STARLENS_LOG_LEVEL)
    """
    log_level = os.environ.get("STARLENS_LOG_LEVEL", "INFO").upper()
    log_format = os.environ.get("STARLENS_LOG_FORMAT", "console").lower()
    component_levels = {
        logger: os.environ.get(env, log_level).upper() for logger, env in _COMPONENT_ENV.items()
    }

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Logs go to stderr so the CLI can keep stdout for NDJSON records.
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            "root": {
                "handlers": ["default"],
                "level": log_level,
            },
            "loggers": {
                "starlens": {"level": log_level},
                **{logger: {"level": level} for logger, level in component_levels.items()},
                "uvicorn.access": {"level": "WARNING"},
                "uvicorn.error": {"level": "INFO"},
                "sqlalchemy.engine": {"level": "WARNING"},
                "aiosqlite": {"level": "WARNING"},
                "httpx": {"level": "WARNING"},
            },
        }
    )
