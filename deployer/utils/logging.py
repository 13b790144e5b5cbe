"""Logging configuration using structlog."""

import logging
import sys
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit, urlunsplit

import structlog

from deployer.config import Settings, settings

# Event fields that may carry credentials in their userinfo part
URL_FIELDS = ("repo_url", "redis_url")


def redact_url(url: str) -> str:
    """Hide credentials embedded in a URL."""
    parts = urlsplit(url)
    if not parts.username and not parts.password:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, parts.query, parts.fragment))


def redact_url_fields(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog processor masking credentials in URL-valued fields."""
    for key in URL_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = redact_url(value)
    return event_dict


def _log_file(config: Settings) -> Path:
    log_dir = Path(config.log_directory)
    if not log_dir.is_absolute():
        log_dir = Path.cwd() / log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir / config.log_file_name


def configure_logging(config: Settings | None = None) -> None:
    """Configure structured logging for the worker process.

    Events go to stdout and to ``{log_directory}/{log_file_name}``. Context
    bound with ``bind_job_context`` is merged into every event emitted while
    a job runs.
    """
    config = config or settings

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, config.log_level),
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(_log_file(config), encoding="utf-8"),
        ],
        force=True,
    )
    # botocore is chatty at DEBUG; keep it at WARNING unless asked for
    if config.log_level != "DEBUG":
        logging.getLogger("botocore").setLevel(logging.WARNING)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        redact_url_fields,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=config.is_development))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_job_context(**context: Any):
    """Bind job identifiers to every event logged in the current task.

    Use as a context manager around one job's execution.
    """
    return structlog.contextvars.bound_contextvars(**context)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
