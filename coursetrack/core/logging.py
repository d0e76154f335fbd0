"""Structlog setup for the engine.

Every event carries the operation context (operation, operation_id, user_id,
course_id) and the app info. Console output is rendered as configured; the
log files are always JSON:

- ``<app_name>.log``: everything at ``log_level`` and above
- ``<app_name>.error.log``: errors only
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from structlog.types import EventDict, Processor

from coursetrack.core.context import get_context


if TYPE_CHECKING:
    from coursetrack.config.settings import Settings

# Driver loggers that log every connection event at INFO
QUIET_LOGGERS = ("cassandra", "cassandra.cluster", "cassandra.connection", "cassandra.pool")


def add_context_processor(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add operation context to log events; explicit fields win."""
    for key, value in get_context().items():
        event_dict.setdefault(key, value)
    return event_dict


def add_app_info_processor(settings: "Settings") -> Processor:
    """Create a processor that stamps app name, version and environment."""
    app_info = {
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }

    def processor(
        logger: logging.Logger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.update(app_info)
        return event_dict

    return processor


def stringify_uuids(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Render UUID values as plain strings."""
    for key, value in event_dict.items():
        if isinstance(value, UUID):
            event_dict[key] = str(value)
    return event_dict


def build_shared_processors(settings: "Settings") -> list[Processor]:
    """Processors applied to both structlog and stdlib records."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_context_processor,
        add_app_info_processor(settings),
        stringify_uuids,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.log_include_caller_info:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                    structlog.processors.CallsiteParameter.LINENO,
                ]
            )
        )

    return processors


def _attach(
    root: logging.Logger,
    handler: logging.Handler,
    level: str,
    renderer: Processor,
    shared: list[Processor],
) -> None:
    handler.setLevel(level.upper())
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)
    )
    root.addHandler(handler)


def configure_structlog(
    settings: "Settings",
    log_dir: Path | str | None = None,
    to_files: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Application settings
        log_dir: Directory for the log files, ``settings.log_dir`` by default
        to_files: Write the rotating JSON log files as well as the console
    """
    shared = build_shared_processors(settings)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(settings.log_level)

    if settings.log_format == "json":
        console_renderer: Processor = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    _attach(root, logging.StreamHandler(sys.stdout), settings.log_level, console_renderer, shared)

    if to_files:
        directory = Path(log_dir or settings.log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        for suffix, level in ((".log", settings.log_level), (".error.log", "ERROR")):
            handler = RotatingFileHandler(
                directory / f"{settings.app_name}{suffix}",
                maxBytes=settings.log_file_max_bytes,
                backupCount=settings.log_file_backup_count,
                encoding="utf-8",
            )
            _attach(root, handler, level, structlog.processors.JSONRenderer(), shared)

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    return structlog.get_logger(name)
