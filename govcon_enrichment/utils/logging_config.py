"""Structured logging configuration using loguru.

Every record carries two extras, ``component`` (census_geocoder, usaspending,
coordinator) and ``run_id`` (one enrichment run). ``log_with_context`` sets
them for everything logged inside the block, including calls made through the
module-level ``logger`` in the clients.
"""

from __future__ import annotations

import sys
import uuid
from contextvars import ContextVar
from pathlib import Path

from loguru import logger

from ..config.loader import get_config
from ..config.schemas import EnrichmentSettings


component_context: ContextVar[str | None] = ContextVar("component", default=None)
run_id_context: ContextVar[str | None] = ContextVar("run_id", default=None)

_EXTRA_DEFAULTS = {"component": "-", "run_id": "-"}


def _resolve_level(level: str) -> str:
    try:
        logger.level(level)
    except ValueError:
        logger.warning(f"Invalid logging level '{level}' provided; falling back to 'INFO'")
        return "INFO"
    return level


def build_text_format(
    include_timestamps: bool = True,
    include_component: bool = True,
    include_run_id: bool = True,
) -> str:
    parts = []
    if include_timestamps:
        parts.append("<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green>")
    parts.append("<level>{level: <8}</level>")
    if include_component:
        parts.append("<cyan>{extra[component]: <15}</cyan>")
    if include_run_id:
        parts.append("<magenta>{extra[run_id]: <8}</magenta>")
    parts.append("<level>{message}</level>")
    return " | ".join(parts)


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    file_path: str | None = None,
    max_file_size_mb: int = 100,
    backup_count: int = 5,
    include_component: bool = True,
    include_run_id: bool = True,
    include_timestamps: bool = True,
) -> None:
    """Replace loguru's handlers with a stdout sink and an optional rotating file.

    ``format_type`` "json" serializes each record (extras included); anything
    else uses the colored text layout. Unknown level names fall back to INFO.
    """
    logger.remove()
    logger.configure(extra=dict(_EXTRA_DEFAULTS))

    serialize = format_type == "json"
    log_format = (
        "{message}"
        if serialize
        else build_text_format(include_timestamps, include_component, include_run_id)
    )
    safe_level = _resolve_level(level)

    logger.add(
        sys.stdout,
        level=safe_level,
        format=log_format,
        serialize=serialize,
        colorize=not serialize,
    )

    if file_path:
        log_file_path = Path(file_path)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file_path,
            level=safe_level,
            format=log_format,
            serialize=serialize,
            rotation=f"{max_file_size_mb} MB",
            retention=backup_count,
            encoding="utf-8",
        )


def configure_logging_from_config(settings: EnrichmentSettings | None = None) -> None:
    """Apply the ``logging`` section of the settings (loaded when not given)."""
    logging_config = (settings or get_config()).logging

    setup_logging(
        level=logging_config.level,
        format_type=logging_config.format,
        file_path=logging_config.file_path,
        max_file_size_mb=logging_config.max_file_size_mb,
        backup_count=logging_config.backup_count,
        include_component=logging_config.include_component,
        include_run_id=logging_config.include_run_id,
        include_timestamps=logging_config.include_timestamps,
    )


def new_run_id() -> str:
    return uuid.uuid4().hex[:8]


class LogContext:
    """Binds component/run_id for every log call made inside the block."""

    def __init__(self, component: str | None = None, run_id: str | None = None):
        self.component = component
        self.run_id = run_id
        self._tokens: list[tuple[ContextVar, object]] = []
        self._contextualizer = None

    def __enter__(self):
        extra = {}
        if self.component is not None:
            self._tokens.append((component_context, component_context.set(self.component)))
            extra["component"] = self.component
        if self.run_id is not None:
            self._tokens.append((run_id_context, run_id_context.set(self.run_id)))
            extra["run_id"] = self.run_id

        if not extra:
            return logger
        self._contextualizer = logger.contextualize(**extra)
        self._contextualizer.__enter__()
        return logger.bind(**extra)

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._contextualizer is not None:
            self._contextualizer.__exit__(exc_type, exc_val, exc_tb)
            self._contextualizer = None
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


def log_with_context(component: str | None = None, run_id: str | None = None) -> LogContext:
    return LogContext(component=component, run_id=run_id)


__all__ = [
    "LogContext",
    "build_text_format",
    "component_context",
    "configure_logging_from_config",
    "log_with_context",
    "new_run_id",
    "run_id_context",
    "setup_logging",
]
