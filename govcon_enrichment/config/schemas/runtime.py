"""Runtime-supporting configuration schemas (logging)."""

from __future__ import annotations

from pydantic import BaseModel, field_validator


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "json"
    file_path: str | None = "logs/govcon-enrichment.log"
    max_file_size_mb: int = 100
    backup_count: int = 5
    include_component: bool = True
    include_run_id: bool = True
    include_timestamps: bool = True

    @field_validator("format")
    @classmethod
    def _normalize_format(cls, value: str) -> str:
        if not isinstance(value, str):
            return value  # type: ignore[return-value]
        lowered = value.lower()
        if lowered in {"pretty", "text", "plain"}:
            return "text"
        if lowered in {"json", "structured"}:
            return "json"
        return value


__all__ = ["LoggingConfig"]
