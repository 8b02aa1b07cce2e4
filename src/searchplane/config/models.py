"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (SEARCHPLANE__SECTION__KEY)
3. Repositories-root YAML (<root>/.searchplane/config.yaml)
4. Global YAML (~/.config/searchplane/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    SEARCHPLANE__<SECTION>__<KEY>=<VALUE>

Examples:
    SEARCHPLANE__LOGGING__LEVEL=DEBUG
    SEARCHPLANE__SCHEDULER__ENABLED=true
    SEARCHPLANE__SCHEDULER__POLLING_MODE=true
    SEARCHPLANE__SEARCH__MAX_HITS_DEFAULT=25
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from searchplane.config.constants import ISSUES_BRANCH

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_EXCLUDED_EXTENSIONS = (
    "7z", "arc", "arj", "bin", "bmp", "dll", "doc", "docx", "exe", "gif", "gz", "jar",
    "jpg", "lib", "lzh", "odg", "pdf", "ppt", "png", "so", "swf", "xcf", "xls", "xlsx",
    "zip",
)  # fmt: skip


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SEARCHPLANE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every commit applied to an index.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexConfig(BaseModel):
    """Index configuration.

    Env vars:
        SEARCHPLANE__INDEX__MAX_FILE_SIZE_MB: Don't index content of larger blobs
        SEARCHPLANE__INDEX__WRITER_HEAP_SIZE: Tantivy writer memory budget (bytes)
    """

    excluded_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_EXTENSIONS),
        description="Extensions (without dot) whose content is never indexed. "
        "Matching blobs are still indexed with metadata so filename search works.",
    )
    excluded_branches: list[str] = Field(
        default_factory=lambda: [ISSUES_BRANCH],
        description="Fully qualified branch names skipped by the branch walk.",
    )
    max_file_size_mb: int = Field(
        default=10,
        description="Blobs larger than this (MB) are indexed with metadata only.",
    )
    index_dir_name: str = Field(
        default="search-index",
        description="Index directory created inside each repository's git directory.",
    )
    cursor_file_name: str = Field(
        default="search-index.yaml",
        description="Branch cursor file stored next to the index directory.",
    )
    writer_heap_size: int = Field(
        default=50_000_000,
        description="Memory budget for one index writer (bytes). "
        "Tantivy requires at least 15 MB per writer thread.",
    )
    writer_threads: int = Field(
        default=1,
        description="Indexing threads per writer.",
    )

    @field_validator("excluded_extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return sorted({ext.lower().lstrip(".") for ext in v if ext.strip(". ")})

    @field_validator("writer_heap_size")
    @classmethod
    def validate_heap_size(cls, v: int) -> int:
        if v < 15_000_000:
            raise ValueError(f"writer_heap_size must be at least 15000000, got {v}")
        return v


class SchedulerConfig(BaseModel):
    """Background scheduler configuration.

    Env vars:
        SEARCHPLANE__SCHEDULER__ENABLED: Enable queued/background indexing
        SEARCHPLANE__SCHEDULER__POLLING_MODE: Re-queue every repository on each pass
        SEARCHPLANE__SCHEDULER__INTERVAL_SEC: Seconds between passes
    """

    enabled: bool = Field(
        default=False,
        description="When false, enqueue() is a no-op and passes do nothing.",
    )
    polling_mode: bool = Field(
        default=False,
        description="Queue every known repository on every pass, not only on the first.",
    )
    interval_sec: float = Field(
        default=120.0,
        description="Delay between two scheduler passes.",
    )
    stop_timeout_sec: float = Field(
        default=30.0,
        description="How long stop() waits for a running pass to finish.",
    )

    @field_validator("interval_sec")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"interval_sec must be positive, got {v}")
        return v


class SearchConfig(BaseModel):
    """Query defaults.

    Env vars:
        SEARCHPLANE__SEARCH__MAX_HITS_DEFAULT: Default number of hits
    """

    max_hits_default: int = Field(
        default=50,
        description="Number of hits returned when the caller doesn't ask for a limit.",
    )


class SearchPlaneConfig(BaseModel):
    """Root configuration for SearchPlane."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
