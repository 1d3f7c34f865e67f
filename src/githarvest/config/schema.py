"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal

LogFormat = Literal["console", "json"]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Transient git failures worth retrying. Matched against stderr text since
# git emits no structured error codes.
DEFAULT_RETRYABLE_PATTERNS: List[str] = [
    r"index\.lock",
    r"Unable to create .*\.lock",
    r"Resource temporarily unavailable",
    r"Connection (reset|timed out)",
    r"timed out",
    r"early EOF",
]


@dataclass
class LogConfig:
    max_count: int = 50  # commits listed when no maxCount is given


@dataclass
class DiffConfig:
    context_lines: int = 3
    ignore_whitespace: bool = True
    diff_filter: str = ""  # git --diff-filter letters, e.g. "ACMR"; empty = none
    lookahead: int = 5
    merge_distance: int = 3
    large_change_ratio: float = 0.1
    large_change_min_lines: int = 20  # below this, always render hunks
    host_min_length: int = 10  # shorter host-API diffs are treated as absent


@dataclass
class ProcessConfig:
    max_concurrency: int = 6
    timeout: float = 0  # seconds per git call; 0 = no timeout
    max_retries: int = 2
    initial_delay: float = 0.5
    backoff_factor: float = 1.5
    retryable_patterns: List[str] = field(
        default_factory=lambda: list(DEFAULT_RETRYABLE_PATTERNS)
    )


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: LogFormat = "console"


@dataclass
class HarvestConfig:
    version: str = "1.0"
    log: LogConfig = field(default_factory=LogConfig)
    diff: DiffConfig = field(default_factory=DiffConfig)
    process: ProcessConfig = field(default_factory=ProcessConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
