"""Load and merge configuration from .githarvest.toml and env vars."""

from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from githarvest.config.schema import (
    LOG_LEVELS,
    DiffConfig,
    HarvestConfig,
    LogConfig,
    LoggingConfig,
    ProcessConfig,
)

CONFIG_FILENAME = ".githarvest.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(repo_root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = repo_root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _env_int(name: str) -> Optional[int]:
    val = os.environ.get(name)
    if val is None:
        return None
    try:
        return int(val)
    except ValueError:
        return None


def _merge_env_overrides(cfg: HarvestConfig) -> None:
    """Apply GITHARVEST_* environment variable overrides."""
    if (n := _env_int("GITHARVEST_MAX_COUNT")) is not None and n > 0:
        cfg.log.max_count = n
    if (n := _env_int("GITHARVEST_MAX_CONCURRENCY")) is not None and n > 0:
        cfg.process.max_concurrency = n
    if val := os.environ.get("GITHARVEST_TIMEOUT"):
        try:
            timeout = float(val)
        except ValueError:
            timeout = -1
        if timeout >= 0:
            cfg.process.timeout = timeout
    if val := os.environ.get("GITHARVEST_IGNORE_WHITESPACE"):
        if val in ("0", "1"):
            cfg.diff.ignore_whitespace = val == "1"
    if val := os.environ.get("GITHARVEST_LOG_LEVEL"):
        if val.upper() in LOG_LEVELS:
            cfg.logging.level = val.upper()
    if val := os.environ.get("GITHARVEST_LOG_FORMAT"):
        if val in ("console", "json"):
            cfg.logging.format = val  # type: ignore[assignment]


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.get(section, {}).items() if k in valid_fields}
    return cls(**filtered)


def _validate(cfg: HarvestConfig) -> None:
    if cfg.log.max_count <= 0:
        raise ConfigError("log.max_count must be positive")
    if cfg.process.max_concurrency <= 0:
        raise ConfigError("process.max_concurrency must be positive")
    if cfg.diff.lookahead < 1:
        raise ConfigError("diff.lookahead must be at least 1")
    if cfg.diff.context_lines < 0 or cfg.diff.merge_distance < 1:
        raise ConfigError("diff.context_lines must be >= 0 and diff.merge_distance >= 1")
    if not 0 < cfg.diff.large_change_ratio <= 1:
        raise ConfigError("diff.large_change_ratio must be in (0, 1]")


def load_config(
    repo_root: Path,
    config_override: Optional[str] = None,
) -> HarvestConfig:
    """Load, validate, and return a HarvestConfig."""
    config_path = find_config_file(repo_root, config_override)

    if config_path is None:
        cfg = HarvestConfig()
    else:
        raw = _parse_toml(config_path)
        try:
            cfg = HarvestConfig(
                version=raw.get("version", "1.0"),
                log=_build_section(raw, LogConfig, "log"),
                diff=_build_section(raw, DiffConfig, "diff"),
                process=_build_section(raw, ProcessConfig, "process"),
                logging=_build_section(raw, LoggingConfig, "logging"),
            )
        except (TypeError, AttributeError) as exc:
            raise ConfigError(f"Invalid config in {config_path}: {exc}") from exc

    _merge_env_overrides(cfg)
    _validate(cfg)
    return cfg
