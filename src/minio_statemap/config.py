"""minio-statemap configuration management.

Handles:
- Statemap metadata (title, cluster name)
- State reduction priority table and state colors
- Orphan END policy and zero-length interval coalescing
- Precedence: CLI > YAML config file > environment variables > defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from minio_statemap.errors import ConfigError, ErrorCode
from minio_statemap.state.policy import DEFAULT_PRIORITY, PriorityTable
from minio_statemap.state.timeline import OrphanPolicy

DEFAULT_TITLE = "MinIO"
DEFAULT_CLUSTER_NAME = "minio cluster"

ENV_PREFIX = "MINIO_STATEMAP_"

CONFIG_KEYS = {
    "title",
    "cluster_name",
    "orphan_policy",
    "priority",
    "colors",
    "coalesce_zero_length",
}


@dataclass
class Config:
    """minio-statemap runtime configuration."""

    title: str = DEFAULT_TITLE
    cluster_name: str = DEFAULT_CLUSTER_NAME
    orphan_policy: OrphanPolicy = OrphanPolicy.STRICT
    priority: list[str] = field(default_factory=lambda: list(DEFAULT_PRIORITY))
    colors: dict[str, str] = field(default_factory=dict)
    coalesce_zero_length: bool = True
    config_file_path: Path | None = None

    def priority_table(self) -> PriorityTable:
        return PriorityTable.from_list(self.priority)

    def is_lenient(self) -> bool:
        """Check if orphan ENDs are dropped instead of failing the run."""
        return self.orphan_policy == OrphanPolicy.LENIENT

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "title": self.title,
            "cluster_name": self.cluster_name,
            "orphan_policy": self.orphan_policy.value,
            "priority": list(self.priority),
            "coalesce_zero_length": self.coalesce_zero_length,
        }
        if self.colors:
            result["colors"] = dict(self.colors)
        return result


def _parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _parse_orphan_policy(value: Any) -> OrphanPolicy:
    if isinstance(value, OrphanPolicy):
        return value
    try:
        return OrphanPolicy(str(value).strip().lower())
    except ValueError as e:
        choices = ", ".join(p.value for p in OrphanPolicy)
        raise ConfigError(f"orphan_policy must be one of {choices}, got {value!r}") from e


def _parse_priority(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [p.strip() for p in value.split(",") if p.strip()]
    if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
        raise ConfigError(f"priority must be a list of op-kind patterns, got {value!r}")
    # Validates emptiness and duplicates
    PriorityTable.from_list(value)
    return list(value)


def _parse_colors(value: Any) -> dict[str, str]:
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise ConfigError(f"colors must map state labels to color strings, got {value!r}")
    return dict(value)


def _parse_str(key: str, value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{key} must be a non-empty string, got {value!r}")
    return value


def parse_config_file(config_file: Path) -> dict[str, Any]:
    """Read a YAML config file into a dictionary of known keys.

    Raises:
        ConfigError: If the file is missing, not YAML, not a mapping, or
            contains unknown keys
    """
    if not config_file.exists():
        raise ConfigError(str(config_file), ErrorCode.E001)

    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"{config_file}: {e}", ErrorCode.E002) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"{config_file} must contain a YAML mapping, got {type(data).__name__}"
        )

    unknown = sorted(set(data) - CONFIG_KEYS)
    if unknown:
        raise ConfigError(f"{config_file}: unknown key(s): {', '.join(unknown)}")
    return data


def _env_values(environ: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    env_map = {
        "TITLE": "title",
        "CLUSTER": "cluster_name",
        "ORPHAN_POLICY": "orphan_policy",
        "PRIORITY": "priority",
        "COALESCE_ZERO_LENGTH": "coalesce_zero_length",
    }
    for suffix, key in env_map.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw:
            values[key] = raw
    return values


def load_config(
    config_file: str | Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Load configuration with precedence: CLI > config file > env vars.

    Args:
        config_file: Path to a YAML config file; defaults to
            MINIO_STATEMAP_CONFIG when set
        cli_overrides: Values given on the command line (None values ignored)
        environ: Environment to read; defaults to os.environ

    Returns:
        Loaded Config instance
    """
    environ = os.environ if environ is None else environ
    cli_overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}

    # Step 1: environment variables as base
    merged = _env_values(environ)

    # Step 2: config file overrides env vars
    config_file_path: Path | None = None
    if config_file is None:
        config_file = environ.get(ENV_PREFIX + "CONFIG") or None
    if config_file:
        config_file_path = Path(config_file)
        merged.update(parse_config_file(config_file_path))

    # Step 3: CLI overrides everything
    unknown = sorted(set(cli_overrides) - CONFIG_KEYS)
    if unknown:
        raise ConfigError(f"unknown override(s): {', '.join(unknown)}")
    merged.update(cli_overrides)

    config = Config(config_file_path=config_file_path)
    if "title" in merged:
        config.title = _parse_str("title", merged["title"])
    if "cluster_name" in merged:
        config.cluster_name = _parse_str("cluster_name", merged["cluster_name"])
    if "orphan_policy" in merged:
        config.orphan_policy = _parse_orphan_policy(merged["orphan_policy"])
    if "priority" in merged:
        config.priority = _parse_priority(merged["priority"])
    if "colors" in merged:
        config.colors = _parse_colors(merged["colors"])
    if "coalesce_zero_length" in merged:
        config.coalesce_zero_length = _parse_bool("coalesce_zero_length", merged["coalesce_zero_length"])
    return config
