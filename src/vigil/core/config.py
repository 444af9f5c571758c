"""vigil configuration — load / save / merge.

Merge order (later wins):
    1. Model defaults
    2. YAML file values
    3. Environment variables (VIGIL_ prefix, __ nested delimiter)
    4. CLI overrides dict
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from vigil.core.exceptions import ConfigError
from vigil.core.models import Config

DEFAULT_CONFIG_FILENAME = "vigil.config.yaml"
ENV_PREFIX = "VIGIL_"

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def load_config(
    config_path: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Config:
    """Load Config from YAML + env vars + CLI overrides.

    Args:
        config_path: Explicit path to YAML config. If None, searches cwd and parents.
        overrides: CLI flag overrides to merge on top.

    Returns:
        Validated Config instance.

    Raises:
        ConfigError: If YAML parsing or validation fails.
    """
    yaml_data: dict[str, Any] = {}

    if config_path is None:
        config_path = find_config_file()

    if config_path is not None and config_path.exists():
        yaml_data = _load_yaml(config_path)

    # Env vars are collected by hand so they beat YAML when both are
    # passed as init kwargs.
    merged = _deep_merge(yaml_data, _collect_env_vars())
    if overrides:
        merged = _deep_merge(merged, overrides)

    try:
        return Config(**merged)
    except Exception as e:
        msg = f"Config validation failed: {e}"
        raise ConfigError(msg) from e


def save_config(config: Config, path: Path) -> None:
    """Write Config to a YAML file, creating parent directories."""
    data = config.model_dump(mode="json")
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:  # noqa: PTH123
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)


def dotted_override(key: str, value: Any) -> dict[str, Any]:
    """Turn 'wait.tolerance' into {'wait': {'tolerance': value}}.

    Raises:
        ConfigError: If any part of *key* is not a Config field.
    """
    parts = key.split(".")
    model: type[BaseModel] = Config
    for depth, part in enumerate(parts):
        field = model.model_fields.get(part)
        if field is None:
            known = ", ".join(".".join([*parts[:depth], name]) for name in model.model_fields)
            msg = f"Unknown config key: {key} (expected one of: {known})"
            raise ConfigError(msg)
        if depth == len(parts) - 1:
            break
        annotation = field.annotation
        if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
            msg = f"Unknown config key: {key} ({'.'.join(parts[: depth + 1])} is not a section)"
            raise ConfigError(msg)
        model = annotation

    result: dict[str, Any] = {parts[-1]: value}
    for part in reversed(parts[:-1]):
        result = {part: result}
    return result


def configure_logging(level: str | int) -> None:
    """Install the root handler used by the CLI."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            msg = f"Unknown log level: {level}"
            raise ConfigError(msg)
        level = resolved
    logging.basicConfig(level=level, format=_LOG_FORMAT, force=True)


def find_config_file() -> Path | None:
    """Search for the config file in cwd, then parent directories."""
    current = Path.cwd()
    for directory in [current, *current.parents]:
        candidate = directory / DEFAULT_CONFIG_FILENAME
        if candidate.exists():
            return candidate
        candidate = directory / ".vigil" / DEFAULT_CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load and parse a YAML mapping."""
    try:
        with open(path, encoding="utf-8") as f:  # noqa: PTH123
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse YAML: {path}: {e}"
        raise ConfigError(msg) from e
    except OSError as e:
        msg = f"Failed to read config: {path}: {e}"
        raise ConfigError(msg) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Config file must be a YAML mapping, got {type(data).__name__}: {path}"
        raise ConfigError(msg)
    return data


def _collect_env_vars() -> dict[str, Any]:
    """Collect VIGIL_ prefixed env vars into a nested dict."""
    delimiter = "__"
    result: dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        parts = key[len(ENV_PREFIX) :].lower().split(delimiter)
        current = result
        for part in parts[:-1]:
            if part not in current or not isinstance(current[part], dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

    return result


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override wins on conflicts."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
