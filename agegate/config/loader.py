"""
Configuration loading and merging for AgeGate.

The agent is configured by one YAML file laid over built-in defaults, with
command-line overrides applied last.

Configuration Layers
--------------------
1. **Built-in defaults** (DEFAULT_CONFIG)
   - winget source, 7-day aging window, secondary and self-update disabled
2. **Config file** (e.g. agegate.yaml)
   - Always required; must at least name the primary package id
3. **Overrides** (from the CLI)
   - e.g. --state-dir, --no-self-update, --no-jitter

Merge Behavior
--------------
The loader performs deep merging with "last wins" semantics:
  - **Dicts**: Recursively merged (keys from overlay override base)
  - **Lists**: Completely replaced (NOT appended/extended)
  - **Scalars**: Overwritten (strings, numbers, booleans)

Path Resolution
---------------
Relative paths in configuration are resolved against the CONFIG FILE
location, so a scheduled task can run from any working directory.
Currently resolved paths:
  - state_dir
  - self_update.local_path

Error Handling
--------------
- ConfigError: Missing file, YAML parse errors, empty files, non-mapping
  top level
- All errors are chained with "from err" for better debugging

Examples
--------
Basic usage:

    >>> from pathlib import Path
    >>> from agegate.config import load_effective_config
    >>> cfg = load_effective_config(Path("agegate.yaml"))
    >>> cfg["primary"]["delay_days"]
    7
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml

from agegate.exceptions import ConfigError

# -------------------------------
# Defaults
# -------------------------------

DEFAULT_CONFIG: dict[str, Any] = {
    "apiVersion": "agegate/v1",
    "state_dir": "state",
    "jitter_seconds": 0,
    "primary": {
        "source": "winget",
        "delay_days": 7,
        "service": None,
        "timeout": 1800,
    },
    "secondary": {
        "enabled": False,
        "version_pattern": r"v?([0-9.]+)",
        "asset_pattern": r"\.msi$",
        "install_args": [],
        "success_codes": [0, 3010],
        "timeout": 1800,
        "token": None,
    },
    "self_update": {
        "enabled": False,
        "artifact_path": "",
        "local_path": None,
        "token": None,
    },
}

# -------------------------------
# YAML helpers
# -------------------------------


def _load_yaml_file(p: Path) -> Any:
    """
    Load a YAML file and return the parsed Python object.

    Raises:
        ConfigError: When the file does not exist, is not valid YAML, or is
            empty.
    """
    if not p.exists():
        raise ConfigError(f"file not found: {p}")
    try:
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as err:
        raise ConfigError(f"Error parsing YAML: {p}: {err}") from err
    if data is None:
        raise ConfigError(f"YAML file is empty: {p}")
    return data


# -------------------------------
# Merge logic
# -------------------------------


def _deep_merge_dicts(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """
    Deep-merge two dicts with "overlay wins".

    Rules:
      - dict + dict -> deep merge
      - list + list -> overlay REPLACES base (not concatenated)
      - everything else -> overlay overwrites base

    This function does not mutate inputs; returns a new dict.
    """
    result: dict[str, Any] = dict(base)
    for k, v in overlay.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge_dicts(result[k], v)
        else:
            # Replace lists and scalars entirely
            result[k] = v
    return result


# -------------------------------
# Path resolution
# -------------------------------


def _resolve_known_paths(cfg: dict[str, Any], config_dir: Path) -> None:
    """
    Resolve relative path fields inside the merged config against
    'config_dir'. Modifies cfg in place.
    """
    state_dir = cfg.get("state_dir")
    if isinstance(state_dir, str) and state_dir:
        p = Path(state_dir)
        if not p.is_absolute():
            cfg["state_dir"] = str((config_dir / p).resolve())

    self_update = cfg.get("self_update")
    if isinstance(self_update, dict):
        raw_path = self_update.get("local_path")
        if isinstance(raw_path, str) and raw_path:
            p = Path(raw_path)
            if not p.is_absolute():
                self_update["local_path"] = str((config_dir / p).resolve())


# -------------------------------
# Public API
# -------------------------------


def _redact_tokens(data: Any) -> Any:
    """Copy of data with every non-empty ``token`` value masked."""
    if isinstance(data, dict):
        return {
            key: "***" if key == "token" and value else _redact_tokens(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [_redact_tokens(item) for item in data]
    return data


def load_effective_config(
    config_path: Path,
    *,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Load and merge the effective configuration.

    Steps
      1) Read the config YAML.
      2) Merge: defaults -> config file -> overrides (dicts deep-merge,
         lists replace).
      3) Resolve known relative paths against the config file directory.

    Returns
      A merged configuration dict ready for the run orchestration.

    Raises
      ConfigError on a missing file, YAML parse errors, or a top level that
      is not a mapping.
    """
    from agegate.logging import get_global_logger

    logger = get_global_logger()
    config_path = Path(config_path).resolve()

    logger.verbose("CONFIG", f"Loading config: {config_path}")

    raw = _load_yaml_file(config_path)
    if not isinstance(raw, dict):
        raise ConfigError(f"top-level YAML must be a mapping (dict): {config_path}")

    merged = _deep_merge_dicts(copy.deepcopy(DEFAULT_CONFIG), raw)
    if overrides:
        merged = _deep_merge_dicts(merged, overrides)
        logger.debug("CONFIG", f"Applied overrides: {sorted(overrides)}")

    _resolve_known_paths(merged, config_path.parent)

    logger.debug("CONFIG", "--- Effective Configuration ---")
    dump = yaml.safe_dump(
        _redact_tokens(merged), default_flow_style=False, sort_keys=False
    )
    for line in dump.splitlines():
        logger.debug("CONFIG", line)

    return merged
