# Copyright 2025 Roger Cibrian
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Config validation module.

This module checks an agent config file for syntax and obvious mistakes
without making network calls or running any package tool. This is useful
before rolling a config out to a fleet of machines.

Validation Checks:

- YAML syntax is valid
- apiVersion is supported
- primary.id is present; primary.source is a registered source
- delay_days, jitter_seconds and timeouts are non-negative integers
- Enabled secondary/self_update sections name a repo in owner/repo format
- Regex patterns compile

Example:
    Validate a config and handle results:
        ```python
        from pathlib import Path
        from agegate.validation import validate_config

        result = validate_config(Path("agegate.yaml"))
        if result.status == "valid":
            print("Config is valid")
        else:
            for error in result.errors:
                print(f"Error: {error}")
        ```

"""

from __future__ import annotations

from pathlib import Path
import re
from typing import Any

import yaml

from agegate.exceptions import ConfigError
from agegate.registry import validate_repo
from agegate.results import ValidationResult
from agegate.sources import available_sources

__all__ = ["validate_config"]

SUPPORTED_API_VERSION = "agegate/v1"


def _is_non_negative_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _check_int(
    section: dict[str, Any], key: str, prefix: str, errors: list[str]
) -> None:
    if key in section and not _is_non_negative_int(section[key]):
        errors.append(f"{prefix}{key}: Must be a non-negative integer")


def _check_regex(
    section: dict[str, Any], key: str, prefix: str, errors: list[str]
) -> None:
    if key not in section:
        return
    pattern = section[key]
    if not isinstance(pattern, str):
        errors.append(f"{prefix}{key}: Must be a string")
        return
    try:
        re.compile(pattern)
    except re.error as err:
        errors.append(f"{prefix}{key}: Invalid regex pattern: {err}")


def _check_repo(
    section: dict[str, Any], prefix: str, errors: list[str]
) -> None:
    if "repo" not in section:
        errors.append(f"{prefix.rstrip('.')}: Missing required field: repo")
        return
    try:
        validate_repo(section["repo"])
    except ConfigError as err:
        errors.append(f"{prefix}repo: {err}")


def _validate_primary(primary: Any, errors: list[str], verbose: bool) -> None:
    if not isinstance(primary, dict):
        errors.append("Field 'primary' must be a dictionary")
        return

    package_id = primary.get("id")
    if "id" not in primary:
        errors.append("primary: Missing required field: id")
    elif not isinstance(package_id, str):
        errors.append("primary.id: Must be a string")
    elif not package_id:
        errors.append("primary.id: Cannot be empty")

    source = primary.get("source", "winget")
    if not isinstance(source, str):
        errors.append("primary.source: Must be a string")
    elif source not in available_sources():
        available = ", ".join(available_sources())
        errors.append(
            f"primary.source: Unknown package source {source!r}. "
            f"Available: {available or '(none)'}"
        )
    elif verbose:
        print(f"  [OK] Primary '{package_id}' uses source: {source}")

    _check_int(primary, "delay_days", "primary.", errors)
    _check_int(primary, "timeout", "primary.", errors)

    service = primary.get("service")
    if service is not None and not isinstance(service, str):
        errors.append("primary.service: Must be a string")


def _validate_secondary(
    secondary: Any, errors: list[str], warnings: list[str], verbose: bool
) -> None:
    if not isinstance(secondary, dict):
        errors.append("Field 'secondary' must be a dictionary")
        return
    if not secondary.get("enabled", False):
        if "repo" in secondary:
            warnings.append("secondary.repo is set but secondary.enabled is false")
        return

    _check_repo(secondary, "secondary.", errors)
    _check_regex(secondary, "version_pattern", "secondary.", errors)
    _check_regex(secondary, "asset_pattern", "secondary.", errors)
    _check_int(secondary, "timeout", "secondary.", errors)

    install_args = secondary.get("install_args", [])
    if not isinstance(install_args, list):
        errors.append("secondary.install_args: Must be a list")

    codes = secondary.get("success_codes", [0, 3010])
    if not isinstance(codes, list) or not all(
        isinstance(c, int) and not isinstance(c, bool) for c in codes
    ):
        errors.append("secondary.success_codes: Must be a list of integers")
    elif not codes:
        errors.append("secondary.success_codes: Must contain at least one code")

    if verbose:
        print(f"  [OK] Secondary updates enabled for {secondary.get('repo')}")


def _validate_self_update(
    self_update: Any, errors: list[str], warnings: list[str], verbose: bool
) -> None:
    if not isinstance(self_update, dict):
        errors.append("Field 'self_update' must be a dictionary")
        return
    if not self_update.get("enabled", False):
        return

    _check_repo(self_update, "self_update.", errors)

    artifact_path = self_update.get("artifact_path", "")
    if not isinstance(artifact_path, str):
        errors.append("self_update.artifact_path: Must be a string")
    elif not artifact_path:
        warnings.append(
            "self_update.artifact_path is empty; only git checkouts can self-update"
        )

    local_path = self_update.get("local_path")
    if local_path is not None and not isinstance(local_path, str):
        errors.append("self_update.local_path: Must be a string")

    if verbose:
        print(f"  [OK] Self-update enabled from {self_update.get('repo')}")


def validate_config(config_path: Path, verbose: bool = False) -> ValidationResult:
    """Validate a config file without touching the network or the system.

    Does NOT:

    - Make network calls
    - Check that the package or service exists
    - Verify that tokens resolve

    Args:
        config_path: Path to the config YAML file to validate.
        verbose: If True, print validation progress.
            Default is False.

    Returns:
        Validation status, errors, warnings, and the config path.

    """
    errors: list[str] = []
    warnings: list[str] = []

    def result() -> ValidationResult:
        return ValidationResult(
            status="invalid" if errors else "valid",
            errors=errors,
            warnings=warnings,
            config_path=str(config_path),
        )

    if verbose:
        print(f"Validating config: {config_path}")

    if not config_path.exists():
        errors.append(f"Config file not found: {config_path}")
        return result()

    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as err:
        errors.append(f"Invalid YAML syntax: {err}")
        return result()
    except OSError as err:
        errors.append(f"Failed to read config file: {err}")
        return result()

    if verbose:
        print("  [OK] YAML syntax is valid")

    if not isinstance(config, dict):
        errors.append("Config must be a YAML dictionary/mapping")
        return result()

    if "apiVersion" not in config:
        errors.append("Missing required field: apiVersion")
    else:
        api_version = config["apiVersion"]
        if not isinstance(api_version, str):
            errors.append("apiVersion must be a string")
        elif api_version != SUPPORTED_API_VERSION:
            warnings.append(
                f"apiVersion '{api_version}' may not be supported "
                f"(expected: {SUPPORTED_API_VERSION})"
            )
        elif verbose:
            print(f"  [OK] apiVersion: {api_version}")

    _check_int(config, "jitter_seconds", "", errors)

    state_dir = config.get("state_dir")
    if state_dir is not None and not isinstance(state_dir, str):
        errors.append("state_dir: Must be a string")

    if "primary" not in config:
        errors.append("Missing required field: primary")
    else:
        _validate_primary(config["primary"], errors, verbose)

    if "secondary" in config:
        _validate_secondary(config["secondary"], errors, warnings, verbose)
    if "self_update" in config:
        _validate_self_update(config["self_update"], errors, warnings, verbose)

    if verbose:
        if errors:
            print(f"  [FAIL] {len(errors)} error(s) found")
        else:
            print("  [OK] Config is valid")

    return result()
