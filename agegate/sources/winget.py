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

"""Windows Package Manager (winget) package source.

Queries:

- Installed version: ``winget list --id <id> --exact``. The table row that
    contains the package id carries the installed version in the column
    right after the id.
- Candidate version: ``winget show --id <id> --exact``. The ``Version:``
    line is the newest version the configured sources offer.
- Upgrade: ``winget upgrade --id <id> --exact --version <v> --silent``,
    pinned to the aged candidate so a release published mid-run is never
    installed in its place.

All commands run with source/package agreements accepted and interactivity
disabled, since the agent runs unattended under a scheduler.

Configuration:
    ```yaml
    primary:
      id: "Tailscale.Tailscale"
      source: winget
      timeout: 1800
    ```

"""

from __future__ import annotations

import re

from agegate.exceptions import UpgradeError
from agegate.logging import get_global_logger
from agegate.process import run_command
from agegate.versioning import Version, try_parse_version

from .base import register_source

# APPINSTALLER_CLI_ERROR_NO_APPLICATIONS_FOUND
NO_APPLICATIONS_FOUND = 0x8A150014

_COMMON_ARGS = ["--accept-source-agreements", "--disable-interactivity"]
_SHOW_VERSION = re.compile(r"^\s*Version:\s*(\S+)", re.MULTILINE)


def _clean_lines(output: str) -> list[str]:
    """Drop progress spinner fragments that winget writes with carriage returns."""
    return [line.rsplit("\r", 1)[-1] for line in output.splitlines()]


def parse_list_output(output: str, package_id: str) -> Version | None:
    """Extract the installed version for package_id from ``winget list`` output.

    Args:
        output: Captured stdout of ``winget list``.
        package_id: Package identifier to look for (case-insensitive).

    Returns:
        The installed version, or None if the row or version is missing.

    Example:
        Parse a listing row:
            ```python
            out = (
                "Name      Id                  Version Available Source\\n"
                "-----------------------------------------------------\\n"
                "Tailscale Tailscale.Tailscale 1.70.0  1.72.1    winget\\n"
            )
            parse_list_output(out, "Tailscale.Tailscale")  # Version('1.70.0')
            ```

    """
    wanted = package_id.lower()
    for line in _clean_lines(output):
        tokens = line.split()
        lowered = [t.lower() for t in tokens]
        if wanted not in lowered:
            continue
        # Id column follows Name, so a name equal to the id is skipped
        idx = len(lowered) - 1 - lowered[::-1].index(wanted)
        rest = tokens[idx + 1 :]
        # winget prints "< 1.2.3" or "> 1.2.3" for approximate versions
        if rest and rest[0] in ("<", ">"):
            rest = rest[1:]
        if rest:
            return try_parse_version(rest[0])
        return None
    return None


def parse_show_output(output: str) -> Version | None:
    """Extract the feed version from ``winget show`` output."""
    m = _SHOW_VERSION.search("\n".join(_clean_lines(output)))
    if not m:
        return None
    return try_parse_version(m.group(1))


class WingetSource:
    """Package source backed by the winget command-line client."""

    def __init__(self, executable: str = "winget", timeout: int = 1800) -> None:
        self.executable = executable
        self.timeout = timeout

    def query_installed(self, package_id: str) -> Version | None:
        logger = get_global_logger()
        result = run_command(
            [self.executable, "list", "--id", package_id, "--exact", *_COMMON_ARGS],
            timeout=120,
        )
        if (result.returncode & 0xFFFFFFFF) == NO_APPLICATIONS_FOUND:
            logger.verbose("WINGET", f"{package_id} is not installed")
            return None
        if result.returncode != 0:
            raise UpgradeError(
                f"winget list failed for {package_id} "
                f"(exit code {result.returncode}): {result.stdout.strip()[-200:]}"
            )
        installed = parse_list_output(result.stdout, package_id)
        logger.verbose("WINGET", f"Installed version of {package_id}: {installed}")
        return installed

    def query_candidate(self, package_id: str) -> Version | None:
        logger = get_global_logger()
        result = run_command(
            [self.executable, "show", "--id", package_id, "--exact", *_COMMON_ARGS],
            timeout=120,
        )
        if result.returncode != 0:
            logger.warning(
                "WINGET",
                f"winget show failed for {package_id} (exit code {result.returncode})",
            )
            return None
        candidate = parse_show_output(result.stdout)
        logger.verbose("WINGET", f"Candidate version of {package_id}: {candidate}")
        return candidate

    def upgrade(self, package_id: str, version: Version | None = None) -> int:
        cmd = [self.executable, "upgrade", "--id", package_id, "--exact"]
        if version is not None:
            cmd += ["--version", str(version)]
        cmd += [
            "--silent",
            "--accept-package-agreements",
            *_COMMON_ARGS,
        ]
        result = run_command(cmd, timeout=self.timeout)
        if result.returncode != 0:
            get_global_logger().debug("WINGET", result.stdout.strip())
        return result.returncode


# Register this source when the module is imported
register_source("winget", WingetSource)
