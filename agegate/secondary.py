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

"""Secondary component updates, chained off the primary upgrade.

A companion component (a plugin, a GUI, a driver) is reinstalled from its
latest GitHub release, but only when the primary package's installed version
changed during this run. On every other run nothing is fetched: a
heavyweight installer is never launched on a no-op run.

The new SecondaryState is recorded only when the installer exits with one
of the configured success codes, so a failed install is retried next time
the primary changes.

Configuration:
    ```yaml
    secondary:
      enabled: true
      repo: "owner/companion"
      asset_pattern: ".*-x64\\.msi$"
      version_pattern: "v?([0-9.]+)"
      install_args: []
      success_codes: [0, 3010]
      token: "${GITHUB_TOKEN}"
    ```
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
import tempfile
from typing import Any

from agegate.exceptions import AgeGateError, ConfigError, NetworkError, StateError
from agegate.io import download_file
from agegate.logging import get_global_logger
from agegate.policy import SecondaryReason, plan_secondary, primary_changed
from agegate.process import run_command
from agegate.registry import extract_version, fetch_latest_release, match_asset
from agegate.registry.github import ReleaseAsset
from agegate.results import PrimaryOutcome, SecondaryResult
from agegate.state import SecondaryState, SecondaryStateStore
from agegate.versioning import Version, parse_version

# 3010 = ERROR_SUCCESS_REBOOT_REQUIRED
DEFAULT_SUCCESS_CODES = (0, 3010)


def installer_command(path: Path, install_args: list[str]) -> list[str]:
    """Build a silent install command line for a downloaded installer."""
    if path.suffix.lower() == ".msi":
        return ["msiexec", "/i", str(path), "/qn", "/norestart", *install_args]
    return [str(path), *install_args]


class SecondaryUpdateCoordinator:
    """Installs the secondary component after a primary version change.

    Args:
        settings: The ``secondary`` configuration section.
        store: Store holding the last successful secondary install.

    """

    def __init__(self, settings: dict[str, Any], store: SecondaryStateStore) -> None:
        self.settings = settings
        self.store = store

    def _latest(self) -> tuple[Version, ReleaseAsset]:
        repo = self.settings.get("repo")
        if not repo:
            raise ConfigError("secondary updates require 'secondary.repo'")
        release = fetch_latest_release(
            repo,
            token=self.settings.get("token"),
            timeout=int(self.settings.get("http_timeout", 30)),
        )
        raw = extract_version(
            release.tag, self.settings.get("version_pattern", r"v?([0-9.]+)")
        )
        try:
            version = parse_version(raw)
        except ValueError as err:
            raise NetworkError(
                f"Release tag {release.tag!r} of {repo} is not a version"
            ) from err
        asset = match_asset(release, self.settings.get("asset_pattern", r"\.msi$"))
        return version, asset

    def _install(self, asset: ReleaseAsset) -> tuple[bool, str]:
        logger = get_global_logger()
        success_codes = tuple(self.settings.get("success_codes", DEFAULT_SUCCESS_CODES))
        install_args = [str(a) for a in self.settings.get("install_args", [])]

        with tempfile.TemporaryDirectory(prefix="agegate-secondary-") as tmp:
            path, digest, _ = download_file(
                asset.download_url,
                Path(tmp),
                filename=asset.name or None,
                timeout=int(self.settings.get("http_timeout", 60)),
            )
            logger.verbose("SECONDARY", f"Downloaded {path.name} ({digest})")

            result = run_command(
                installer_command(path, install_args),
                timeout=int(self.settings.get("timeout", 1800)),
            )

        if result.returncode in success_codes:
            return True, ""
        return False, f"installer exited with {result.returncode}"

    def maybe_update(self, primary: PrimaryOutcome) -> SecondaryResult:
        """Install the latest secondary release if the primary changed.

        Args:
            primary: Outcome of this run's primary phase.

        Returns:
            What happened. Network, installer, and state write failures are
                logged and reported, never raised.

        """
        logger = get_global_logger()

        if not primary_changed(primary.installed_before, primary.installed_after):
            logger.verbose(
                "SECONDARY", "Primary version unchanged this run, skipping"
            )
            return SecondaryResult(SecondaryReason.PRIMARY_UNCHANGED)

        try:
            latest, asset = self._latest()
        except AgeGateError as err:
            logger.warning("SECONDARY", f"Latest release lookup failed: {err}")
            return SecondaryResult(SecondaryReason.NO_LATEST, detail=str(err))

        prev_state = self.store.load()
        plan = plan_secondary(
            primary.installed_before, primary.installed_after, latest, prev_state
        )
        if not plan.should_install:
            logger.verbose("SECONDARY", f"Secondary already at {latest}")
            return SecondaryResult(plan.reason, version=latest)

        logger.verbose("SECONDARY", f"Installing secondary component {latest}")
        try:
            ok, detail = self._install(asset)
        except AgeGateError as err:
            ok, detail = False, str(err)
        except OSError as err:
            ok, detail = False, f"temporary directory error: {err}"

        if not ok:
            logger.warning("SECONDARY", f"Install of {latest} failed: {detail}")
            return SecondaryResult(plan.reason, version=latest, detail=detail)

        state = SecondaryState(
            last_installed_version=latest,
            installed_at_utc=datetime.now(UTC),
        )
        try:
            self.store.save(state)
        except StateError as err:
            logger.warning("STATE", str(err))
        logger.verbose("SECONDARY", f"Secondary component now at {latest}")
        return SecondaryResult(plan.reason, version=latest, installed=True, state=state)
