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

"""Upgrade execution for the primary package.

The executor runs once the aging decision says Upgrade:

1. Stop the package's service if one is configured and running.
2. Run the source's upgrade command, pinned to the aged candidate.
3. Start the service again if it was running before.
4. Re-query the installed version.

Service stop/start failures are warnings. The upgrade exit code is the only
thing that can fail the run.

Example:
    Apply an upgrade:
        ```python
        from agegate.service import WindowsServiceController
        from agegate.sources import get_source
        from agegate.upgrade import UpgradeExecutor
        from agegate.versioning import parse_version

        executor = UpgradeExecutor(
            get_source("winget"),
            service_name="Tailscale",
            services=WindowsServiceController(),
        )
        result = executor.apply("Tailscale.Tailscale", parse_version("1.72.1"))
        ```

"""

from __future__ import annotations

from agegate.exceptions import UpgradeError
from agegate.logging import get_global_logger
from agegate.service import ServiceController, ServiceStatus
from agegate.sources.base import PackageSource
from agegate.targets import ApplyResult
from agegate.versioning import Version


class UpgradeExecutor:
    """Quiesce, upgrade, resume.

    Args:
        source: Package source that performs the upgrade.
        service_name: Service to stop around the upgrade, or None.
        services: Service controller; required when service_name is set.

    """

    def __init__(
        self,
        source: PackageSource,
        service_name: str | None = None,
        services: ServiceController | None = None,
    ) -> None:
        self.source = source
        self.service_name = service_name
        self.services = services

    def _quiesce(self) -> bool:
        """Stop the service. Returns True if it was running and we stopped it."""
        if not self.service_name or self.services is None:
            return False

        logger = get_global_logger()
        running = self.services.is_running(self.service_name)
        if running is None:
            logger.warning("SERVICE", f"Service {self.service_name!r} not found")
            return False
        if not running:
            logger.verbose("SERVICE", f"Service {self.service_name} is not running")
            return False

        status = self.services.stop(self.service_name)
        if status is ServiceStatus.OK:
            logger.verbose("SERVICE", f"Stopped {self.service_name}")
        elif status is ServiceStatus.NOT_FOUND:
            logger.warning("SERVICE", f"Service {self.service_name!r} not found")
        else:
            logger.warning(
                "SERVICE", f"Failed to stop {self.service_name}; upgrading anyway"
            )
        return True

    def _resume(self) -> None:
        logger = get_global_logger()
        if not self.service_name or self.services is None:
            return
        status = self.services.start(self.service_name)
        if status is ServiceStatus.OK:
            logger.verbose("SERVICE", f"Started {self.service_name}")
        elif status is ServiceStatus.NOT_FOUND:
            logger.warning(
                "SERVICE", f"Service {self.service_name!r} not found after upgrade"
            )
        else:
            logger.warning("SERVICE", f"Failed to start {self.service_name}")

    def apply(
        self,
        package_id: str,
        version: Version | None = None,
        installed_before: Version | None = None,
    ) -> ApplyResult:
        """Upgrade package_id and report the installed version afterwards.

        Args:
            package_id: Package identifier in the source.
            version: Version to pin the upgrade to.
            installed_before: Reported as installed_after when the re-query
                fails, so a lookup hiccup never looks like a version change.

        Returns:
            ApplyResult with success, the installed version after the upgrade
                attempt, and the upgrade command's exit code.

        """
        logger = get_global_logger()
        was_running = self._quiesce()

        try:
            logger.verbose("UPGRADE", f"Upgrading {package_id} to {version}")
            exit_code = self.source.upgrade(package_id, version)
            detail = "" if exit_code == 0 else f"upgrade exited with {exit_code}"
        except UpgradeError as err:
            exit_code = 1
            detail = str(err)
        finally:
            if was_running:
                self._resume()

        if exit_code != 0:
            logger.warning("UPGRADE", f"Upgrade of {package_id} failed: {detail}")

        try:
            installed_after = self.source.query_installed(package_id)
        except UpgradeError as err:
            logger.warning("UPGRADE", f"Could not re-query {package_id}: {err}")
            installed_after = installed_before

        if exit_code == 0:
            logger.verbose("UPGRADE", f"{package_id} now at {installed_after}")

        return ApplyResult(
            success=exit_code == 0,
            installed_after=installed_after,
            exit_code=exit_code,
            detail=detail,
        )
