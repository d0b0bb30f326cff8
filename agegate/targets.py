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

"""Versioned targets: things the agent can observe and upgrade.

Both the primary package and the agent itself follow the same shape: query
an installed and a candidate version, compare them, apply the candidate.
VersionedTarget captures that shape so the orchestration does not care which
kind of target it is driving.

- PackageTarget: a package managed by a PackageSource (primary upgrade)
- AgentTarget: the running agent against a release registry
    (see agegate.selfupdate)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from agegate.exceptions import UpgradeError
from agegate.logging import get_global_logger
from agegate.versioning import Version

if TYPE_CHECKING:
    from agegate.sources.base import PackageSource
    from agegate.upgrade import UpgradeExecutor


@dataclass(frozen=True)
class VersionFact:
    """Snapshot of a target's versions, taken once per run.

    Attributes:
        installed: Installed version, or None if the target is absent.
        candidate: Newest version in the feed, or None if the lookup failed.

    """

    installed: Version | None
    candidate: Version | None


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of applying a version to a target.

    Attributes:
        success: True if the apply step reported success.
        installed_after: Installed version after the attempt.
        exit_code: Exit code of the apply command (0 on success).
        detail: Human-readable failure detail, empty on success.

    """

    success: bool
    installed_after: Version | None
    exit_code: int = 0
    detail: str = ""


class VersionedTarget(Protocol):
    """Protocol for anything with an installed and a candidate version."""

    name: str

    def query(self) -> VersionFact:
        """Observe installed and candidate versions."""
        ...

    def apply(self, version: Version) -> ApplyResult:
        """Move the target to version."""
        ...


class PackageTarget:
    """Primary package target backed by a PackageSource.

    Args:
        package_id: Package identifier in the source.
        source: Source used for version queries.
        executor: Executor that performs the upgrade.

    """

    def __init__(
        self,
        package_id: str,
        source: PackageSource,
        executor: UpgradeExecutor,
    ) -> None:
        self.name = package_id
        self.source = source
        self.executor = executor
        self._last_installed: Version | None = None

    def query(self) -> VersionFact:
        """Query installed and candidate versions.

        A failing installed-version lookup raises UpgradeError, since there is
        nothing safe to decide on. A failing candidate lookup is reported as
        a missing candidate.

        Raises:
            UpgradeError: If the installed version cannot be queried.

        """
        installed = self.source.query_installed(self.name)
        self._last_installed = installed
        if installed is None:
            return VersionFact(installed=None, candidate=None)

        try:
            candidate = self.source.query_candidate(self.name)
        except UpgradeError as err:
            get_global_logger().warning(
                "LOOKUP", f"Candidate lookup for {self.name} failed: {err}"
            )
            candidate = None
        return VersionFact(installed=installed, candidate=candidate)

    def apply(self, version: Version) -> ApplyResult:
        return self.executor.apply(
            self.name, version, installed_before=self._last_installed
        )
