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

"""Public API return types for AgeGate.

This module defines dataclasses for the outcomes of each phase of a run.
PrimaryOutcome is also the value threaded from the primary phase into the
secondary coordinator, so "did the primary change" is never ambient state.

All dataclasses are frozen (immutable) to prevent accidental mutation of
return values.

Example:
    Using result types:
        ```python
        from pathlib import Path
        from agegate.core import run_once

        result = run_once(Path("agegate.yaml"))
        print(result.primary.decision.reason)
        print(result.exit_code)
        ```
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from agegate.policy import Decision, SecondaryReason
from agegate.state import SecondaryState
from agegate.targets import ApplyResult
from agegate.versioning import Version


class SelfUpdateOutcome(Enum):
    """Terminal states of a self-update check."""

    UNKNOWN = "unknown"
    SKIPPED = "skipped"
    UP_TO_DATE = "up_to_date"
    STALE = "stale"
    APPLIED_VIA_PULL = "applied_via_pull"
    APPLIED_VIA_DOWNLOAD = "applied_via_download"
    APPLY_FAILED = "apply_failed"


@dataclass(frozen=True)
class SelfUpdateResult:
    """Result of the self-update phase.

    Attributes:
        outcome: Terminal state reached.
        local_version: Version of the running agent.
        remote_version: Latest release version, if it could be parsed.
        detail: Reason for SKIPPED/APPLY_FAILED, empty otherwise.
    """

    outcome: SelfUpdateOutcome
    local_version: Version
    remote_version: Version | None = None
    detail: str = ""


@dataclass(frozen=True)
class PrimaryOutcome:
    """Result of the primary phase.

    Attributes:
        package_id: Primary package identifier.
        installed_before: Installed version at the start of the run.
        installed_after: Installed version at the end of the run.
        decision: Aging decision, or None if the lookup failed.
        apply_result: Upgrade result if an upgrade was attempted.
    """

    package_id: str
    installed_before: Version | None
    installed_after: Version | None
    decision: Decision | None = None
    apply_result: ApplyResult | None = None

    @property
    def upgrade_failed(self) -> bool:
        return self.apply_result is not None and not self.apply_result.success


@dataclass(frozen=True)
class SecondaryResult:
    """Result of the secondary phase.

    Attributes:
        reason: Plan reason (PRIMARY_UNCHANGED, NO_LATEST, ALREADY_CURRENT,
            INSTALL).
        version: Secondary version considered, if known.
        installed: True only if the installer ran and reported success.
        state: New state recorded after a successful install.
        detail: Failure detail, empty otherwise.
    """

    reason: SecondaryReason
    version: Version | None = None
    installed: bool = False
    state: SecondaryState | None = None
    detail: str = ""


@dataclass(frozen=True)
class RunResult:
    """Result of a whole run.

    Attributes:
        exit_code: Process exit status (0, or the failed upgrade's code).
        self_update: Self-update result, None if disabled.
        primary: Primary phase result, None if it could not run.
        secondary: Secondary phase result, None if disabled.
    """

    exit_code: int
    self_update: SelfUpdateResult | None
    primary: PrimaryOutcome | None
    secondary: SecondaryResult | None


@dataclass(frozen=True)
class ValidationResult:
    """Result from validating a config file.

    Attributes:
        status: Validation status ("valid" or "invalid").
        errors: List of error messages (empty if valid).
        warnings: List of warning messages.
        config_path: String path to the validated config file.
    """

    status: str
    errors: list[str]
    warnings: list[str]
    config_path: str
