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

"""Secondary component update policy.

The secondary component is only considered when the primary package's
installed version changed during this run. There is no aging for the
secondary component: the latest available version wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from agegate.state import SecondaryState
from agegate.versioning import Version


class SecondaryReason(Enum):
    PRIMARY_UNCHANGED = "primary_unchanged"
    NO_LATEST = "no_latest"
    ALREADY_CURRENT = "already_current"
    INSTALL = "install"


@dataclass(frozen=True)
class SecondaryPlan:
    reason: SecondaryReason
    version: Version | None = None

    @property
    def should_install(self) -> bool:
        return self.reason is SecondaryReason.INSTALL


def primary_changed(
    installed_before: Version | None, installed_after: Version | None
) -> bool:
    """True when the primary target is present and its version moved this run."""
    return installed_after is not None and installed_after != installed_before


def plan_secondary(
    installed_before: Version | None,
    installed_after: Version | None,
    latest_available: Version | None,
    prev_state: SecondaryState | None,
) -> SecondaryPlan:
    """Decide whether the secondary component should be installed.

    Args:
        installed_before: Primary installed version at the start of the run.
        installed_after: Primary installed version at the end of the run.
        latest_available: Newest secondary version, or None if unknown.
        prev_state: Last recorded secondary install, or None.

    Returns:
        The plan. INSTALL and ALREADY_CURRENT carry the latest version.

    """
    if not primary_changed(installed_before, installed_after):
        return SecondaryPlan(SecondaryReason.PRIMARY_UNCHANGED)
    if latest_available is None:
        return SecondaryPlan(SecondaryReason.NO_LATEST)
    if prev_state is not None and prev_state.last_installed_version == latest_available:
        return SecondaryPlan(SecondaryReason.ALREADY_CURRENT, latest_available)
    return SecondaryPlan(SecondaryReason.INSTALL, latest_available)
