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

"""Aging decision policy for AgeGate.

Determines whether the candidate version of a target may be applied, based
on how long it has been observed unchanged in the feed.

The decision is a pure function of (previous state, version fact, now,
delay). It never touches the filesystem; callers load and save state through
AgingStateStore.

Decision table (first matching row wins):

| Condition | Action | State |
|---|---|---|
| installed is None | Skip NOT_INSTALLED | prev, last_check bumped |
| candidate is None | Skip NO_CANDIDATE | prev, last_check bumped |
| no prev / candidate changed | Skip AGING_RESET | first_seen = now |
| installed >= candidate | Skip ALREADY_CURRENT | carried |
| age_days < delay_days | Skip TOO_YOUNG | carried |
| otherwise | Upgrade(candidate) | carried |

ALREADY_CURRENT is checked before TOO_YOUNG so an installed candidate reads
as already current at any age, including inside the delay window.

``age_days`` is whole elapsed days, floored, and clamped at zero so a clock
that moved backwards reads as "just seen".

Example:
    Decide on a run:

        from datetime import UTC, datetime
        from agegate.policy import decide
        from agegate.targets import VersionFact
        from agegate.versioning import parse_version

        decision = decide(
            prev_state,
            VersionFact(parse_version("1.1.0"), parse_version("1.2.0")),
            datetime.now(UTC),
            delay_days=7,
        )
        if decision.is_upgrade:
            target.apply(decision.target)

"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from agegate.state import AgingState
from agegate.targets import VersionFact
from agegate.versioning import Version

_ONE_DAY = timedelta(days=1)


class Action(Enum):
    SKIP = "skip"
    UPGRADE = "upgrade"


class SkipReason(Enum):
    NOT_INSTALLED = "not_installed"
    NO_CANDIDATE = "no_candidate"
    AGING_RESET = "aging_reset"
    TOO_YOUNG = "too_young"
    ALREADY_CURRENT = "already_current"


@dataclass(frozen=True)
class Decision:
    """Result of an aging decision.

    Attributes:
        action: SKIP or UPGRADE.
        state: State to persist, or None when there is nothing to persist
            (no prior state and nothing observed).
        reason: Why the run skipped; None for UPGRADE.
        target: Version to upgrade to; None for SKIP.
        age_days: Whole days the candidate has been observed, when computed.

    """

    action: Action
    state: AgingState | None
    reason: SkipReason | None = None
    target: Version | None = None
    age_days: int | None = None

    @property
    def is_upgrade(self) -> bool:
        return self.action is Action.UPGRADE


def age_in_days(first_seen: datetime, now: datetime) -> int:
    """Whole days between first_seen and now, floored, never negative."""
    return max(0, (now - first_seen) // _ONE_DAY)


def decide(
    prev_state: AgingState | None,
    fact: VersionFact,
    now: datetime,
    delay_days: int,
) -> Decision:
    """Decide whether a target's candidate version may be applied.

    Args:
        prev_state: State from the previous run, or None.
        fact: Installed and candidate versions observed this run.
        now: Current time (timezone-aware UTC).
        delay_days: Minimum whole days a candidate must stay unchanged.
            0 upgrades as soon as a newer candidate has been seen once.

    Returns:
        The decision with the state to persist.

    Raises:
        ValueError: If delay_days is negative.

    """
    if delay_days < 0:
        raise ValueError(f"delay_days must be >= 0, got {delay_days}")

    touched = replace(prev_state, last_check_utc=now) if prev_state else None

    if fact.installed is None:
        return Decision(Action.SKIP, touched, reason=SkipReason.NOT_INSTALLED)

    if fact.candidate is None:
        return Decision(Action.SKIP, touched, reason=SkipReason.NO_CANDIDATE)

    if prev_state is None or prev_state.candidate_version != fact.candidate:
        reset = AgingState(
            candidate_version=fact.candidate,
            first_seen_utc=now,
            last_check_utc=now,
        )
        return Decision(Action.SKIP, reset, reason=SkipReason.AGING_RESET, age_days=0)

    carried = replace(prev_state, last_check_utc=now)
    age = age_in_days(prev_state.first_seen_utc, now)

    if fact.installed >= fact.candidate:
        return Decision(
            Action.SKIP, carried, reason=SkipReason.ALREADY_CURRENT, age_days=age
        )

    if age < delay_days:
        return Decision(
            Action.SKIP, carried, reason=SkipReason.TOO_YOUNG, age_days=age
        )

    return Decision(Action.UPGRADE, carried, target=fact.candidate, age_days=age)
