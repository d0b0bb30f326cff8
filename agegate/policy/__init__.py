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

"""Update decision policies for AgeGate.

This module provides the pure decision functions that gate upgrades:

- decide: Aging gate for the primary target (delay_days window)
- plan_secondary: Latest-wins gate for the secondary component, only
    considered when the primary installed version changed this run

Neither function performs I/O, which keeps every rule testable with plain
values.

Example:
    Aging decision:

        from agegate.policy import decide, SkipReason

        decision = decide(prev_state, fact, now, delay_days=7)
        if decision.reason is SkipReason.TOO_YOUNG:
            print(f"Candidate is only {decision.age_days} day(s) old")

"""

from .aging import Action, Decision, SkipReason, age_in_days, decide
from .secondary import SecondaryPlan, SecondaryReason, plan_secondary, primary_changed

__all__ = [
    "Action",
    "Decision",
    "SecondaryPlan",
    "SecondaryReason",
    "SkipReason",
    "age_in_days",
    "decide",
    "plan_secondary",
    "primary_changed",
]
