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

"""State persistence for AgeGate.

Two independent JSON documents live in the configured state directory:

- aging-state.json: candidate version under observation and when it was
    first seen (drives the aging window)
- secondary-state.json: last secondary component version installed

Public API:

- AgingState, SecondaryState: Immutable state records
- AgingStateStore, SecondaryStateStore: load()/save() for each file
- load_state, save_state: Low-level JSON helpers
- AGING_STATE_FILE, SECONDARY_STATE_FILE: Default file names

"""

from .tracker import (
    AgingState,
    AgingStateStore,
    SecondaryState,
    SecondaryStateStore,
    format_timestamp,
    load_state,
    parse_timestamp,
    save_state,
)

AGING_STATE_FILE = "aging-state.json"
SECONDARY_STATE_FILE = "secondary-state.json"

__all__ = [
    "AGING_STATE_FILE",
    "SECONDARY_STATE_FILE",
    "AgingState",
    "AgingStateStore",
    "SecondaryState",
    "SecondaryStateStore",
    "format_timestamp",
    "load_state",
    "parse_timestamp",
    "save_state",
]
