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

"""Exception hierarchy for AgeGate.

This module defines a custom exception hierarchy that allows callers to
distinguish between the failure classes of a run:

- ConfigError: Configuration-related errors (YAML parse, missing fields, validation failures)
- NetworkError: Registry lookups and downloads (API failures, HTTP errors)
- UpgradeError: Package source or installer invocation failures
- StateError: State files that cannot be written

All exceptions inherit from AgeGateError, allowing users to catch all AgeGate
errors with a single except clause if needed.

Only a failed primary upgrade command turns into a non-zero run status. The
orchestrator catches every other category, logs it, and skips the optional
step it belonged to.

Example:
    Catching specific error types:
        ```python
        from agegate.exceptions import ConfigError, NetworkError
        from agegate.registry import fetch_latest_release

        try:
            release = fetch_latest_release("owner/repo")
        except NetworkError as e:
            print(f"Registry unavailable: {e}")
        ```
"""

from __future__ import annotations

__all__ = [
    "AgeGateError",
    "ConfigError",
    "NetworkError",
    "UpgradeError",
    "StateError",
]


class AgeGateError(Exception):
    """Base exception for all AgeGate errors.

    All AgeGate-specific exceptions inherit from this class, allowing users
    to catch all AgeGate errors with a single except clause if needed.
    """

    pass


class ConfigError(AgeGateError):
    """Raised for configuration-related errors.

    This exception is raised when there are problems with:

    - YAML parsing (syntax errors, invalid structure)
    - Missing or invalid configuration fields
    - Unknown package source names
    - Invalid regex patterns for release tags or assets
    """

    pass


class NetworkError(AgeGateError):
    """Raised for network/download-related errors.

    This exception is raised when there are problems with:

    - Release registry calls (rate limits, missing repositories)
    - Download failures (HTTP errors, connection timeouts, checksum mismatch)
    - Releases without a usable tag or asset
    """

    pass


class UpgradeError(AgeGateError):
    """Raised when an external command cannot be run at all.

    Covers a missing package manager binary, a timed out query, or an
    installer that could not be launched. A command that runs and exits
    non-zero is reported through its exit code instead.
    """

    pass


class StateError(AgeGateError):
    """Raised when a state file cannot be written.

    Unreadable state is never an error (it is treated as "no prior state"),
    so this only surfaces on save.
    """

    pass
