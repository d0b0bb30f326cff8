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

"""State tracking implementation for AgeGate.

This module implements the state persistence layer for the aging gate and
the secondary component. Each lives in its own JSON document:

- Aging state: ``{"candidateVersion", "firstSeenUtc", "lastCheckUtc"}``
- Secondary state: ``{"lastInstalledVersion", "installedAtUtc"}``

Key Features:

- JSON-based state storage (fast parsing, standard library)
- ISO-8601 UTC timestamps
- Missing, empty, corrupted, or malformed files load as "no prior state";
    the aging window then restarts from the current run
- Atomic writes (temporary file + rename)
- Auto-creation of state directories

Concurrency:
    Stores assume a single writer. The scheduler that invokes the agent is
    expected to never start a second run while one is in progress; two
    concurrent runs against the same files may lose an aging reset.

Example:
    Load, decide, save:
        ```python
        from pathlib import Path
        from agegate.state import AgingStateStore

        store = AgingStateStore(Path("state/aging-state.json"))
        prev = store.load()          # AgingState | None
        ...
        store.save(decision.state)
        ```

"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
import json
from pathlib import Path
from typing import Any, Generic, TypeVar

from agegate.exceptions import StateError
from agegate.logging import get_global_logger
from agegate.versioning import Version, parse_version

T = TypeVar("T")


@dataclass(frozen=True)
class AgingState:
    """Persisted aging record for one target.

    Attributes:
        candidate_version: Candidate the aging window is counting for.
        first_seen_utc: When this candidate was first observed.
        last_check_utc: When the target was last checked.

    """

    candidate_version: Version
    first_seen_utc: datetime
    last_check_utc: datetime


@dataclass(frozen=True)
class SecondaryState:
    """Persisted record of the last successful secondary install.

    Attributes:
        last_installed_version: Secondary version that was installed.
        installed_at_utc: When it was installed.

    """

    last_installed_version: Version
    installed_at_utc: datetime


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with a trailing "Z"."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp. Naive values are taken as UTC.

    Raises:
        ValueError: If text is not an ISO-8601 timestamp.

    """
    if not isinstance(text, str):
        raise ValueError(f"timestamp must be a string, got {type(text).__name__}")
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def load_state(state_file: Path) -> dict[str, Any]:
    """Load state from JSON file.

    Args:
        state_file: Path to JSON state file.

    Returns:
        Loaded state dictionary.

    Raises:
        FileNotFoundError: If state file doesn't exist.
        json.JSONDecodeError: If file contains invalid JSON.
        OSError: If file cannot be read due to permissions.

    """
    with open(state_file, encoding="utf-8") as f:
        return json.load(f)


def save_state(state: dict[str, Any], state_file: Path) -> None:
    """Save state to JSON file with pretty-printing.

    Creates parent directories if needed. Writes to a sibling temporary file
    and renames it over the target so a crash never leaves half a document.

    Args:
        state: State dictionary to save.
        state_file: Path to JSON state file.

    Raises:
        OSError: If file cannot be written due to permissions.

    Note:
        - Uses 2-space indentation for readability
        - Sorts keys alphabetically for consistent diffs
        - Adds trailing newline

    """
    state_file.parent.mkdir(parents=True, exist_ok=True)

    tmp = state_file.with_suffix(state_file.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(state, f, indent=2, sort_keys=True)
        f.write("\n")
    tmp.replace(state_file)


class JsonStateStore(Generic[T]):
    """Base class for a single-record JSON state file.

    Subclasses convert between the record type and its JSON dictionary.

    Attributes:
        state_file: Path to the JSON state file.

    """

    def __init__(self, state_file: Path):
        self.state_file = state_file

    def _from_dict(self, data: dict[str, Any]) -> T:
        raise NotImplementedError

    def _to_dict(self, record: T) -> dict[str, Any]:
        raise NotImplementedError

    def load(self) -> T | None:
        """Load the stored record.

        Returns:
            The record, or None when the file is missing, empty, not JSON,
                or has malformed fields.

        """
        logger = get_global_logger()
        try:
            data = load_state(self.state_file)
        except FileNotFoundError:
            logger.verbose("STATE", f"No state file yet: {self.state_file}")
            return None
        except (json.JSONDecodeError, UnicodeDecodeError) as err:
            logger.warning("STATE", f"Unreadable state in {self.state_file}: {err}")
            return None
        except OSError as err:
            logger.warning("STATE", f"Cannot read {self.state_file}: {err}")
            return None

        if not isinstance(data, dict):
            logger.warning("STATE", f"Unexpected state shape in {self.state_file}")
            return None

        try:
            record = self._from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as err:
            logger.warning(
                "STATE", f"Malformed state in {self.state_file}, ignoring: {err}"
            )
            return None

        logger.verbose("STATE", f"Loaded state from {self.state_file}")
        return record

    def save(self, record: T) -> None:
        """Persist the record.

        Raises:
            StateError: If the file cannot be written.

        """
        try:
            save_state(self._to_dict(record), self.state_file)
        except OSError as err:
            raise StateError(f"Failed to write {self.state_file}: {err}") from err
        get_global_logger().verbose("STATE", f"Updated state file: {self.state_file}")


class AgingStateStore(JsonStateStore[AgingState]):
    """Aging state for the primary target."""

    def _from_dict(self, data: dict[str, Any]) -> AgingState:
        return AgingState(
            candidate_version=parse_version(data["candidateVersion"]),
            first_seen_utc=parse_timestamp(data["firstSeenUtc"]),
            last_check_utc=parse_timestamp(data["lastCheckUtc"]),
        )

    def _to_dict(self, record: AgingState) -> dict[str, Any]:
        return {
            "candidateVersion": str(record.candidate_version),
            "firstSeenUtc": format_timestamp(record.first_seen_utc),
            "lastCheckUtc": format_timestamp(record.last_check_utc),
        }


class SecondaryStateStore(JsonStateStore[SecondaryState]):
    """Last successful install of the secondary component."""

    def _from_dict(self, data: dict[str, Any]) -> SecondaryState:
        return SecondaryState(
            last_installed_version=parse_version(data["lastInstalledVersion"]),
            installed_at_utc=parse_timestamp(data["installedAtUtc"]),
        )

    def _to_dict(self, record: SecondaryState) -> dict[str, Any]:
        return {
            "lastInstalledVersion": str(record.last_installed_version),
            "installedAtUtc": format_timestamp(record.installed_at_utc),
        }
