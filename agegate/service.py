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

"""Service control for quiescing a package's service around an upgrade.

Service control failures are never fatal to a run. Every operation reports a
ServiceStatus instead of raising, and the upgrade executor logs anything
other than OK as a warning.

The built-in controller drives the Windows Service Control Manager through
``sc.exe``:

- 1060 (ERROR_SERVICE_DOES_NOT_EXIST) maps to NOT_FOUND
- 1062 (ERROR_SERVICE_NOT_ACTIVE) on stop maps to OK
- 1056 (ERROR_SERVICE_ALREADY_RUNNING) on start maps to OK
- anything else non-zero maps to FAILED
"""

from __future__ import annotations

from enum import Enum
import re
import time
from typing import Protocol

from agegate.exceptions import UpgradeError
from agegate.logging import get_global_logger
from agegate.process import run_command

ERROR_SERVICE_ALREADY_RUNNING = 1056
ERROR_SERVICE_DOES_NOT_EXIST = 1060
ERROR_SERVICE_NOT_ACTIVE = 1062

_STATE_LINE = re.compile(r"STATE\s*:\s*\d+\s+(\w+)")


class ServiceStatus(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ServiceController(Protocol):
    """Protocol for service controllers."""

    def is_running(self, name: str) -> bool | None:
        """Return True/False, or None if the service does not exist."""
        ...

    def stop(self, name: str) -> ServiceStatus: ...

    def start(self, name: str) -> ServiceStatus: ...


def parse_service_state(output: str) -> str | None:
    """Return the STATE keyword (e.g. "RUNNING") from ``sc query`` output."""
    m = _STATE_LINE.search(output)
    return m.group(1).upper() if m else None


class WindowsServiceController:
    """Service controller backed by ``sc.exe``.

    Args:
        wait_seconds: How long stop/start wait for the service to reach the
            target state before reporting FAILED.
        poll_interval: Seconds between state polls.

    """

    def __init__(self, wait_seconds: float = 60, poll_interval: float = 1.0) -> None:
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval

    def _query(self, name: str) -> str | None:
        result = run_command(["sc.exe", "query", name], timeout=30)
        if result.returncode == ERROR_SERVICE_DOES_NOT_EXIST:
            return None
        return parse_service_state(result.stdout) or "UNKNOWN"

    def is_running(self, name: str) -> bool | None:
        try:
            state = self._query(name)
        except UpgradeError as err:
            get_global_logger().warning("SERVICE", f"Could not query {name}: {err}")
            return None
        if state is None:
            return None
        return state == "RUNNING"

    def _wait_for(self, name: str, target: str) -> bool:
        deadline = time.monotonic() + self.wait_seconds
        while True:
            if self._query(name) == target:
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(self.poll_interval)

    def _control(self, verb: str, name: str, ok_code: int, target: str) -> ServiceStatus:
        logger = get_global_logger()
        try:
            result = run_command(["sc.exe", verb, name], timeout=60)
            if result.returncode == ERROR_SERVICE_DOES_NOT_EXIST:
                return ServiceStatus.NOT_FOUND
            if result.returncode not in (0, ok_code):
                logger.debug("SERVICE", result.stdout.strip())
                return ServiceStatus.FAILED
            if not self._wait_for(name, target):
                logger.debug("SERVICE", f"{name} did not reach {target}")
                return ServiceStatus.FAILED
        except UpgradeError as err:
            logger.debug("SERVICE", str(err))
            return ServiceStatus.FAILED
        return ServiceStatus.OK

    def stop(self, name: str) -> ServiceStatus:
        return self._control("stop", name, ERROR_SERVICE_NOT_ACTIVE, "STOPPED")

    def start(self, name: str) -> ServiceStatus:
        return self._control("start", name, ERROR_SERVICE_ALREADY_RUNNING, "RUNNING")
