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

"""Blocking subprocess helper shared by the package source, service control,
installer, and git pull code paths.

A command that starts and exits (with any exit code) returns its
CompletedProcess. A command that cannot be started or does not finish in
time raises UpgradeError so callers only deal with one exception type.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
import subprocess

from agegate.exceptions import UpgradeError
from agegate.logging import get_global_logger

DEFAULT_TIMEOUT = 300


def run_command(
    cmd: Sequence[str],
    *,
    timeout: int = DEFAULT_TIMEOUT,
    cwd: Path | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a command and capture its text output.

    Args:
        cmd: Program and arguments.
        timeout: Seconds before the command is killed.
        cwd: Working directory for the command.

    Returns:
        The completed process. Non-zero exit codes are not raised.

    Raises:
        UpgradeError: If the program is missing, cannot be started, or
            times out.

    """
    logger = get_global_logger()
    logger.debug("EXEC", " ".join(str(c) for c in cmd))

    try:
        result = subprocess.run(
            [str(c) for c in cmd],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            cwd=cwd,
            check=False,
        )
    except FileNotFoundError as err:
        raise UpgradeError(f"Command not found: {cmd[0]}") from err
    except subprocess.TimeoutExpired as err:
        raise UpgradeError(f"{cmd[0]} timed out after {err.timeout}s") from err
    except OSError as err:
        raise UpgradeError(f"Failed to start {cmd[0]}: {err}") from err

    logger.debug("EXEC", f"exit code {result.returncode}")
    return result
