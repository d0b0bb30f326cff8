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

"""Core orchestration for AgeGate.

This module provides the high-level workflow of one agent run, which the
scheduled task invokes through ``agegate run``:

1. Load the effective configuration
2. Sleep a random jitter (optional)
3. Self-update the agent (optional)
4. Primary: query versions, run the aging decision, persist state, upgrade
5. Secondary: reinstall the companion component if the primary changed

Design Principles:

- The decision engine is pure; this module owns every side effect
- Only a failed primary upgrade changes the exit code; self-update,
    secondary, service control and state write failures are warnings
- Each phase returns a frozen result dataclass; the secondary phase receives
    the primary outcome explicitly

Example:
    Programmatic usage:
        ```python
        from pathlib import Path
        from agegate.core import run_once

        result = run_once(Path("agegate.yaml"), overrides={"jitter_seconds": 0})
        print(result.primary.decision.reason)
        raise SystemExit(result.exit_code)
        ```

"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
import random
import time
from typing import Any

from agegate.config import load_effective_config
from agegate.exceptions import ConfigError, StateError, UpgradeError
from agegate.logging import get_global_logger
from agegate.policy import decide
from agegate.results import (
    PrimaryOutcome,
    RunResult,
    SelfUpdateOutcome,
    SelfUpdateResult,
)
from agegate.secondary import SecondaryUpdateCoordinator
from agegate.selfupdate import build_self_updater
from agegate.service import ServiceController, WindowsServiceController
from agegate.sources import get_source
from agegate.state import (
    AGING_STATE_FILE,
    SECONDARY_STATE_FILE,
    AgingStateStore,
    SecondaryStateStore,
)
from agegate.targets import PackageTarget
from agegate.upgrade import UpgradeExecutor
from agegate.versioning import parse_version

TOTAL_STEPS = 4


def exit_code_for(primary: PrimaryOutcome | None) -> int:
    """Process exit status for a run.

    0 unless the primary upgrade failed; then the upgrade command's exit
    code, or 1 when that code is 0 or unknown.
    """
    result = primary.apply_result if primary is not None else None
    if result is None or result.success:
        return 0
    return result.exit_code or 1


def run_primary(
    settings: dict[str, Any],
    store: AgingStateStore,
    now: datetime,
    services: ServiceController | None = None,
) -> PrimaryOutcome:
    """Run the aging gate for the primary package.

    Args:
        settings: The ``primary`` configuration section.
        store: Aging state store.
        now: Current time (timezone-aware UTC).
        services: Service controller; a WindowsServiceController is created
            when a service is configured and none is given.

    Returns:
        The primary outcome. decision is None when the installed version
            could not be queried.

    Raises:
        ConfigError: If primary.id is missing, the source is unknown, or
            delay_days is negative.

    """
    logger = get_global_logger()

    package_id = settings.get("id")
    if not package_id:
        raise ConfigError("Missing required field: primary.id")

    delay_days = int(settings.get("delay_days", 7))
    if delay_days < 0:
        raise ConfigError(f"primary.delay_days must be >= 0, got {delay_days}")

    source = get_source(
        settings.get("source", "winget"), timeout=int(settings.get("timeout", 1800))
    )
    service_name = settings.get("service")
    if service_name and services is None:
        services = WindowsServiceController()
    target = PackageTarget(
        package_id,
        source,
        UpgradeExecutor(source, service_name=service_name, services=services),
    )

    try:
        fact = target.query()
    except UpgradeError as err:
        logger.warning("LOOKUP", f"Installed version lookup for {package_id} failed: {err}")
        return PrimaryOutcome(package_id, None, None)

    logger.verbose(
        "AGING",
        f"{package_id}: installed={fact.installed} candidate={fact.candidate}",
    )

    decision = decide(store.load(), fact, now, delay_days)
    if decision.state is not None:
        try:
            store.save(decision.state)
        except StateError as err:
            logger.warning("STATE", str(err))

    if not decision.is_upgrade:
        age = "" if decision.age_days is None else f" (age {decision.age_days}d)"
        logger.verbose("AGING", f"Skip: {decision.reason.value}{age}")
        return PrimaryOutcome(package_id, fact.installed, fact.installed, decision)

    logger.verbose(
        "AGING",
        f"Candidate {decision.target} aged {decision.age_days}d "
        f"(>= {delay_days}d), upgrading",
    )
    result = target.apply(decision.target)
    return PrimaryOutcome(
        package_id, fact.installed, result.installed_after, decision, result
    )


def run_once(
    config_path: Path,
    *,
    overrides: dict[str, Any] | None = None,
    now: datetime | None = None,
    services: ServiceController | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunResult:
    """Run the agent once: self-update, primary aging gate, secondary.

    Args:
        config_path: Path to the config YAML file.
        overrides: Config values applied over the file (CLI flags).
        now: Current time; defaults to datetime.now(UTC).
        services: Service controller for the primary package.
        sleep: Sleep function used for jitter.

    Returns:
        RunResult with the exit code and each phase's result.

    Raises:
        ConfigError: On a missing or invalid config file.

    """
    logger = get_global_logger()

    logger.step(1, TOTAL_STEPS, "Loading configuration...")
    config = load_effective_config(config_path, overrides=overrides)
    state_dir = Path(config["state_dir"])

    jitter = float(config.get("jitter_seconds") or 0)
    if jitter > 0:
        delay = random.uniform(0, jitter)
        logger.verbose("RUN", f"Sleeping {delay:.1f}s of jitter")
        sleep(delay)

    now = now or datetime.now(UTC)

    self_update: SelfUpdateResult | None = None
    settings = config.get("self_update") or {}
    if settings.get("enabled"):
        logger.step(2, TOTAL_STEPS, "Checking for agent updates...")
        if settings.get("repo"):
            self_update = build_self_updater(settings).maybe_self_update()
        else:
            from agegate import __version__

            logger.warning(
                "SELF-UPDATE", "Skipping self-update: 'self_update.repo' is not set"
            )
            self_update = SelfUpdateResult(
                SelfUpdateOutcome.SKIPPED,
                parse_version(__version__),
                detail="self_update.repo is not set",
            )

    logger.step(3, TOTAL_STEPS, "Checking primary package...")
    primary = run_primary(
        config.get("primary") or {},
        AgingStateStore(state_dir / AGING_STATE_FILE),
        now,
        services=services,
    )

    secondary = None
    settings = config.get("secondary") or {}
    if settings.get("enabled"):
        logger.step(4, TOTAL_STEPS, "Checking secondary component...")
        coordinator = SecondaryUpdateCoordinator(
            settings, SecondaryStateStore(state_dir / SECONDARY_STATE_FILE)
        )
        secondary = coordinator.maybe_update(primary)

    return RunResult(
        exit_code=exit_code_for(primary),
        self_update=self_update,
        primary=primary,
        secondary=secondary,
    )
