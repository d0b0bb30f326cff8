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

"""Command-line interface for AgeGate.

This module provides the main CLI entry point for the agegate tool. A
scheduled task calls ``agegate run`` periodically; the other commands are
for operators.

Commands:

    run: Run the agent once (self-update, aging gate, secondary)
    status: Show the stored aging and secondary state
    validate: Validate config syntax and settings

Example:
    Run the agent from a scheduled task:
        ```bash
        $ agegate run C:\\ProgramData\\agegate\\agegate.yaml
        ```

    Run without waiting and without self-update:
        ```bash
        $ agegate run agegate.yaml --no-jitter --no-self-update --verbose
        ```

    Inspect the aging window:
        ```bash
        $ agegate status agegate.yaml
        ```

Exit Codes:

- 0: Success, or nothing to do
- 1: Configuration error, or a failed upgrade that reported no code
- other: Exit code of the failed upgrade command

Note:
    The CLI uses argparse for command parsing (stdlib, zero dependencies).
    Each command has its own handler function (cmd_<command>).
    Verbose mode shows full tracebacks on errors for debugging.
    Debug mode implies verbose mode and shows the effective configuration.

"""

from __future__ import annotations

import argparse
from datetime import UTC, datetime
from importlib.metadata import version
from pathlib import Path
import sys
from typing import Any

from agegate.config import load_effective_config
from agegate.core import run_once
from agegate.exceptions import AgeGateError, ConfigError
from agegate.logging import get_logger, set_global_logger
from agegate.policy import age_in_days
from agegate.results import RunResult
from agegate.state import (
    AGING_STATE_FILE,
    SECONDARY_STATE_FILE,
    AgingStateStore,
    SecondaryStateStore,
    format_timestamp,
)
from agegate.validation import validate_config


def _overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if getattr(args, "state_dir", None):
        overrides["state_dir"] = str(Path(args.state_dir).resolve())
    if getattr(args, "no_jitter", False):
        overrides["jitter_seconds"] = 0
    if getattr(args, "no_self_update", False):
        overrides["self_update"] = {"enabled": False}
    return overrides


def _print_run_result(result: RunResult) -> None:
    print("=" * 70)
    print("RUN RESULTS")
    print("=" * 70)

    if result.self_update is not None:
        su = result.self_update
        print(f"Self-Update:     {su.outcome.value}")
        print(f"Agent Version:   {su.local_version}")
        if su.remote_version is not None:
            print(f"Latest Release:  {su.remote_version}")

    primary = result.primary
    if primary is not None:
        print(f"Package:         {primary.package_id}")
        print(f"Installed:       {primary.installed_before}")
        decision = primary.decision
        if decision is None:
            print("Decision:        lookup failed")
        elif decision.is_upgrade:
            print(f"Decision:        upgrade to {decision.target}")
            print(f"Installed Now:   {primary.installed_after}")
        else:
            print(f"Decision:        skip ({decision.reason.value})")
        if decision is not None and decision.state is not None:
            print(f"Candidate:       {decision.state.candidate_version}")
        if decision is not None and decision.age_days is not None:
            print(f"Age (days):      {decision.age_days}")

    if result.secondary is not None:
        sec = result.secondary
        print(f"Secondary:       {sec.reason.value}")
        if sec.version is not None:
            print(f"Secondary Ver:   {sec.version}")
        print(f"Secondary Inst:  {'yes' if sec.installed else 'no'}")

    print(f"Exit Code:       {result.exit_code}")
    print("=" * 70)


def cmd_run(args: argparse.Namespace) -> int:
    """Handler for 'agegate run' command.

    Args:
        args: Parsed command-line arguments containing the config path and
            flags.

    Returns:
        The run's exit code (0 on success or no-op, the upgrade's exit code
            on upgrade failure, 1 on configuration errors).

    """
    logger = get_logger(verbose=args.verbose, debug=args.debug)
    set_global_logger(logger)

    config_path = Path(args.config).resolve()

    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}")
        return 1

    try:
        result = run_once(config_path, overrides=_overrides_from_args(args))
    except AgeGateError as err:
        print(f"Error: {err}")
        if args.verbose or args.debug:
            import traceback

            traceback.print_exc()
        return 1

    _print_run_result(result)
    if result.exit_code == 0:
        print()
        print("[SUCCESS] Run completed.")
    else:
        print()
        print(f"[FAILED] Upgrade failed with exit code {result.exit_code}.")
    return result.exit_code


def cmd_status(args: argparse.Namespace) -> int:
    """Handler for 'agegate status' command.

    Prints the stored aging and secondary state without querying anything.

    Returns:
        Exit code (0, or 1 if the config cannot be loaded).

    """
    logger = get_logger(verbose=False, debug=False)
    set_global_logger(logger)

    config_path = Path(args.config).resolve()
    try:
        config = load_effective_config(
            config_path, overrides=_overrides_from_args(args)
        )
    except ConfigError as err:
        print(f"Error: {err}")
        return 1

    state_dir = Path(config["state_dir"])
    delay_days = config["primary"].get("delay_days", 7)
    aging = AgingStateStore(state_dir / AGING_STATE_FILE).load()
    secondary = SecondaryStateStore(state_dir / SECONDARY_STATE_FILE).load()

    print("=" * 70)
    print("AGEGATE STATUS")
    print("=" * 70)
    print(f"Package:         {config['primary'].get('id')}")
    print(f"State Dir:       {state_dir}")
    print(f"Delay (days):    {delay_days}")
    if aging is None:
        print("Candidate:       (no state)")
    else:
        age = age_in_days(aging.first_seen_utc, datetime.now(UTC))
        print(f"Candidate:       {aging.candidate_version}")
        print(f"First Seen:      {format_timestamp(aging.first_seen_utc)}")
        print(f"Last Check:      {format_timestamp(aging.last_check_utc)}")
        print(f"Age (days):      {age}")
        print(f"Eligible:        {'yes' if age >= delay_days else 'no'}")
    if config["secondary"].get("enabled"):
        if secondary is None:
            print("Secondary:       (no state)")
        else:
            print(f"Secondary:       {secondary.last_installed_version}")
            print(f"Installed At:    {format_timestamp(secondary.installed_at_utc)}")
    print("=" * 70)
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Handler for 'agegate validate' command.

    Validates config syntax and settings without network calls.

    Returns:
        Exit code (0 for a valid config, 1 for invalid).

    """
    logger = get_logger(verbose=args.verbose, debug=False)
    set_global_logger(logger)

    config_path = Path(args.config).resolve()

    print(f"Validating config: {config_path}")
    print()

    result = validate_config(config_path, verbose=args.verbose)

    print("=" * 70)
    print("VALIDATION RESULTS")
    print("=" * 70)
    print(f"Config:      {result.config_path}")
    print(f"Status:      {result.status.upper()}")
    print()

    if result.warnings:
        print(f"Warnings ({len(result.warnings)}):")
        for warning in result.warnings:
            print(f"  [WARNING] {warning}")
        print()

    if result.errors:
        print(f"Errors ({len(result.errors)}):")
        for error in result.errors:
            print(f"  [X] {error}")
        print()

    print("=" * 70)

    if result.status == "valid":
        print()
        print("[SUCCESS] Config is valid!")
        return 0
    print()
    print(f"[FAILED] Config validation failed with {len(result.errors)} error(s).")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agegate",
        description="AgeGate - staged-rollout auto-update agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"agegate {version('agegate')}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        help="Available commands",
        required=True,
    )

    # 'run' command
    parser_run = subparsers.add_parser(
        "run",
        help="Run the agent once",
        description="Self-update, apply the aging gate to the primary package, then update the secondary component.",
    )
    parser_run.add_argument(
        "config",
        help="Path to the config YAML file",
    )
    parser_run.add_argument(
        "--state-dir",
        default=None,
        help="Directory for state files (default: from config)",
    )
    parser_run.add_argument(
        "--no-self-update",
        action="store_true",
        help="Skip the self-update check for this run",
    )
    parser_run.add_argument(
        "--no-jitter",
        action="store_true",
        help="Do not sleep before running",
    )
    parser_run.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress and high-level status updates",
    )
    parser_run.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show detailed debugging output (implies --verbose)",
    )
    parser_run.set_defaults(func=cmd_run)

    # 'status' command
    parser_status = subparsers.add_parser(
        "status",
        help="Show stored aging and secondary state",
        description="Print the aging window and secondary state without querying anything.",
    )
    parser_status.add_argument(
        "config",
        help="Path to the config YAML file",
    )
    parser_status.add_argument(
        "--state-dir",
        default=None,
        help="Directory for state files (default: from config)",
    )
    parser_status.set_defaults(func=cmd_status)

    # 'validate' command
    parser_validate = subparsers.add_parser(
        "validate",
        help="Validate config syntax and settings (no network)",
        description="Check the config YAML for syntax errors and configuration issues without making network calls.",
    )
    parser_validate.add_argument(
        "config",
        help="Path to the config YAML file",
    )
    parser_validate.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show validation progress and details",
    )
    parser_validate.set_defaults(func=cmd_validate)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the agegate CLI.

    This function is registered as the 'agegate' console script in
    pyproject.toml.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
