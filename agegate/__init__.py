"""
AgeGate - staged-rollout auto-update agent

A small agent, run periodically by a scheduler, that keeps a package up to
date while refusing to install any candidate version until it has been
observed unchanged for a configurable number of days. Hotfixes that land
quickly restart the window, so machines only pick up releases that have
survived a soak period.

AgeGate provides:
  - Aging window on the package feed's candidate version
  - Service stop/start around upgrades
  - Secondary component reinstall when the primary version changes
  - Self-update from GitHub releases (git pull or single-file download)
  - YAML configuration and JSON state files

Quick Start
-----------
Validate a config:

    $ agegate validate agegate.yaml

Run once:

    $ agegate run agegate.yaml --verbose

For full CLI documentation:

    $ agegate --help

Package Structure
-----------------
cli : module
    Command-line interface with argparse.
core : module
    Orchestration of one run and the exit-code policy.
config : package
    YAML configuration loading and merging.
policy : package
    Aging decision engine and secondary-update plan.
sources : package
    Package sources (winget) behind a registry.
state : package
    JSON state stores.
registry : package
    GitHub release lookups.
versioning : package
    Version parsing and comparison.
io : package
    Downloads.

Public API
----------
The primary interface is the CLI, but key functions are exported for
programmatic use:

    from agegate.core import run_once
    from agegate.validation import validate_config
    from agegate.config import load_effective_config
    from agegate.policy import decide
    from agegate.versioning import parse_version, is_newer

For more details, see the individual module docstrings.

Project Information
-------------------
Author: Roger Cibrian
License: Apache-2.0
"""

__version__ = "0.1.0"
__author__ = "Roger Cibrian"
__license__ = "Apache-2.0"
__description__ = "AgeGate - staged-rollout auto-update agent"

# Re-export commonly used functions for convenience
from agegate.config import load_effective_config
from agegate.core import run_once
from agegate.policy import decide
from agegate.validation import validate_config
from agegate.versioning import Version, is_newer, parse_version

__all__ = [
    "Version",
    "__version__",
    "decide",
    "is_newer",
    "load_effective_config",
    "parse_version",
    "run_once",
    "validate_config",
]
