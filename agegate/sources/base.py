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

"""Package source protocol and registry for AgeGate.

A package source answers three questions about a package id: which version
is installed, which version the feed currently offers, and how to upgrade
to it. The decision engine never talks to a source directly; the primary
PackageTarget wraps one.

Sources are looked up by name from the ``primary.source`` configuration
field. Additional sources register themselves at import time.

Example:
    Registering a custom source:
        ```python
        from agegate.sources.base import register_source

        class ChocoSource:
            def query_installed(self, package_id): ...
            def query_candidate(self, package_id): ...
            def upgrade(self, package_id, version): ...

        register_source("choco", ChocoSource)
        ```

"""

from __future__ import annotations

from typing import Protocol

from agegate.exceptions import ConfigError
from agegate.versioning import Version

# -------------------------------
# Source Protocol
# -------------------------------


class PackageSource(Protocol):
    """Protocol for package sources.

    Absence of an installed version is a normal outcome and returns None.
    Failures to run the underlying tool raise UpgradeError.
    """

    def query_installed(self, package_id: str) -> Version | None:
        """Return the installed version, or None if the package is absent."""
        ...

    def query_candidate(self, package_id: str) -> Version | None:
        """Return the newest version in the feed, or None if unknown."""
        ...

    def upgrade(self, package_id: str, version: Version | None = None) -> int:
        """Upgrade the package and return the command's exit code.

        Args:
            package_id: Package identifier in the source.
            version: Version to pin the upgrade to. None upgrades to
                whatever the feed offers.

        """
        ...


# -------------------------------
# Source Registry
# -------------------------------

_SOURCE_REGISTRY: dict[str, type[PackageSource]] = {}


def register_source(name: str, source_class: type[PackageSource]) -> None:
    """Register a package source by name in the global registry.

    Registering the same name twice overwrites the previous registration
    (allows monkey-patching for tests).
    """
    _SOURCE_REGISTRY[name] = source_class


def available_sources() -> list[str]:
    """Return registered source names in registration order."""
    return list(_SOURCE_REGISTRY)


def get_source(name: str, **options) -> PackageSource:
    """Instantiate a package source by name.

    Args:
        name: Source name (e.g., "winget"). Case-sensitive.
        **options: Keyword arguments passed to the source constructor.

    Returns:
        A new source instance.

    Raises:
        ConfigError: If the source name is not registered. The error message
            includes a list of available sources for troubleshooting.

    """
    if name not in _SOURCE_REGISTRY:
        available = ", ".join(_SOURCE_REGISTRY.keys())
        raise ConfigError(
            f"Unknown package source: {name!r}. Available: {available or '(none)'}"
        )
    return _SOURCE_REGISTRY[name](**options)
