"""
Pytest configuration and shared fixtures for AgeGate tests.

This module provides reusable fixtures and test doubles used across
the test suite.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest
import yaml

from agegate.logging import SilentLogger, set_global_logger
from agegate.service import ServiceStatus
from agegate.sources.base import register_source
from agegate.versioning import Version, parse_version


class FakeSource:
    """In-memory package source.

    installed/candidate may be a version string, None, or an exception
    instance to raise. A successful upgrade moves installed to the pinned
    version.
    """

    def __init__(
        self,
        installed: Any = "1.0.0",
        candidate: Any = "1.1.0",
        upgrade_exit: int = 0,
        **options: Any,
    ) -> None:
        self.installed = installed
        self.candidate = candidate
        self.upgrade_exit = upgrade_exit
        self.options = options
        self.upgrades: list[tuple[str, Version | None]] = []

    @staticmethod
    def _value(value: Any) -> Version | None:
        if isinstance(value, Exception):
            raise value
        return parse_version(value) if value is not None else None

    def query_installed(self, package_id: str) -> Version | None:
        return self._value(self.installed)

    def query_candidate(self, package_id: str) -> Version | None:
        return self._value(self.candidate)

    def upgrade(self, package_id: str, version: Version | None = None) -> int:
        self.upgrades.append((package_id, version))
        if isinstance(self.upgrade_exit, Exception):
            raise self.upgrade_exit
        if self.upgrade_exit == 0 and version is not None:
            self.installed = str(version)
        return self.upgrade_exit


class FakeServices:
    """Records service control calls."""

    def __init__(
        self,
        running: bool | None = True,
        stop_status: ServiceStatus = ServiceStatus.OK,
        start_status: ServiceStatus = ServiceStatus.OK,
    ) -> None:
        self.running = running
        self.stop_status = stop_status
        self.start_status = start_status
        self.calls: list[tuple[str, str]] = []

    def is_running(self, name: str) -> bool | None:
        self.calls.append(("is_running", name))
        return self.running

    def stop(self, name: str) -> ServiceStatus:
        self.calls.append(("stop", name))
        return self.stop_status

    def start(self, name: str) -> ServiceStatus:
        self.calls.append(("start", name))
        return self.start_status


@pytest.fixture(autouse=True)
def silent_logger():
    """Reset the global logger so CLI tests do not leak a verbose logger."""
    set_global_logger(SilentLogger())
    yield
    set_global_logger(SilentLogger())


@pytest.fixture
def tmp_test_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary directory for test artifacts.

    Automatically cleaned up after test completion.
    """
    return tmp_path


@pytest.fixture
def now() -> datetime:
    """A fixed 'current time' for deterministic aging tests."""
    return datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def fake_source() -> FakeSource:
    """A fresh FakeSource instance."""
    return FakeSource()


@pytest.fixture
def registered_fake_source(fake_source: FakeSource):
    """Register fake_source under the name "fake" and return it."""
    register_source("fake", lambda **options: fake_source)
    return fake_source


@pytest.fixture
def sample_config_data() -> dict[str, Any]:
    """
    Provide sample agent configuration data.

    Uses the "fake" source; pair with registered_fake_source.
    """
    return {
        "apiVersion": "agegate/v1",
        "state_dir": "state",
        "jitter_seconds": 0,
        "primary": {
            "id": "Vendor.App",
            "source": "fake",
            "delay_days": 7,
        },
    }


@pytest.fixture
def create_yaml_file(tmp_test_dir: Path):
    """
    Factory fixture for creating temporary YAML files.

    Usage:
        yaml_path = create_yaml_file("test.yaml", {"key": "value"})
    """

    def _create(filename: str, data: dict[str, Any]) -> Path:
        path = tmp_test_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f)
        return path

    return _create
