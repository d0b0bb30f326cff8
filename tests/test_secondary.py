"""
Tests for agegate.secondary module.

Tests the secondary component coordinator including:
- No network access when the primary did not change
- Install only when the latest release differs from the recorded one
- State recorded only after a successful install
- Network and installer failures staying non-fatal
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
import subprocess
from unittest.mock import patch

import pytest

from agegate.exceptions import NetworkError
from agegate.policy import SecondaryReason
from agegate.registry import ReleaseAsset, ReleaseInfo
from agegate.results import PrimaryOutcome
from agegate.secondary import SecondaryUpdateCoordinator, installer_command
from agegate.state import SecondaryState, SecondaryStateStore
from agegate.versioning import parse_version

RELEASE = ReleaseInfo(
    repo="owner/companion",
    tag="v2.1.0",
    prerelease=False,
    assets=(
        ReleaseAsset("companion-2.1.0-x64.msi", "https://example.com/c-x64.msi"),
        ReleaseAsset("companion-2.1.0.zip", "https://example.com/c.zip"),
    ),
)

INSTALLED_AT = datetime(2025, 3, 1, tzinfo=UTC)

SETTINGS = {
    "enabled": True,
    "repo": "owner/companion",
    "asset_pattern": r"x64\.msi$",
    "version_pattern": r"v?([0-9.]+)",
    "install_args": ["ADDLOCAL=ALL"],
    "success_codes": [0, 3010],
}


def _changed() -> PrimaryOutcome:
    return PrimaryOutcome(
        "Vendor.App", parse_version("1.0.0"), parse_version("1.1.0")
    )


def _unchanged() -> PrimaryOutcome:
    v = parse_version("1.0.0")
    return PrimaryOutcome("Vendor.App", v, v)


def _fake_download(url, folder, *, filename=None, timeout=60):
    path = Path(folder) / (filename or "download.bin")
    path.write_bytes(b"MSI")
    return path, "0" * 64, {}


def _installer(returncode: int):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout="", stderr=""
    )


@pytest.fixture
def store(tmp_path) -> SecondaryStateStore:
    return SecondaryStateStore(tmp_path / "secondary-state.json")


class TestSecondaryUpdateCoordinator:
    """Tests for maybe_update."""

    def test_unchanged_primary_fetches_nothing(self, store):
        """A no-op primary run never touches the network or installer."""
        with patch("agegate.secondary.fetch_latest_release") as mock_fetch, patch(
            "agegate.secondary.run_command"
        ) as mock_run:
            result = SecondaryUpdateCoordinator(SETTINGS, store).maybe_update(
                _unchanged()
            )

        assert result.reason is SecondaryReason.PRIMARY_UNCHANGED
        assert not result.installed
        mock_fetch.assert_not_called()
        mock_run.assert_not_called()
        assert store.load() is None

    def test_primary_removed_is_unchanged(self, store):
        outcome = PrimaryOutcome("Vendor.App", parse_version("1.0.0"), None)
        with patch("agegate.secondary.fetch_latest_release") as mock_fetch:
            result = SecondaryUpdateCoordinator(SETTINGS, store).maybe_update(outcome)

        assert result.reason is SecondaryReason.PRIMARY_UNCHANGED
        mock_fetch.assert_not_called()

    def test_installs_and_records_state(self, store):
        with patch(
            "agegate.secondary.fetch_latest_release", return_value=RELEASE
        ), patch(
            "agegate.secondary.download_file", side_effect=_fake_download
        ) as mock_download, patch(
            "agegate.secondary.run_command", return_value=_installer(0)
        ) as mock_run:
            result = SecondaryUpdateCoordinator(SETTINGS, store).maybe_update(
                _changed()
            )

        assert result.reason is SecondaryReason.INSTALL
        assert result.installed
        assert result.version == parse_version("2.1.0")
        assert mock_download.call_args.args[0] == "https://example.com/c-x64.msi"

        cmd = mock_run.call_args.args[0]
        assert cmd[:2] == ["msiexec", "/i"]
        assert cmd[2].endswith("companion-2.1.0-x64.msi")
        assert cmd[-1] == "ADDLOCAL=ALL"

        saved = store.load()
        assert saved is not None
        assert saved.last_installed_version == parse_version("2.1.0")

    def test_reboot_required_counts_as_success(self, store):
        with patch(
            "agegate.secondary.fetch_latest_release", return_value=RELEASE
        ), patch(
            "agegate.secondary.download_file", side_effect=_fake_download
        ), patch(
            "agegate.secondary.run_command", return_value=_installer(3010)
        ):
            result = SecondaryUpdateCoordinator(SETTINGS, store).maybe_update(
                _changed()
            )

        assert result.installed

    def test_failed_install_keeps_state(self, store):
        """A failed install leaves the recorded state untouched."""
        previous = SecondaryState(parse_version("2.0.0"), INSTALLED_AT)
        store.save(previous)

        with patch(
            "agegate.secondary.fetch_latest_release", return_value=RELEASE
        ), patch(
            "agegate.secondary.download_file", side_effect=_fake_download
        ), patch(
            "agegate.secondary.run_command", return_value=_installer(1603)
        ):
            result = SecondaryUpdateCoordinator(SETTINGS, store).maybe_update(
                _changed()
            )

        assert not result.installed
        assert "1603" in result.detail
        assert store.load() == previous

    def test_already_current_skips_install(self, store):
        store.save(SecondaryState(parse_version("2.1.0"), INSTALLED_AT))

        with patch(
            "agegate.secondary.fetch_latest_release", return_value=RELEASE
        ), patch("agegate.secondary.download_file") as mock_download:
            result = SecondaryUpdateCoordinator(SETTINGS, store).maybe_update(
                _changed()
            )

        assert result.reason is SecondaryReason.ALREADY_CURRENT
        assert not result.installed
        mock_download.assert_not_called()

    def test_network_failure_is_non_fatal(self, store):
        with patch(
            "agegate.secondary.fetch_latest_release",
            side_effect=NetworkError("rate limited"),
        ):
            result = SecondaryUpdateCoordinator(SETTINGS, store).maybe_update(
                _changed()
            )

        assert result.reason is SecondaryReason.NO_LATEST
        assert "rate limited" in result.detail

    def test_download_failure_is_non_fatal(self, store):
        with patch(
            "agegate.secondary.fetch_latest_release", return_value=RELEASE
        ), patch(
            "agegate.secondary.download_file",
            side_effect=NetworkError("download failed"),
        ), patch("agegate.secondary.run_command") as mock_run:
            result = SecondaryUpdateCoordinator(SETTINGS, store).maybe_update(
                _changed()
            )

        assert not result.installed
        mock_run.assert_not_called()
        assert store.load() is None

    def test_unparsable_tag_is_no_latest(self, store):
        release = ReleaseInfo("owner/companion", "nightly-build", False, RELEASE.assets)
        settings = dict(SETTINGS, version_pattern=r"(.+)")
        with patch("agegate.secondary.fetch_latest_release", return_value=release):
            result = SecondaryUpdateCoordinator(settings, store).maybe_update(
                _changed()
            )

        assert result.reason is SecondaryReason.NO_LATEST

    def test_no_matching_asset_is_no_latest(self, store):
        settings = dict(SETTINGS, asset_pattern=r"\.exe$")
        with patch("agegate.secondary.fetch_latest_release", return_value=RELEASE):
            result = SecondaryUpdateCoordinator(settings, store).maybe_update(
                _changed()
            )

        assert result.reason is SecondaryReason.NO_LATEST


class TestInstallerCommand:
    """Tests for installer_command."""

    def test_msi(self):
        assert installer_command(Path("C:/t/app.msi"), []) == [
            "msiexec",
            "/i",
            str(Path("C:/t/app.msi")),
            "/qn",
            "/norestart",
        ]

    def test_exe(self):
        assert installer_command(Path("setup.exe"), ["/S"]) == ["setup.exe", "/S"]
