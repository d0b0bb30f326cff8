"""
Tests for agegate.sources module.

Tests the package source registry and the winget source including:
- Registry lookups and unknown names
- Parsing of ``winget list`` and ``winget show`` output
- Command lines and exit code handling (subprocess patched)
"""

from __future__ import annotations

import subprocess
from unittest.mock import patch

import pytest

from agegate.exceptions import ConfigError, UpgradeError
from agegate.sources import available_sources, get_source
from agegate.sources.winget import (
    NO_APPLICATIONS_FOUND,
    WingetSource,
    parse_list_output,
    parse_show_output,
)
from agegate.versioning import parse_version

LIST_OUTPUT = (
    "Name      Id                  Version Available Source\n"
    "------------------------------------------------------\n"
    "Tailscale Tailscale.Tailscale 1.70.0  1.72.1    winget\n"
)

SHOW_OUTPUT = (
    "Found Tailscale [Tailscale.Tailscale]\n"
    "Version: 1.72.1\n"
    "Publisher: Tailscale Inc.\n"
    "Installer:\n"
    "  Installer Type: wix\n"
)


def _completed(returncode: int = 0, stdout: str = "", stderr: str = ""):
    return subprocess.CompletedProcess(
        args=[], returncode=returncode, stdout=stdout, stderr=stderr
    )


class TestRegistry:
    """Tests for the source registry."""

    def test_winget_registered(self):
        assert "winget" in available_sources()

    def test_get_source_passes_options(self):
        source = get_source("winget", executable="C:/winget.exe", timeout=60)
        assert isinstance(source, WingetSource)
        assert source.executable == "C:/winget.exe"
        assert source.timeout == 60

    def test_unknown_source_raises(self):
        with pytest.raises(ConfigError, match="Unknown package source"):
            get_source("nonexistent")


class TestParseListOutput:
    """Tests for parse_list_output."""

    def test_installed_version(self):
        assert parse_list_output(LIST_OUTPUT, "Tailscale.Tailscale") == parse_version(
            "1.70.0"
        )

    def test_case_insensitive_id(self):
        assert parse_list_output(LIST_OUTPUT, "tailscale.tailscale") == parse_version(
            "1.70.0"
        )

    def test_name_equal_to_id(self):
        """When Name equals Id, the version after the Id column is used."""
        out = "Name Id Version\n-----\nFoo.Bar Foo.Bar 2.0.0.1\n"
        assert parse_list_output(out, "Foo.Bar") == parse_version("2.0.0.1")

    def test_approximate_version_marker(self):
        out = "Name Id Version\n-----\nApp Vendor.App < 3.1.0\n"
        assert parse_list_output(out, "Vendor.App") == parse_version("3.1.0")

    def test_progress_fragments_ignored(self):
        out = "   \r  -\r  \\\rName Id Version\n---\nApp Vendor.App 1.2.3\n"
        assert parse_list_output(out, "Vendor.App") == parse_version("1.2.3")

    def test_missing_row(self):
        assert parse_list_output(LIST_OUTPUT, "Other.App") is None

    def test_unparsable_version(self):
        out = "Name Id Version\n---\nApp Vendor.App Unknown\n"
        assert parse_list_output(out, "Vendor.App") is None


class TestParseShowOutput:
    """Tests for parse_show_output."""

    def test_version_line(self):
        assert parse_show_output(SHOW_OUTPUT) == parse_version("1.72.1")

    def test_no_version_line(self):
        assert parse_show_output("No package found matching input criteria.") is None


class TestWingetSource:
    """Tests for WingetSource with run_command patched."""

    def test_query_installed(self):
        with patch(
            "agegate.sources.winget.run_command", return_value=_completed(0, LIST_OUTPUT)
        ) as mock_run:
            installed = WingetSource().query_installed("Tailscale.Tailscale")

        assert installed == parse_version("1.70.0")
        cmd = mock_run.call_args.args[0]
        assert cmd[:5] == ["winget", "list", "--id", "Tailscale.Tailscale", "--exact"]

    @pytest.mark.parametrize(
        "code", [NO_APPLICATIONS_FOUND, NO_APPLICATIONS_FOUND - 0x100000000]
    )
    def test_not_installed(self, code):
        """The no-applications code reads as "not installed", signed or not."""
        with patch(
            "agegate.sources.winget.run_command", return_value=_completed(code)
        ):
            assert WingetSource().query_installed("Vendor.App") is None

    def test_list_failure_raises(self):
        with patch(
            "agegate.sources.winget.run_command", return_value=_completed(1, "boom")
        ):
            with pytest.raises(UpgradeError, match="winget list failed"):
                WingetSource().query_installed("Vendor.App")

    def test_query_candidate(self):
        with patch(
            "agegate.sources.winget.run_command", return_value=_completed(0, SHOW_OUTPUT)
        ):
            assert WingetSource().query_candidate("Tailscale.Tailscale") == (
                parse_version("1.72.1")
            )

    def test_show_failure_returns_none(self):
        with patch(
            "agegate.sources.winget.run_command", return_value=_completed(5)
        ):
            assert WingetSource().query_candidate("Vendor.App") is None

    def test_upgrade_pins_version(self):
        with patch(
            "agegate.sources.winget.run_command", return_value=_completed(0)
        ) as mock_run:
            code = WingetSource(timeout=900).upgrade(
                "Vendor.App", parse_version("1.2.3")
            )

        assert code == 0
        cmd = mock_run.call_args.args[0]
        assert cmd[:5] == ["winget", "upgrade", "--id", "Vendor.App", "--exact"]
        assert cmd[cmd.index("--version") + 1] == "1.2.3"
        assert "--silent" in cmd
        assert "--accept-package-agreements" in cmd
        assert mock_run.call_args.kwargs["timeout"] == 900

    def test_upgrade_returns_exit_code(self):
        with patch(
            "agegate.sources.winget.run_command", return_value=_completed(1603)
        ):
            assert WingetSource().upgrade("Vendor.App", parse_version("1.2.3")) == 1603

    def test_missing_executable_raises(self):
        """run_command turns a missing executable into UpgradeError."""
        with patch(
            "agegate.process.subprocess.run", side_effect=FileNotFoundError("winget")
        ):
            with pytest.raises(UpgradeError):
                WingetSource().query_installed("Vendor.App")
