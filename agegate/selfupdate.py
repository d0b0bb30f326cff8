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

"""Self-update of the running agent.

The agent compares its own version (``agegate.__version__``) with the latest
release of its repository. The release tag must parse strictly as X.Y.Z
(a leading prefix such as "v" is stripped); anything else skips the check.

When the release is newer, exactly one of two strategies applies it:

- **pull**: the agent runs from its own git checkout (the checkout root
    holds ``.git`` and ``origin`` is the agent repository). ``git pull
    --ff-only`` brings it forward; a diverged checkout, or a pull that does
    not move HEAD, fails and falls through to download.
- **download**: the agent runs as a single file (e.g. a ``.pyz``). The file
    at ``self_update.artifact_path`` is fetched from the raw-content endpoint
    at the release tag into a temporary directory beside the local file, and
    atomically replaces it.

Pull is tried first when applicable; download is the fallback. The current
process keeps running the code it already loaded; the new version takes
effect on the next invocation. Every failure is logged and reported, never
raised, so the rest of the run goes ahead.

State machine:
    UNKNOWN -> {UP_TO_DATE, STALE} -> {APPLIED_VIA_PULL, APPLIED_VIA_DOWNLOAD,
    APPLY_FAILED}, plus SKIPPED when the registry cannot be read.
"""

from __future__ import annotations

import os
from pathlib import Path
import shutil
import subprocess
import sys
import tempfile
from typing import Any, Protocol

from agegate.exceptions import AgeGateError, NetworkError, UpgradeError
from agegate.io import download_file
from agegate.logging import get_global_logger
from agegate.process import run_command
from agegate.registry import fetch_latest_release, parse_release_tag, raw_content_url
from agegate.results import SelfUpdateOutcome, SelfUpdateResult
from agegate.targets import ApplyResult, VersionFact
from agegate.versioning import Version, is_newer, parse_version


class SelfUpdateStrategy(Protocol):
    name: str

    def applicable(self) -> bool:
        """True if this strategy can run in the current installation."""
        ...

    def apply(self, tag: str) -> None:
        """Apply the release at tag. Raises AgeGateError on failure."""
        ...


class GitPullStrategy:
    """Fast-forward the git checkout the agent runs from.

    Applicable only when source_dir is the top level of a work tree whose
    ``origin`` remote points at the agent's own repository. A pull that
    leaves HEAD where it was counts as a failure so the next strategy runs.
    """

    name = "pull"

    def __init__(self, source_dir: Path, repo: str, git: str = "git") -> None:
        self.source_dir = source_dir
        self.repo = repo
        self.git = git

    def _git(
        self, *args: str, timeout: int = 30
    ) -> subprocess.CompletedProcess[str]:
        return run_command(
            [self.git, "-C", str(self.source_dir), *args], timeout=timeout
        )

    def _head(self) -> str:
        result = self._git("rev-parse", "HEAD")
        if result.returncode != 0:
            raise UpgradeError(f"git rev-parse HEAD failed: {result.stderr.strip()}")
        return result.stdout.strip()

    def applicable(self) -> bool:
        logger = get_global_logger()
        if not (self.source_dir / ".git").exists():
            return False
        try:
            toplevel = self._git("rev-parse", "--show-toplevel")
            origin = self._git("remote", "get-url", "origin")
        except UpgradeError:
            return False
        if toplevel.returncode != 0 or origin.returncode != 0:
            return False
        if Path(toplevel.stdout.strip()).resolve() != self.source_dir.resolve():
            return False
        if not origin_matches_repo(origin.stdout.strip(), self.repo):
            logger.verbose(
                "SELF-UPDATE",
                f"Checkout origin {origin.stdout.strip()} is not {self.repo}",
            )
            return False
        return True

    def apply(self, tag: str) -> None:
        before = self._head()
        result = self._git("pull", "--ff-only", timeout=300)
        if result.returncode != 0:
            raise UpgradeError(
                f"git pull --ff-only failed (exit code {result.returncode}): "
                f"{result.stderr.strip()}"
            )
        if self._head() == before:
            raise UpgradeError(
                f"git pull left HEAD at {before[:12]}; "
                f"{tag} is not on the tracked branch"
            )


def origin_matches_repo(url: str, repo: str) -> bool:
    """True if a git remote URL points at the "owner/name" repository.

    Accepts https and ssh forms, with or without a trailing ".git".
    """
    path = url.strip().rstrip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    path = path.replace(":", "/").lower()
    return path.endswith("/" + repo.strip("/").lower())


class DownloadReplaceStrategy:
    """Replace the single-file agent artifact with the release's copy."""

    name = "download"

    def __init__(
        self,
        repo: str,
        artifact_path: str,
        local_path: Path | None,
        timeout: int = 60,
    ) -> None:
        self.repo = repo
        self.artifact_path = artifact_path
        self.local_path = local_path
        self.timeout = timeout

    def applicable(self) -> bool:
        return (
            bool(self.artifact_path)
            and self.local_path is not None
            and self.local_path.is_file()
        )

    def apply(self, tag: str) -> None:
        if self.local_path is None:
            raise UpgradeError("No local agent artifact to replace")
        logger = get_global_logger()
        url = raw_content_url(self.repo, tag, self.artifact_path)

        # Same directory as the target so os.replace stays on one filesystem
        try:
            tmp_dir = Path(
                tempfile.mkdtemp(prefix=".agegate-update-", dir=self.local_path.parent)
            )
        except OSError as err:
            raise UpgradeError(f"Cannot stage update beside {self.local_path}: {err}") from err
        try:
            downloaded, digest, _ = download_file(
                url, tmp_dir, filename=self.local_path.name, timeout=self.timeout
            )
            if downloaded.stat().st_size == 0:
                raise NetworkError(f"Downloaded artifact from {url} is empty")
            shutil.copymode(self.local_path, downloaded)
            os.replace(downloaded, self.local_path)
            logger.verbose(
                "SELF-UPDATE", f"Replaced {self.local_path} (sha256 {digest})"
            )
        except OSError as err:
            raise UpgradeError(f"Could not replace {self.local_path}: {err}") from err
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)


def default_local_path() -> Path | None:
    """The running single-file artifact, if the agent runs from a .pyz."""
    script = Path(sys.argv[0]) if sys.argv and sys.argv[0] else None
    if script is not None and script.suffix.lower() == ".pyz" and script.is_file():
        return script.resolve()
    return None


class AgentTarget:
    """The running agent as a VersionedTarget.

    Args:
        local_version: Version of the running agent.
        repo: Agent repository in "owner/name" format.
        strategies: Apply strategies in preference order.
        token: Registry token or "${ENV_VAR}" reference.

    """

    name = "agegate"

    def __init__(
        self,
        local_version: Version,
        repo: str,
        strategies: list[SelfUpdateStrategy],
        token: str | None = None,
    ) -> None:
        self.local_version = local_version
        self.repo = repo
        self.strategies = strategies
        self.token = token
        self.remote_tag: str | None = None
        self.applied_via: str | None = None

    def query(self) -> VersionFact:
        """Fetch the latest release and parse its tag strictly.

        Raises:
            NetworkError: If the registry cannot be read.
            ValueError: If the tag is not an X.Y.Z version.

        """
        release = fetch_latest_release(self.repo, token=self.token)
        remote = parse_release_tag(release.tag)
        self.remote_tag = release.tag
        return VersionFact(installed=self.local_version, candidate=remote)

    def apply(self, version: Version) -> ApplyResult:
        logger = get_global_logger()
        tag = self.remote_tag or str(version)
        errors: list[str] = []

        for strategy in self.strategies:
            if not strategy.applicable():
                logger.debug("SELF-UPDATE", f"Strategy {strategy.name} not applicable")
                continue
            try:
                strategy.apply(tag)
            except AgeGateError as err:
                logger.warning("SELF-UPDATE", f"{strategy.name} failed: {err}")
                errors.append(f"{strategy.name}: {err}")
                continue
            self.applied_via = strategy.name
            return ApplyResult(success=True, installed_after=version)

        detail = "; ".join(errors) or "no applicable update strategy"
        return ApplyResult(
            success=False,
            installed_after=self.local_version,
            exit_code=1,
            detail=detail,
        )


class SelfUpdateCoordinator:
    """Compare the agent with its latest release and apply if newer."""

    def __init__(self, target: AgentTarget) -> None:
        self.target = target

    def maybe_self_update(self) -> SelfUpdateResult:
        logger = get_global_logger()
        local = self.target.local_version

        try:
            fact = self.target.query()
        except (AgeGateError, ValueError) as err:
            logger.warning("SELF-UPDATE", f"Skipping self-update check: {err}")
            return SelfUpdateResult(SelfUpdateOutcome.SKIPPED, local, detail=str(err))

        remote = fact.candidate
        if remote is None:
            logger.warning("SELF-UPDATE", "Latest release carries no version")
            return SelfUpdateResult(SelfUpdateOutcome.SKIPPED, local)
        if not is_newer(remote, local):
            logger.verbose("SELF-UPDATE", f"Agent {local} is up to date (latest {remote})")
            return SelfUpdateResult(SelfUpdateOutcome.UP_TO_DATE, local, remote)

        logger.verbose("SELF-UPDATE", f"Agent {local} is stale, latest is {remote}")
        result = self.target.apply(remote)
        if not result.success:
            return SelfUpdateResult(
                SelfUpdateOutcome.APPLY_FAILED, local, remote, detail=result.detail
            )

        outcome = (
            SelfUpdateOutcome.APPLIED_VIA_PULL
            if self.target.applied_via == GitPullStrategy.name
            else SelfUpdateOutcome.APPLIED_VIA_DOWNLOAD
        )
        logger.verbose(
            "SELF-UPDATE",
            f"Updated to {remote} via {self.target.applied_via}; "
            "takes effect on the next run",
        )
        return SelfUpdateResult(outcome, local, remote)


def build_self_updater(settings: dict[str, Any]) -> SelfUpdateCoordinator:
    """Create a SelfUpdateCoordinator from the ``self_update`` config section."""
    from agegate import __version__

    local_path = settings.get("local_path")
    # Checkout root: the directory holding the agegate package
    source_dir = settings.get("source_dir") or Path(__file__).resolve().parents[1]
    strategies: list[SelfUpdateStrategy] = [
        GitPullStrategy(
            Path(source_dir), settings["repo"], git=settings.get("git", "git")
        ),
        DownloadReplaceStrategy(
            settings["repo"],
            settings.get("artifact_path", ""),
            Path(local_path) if local_path else default_local_path(),
        ),
    ]
    target = AgentTarget(
        parse_version(__version__),
        settings["repo"],
        strategies,
        token=settings.get("token"),
    )
    return SelfUpdateCoordinator(target)
