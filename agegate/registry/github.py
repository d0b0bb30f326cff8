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

"""GitHub release registry client for AgeGate.

Two features read from GitHub releases:

- Self-update compares the agent's own version with the latest release tag
    of the agent repository, then fetches the single-file artifact from the
    raw-content endpoint at that tag.
- The secondary component takes its latest version from the release tag and
    its installer from a release asset matched by regex.

Rate Limits:

- Unauthenticated: 60 requests/hour per IP
- Authenticated: 5000 requests/hour per token
- Tip: fleets behind one NAT should configure a token, and keep
    ``jitter_seconds`` non-zero so machines do not hit the API in lockstep

Error Handling:

- ConfigError: Invalid repo format or regex patterns
- NetworkError: API failures, missing releases, missing tags or assets
- Errors are chained with 'from err' for better debugging

Example:
    Fetch the latest release of a repository:
        ```python
        from agegate.registry import fetch_latest_release, parse_release_tag

        release = fetch_latest_release("owner/agegate", token="${GITHUB_TOKEN}")
        remote = parse_release_tag(release.tag)
        ```

"""

from __future__ import annotations

from dataclasses import dataclass
import os
import re

import requests

from agegate.exceptions import ConfigError, NetworkError
from agegate.logging import get_global_logger

API_ROOT = "https://api.github.com"
RAW_ROOT = "https://raw.githubusercontent.com"


@dataclass(frozen=True)
class ReleaseAsset:
    """A downloadable file attached to a release."""

    name: str
    download_url: str


@dataclass(frozen=True)
class ReleaseInfo:
    """The parts of a GitHub release the agent uses.

    Attributes:
        repo: Repository in "owner/name" format.
        tag: Release tag name (e.g., "v1.4.0").
        prerelease: GitHub's prerelease flag.
        assets: Release assets in API order.

    """

    repo: str
    tag: str
    prerelease: bool
    assets: tuple[ReleaseAsset, ...]


def validate_repo(repo: str) -> None:
    """Raise ConfigError unless repo looks like "owner/name"."""
    if not isinstance(repo, str) or repo.count("/") != 1 or not all(repo.split("/")):
        raise ConfigError(f"Invalid repo format: {repo!r}. Expected 'owner/repository'")


def expand_token(token: str | None) -> str | None:
    """Expand a "${ENV_VAR}" token reference; plain tokens pass through."""
    if token and token.startswith("${") and token.endswith("}"):
        env_var = token[2:-1]
        value = os.environ.get(env_var)
        if not value:
            get_global_logger().verbose(
                "REGISTRY", f"Warning: Environment variable {env_var} not set"
            )
        return value or None
    return token or None


def fetch_latest_release(
    repo: str,
    *,
    token: str | None = None,
    timeout: int = 30,
) -> ReleaseInfo:
    """Fetch the latest (non-draft, non-prerelease) release of a repository.

    Args:
        repo: Repository in "owner/name" format.
        token: Personal access token, or "${ENV_VAR}" to read one from the
            environment.
        timeout: Request timeout in seconds.

    Returns:
        The release tag and assets.

    Raises:
        ConfigError: If repo is not in "owner/name" format.
        NetworkError: If the API call fails or the release has no tag.

    """
    logger = get_global_logger()
    validate_repo(repo)

    api_url = f"{API_ROOT}/repos/{repo}/releases/latest"
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }
    token = expand_token(token)
    if token:
        headers["Authorization"] = f"token {token}"
        logger.verbose("REGISTRY", "Using authenticated API request")

    logger.verbose("REGISTRY", f"Fetching release from: {api_url}")

    try:
        response = requests.get(api_url, headers=headers, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.HTTPError as err:
        if response.status_code == 404:
            raise NetworkError(
                f"Repository {repo!r} not found or has no releases"
            ) from err
        elif response.status_code == 403:
            raise NetworkError(
                f"GitHub API rate limit exceeded. Consider using a token. "
                f"Status: {response.status_code}"
            ) from err
        else:
            raise NetworkError(
                f"GitHub API request failed: {response.status_code} "
                f"{response.reason}"
            ) from err
    except requests.exceptions.RequestException as err:
        raise NetworkError(f"Failed to fetch GitHub release: {err}") from err

    try:
        release_data = response.json()
    except ValueError as err:
        raise NetworkError(f"GitHub API returned invalid JSON for {repo}") from err

    tag_name = release_data.get("tag_name", "")
    if not tag_name:
        raise NetworkError("Release has no tag_name field")

    logger.verbose("REGISTRY", f"Release tag: {tag_name}")

    assets = tuple(
        ReleaseAsset(name=a.get("name", ""), download_url=a["browser_download_url"])
        for a in release_data.get("assets", [])
        if a.get("browser_download_url")
    )

    return ReleaseInfo(
        repo=repo,
        tag=tag_name,
        prerelease=bool(release_data.get("prerelease", False)),
        assets=assets,
    )


def extract_version(tag: str, version_pattern: str = r"v?([0-9.]+)") -> str:
    """Extract a version string from a release tag with a regex.

    Uses the named group ``version`` if present, else group 1, else the
    whole match.

    Raises:
        ConfigError: If the pattern is invalid or does not match.

    """
    try:
        pattern = re.compile(version_pattern)
    except re.error as err:
        raise ConfigError(f"Invalid version_pattern regex: {version_pattern!r}") from err

    match = pattern.search(tag)
    if not match:
        raise ConfigError(
            f"Version pattern {version_pattern!r} did not match tag {tag!r}"
        )

    if "version" in pattern.groupindex:
        return match.group("version")
    elif pattern.groups > 0:
        return match.group(1)
    return match.group(0)


def match_asset(release: ReleaseInfo, asset_pattern: str) -> ReleaseAsset:
    """Return the first asset whose name matches asset_pattern.

    Raises:
        ConfigError: If the regex is invalid.
        NetworkError: If the release has no matching asset.

    """
    try:
        pattern = re.compile(asset_pattern)
    except re.error as err:
        raise ConfigError(f"Invalid asset_pattern regex: {asset_pattern!r}") from err

    for asset in release.assets:
        if pattern.search(asset.name):
            get_global_logger().verbose("REGISTRY", f"Matched asset: {asset.name}")
            return asset

    available = [a.name or "(unnamed)" for a in release.assets]
    raise NetworkError(
        f"No assets of {release.repo} {release.tag} matched pattern "
        f"{asset_pattern!r}. Available assets: {', '.join(available) or '(none)'}"
    )


def raw_content_url(repo: str, ref: str, path: str) -> str:
    """URL of a file in the repository at a given tag or branch."""
    validate_repo(repo)
    return f"{RAW_ROOT}/{repo}/{ref}/{path.lstrip('/')}"
