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

"""Remote release registry access for AgeGate.

Public API:

- fetch_latest_release: Latest release tag and assets of a GitHub repository
- match_asset: Pick a release asset by regex
- extract_version: Pull a version string out of a tag by regex
- raw_content_url: URL of a file at a tag on the raw-content endpoint
- parse_release_tag: Strict X.Y.Z tag parsing (re-exported from versioning)

"""

from agegate.versioning import parse_release_tag

from .github import (
    ReleaseAsset,
    ReleaseInfo,
    expand_token,
    extract_version,
    fetch_latest_release,
    match_asset,
    raw_content_url,
    validate_repo,
)

__all__ = [
    "ReleaseAsset",
    "ReleaseInfo",
    "expand_token",
    "extract_version",
    "fetch_latest_release",
    "match_asset",
    "parse_release_tag",
    "raw_content_url",
    "validate_repo",
]
