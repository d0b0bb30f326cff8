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

"""Core version parsing and comparison utilities for AgeGate.

This module is format-agnostic: it does NOT query package managers or the
network. It only parses and compares version strings consistently across
the package source, the release registry, and the state files.

Versions are plain ordinal tuples of 3 or 4 integers. There are no
prerelease or build-metadata semantics; "1.2.0-rc1" is not a version.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering
import re

_NUM_SEP = re.compile(r"[.]")
_LEADING_NON_NUMERIC = re.compile(r"^[^0-9]*")


def _ints_from_text(text: str) -> tuple[int, ...]:
    """Parse dotted numeric components only.
    Raises ValueError if any non-numeric token is encountered to avoid
    silently mapping "1.2a" -> (1,2,0).
    """
    parts = _NUM_SEP.split(text)
    nums: list[int] = []
    for p in parts:
        if not p.isdigit():
            raise ValueError(f"non-numeric version component {p!r} in {text!r}")
        nums.append(int(p))
    return tuple(nums)


def _pad_equal(
    a: tuple[int, ...], b: tuple[int, ...]
) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Pad tuples with zeros so they align for element-wise comparison."""
    n = max(len(a), len(b))
    return a + (0,) * (n - len(a)), b + (0,) * (n - len(b))


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """A 3- or 4-component ordinal version.

    Comparison is component-wise after zero padding, so ``1.2.0`` equals
    ``1.2.0.0``. The hash agrees with equality by ignoring trailing zeros.

    Attributes:
        parts: Integer components, 3 or 4 of them.

    """

    parts: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.parts) not in (3, 4):
            raise ValueError(
                f"version must have 3 or 4 components, got {len(self.parts)}"
            )
        if any(p < 0 for p in self.parts):
            raise ValueError(f"negative version component in {self.parts!r}")

    def __str__(self) -> str:
        return ".".join(str(p) for p in self.parts)

    def __repr__(self) -> str:
        return f"Version('{self}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        a, b = _pad_equal(self.parts, other.parts)
        return a == b

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        a, b = _pad_equal(self.parts, other.parts)
        return a < b

    def __hash__(self) -> int:
        trimmed = list(self.parts)
        while trimmed and trimmed[-1] == 0:
            trimmed.pop()
        return hash(tuple(trimmed))


def parse_version(text: str) -> Version:
    """Parse a dotted version string into a Version.

    Accepts an optional leading "v" and surrounding whitespace.

    Args:
        text: Version string such as "1.2.3" or "v10.0.19041.1".

    Returns:
        The parsed version.

    Raises:
        ValueError: If the string is not 3 or 4 numeric dotted components.

    Example:
        Parse a four-part version:
            ```python
            parse_version("v1.2.3.4")  # Version('1.2.3.4')
            ```

    """
    s = text.strip()
    if s[:1] in ("v", "V"):
        s = s[1:]
    if not s:
        raise ValueError(f"empty version string {text!r}")
    return Version(_ints_from_text(s))


def try_parse_version(text: str | None) -> Version | None:
    """Parse a version string, returning None instead of raising."""
    if text is None:
        return None
    try:
        return parse_version(text)
    except ValueError:
        return None


def parse_release_tag(tag: str) -> Version:
    """Parse a release tag strictly as an X.Y.Z version.

    Any leading non-numeric prefix ("v", "release-", "agegate-v") is
    stripped. The remainder must be exactly three numeric components.

    Args:
        tag: Release tag name from the registry.

    Returns:
        The parsed three-component version.

    Raises:
        ValueError: If the tag has any other shape.

    """
    core = _LEADING_NON_NUMERIC.sub("", tag.strip())
    nums = _ints_from_text(core) if core else ()
    if len(nums) != 3:
        raise ValueError(f"release tag {tag!r} is not an X.Y.Z version")
    return Version(nums)


def compare_versions(a: Version, b: Version) -> int:
    """Compare two versions.
    Returns -1 if a < b, 0 if equal, 1 if a > b.
    """
    return (a > b) - (a < b)


def is_newer(remote: Version, current: Version | None) -> bool:
    """Decide if 'remote' should be considered newer than 'current'.
    A missing current version is never upgraded over; returns False.
    """
    if current is None:
        return False
    return remote > current
