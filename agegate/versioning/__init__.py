"""
Version parsing and comparison utilities for AgeGate.

This package provides the single version model used across the agent: the
package source reports installed and candidate versions, the release
registry reports tags, and the state files persist versions as strings.

Modules
-------
keys : module
    Version type, strict parsing, and ordering.

Public API
----------
Version : dataclass
    3- or 4-component ordinal version with zero-padded ordering.
parse_version : function
    Parse "1.2.3" / "v1.2.3.4" or raise ValueError.
try_parse_version : function
    Same as parse_version but returns None on bad input.
parse_release_tag : function
    Strict X.Y.Z parsing of a release tag with prefix stripping.
compare_versions : function
    Compare two versions, returning -1, 0, or 1.
is_newer : function
    Check if a remote version is newer than the current version.

Examples
--------
    >>> from agegate.versioning import parse_version, compare_versions
    >>> compare_versions(parse_version("1.2.0"), parse_version("1.1.9"))
    1
    >>> parse_version("1.2.0") == parse_version("1.2.0.0")
    True
"""

from .keys import (
    Version,
    compare_versions,
    is_newer,
    parse_release_tag,
    parse_version,
    try_parse_version,
)

__all__ = [
    "Version",
    "compare_versions",
    "is_newer",
    "parse_release_tag",
    "parse_version",
    "try_parse_version",
]
