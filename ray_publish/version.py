# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Version token parsing and rendering.

A version token is a major number and an optional minor number, with an
optional leading 'v' (e.g. '2', 'v2', '2.0', 'v2.1'). Tokens are normalized
to the canonical form 'v<major>.<minor>', so the original spelling is not
preserved: '2' and 'v2.0' are the same version.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ray_publish.errors import ParseError

logger = logging.getLogger(__name__)

# Optional 'v', ASCII digits, optionally a '.' and more ASCII digits
VERSION_PATTERN = re.compile(r"v?([0-9]+)(?:\.([0-9]+))?")

# Components must fit a signed 64-bit machine integer
MAX_COMPONENT = 2**63 - 1


@dataclass(frozen=True, order=True)
class Version:
    """A parsed release version.

    Ordering compares major first, then minor, both numerically.
    """

    major: int
    minor: int = 0

    def __str__(self) -> str:
        """Return the canonical form (e.g., 'v2.1')."""
        return render_version(self)

    def next_major(self) -> Version:
        """Return the first version of the following major release.

        Examples:
            >>> Version(2, 3).next_major()
            Version(major=3, minor=0)
        """
        return Version(major=self.major + 1, minor=0)

    def next_minor(self) -> Version:
        """Return the following minor release of the same major version.

        Examples:
            >>> Version(2, 3).next_minor()
            Version(major=2, minor=4)
        """
        return Version(major=self.major, minor=self.minor + 1)


ZERO_VERSION = Version(major=0, minor=0)


def _to_component(raw: str, digits: str, name: str) -> int:
    # int() refuses very long digit strings, so check the length first
    significant = digits.lstrip("0") or "0"
    if len(significant) > len(str(MAX_COMPONENT)):
        raise ParseError(raw, f"{name} component exceeds {MAX_COMPONENT}")
    value = int(significant)
    if value > MAX_COMPONENT:
        raise ParseError(raw, f"{name} component exceeds {MAX_COMPONENT}")
    return value


def parse_version(raw: str) -> Version:
    """Parse a raw version token.

    Args:
        raw: The token to parse (e.g., '2', 'v2', '2.0', 'v2.1').

    Returns:
        The parsed Version. A missing minor component defaults to 0.

    Raises:
        ParseError: If the token is empty, non-numeric, has more than one
            separator, or a component does not fit a machine integer.

    Examples:
        >>> parse_version("v2.1")
        Version(major=2, minor=1)
        >>> parse_version("2") == parse_version("v2.0")
        True
    """
    if not raw:
        raise ParseError(raw, "empty version")

    match = VERSION_PATTERN.fullmatch(raw)
    if not match:
        raise ParseError(raw, "expected formats are 2, v2, 2.0, v2.0, 2.1 or v2.1")

    major = _to_component(raw, match.group(1), "major")
    minor = 0
    if match.group(2) is not None:
        minor = _to_component(raw, match.group(2), "minor")

    version = Version(major=major, minor=minor)
    logger.debug("Parsed '%s' as %s", raw, version)
    return version


def render_version(version: Version) -> str:
    """Render a version in canonical form.

    Examples:
        >>> render_version(Version(2, 0))
        'v2.0'
    """
    return f"v{version.major}.{version.minor}"
