# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Latest version discovery from existing tags.

Tag names are run through the version parser; names that do not parse are
skipped rather than rejected, so malformed tags never influence the result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ray_publish.errors import ParseError
from ray_publish.version import ZERO_VERSION, Version, parse_version

logger = logging.getLogger(__name__)


def parse_tag_versions(tag_names: Iterable[str]) -> list[Version]:
    """Parse every tag name that is a valid version token.

    Args:
        tag_names: Tag names as listed by the repository.

    Returns:
        Parsed versions in input order. Unparseable names are left out.
    """
    versions = []
    for name in tag_names:
        try:
            versions.append(parse_version(name))
        except ParseError:
            logger.debug("Skipping tag '%s': not a version tag", name)
    return versions


def resolve_latest_version(tag_names: Iterable[str]) -> Version:
    """Return the highest version among the given tag names.

    Versions compare numerically, so 'v10.0' is newer than 'v9.0'.

    Args:
        tag_names: Tag names as listed by the repository.

    Returns:
        The highest parsed version, or v0.0 if no tag parses.

    Examples:
        >>> resolve_latest_version(["v9.0", "v10.0"])
        Version(major=10, minor=0)
        >>> resolve_latest_version(["nightly"])
        Version(major=0, minor=0)
    """
    versions = parse_tag_versions(tag_names)
    if not versions:
        logger.debug("No version tags found, starting from %s", ZERO_VERSION)
        return ZERO_VERSION

    latest = max(versions)
    logger.debug("Latest version from %d tag(s): %s", len(versions), latest)
    return latest


def suggest_next_versions(latest: Version) -> tuple[Version, Version]:
    """Return the (next major, next minor) candidates after ``latest``.

    Examples:
        >>> suggest_next_versions(Version(2, 1))
        (Version(major=3, minor=0), Version(major=2, minor=2))
    """
    return latest.next_major(), latest.next_minor()
