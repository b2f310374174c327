# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Release policy: major/minor classification and derived ref names.

Every major version has one long-lived release branch (release/vX). A major
release cuts that branch from develop; minor releases are tagged on it.
"""

from __future__ import annotations

from enum import Enum

from ray_publish.version import Version, render_version

DEVELOP_BRANCH = "develop"
RELEASE_BRANCH_PREFIX = "release/v"


class ReleaseKind(Enum):
    """Which operation sequence a version is published with."""

    MAJOR = "major"
    MINOR = "minor"


def classify(version: Version) -> ReleaseKind:
    """Classify a version as a major or minor release.

    Examples:
        >>> classify(Version(3, 0))
        <ReleaseKind.MAJOR: 'major'>
        >>> classify(Version(3, 1))
        <ReleaseKind.MINOR: 'minor'>
    """
    if version.minor == 0:
        return ReleaseKind.MAJOR
    return ReleaseKind.MINOR


def release_branch_name(version: Version) -> str:
    """Return the release branch for a version; the minor component is ignored.

    Examples:
        >>> release_branch_name(Version(5, 7))
        'release/v5'
    """
    return f"{RELEASE_BRANCH_PREFIX}{version.major}"


def tag_name(version: Version) -> str:
    """Return the tag name for a version (e.g., 'v5.7')."""
    return render_version(version)
