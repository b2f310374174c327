# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Release helper - major/minor release workflow for git repositories."""

from ray_publish.repository import GitRepository, RepositoryPort, SshCredentials
from ray_publish.version import Version, parse_version
from ray_publish.workflow import ReleaseWorkflow, publish

__all__ = [
    "GitRepository",
    "ReleaseWorkflow",
    "RepositoryPort",
    "SshCredentials",
    "Version",
    "parse_version",
    "publish",
]
