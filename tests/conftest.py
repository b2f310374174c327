"""Shared pytest fixtures for the test suite."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from git import Repo

from ray_publish.repository import RepositoryPort


def call_names(mock_repository: MagicMock) -> list[str]:
    """Return the names of the repository methods called, in call order."""
    return [name for name, _, _ in mock_repository.mock_calls]


def configure_identity(repo: Repo) -> None:
    """Set a committer identity so commits work without a global git config."""
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")


def commit_file(repo: Repo, name: str, content: str, message: str) -> str:
    """Write a file, commit it and return the new commit SHA."""
    path = Path(repo.working_tree_dir) / name
    path.write_text(content)
    repo.index.add([name])
    return repo.index.commit(message).hexsha


@pytest.fixture
def mock_repository() -> MagicMock:
    """Create a mock RepositoryPort with no tags."""
    repository = MagicMock(spec=RepositoryPort)
    repository.tag_exists.return_value = False
    repository.list_tag_names.return_value = []
    return repository


@pytest.fixture
def remote_repo(tmp_path: Path) -> Repo:
    """Create an empty bare repository acting as 'origin'."""
    return Repo.init(tmp_path / "remote.git", bare=True)


@pytest.fixture
def work_repo(tmp_path: Path, remote_repo: Repo) -> Repo:
    """Create a clone-like working repository with 'develop' pushed to origin.

    develop holds a single commit and is the checked-out branch.
    """
    repo = Repo.init(tmp_path / "work")
    configure_identity(repo)
    commit_file(repo, "README.md", "# Service\n", "Initial commit")
    repo.git.checkout("-b", "develop")
    repo.create_remote("origin", remote_repo.git_dir)
    repo.git.push("origin", "develop")
    return repo


@pytest.fixture
def sample_tags() -> list[str]:
    """Tag names as found in a long-lived repository."""
    return [
        "v1.0",
        "v1.1",
        "v2.0",
        "v9.0",
        "v10.0",
        "v10.2",
        "nightly",
        "v1.2.3",
        "release-candidate",
    ]
