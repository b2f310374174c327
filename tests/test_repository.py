# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Tests for the GitPython repository adapter.

Runs GitRepository against real temporary repositories: a bare 'origin'
and a working clone with develop checked out.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from unittest.mock import patch

import pytest
from git import Git, Repo
from git.exc import GitCommandNotFound

from ray_publish.errors import CheckoutError, PullError, PushError, RefError, RepositoryError
from ray_publish.repository import (
    PASSPHRASE_ENV,
    GitRepository,
    SshCredentials,
    askpass_helper,
)
from tests.conftest import commit_file, configure_identity

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


class TestOpen:
    """Tests for GitRepository construction."""

    def test_open_existing_repository(self, work_repo: Repo) -> None:
        """GitRepository opens a working tree."""
        repository = GitRepository(work_repo.working_tree_dir)
        assert repository.repo.active_branch.name == "develop"

    def test_not_a_repository(self, tmp_path: Path) -> None:
        """A plain directory is rejected."""
        with pytest.raises(RepositoryError, match="Cannot open git repository"):
            GitRepository(str(tmp_path))

    def test_missing_path(self, tmp_path: Path) -> None:
        """A missing path is rejected."""
        with pytest.raises(RepositoryError):
            GitRepository(str(tmp_path / "missing"))


class TestCheckoutTo:
    """Tests for GitRepository.checkout_to."""

    def test_checkout_existing_branch(self, work_repo: Repo) -> None:
        """Checkout switches to an existing local branch."""
        work_repo.create_head("release/v1")
        repository = GitRepository(work_repo.working_tree_dir)

        repository.checkout_to("release/v1")

        assert work_repo.active_branch.name == "release/v1"

    def test_checkout_missing_branch(self, work_repo: Repo) -> None:
        """A branch that does not exist locally raises CheckoutError."""
        repository = GitRepository(work_repo.working_tree_dir)

        with pytest.raises(CheckoutError, match="'release/v9' does not exist"):
            repository.checkout_to("release/v9")

        assert work_repo.active_branch.name == "develop"

    def test_checkout_ignores_remote_only_branch(self, work_repo: Repo) -> None:
        """A branch present only on the remote is not checked out."""
        work_repo.git.push("origin", "develop:refs/heads/release/v3")
        work_repo.remote("origin").fetch()
        repository = GitRepository(work_repo.working_tree_dir)

        with pytest.raises(CheckoutError):
            repository.checkout_to("release/v3")

    def test_checkout_keeps_uncommitted_changes(self, work_repo: Repo) -> None:
        """Non-conflicting local changes survive the checkout."""
        work_repo.create_head("release/v1")
        scratch = Path(work_repo.working_tree_dir) / "notes.txt"
        scratch.write_text("draft\n")
        repository = GitRepository(work_repo.working_tree_dir)

        repository.checkout_to("release/v1")

        assert scratch.read_text() == "draft\n"

    def test_checkout_blocked_by_conflicting_changes(self, work_repo: Repo) -> None:
        """Local changes that would be overwritten raise CheckoutError."""
        work_repo.create_head("release/v1")
        commit_file(work_repo, "README.md", "# Changed on develop\n", "Change readme")
        (Path(work_repo.working_tree_dir) / "README.md").write_text("# Local edit\n")
        repository = GitRepository(work_repo.working_tree_dir)

        with pytest.raises(CheckoutError, match="Cannot check out 'release/v1'"):
            repository.checkout_to("release/v1")

    def test_checkout_without_git_executable(self, work_repo: Repo) -> None:
        """A missing git executable raises CheckoutError."""
        work_repo.create_head("release/v1")
        repository = GitRepository(work_repo.working_tree_dir)
        missing = GitCommandNotFound("git", OSError("not found"))

        with patch.object(Git, "checkout", create=True, side_effect=missing):
            with pytest.raises(CheckoutError, match="Cannot check out"):
                repository.checkout_to("release/v1")


class TestPull:
    """Tests for GitRepository.pull."""

    def test_pull_already_up_to_date(self, work_repo: Repo) -> None:
        """Pulling with nothing new succeeds."""
        head = work_repo.head.commit.hexsha
        GitRepository(work_repo.working_tree_dir).pull()
        assert work_repo.head.commit.hexsha == head

    def test_pull_fast_forwards(self, tmp_path: Path, work_repo: Repo, remote_repo: Repo) -> None:
        """New remote commits are fast-forwarded into the current branch."""
        other = Repo.clone_from(remote_repo.git_dir, tmp_path / "other", branch="develop")
        configure_identity(other)
        new_sha = commit_file(other, "CHANGELOG.md", "- feature\n", "Add changelog")
        other.git.push("origin", "develop")

        GitRepository(work_repo.working_tree_dir).pull()

        assert work_repo.head.commit.hexsha == new_sha

    def test_pull_diverged_branch_fails(self, tmp_path: Path, work_repo: Repo, remote_repo: Repo) -> None:
        """A non fast-forward update raises PullError."""
        other = Repo.clone_from(remote_repo.git_dir, tmp_path / "other", branch="develop")
        configure_identity(other)
        commit_file(other, "remote.txt", "remote\n", "Remote change")
        other.git.push("origin", "develop")
        commit_file(work_repo, "local.txt", "local\n", "Local change")

        with pytest.raises(PullError):
            GitRepository(work_repo.working_tree_dir).pull()

    def test_pull_unknown_remote_fails(self, work_repo: Repo) -> None:
        """Pulling from a missing remote raises PullError."""
        with pytest.raises(PullError, match="from 'upstream'"):
            GitRepository(work_repo.working_tree_dir, remote="upstream").pull()

    def test_pull_detached_head_fails(self, work_repo: Repo) -> None:
        """Pulling with a detached HEAD raises PullError."""
        work_repo.git.checkout(work_repo.head.commit.hexsha)
        with pytest.raises(PullError, match="detached"):
            GitRepository(work_repo.working_tree_dir).pull()

    def test_pull_without_git_executable(self, work_repo: Repo) -> None:
        """A missing git executable raises PullError."""
        missing = GitCommandNotFound("git", OSError("not found"))
        with patch.object(Git, "pull", create=True, side_effect=missing):
            with pytest.raises(PullError, match="Cannot pull"):
                GitRepository(work_repo.working_tree_dir).pull()


class TestRefs:
    """Tests for branch and tag creation and tag queries."""

    def test_create_branch_at_head(self, work_repo: Repo) -> None:
        """create_branch points the new branch at HEAD."""
        GitRepository(work_repo.working_tree_dir).create_branch("release/v2")
        assert work_repo.heads["release/v2"].commit == work_repo.head.commit

    def test_create_branch_overwrites(self, work_repo: Repo) -> None:
        """An existing branch is moved to HEAD."""
        work_repo.create_head("release/v2")
        new_sha = commit_file(work_repo, "later.txt", "later\n", "Later commit")

        GitRepository(work_repo.working_tree_dir).create_branch("release/v2")

        assert work_repo.heads["release/v2"].commit.hexsha == new_sha

    def test_create_branch_blocked_by_existing_ref(self, work_repo: Repo) -> None:
        """A branch whose name collides with an existing ref raises RefError."""
        work_repo.create_head("release")
        with pytest.raises(RefError, match="'release/v2'"):
            GitRepository(work_repo.working_tree_dir).create_branch("release/v2")

    def test_create_tag_at_head(self, work_repo: Repo) -> None:
        """create_tag tags the HEAD commit."""
        GitRepository(work_repo.working_tree_dir).create_tag("v2.0")
        assert work_repo.tags["v2.0"].commit == work_repo.head.commit

    def test_create_existing_tag_fails(self, work_repo: Repo) -> None:
        """Tags are never overwritten."""
        work_repo.create_tag("v2.0")
        with pytest.raises(RefError, match="'v2.0'"):
            GitRepository(work_repo.working_tree_dir).create_tag("v2.0")

    def test_tag_exists(self, work_repo: Repo) -> None:
        """tag_exists reflects local tags."""
        repository = GitRepository(work_repo.working_tree_dir)
        assert repository.tag_exists("v1.0") is False

        work_repo.create_tag("v1.0")

        assert repository.tag_exists("v1.0") is True

    def test_list_tag_names(self, work_repo: Repo) -> None:
        """list_tag_names returns short tag names."""
        for name in ("v1.0", "v1.1", "nightly"):
            work_repo.create_tag(name)

        names = GitRepository(work_repo.working_tree_dir).list_tag_names()

        assert sorted(names) == ["nightly", "v1.0", "v1.1"]

    def test_list_tag_names_empty(self, work_repo: Repo) -> None:
        """A repository without tags lists nothing."""
        assert GitRepository(work_repo.working_tree_dir).list_tag_names() == []


class TestPush:
    """Tests for GitRepository.push_branches_and_tags."""

    def test_push_branches_and_tags(self, work_repo: Repo, remote_repo: Repo) -> None:
        """All local branches and tags reach the remote."""
        work_repo.create_head("release/v1")
        work_repo.create_tag("v1.0")

        GitRepository(work_repo.working_tree_dir).push_branches_and_tags()

        assert "release/v1" in [head.name for head in remote_repo.heads]
        assert "v1.0" in [tag.name for tag in remote_repo.tags]

    def test_push_overwrites_remote_branch(self, tmp_path: Path, work_repo: Repo, remote_repo: Repo) -> None:
        """Local branches replace diverged remote branches."""
        other = Repo.clone_from(remote_repo.git_dir, tmp_path / "other", branch="develop")
        configure_identity(other)
        commit_file(other, "remote.txt", "remote\n", "Remote change")
        other.git.push("origin", "develop")
        local_sha = commit_file(work_repo, "local.txt", "local\n", "Local change")

        GitRepository(work_repo.working_tree_dir).push_branches_and_tags()

        assert remote_repo.heads["develop"].commit.hexsha == local_sha

    def test_push_up_to_date(self, work_repo: Repo) -> None:
        """Pushing twice is not an error."""
        repository = GitRepository(work_repo.working_tree_dir)
        repository.push_branches_and_tags()
        repository.push_branches_and_tags()

    def test_push_unknown_remote_fails(self, work_repo: Repo) -> None:
        """Pushing to a missing remote raises PushError."""
        with pytest.raises(PushError, match="'upstream'"):
            GitRepository(work_repo.working_tree_dir, remote="upstream").push_branches_and_tags()

    def test_push_without_git_executable(self, work_repo: Repo) -> None:
        """A missing git executable raises PushError."""
        missing = GitCommandNotFound("git", OSError("not found"))
        with patch.object(Git, "push", create=True, side_effect=missing):
            with pytest.raises(PushError, match="Cannot push"):
                GitRepository(work_repo.working_tree_dir).push_branches_and_tags()


class TestCredentials:
    """Tests for SSH credential handling."""

    def test_ssh_command_selects_key(self) -> None:
        """The ssh command uses only the configured key."""
        command = SshCredentials(key_file="/home/ops/.ssh/deploy key").ssh_command()

        assert command.startswith("ssh -i '/home/ops/.ssh/deploy key'")
        assert "IdentitiesOnly=yes" in command

    def test_network_environment_without_credentials(self, work_repo: Repo) -> None:
        """Without credentials git runs with the inherited environment."""
        repository = GitRepository(work_repo.working_tree_dir)
        with repository._network_environment():
            assert "GIT_SSH_COMMAND" not in repository.repo.git.environment()

    def test_network_environment_with_key(self, work_repo: Repo) -> None:
        """The key is passed to git through GIT_SSH_COMMAND for the duration."""
        credentials = SshCredentials(key_file="/keys/id_rsa")
        repository = GitRepository(work_repo.working_tree_dir, credentials=credentials)

        with repository._network_environment():
            env = repository.repo.git.environment()
            assert env["GIT_SSH_COMMAND"] == credentials.ssh_command()
            assert "SSH_ASKPASS" not in env

        assert "GIT_SSH_COMMAND" not in repository.repo.git.environment()

    def test_network_environment_with_passphrase(self, work_repo: Repo) -> None:
        """A passphrase installs the askpass helper."""
        credentials = SshCredentials(key_file="/keys/id_rsa", passphrase="s3cret")
        repository = GitRepository(work_repo.working_tree_dir, credentials=credentials)

        with repository._network_environment():
            env = repository.repo.git.environment()
            assert env[PASSPHRASE_ENV] == "s3cret"
            assert env["SSH_ASKPASS_REQUIRE"] == "force"
            helper = env["SSH_ASKPASS"]
            assert os.path.exists(helper)

        assert not os.path.exists(helper)

    def test_askpass_helper_script(self) -> None:
        """The helper is executable and does not contain the passphrase."""
        with askpass_helper("s3cret") as env:
            path = env["SSH_ASKPASS"]
            assert os.access(path, os.X_OK)
            with open(path) as f:
                script = f.read()
            assert "s3cret" not in script
            assert PASSPHRASE_ENV in script

        assert not os.path.exists(path)
