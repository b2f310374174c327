# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Repository access for the release workflow.

RepositoryPort is the set of version-control primitives the workflow depends
on. GitRepository implements it on a local clone with GitPython, pulling from
and pushing to a single remote over SSH.

References:
    - GitPython Documentation: https://gitpython.readthedocs.io/
    - git-push refspecs: https://git-scm.com/docs/git-push#_description
    - ssh_config(5) SSH_ASKPASS: https://man.openbsd.org/ssh#SSH_ASKPASS
"""

from __future__ import annotations

import logging
import os
import shlex
import stat
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass

from git import CommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from ray_publish.errors import (
    CheckoutError,
    PullError,
    PushError,
    QueryError,
    RefError,
    RepositoryError,
)

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"

# Local branches overwrite their remote counterparts; tags are pushed as-is
PUSH_REFSPECS = ("+refs/heads/*:refs/heads/*", "refs/tags/*:refs/tags/*")

PASSPHRASE_ENV = "RAY_PUBLISH_SSH_PASSPHRASE"

ASKPASS_SCRIPT = f"""#!/bin/sh
printf '%s\\n' "${PASSPHRASE_ENV}"
"""


class RepositoryPort(ABC):
    """Version-control primitives used by the release workflow.

    Every method blocks until the operation completes. Failures raise the
    matching RepositoryError subclass.
    """

    @abstractmethod
    def checkout_to(self, branch_name: str) -> None:
        """Switch the working tree to an existing local branch.

        Raises:
            CheckoutError: If the branch does not exist or checkout is blocked.
        """
        ...

    @abstractmethod
    def pull(self) -> None:
        """Fast-forward the current branch from the remote.

        Being already up to date is not an error.

        Raises:
            PullError: If the update fails.
        """
        ...

    @abstractmethod
    def create_branch(self, branch_name: str) -> None:
        """Create a branch at HEAD, overwriting an existing one.

        Raises:
            RefError: If the branch cannot be written.
        """
        ...

    @abstractmethod
    def create_tag(self, tag_name: str) -> None:
        """Create a tag at HEAD.

        Raises:
            RefError: If the tag cannot be written.
        """
        ...

    @abstractmethod
    def tag_exists(self, tag_name: str) -> bool:
        """Return True if the tag exists locally.

        Raises:
            QueryError: If tags cannot be read.
        """
        ...

    @abstractmethod
    def list_tag_names(self) -> list[str]:
        """Return the short names of all local tags.

        Raises:
            QueryError: If tags cannot be read.
        """
        ...

    @abstractmethod
    def push_branches_and_tags(self) -> None:
        """Push all local branches and tags to the remote.

        Being already up to date is not an error.

        Raises:
            PushError: If the push fails.
        """
        ...


@dataclass(frozen=True)
class SshCredentials:
    """SSH key used for pull and push.

    Attributes:
        key_file: Path to the private key.
        passphrase: Passphrase of the private key, empty if unencrypted.
    """

    key_file: str
    passphrase: str = ""

    def ssh_command(self) -> str:
        """Return the GIT_SSH_COMMAND value selecting this key."""
        return " ".join(
            [
                "ssh",
                "-i",
                shlex.quote(self.key_file),
                "-o",
                "IdentitiesOnly=yes",
                "-o",
                "StrictHostKeyChecking=no",
            ]
        )


@contextmanager
def askpass_helper(passphrase: str) -> Iterator[dict[str, str]]:
    """Provide environment variables that answer ssh's passphrase prompt.

    Writes a temporary helper script that echoes the passphrase from the
    environment; the passphrase itself is never written to disk. The script
    is removed on exit.

    Args:
        passphrase: The private key passphrase.

    Yields:
        Environment variables to pass to git.
    """
    fd, path = tempfile.mkstemp(prefix="ray-publish-askpass-", suffix=".sh")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(ASKPASS_SCRIPT)
        os.chmod(path, stat.S_IRWXU)
        yield {
            "SSH_ASKPASS": path,
            "SSH_ASKPASS_REQUIRE": "force",
            "DISPLAY": os.environ.get("DISPLAY", ":0"),
            PASSPHRASE_ENV: passphrase,
        }
    finally:
        os.unlink(path)


class GitRepository(RepositoryPort):
    """RepositoryPort backed by a local clone via GitPython.

    Network operations run with the configured SSH credentials. Without
    credentials, the user's own git and ssh configuration applies.
    """

    def __init__(
        self,
        path: str,
        credentials: SshCredentials | None = None,
        remote: str = DEFAULT_REMOTE,
    ) -> None:
        """Open the repository at ``path``.

        Args:
            path: Path to the working tree.
            credentials: Optional SSH key for pull and push.
            remote: Name of the remote to pull from and push to.

        Raises:
            RepositoryError: If ``path`` is not a git repository.
        """
        try:
            self._repo = Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryError(f"Cannot open git repository at '{path}'") from e
        self._credentials = credentials
        self._remote = remote

    @property
    def repo(self) -> Repo:
        """The underlying GitPython repository."""
        return self._repo

    @contextmanager
    def _network_environment(self) -> Iterator[None]:
        if self._credentials is None:
            yield
            return

        env = {"GIT_SSH_COMMAND": self._credentials.ssh_command()}
        with ExitStack() as stack:
            if self._credentials.passphrase:
                env.update(stack.enter_context(askpass_helper(self._credentials.passphrase)))
            stack.enter_context(self._repo.git.custom_environment(**env))
            yield

    def checkout_to(self, branch_name: str) -> None:
        local_branches = {head.name for head in self._repo.heads}
        if branch_name not in local_branches:
            raise CheckoutError(f"Branch '{branch_name}' does not exist")

        logger.debug("git checkout %s", branch_name)
        try:
            self._repo.git.checkout(branch_name)
        except CommandError as e:
            raise CheckoutError(f"Cannot check out '{branch_name}': {e.stderr.strip()}") from e

    def pull(self) -> None:
        try:
            branch = self._repo.active_branch.name
        except TypeError as e:
            raise PullError("HEAD is detached, nothing to pull into") from e

        logger.debug("git pull --ff-only %s %s", self._remote, branch)
        try:
            with self._network_environment():
                output = self._repo.git.pull("--ff-only", self._remote, branch)
        except CommandError as e:
            raise PullError(f"Cannot pull '{branch}' from '{self._remote}': {e.stderr.strip()}") from e

        if output:
            logger.debug("%s", output)

    def create_branch(self, branch_name: str) -> None:
        logger.debug("git branch -f %s HEAD", branch_name)
        try:
            self._repo.create_head(branch_name, "HEAD", force=True)
        except (CommandError, OSError, ValueError) as e:
            raise RefError(f"Cannot create branch '{branch_name}': {e}") from e

    def create_tag(self, tag_name: str) -> None:
        logger.debug("git tag %s", tag_name)
        try:
            self._repo.create_tag(tag_name)
        except (CommandError, OSError, ValueError) as e:
            raise RefError(f"Cannot create tag '{tag_name}': {e}") from e

    def tag_exists(self, tag_name: str) -> bool:
        return tag_name in self.list_tag_names()

    def list_tag_names(self) -> list[str]:
        try:
            return [tag.name for tag in self._repo.tags]
        except (CommandError, OSError) as e:
            raise QueryError(f"Cannot list tags: {e}") from e

    def push_branches_and_tags(self) -> None:
        logger.debug("git push %s %s", self._remote, " ".join(PUSH_REFSPECS))
        try:
            with self._network_environment():
                _, stdout, stderr = self._repo.git.push(
                    self._remote,
                    *PUSH_REFSPECS,
                    with_extended_output=True,
                )
        except CommandError as e:
            logger.error("Push to remote '%s' failed: %s", self._remote, e.stderr.strip())
            raise PushError(f"Cannot push to '{self._remote}': {e.stderr.strip()}") from e

        for line in (stdout + "\n" + stderr).splitlines():
            if line.strip():
                logger.info("%s", line)
