# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Error taxonomy for the release workflow.

Repository errors are raised by the repository adapter and wrapped by the
workflow in a WorkflowError naming the step that produced them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ray_publish.policy import ReleaseKind
    from ray_publish.version import Version
    from ray_publish.workflow import Step


class ReleaseError(Exception):
    """Base class for every error raised by ray_publish."""


class ParseError(ReleaseError, ValueError):
    """A raw version token does not match the accepted grammar."""

    def __init__(self, raw: str, reason: str = "") -> None:
        self.raw = raw
        self.reason = reason
        message = f"Invalid version '{raw}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RepositoryError(ReleaseError):
    """A version-control primitive failed."""


class CheckoutError(RepositoryError):
    """The target branch is missing or the working tree blocks checkout."""


class PullError(RepositoryError):
    """Fast-forward update from the remote failed."""


class RefError(RepositoryError):
    """Branch or tag creation failed."""


class PushError(RepositoryError):
    """Pushing branches and tags to the remote failed."""


class QueryError(RepositoryError):
    """Listing tags or checking tag existence failed."""


class DuplicateTagError(ReleaseError):
    """The tag for the requested version has already been published."""

    def __init__(self, tag_name: str) -> None:
        self.tag_name = tag_name
        super().__init__(f"Tag '{tag_name}' already exists")


class WorkflowError(ReleaseError):
    """A release workflow halted on a failing step.

    Attributes:
        step: The step that failed.
        version: The version being published.
        kind: Major or minor release.
        cause: The original error, also available as ``__cause__``.
        completed_steps: Steps that succeeded before the failure, in order.
    """

    def __init__(
        self,
        step: Step,
        version: Version,
        kind: ReleaseKind,
        cause: BaseException,
        completed_steps: tuple[Step, ...] = (),
    ) -> None:
        self.step = step
        self.version = version
        self.kind = kind
        self.cause = cause
        self.completed_steps = completed_steps
        super().__init__(f"Publishing {kind.value} release {version} failed at step '{step.value}': {cause}")
