# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Release workflow state machine.

A major release (vX.0) checks out develop, fast-forwards it, cuts the
release/vX branch, tags vX.0 and pushes. A minor release (vX.Y) checks out
the existing release/vX branch, fast-forwards it, tags vX.Y and pushes.

Steps run in strict order and the first failure halts the workflow. Nothing
is rolled back: the repository keeps whatever the completed steps produced,
which WorkflowError reports through ``completed_steps``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ray_publish.errors import DuplicateTagError, ReleaseError, WorkflowError
from ray_publish.policy import (
    DEVELOP_BRANCH,
    ReleaseKind,
    classify,
    release_branch_name,
    tag_name,
)
from ray_publish.repository import RepositoryPort
from ray_publish.version import Version, parse_version

logger = logging.getLogger(__name__)


class WorkflowState(Enum):
    """States of a single workflow run."""

    IDLE = "idle"
    CHECKED_OUT = "checked-out"
    UPDATED = "updated"
    BRANCH_ENSURED = "branch-ensured"
    TAG_CHECKED = "tag-checked"
    TAG_CREATED = "tag-created"
    PUSHED = "pushed"
    FAILED = "failed"


class Step(Enum):
    """Repository operations a workflow is made of."""

    CHECKOUT = "checkout"
    PULL = "pull"
    CREATE_BRANCH = "create-branch"
    CHECK_TAG = "check-tag"
    CREATE_TAG = "create-tag"
    PUSH = "push"


MAJOR_RELEASE_STEPS = (
    Step.CHECKOUT,
    Step.PULL,
    Step.CREATE_BRANCH,
    Step.CHECK_TAG,
    Step.CREATE_TAG,
    Step.PUSH,
)

MINOR_RELEASE_STEPS = (
    Step.CHECKOUT,
    Step.PULL,
    Step.CHECK_TAG,
    Step.CREATE_TAG,
    Step.PUSH,
)

# State entered when a step succeeds
STEP_STATES = {
    Step.CHECKOUT: WorkflowState.CHECKED_OUT,
    Step.PULL: WorkflowState.UPDATED,
    Step.CREATE_BRANCH: WorkflowState.BRANCH_ENSURED,
    Step.CHECK_TAG: WorkflowState.TAG_CHECKED,
    Step.CREATE_TAG: WorkflowState.TAG_CREATED,
    Step.PUSH: WorkflowState.PUSHED,
}

TRANSITIONS = {
    WorkflowState.IDLE: {WorkflowState.CHECKED_OUT},
    WorkflowState.CHECKED_OUT: {WorkflowState.UPDATED},
    WorkflowState.UPDATED: {WorkflowState.BRANCH_ENSURED, WorkflowState.TAG_CHECKED},
    WorkflowState.BRANCH_ENSURED: {WorkflowState.TAG_CHECKED},
    WorkflowState.TAG_CHECKED: {WorkflowState.TAG_CREATED},
    WorkflowState.TAG_CREATED: {WorkflowState.PUSHED},
    WorkflowState.PUSHED: set(),
    WorkflowState.FAILED: set(),
}

TERMINAL_STATES = frozenset({WorkflowState.PUSHED, WorkflowState.FAILED})


def plan_release(version: Version) -> tuple[Step, ...]:
    """Return the ordered steps that publish ``version``.

    Examples:
        >>> [step.value for step in plan_release(Version(2, 1))]
        ['checkout', 'pull', 'check-tag', 'create-tag', 'push']
    """
    if classify(version) is ReleaseKind.MAJOR:
        return MAJOR_RELEASE_STEPS
    return MINOR_RELEASE_STEPS


@dataclass(frozen=True)
class WorkflowResult:
    """Outcome of a successful (or rehearsed) workflow run."""

    version: Version
    kind: ReleaseKind
    tag: str
    branch: str
    completed_steps: tuple[Step, ...]
    state: WorkflowState
    dry_run: bool = False


class ReleaseWorkflow:
    """Publishes one version against one repository.

    A workflow instance runs at most once. ``state`` and ``history`` track the
    state machine; ``failure`` holds the WorkflowError after a failed run.
    """

    def __init__(self, repository: RepositoryPort, version: Version) -> None:
        self.repository = repository
        self.version = version
        self.kind = classify(version)
        self.tag = tag_name(version)
        self.branch = release_branch_name(version)
        self.steps = plan_release(version)
        self.state = WorkflowState.IDLE
        self.history = [WorkflowState.IDLE]
        self.completed_steps: list[Step] = []
        self.failure: WorkflowError | None = None

        self._actions: dict[Step, Callable[[], None]] = {
            Step.CHECKOUT: self._checkout,
            Step.PULL: self._pull,
            Step.CREATE_BRANCH: self._create_branch,
            Step.CHECK_TAG: self._check_tag,
            Step.CREATE_TAG: self._create_tag,
            Step.PUSH: self._push,
        }

    @property
    def checkout_branch(self) -> str:
        """Branch the release is cut from: develop for major, release/vX for minor."""
        if self.kind is ReleaseKind.MAJOR:
            return DEVELOP_BRANCH
        return self.branch

    def describe(self, step: Step) -> str:
        """Return a one-line description of what ``step`` does for this version."""
        descriptions = {
            Step.CHECKOUT: f"check out '{self.checkout_branch}'",
            Step.PULL: f"fast-forward '{self.checkout_branch}' from the remote",
            Step.CREATE_BRANCH: f"create branch '{self.branch}' at HEAD",
            Step.CHECK_TAG: f"verify tag '{self.tag}' does not exist",
            Step.CREATE_TAG: f"create tag '{self.tag}' at HEAD",
            Step.PUSH: "push all branches and tags to the remote",
        }
        return descriptions[step]

    def _transition(self, new_state: WorkflowState) -> None:
        if new_state is not WorkflowState.FAILED and new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal workflow transition {self.state.value} -> {new_state.value}")
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"Workflow already finished in state '{self.state.value}'")
        logger.debug("Workflow state %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)

    def _result(self, dry_run: bool = False) -> WorkflowResult:
        return WorkflowResult(
            version=self.version,
            kind=self.kind,
            tag=self.tag,
            branch=self.branch,
            completed_steps=tuple(self.completed_steps),
            state=self.state,
            dry_run=dry_run,
        )

    def rehearse(self) -> WorkflowResult:
        """Log every planned step without touching the repository."""
        logger.info("[DRY-RUN] Publishing %s release %s", self.kind.value, self.version)
        for number, step in enumerate(self.steps, start=1):
            logger.info("[DRY-RUN] %d. Would %s", number, self.describe(step))
        return self._result(dry_run=True)

    def run(self) -> WorkflowResult:
        """Execute the steps in order, halting on the first failure.

        Returns:
            WorkflowResult in state PUSHED.

        Raises:
            WorkflowError: Wrapping the error of the failing step. The
                workflow is left in state FAILED.
            RuntimeError: If the workflow has already been run.
        """
        if self.state is not WorkflowState.IDLE:
            raise RuntimeError(f"Workflow already run (state '{self.state.value}')")

        logger.info("Publishing %s release %s", self.kind.value, self.version)
        for step in self.steps:
            logger.info("Step %s: %s", step.value, self.describe(step))
            try:
                self._actions[step]()
            except ReleaseError as e:
                self.failure = WorkflowError(
                    step=step,
                    version=self.version,
                    kind=self.kind,
                    cause=e,
                    completed_steps=tuple(self.completed_steps),
                )
                self._transition(WorkflowState.FAILED)
                raise self.failure from e

            self.completed_steps.append(step)
            self._transition(STEP_STATES[step])

        logger.info("Published %s", self.tag)
        return self._result()

    def _checkout(self) -> None:
        self.repository.checkout_to(self.checkout_branch)

    def _pull(self) -> None:
        self.repository.pull()

    def _create_branch(self) -> None:
        self.repository.create_branch(self.branch)

    def _check_tag(self) -> None:
        if self.repository.tag_exists(self.tag):
            raise DuplicateTagError(self.tag)

    def _create_tag(self) -> None:
        self.repository.create_tag(self.tag)

    def _push(self) -> None:
        self.repository.push_branches_and_tags()


def publish(repository: RepositoryPort, version: Version | str, dry_run: bool = False) -> WorkflowResult:
    """Publish a version, choosing the major or minor workflow.

    Args:
        repository: Repository to operate on.
        version: A parsed Version or a raw token such as '2' or 'v2.1'.
        dry_run: If True, only log the planned steps.

    Returns:
        WorkflowResult describing the published (or rehearsed) release.

    Raises:
        ParseError: If ``version`` is a malformed token.
        WorkflowError: If a step fails.

    Examples:
        >>> publish(repository, "2")  # release/v2 and v2.0 from develop
        >>> publish(repository, "2.1")  # v2.1 on release/v2
    """
    if isinstance(version, str):
        version = parse_version(version)

    workflow = ReleaseWorkflow(repository, version)
    if dry_run:
        return workflow.rehearse()
    return workflow.run()
