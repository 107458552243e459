"""
Publishing selected commits as a contribution branch.

:class:`ContributionPublisher` walks a fixed sequence of states::

    INIT -> REMOTE_READY -> BRANCH_CREATED -> REPLAYING -> REPLAYED
         -> PUSHED | PUSH_FAILED

``REPLAYING`` ends in ``REPLAY_ABORTED`` when a commit cannot be applied.
Each replay step has three outcomes. An applied commit advances the
branch. An empty commit (its change is already on the branch) is skipped
and recorded as skipped. Anything else aborts the whole replay and
leaves the branch with the commits processed so far.

A failed push does not undo the local branch: :class:`PushFailed`
carries the branch, the equivalent manual push command and the
pull-request URL so the user can finish by hand.
"""

from __future__ import annotations

import enum
import logging
import shlex
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from contrib_helper.selection.model import Commit
from contrib_helper.template.resolver import RepoId, TemplateReference
from contrib_helper.vcs.git_client import ApplyOutcome, GitClient, GitError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_REMOTE_NAME = "chuck-template"
DEFAULT_BRANCH_PREFIX = "contrib"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class PublishState(enum.Enum):
    INIT = "init"
    REMOTE_READY = "remote_ready"
    BRANCH_CREATED = "branch_created"
    REPLAYING = "replaying"
    REPLAYED = "replayed"
    PUSHED = "pushed"
    PUSH_FAILED = "push_failed"
    REPLAY_ABORTED = "replay_aborted"


class ReplayStatus(enum.Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ReplayStep:
    commit: Commit
    status: ReplayStatus


@dataclass
class Branch:
    """A contribution branch built on top of the template baseline.

    Attributes
    ----------
    name : str
        Local branch name.
    base_commit : str
        Template baseline commit the branch was created from.
    remote_branch : str
        Name the branch is pushed under on the template remote.
    steps : List[ReplayStep]
        Commits incorporated so far, each applied or skipped.
    pull_request_url : str, optional
        Set once the branch has been pushed.
    """

    name: str
    base_commit: str
    remote_branch: str
    steps: List[ReplayStep] = field(default_factory=list)
    pull_request_url: Optional[str] = None

    @property
    def applied(self) -> List[Commit]:
        return [step.commit for step in self.steps if step.status is ReplayStatus.APPLIED]

    @property
    def skipped(self) -> List[Commit]:
        return [step.commit for step in self.steps if step.status is ReplayStatus.SKIPPED]


class PublishError(Exception):
    """Base class for failures while publishing a contribution."""

    pass


class FetchFailed(PublishError):
    """The template remote could not be registered or fetched."""

    pass


class BranchCreateFailed(PublishError):
    """The contribution branch could not be created at the baseline."""

    pass


class ReplayFailed(PublishError):
    """A commit could not be applied; the replay was aborted.

    ``completed`` lists the commits processed before the failure (applied
    or skipped, see ``branch.steps``); ``remaining`` starts with the
    commit that failed.
    """

    def __init__(
        self,
        message: str,
        branch: Branch,
        completed: List[Commit],
        remaining: List[Commit],
        detail: str = "",
    ) -> None:
        super().__init__(message)
        self.branch = branch
        self.completed = completed
        self.remaining = remaining
        self.detail = detail

    @property
    def failed_commit(self) -> Commit:
        return self.remaining[0]


class PushFailed(PublishError):
    """The branch exists locally but could not be pushed."""

    def __init__(
        self, message: str, branch: Branch, manual_command: str, pull_request_url: str
    ) -> None:
        super().__init__(message)
        self.branch = branch
        self.manual_command = manual_command
        self.pull_request_url = pull_request_url


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------

def format_timestamp(moment: datetime) -> str:
    """Format ``moment`` in UTC for use in branch names."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def branch_name_for(started_at: datetime, prefix: str = DEFAULT_BRANCH_PREFIX) -> str:
    return f"{prefix}/{format_timestamp(started_at)}"


def remote_branch_name_for(current_repo: RepoId, started_at: datetime) -> str:
    return f"contrib-from-{current_repo.owner}-{current_repo.name}-{format_timestamp(started_at)}"


def pull_request_url(template: RepoId, remote_branch: str) -> str:
    """Return the page that opens a pull request for ``remote_branch``."""
    return f"https://{template.host}/{template.owner}/{template.name}/pull/new/{remote_branch}"


def manual_push_command(url: str, local_branch: str, remote_branch: str) -> str:
    return shlex.join(["git", "push", url, f"{local_branch}:{remote_branch}"])


# ---------------------------------------------------------------------------
# Publisher
# ---------------------------------------------------------------------------

StepCallback = Callable[[Commit, ReplayStatus], None]


class ContributionPublisher:
    """Create, fill and push a contribution branch.

    Parameters
    ----------
    git : GitClient
        Client for the local repository.
    remote_name : str, optional
        Name of the local remote that tracks the template.
    branch_prefix : str, optional
        Prefix of the local branch name.
    started_at : datetime, optional
        Start time of the run; branch names derive from it. Defaults to
        the current UTC time.
    on_step : Callable, optional
        Called after each replayed commit with the commit and its status.
    """

    def __init__(
        self,
        git: GitClient,
        remote_name: str = DEFAULT_REMOTE_NAME,
        branch_prefix: str = DEFAULT_BRANCH_PREFIX,
        started_at: Optional[datetime] = None,
        on_step: Optional[StepCallback] = None,
    ) -> None:
        self.git = git
        self.remote_name = remote_name
        self.branch_prefix = branch_prefix
        self.started_at = started_at or datetime.now(timezone.utc)
        self.on_step = on_step
        self.state = PublishState.INIT

    def publish(
        self,
        selected_commits: Sequence[Commit],
        template_ref: TemplateReference,
        current_repo: RepoId,
    ) -> Branch:
        """Publish ``selected_commits`` (chronological order) to the template.

        Raises
        ------
        FetchFailed, BranchCreateFailed
            Nothing has been created.
        ReplayFailed
            The local branch exists with the commits processed so far.
        PushFailed
            The local branch is complete but was not pushed.
        """
        self.state = PublishState.INIT
        branch = Branch(
            name=branch_name_for(self.started_at, self.branch_prefix),
            base_commit=template_ref.baseline_commit,
            remote_branch=remote_branch_name_for(current_repo, self.started_at),
        )

        self._ensure_remote(template_ref)
        self._create_branch(branch)
        self._replay(branch, list(selected_commits))
        self._push(branch, template_ref)
        return branch

    def _ensure_remote(self, template_ref: TemplateReference) -> None:
        try:
            self.git.ensure_remote(self.remote_name, template_ref.url)
            self.git.fetch(self.remote_name)
        except GitError as exc:
            raise FetchFailed(f"Failed to fetch template {template_ref.url}: {exc}") from exc
        self.state = PublishState.REMOTE_READY

    def _create_branch(self, branch: Branch) -> None:
        logger.debug("Creating branch %s at %s", branch.name, branch.base_commit[:7])
        try:
            if self.git.branch_exists(branch.name):
                raise BranchCreateFailed(f"Branch {branch.name} already exists")
            self.git.create_branch(branch.name, branch.base_commit)
        except GitError as exc:
            raise BranchCreateFailed(
                f"Failed to create branch {branch.name} from template base "
                f"{branch.base_commit[:7]}: {exc}"
            ) from exc
        self.state = PublishState.BRANCH_CREATED

    def _replay(self, branch: Branch, commits: List[Commit]) -> None:
        self.state = PublishState.REPLAYING
        for position, commit in enumerate(commits):
            logger.debug("Cherry-picking %s - %s", commit.short_hash, commit.message)
            result = self.git.cherry_pick(commit.hash)
            detail = result.detail

            if result.outcome is ApplyOutcome.APPLIED:
                status = ReplayStatus.APPLIED
            elif result.outcome is ApplyOutcome.EMPTY:
                try:
                    self.git.skip_cherry_pick()
                except GitError as exc:
                    detail = f"could not skip empty commit: {exc}"
                    raise self._abort(branch, commits, position, detail) from exc
                logger.debug("Skipping empty commit %s - %s", commit.short_hash, commit.message)
                status = ReplayStatus.SKIPPED
            else:
                raise self._abort(branch, commits, position, detail)

            branch.steps.append(ReplayStep(commit, status))
            if self.on_step is not None:
                self.on_step(commit, status)

        self.state = PublishState.REPLAYED

    def _abort(
        self, branch: Branch, commits: List[Commit], position: int, detail: str
    ) -> ReplayFailed:
        """Abandon the in-progress pick and build the error to raise."""
        failed = commits[position]
        try:
            self.git.abort_cherry_pick()
        except GitError as exc:
            # nothing to abort when the pick never started (e.g. unknown object)
            logger.warning("Could not abort cherry-pick of %s: %s", failed.short_hash, exc)
        self.state = PublishState.REPLAY_ABORTED
        return ReplayFailed(
            f"Cherry-pick of {failed.short_hash} ({failed.message}) failed: {detail}",
            branch=branch,
            completed=commits[:position],
            remaining=commits[position:],
            detail=detail,
        )

    def _push(self, branch: Branch, template_ref: TemplateReference) -> None:
        url = pull_request_url(template_ref.repo, branch.remote_branch)
        logger.debug("Pushing %s to %s as %s", branch.name, template_ref.url, branch.remote_branch)
        try:
            self.git.push(template_ref.url, branch.name, branch.remote_branch)
        except GitError as exc:
            self.state = PublishState.PUSH_FAILED
            raise PushFailed(
                f"Branch {branch.name} created but could not be pushed: {exc}",
                branch=branch,
                manual_command=manual_push_command(
                    template_ref.url, branch.name, branch.remote_branch
                ),
                pull_request_url=url,
            ) from exc
        branch.pull_request_url = url
        self.state = PublishState.PUSHED
