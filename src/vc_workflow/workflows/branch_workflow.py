"""
Feature branch synchronisation and completion.

The engine is an explicit state machine::

    ON_FEATURE -> SYNCED                            (sync)
    ON_FEATURE -> SYNCED -> MERGED -> CLEANED_UP    (finish)

Merges always use ``--no-ff`` so the branch topology stays visible.
"""

from __future__ import annotations

import enum
import logging
from typing import Optional

from vc_workflow.config.loader import WorkflowConfig
from vc_workflow.errors import BranchNameError, DirtyTreeError, StateError
from vc_workflow.vcs.git_client import GitClient

from .pipeline import FailureMode, Pipeline, PipelineResult


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class BranchState(enum.Enum):
    ON_FEATURE = "on_feature"
    SYNCED = "synced"
    MERGED = "merged"
    CLEANED_UP = "cleaned_up"


class BranchWorkflowEngine:
    """Drive a ``feature/*`` branch through sync and finish."""

    def __init__(self, client: GitClient, config: Optional[WorkflowConfig] = None) -> None:
        self.client = client
        self.config = config or WorkflowConfig()
        self.state: Optional[BranchState] = None
        self.feature_branch: Optional[str] = None

    def _require(self, expected: BranchState, action: str) -> None:
        if self.state is not expected:
            current = self.state.value if self.state else "not started"
            raise StateError(
                f"Cannot {action}: expected state '{expected.value}', current state is '{current}'"
            )

    def begin(self) -> str:
        """Validate the entry preconditions and enter ``ON_FEATURE``.

        Returns the feature branch name.

        Raises
        ------
        BranchNameError
            If the current branch is not a feature branch.
        DirtyTreeError
            If there are staged or unstaged changes.
        """
        branch = self.client.get_current_branch()
        prefix = self.config.feature_prefix
        if not branch.startswith(prefix) or branch == prefix:
            raise BranchNameError(
                f"Must be run from a {prefix}* branch (current: {branch})"
            )
        if not self.client.is_worktree_clean():
            raise DirtyTreeError(
                "Working tree not clean. Commit, stash, or discard changes first."
            )
        self.feature_branch = branch
        self.state = BranchState.ON_FEATURE
        return branch

    def sync(self) -> PipelineResult:
        """Merge the up-to-date staging branch into the feature branch and push it."""
        self._require(BranchState.ON_FEATURE, "sync")
        cfg = self.config
        feature = self.feature_branch
        result = (
            Pipeline("feature-sync")
            .add(f"fetch {cfg.remote}", lambda: self.client.fetch(cfg.remote))
            .add(f"switch to {cfg.staging_branch}", lambda: self.client.checkout(cfg.staging_branch))
            .add(
                f"update {cfg.staging_branch} from {cfg.remote}",
                lambda: self.client.pull_ff_only(cfg.remote, cfg.staging_branch),
            )
            .add(f"switch back to {feature}", lambda: self.client.checkout(feature))
            .add(
                f"merge {cfg.staging_branch} into {feature} (--no-ff)",
                lambda: self.client.merge_no_ff(cfg.staging_branch),
            )
            .add(f"push {feature}", lambda: self.client.push(cfg.remote, feature))
            .run()
        )
        self.state = BranchState.SYNCED
        return result

    def finish(self) -> PipelineResult:
        """Merge the synced feature branch into staging and delete it.

        Raises
        ------
        StateError
            If :meth:`sync` did not just complete or the current branch changed.
        """
        self._require(BranchState.SYNCED, "finish")
        current = self.client.get_current_branch()
        if current != self.feature_branch:
            raise StateError(
                f"Expected to remain on {self.feature_branch} after sync, "
                f"but current branch is {current}"
            )

        cfg = self.config
        feature = self.feature_branch
        merge = (
            Pipeline("feature-finish")
            .add(f"switch to {cfg.staging_branch}", lambda: self.client.checkout(cfg.staging_branch))
            .add(
                f"update {cfg.staging_branch} from {cfg.remote}",
                lambda: self.client.pull_ff_only(cfg.remote, cfg.staging_branch),
            )
            .add(
                f"merge {feature} into {cfg.staging_branch} (--no-ff)",
                lambda: self.client.merge_no_ff(feature),
            )
            .add(f"push {cfg.staging_branch}", lambda: self.client.push(cfg.remote, cfg.staging_branch))
            .run()
        )
        self.state = BranchState.MERGED

        # The local delete refuses unmerged branches; the remote branch may not exist.
        cleanup = (
            Pipeline("feature-cleanup")
            .add(
                f"delete local branch {feature}",
                lambda: self.client.delete_branch(feature),
                on_failure=FailureMode.WARN,
            )
            .add(
                f"delete remote branch {feature}",
                lambda: self.client.delete_remote_branch(feature, cfg.remote),
                on_failure=FailureMode.WARN,
            )
            .run()
        )
        self.state = BranchState.CLEANED_UP
        return PipelineResult(
            completed=merge.completed + cleanup.completed,
            warnings=merge.warnings + cleanup.warnings,
        )
