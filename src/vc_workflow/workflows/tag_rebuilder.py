"""
Rebuild the release tags of the release branch.

Legacy date-based tags (``release-YYYY-MM-DD``) and all ``v*`` tags are
removed locally and on the remote, then every release commit on the
release branch's first-parent history receives ``v0.0.N`` in
chronological order and the tags are force-pushed in one go.

This is destructive for the remote's tag namespace and must not run
concurrently with anything else that writes tags to the same remote.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Optional, Tuple

from vc_workflow.config.loader import WorkflowConfig
from vc_workflow.errors import NoReleaseCommitsError, OperationCancelled, PreconditionError
from vc_workflow.vcs.git_client import GitClient, LogEntry

from .pipeline import Confirm, FailureMode, Pipeline, always_confirm


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class ReleaseCommit:
    """A first-parent commit classified as a release point."""

    sha: str
    subject: str
    index: int

    @property
    def tag(self) -> str:
        return f"v0.0.{self.index}"


def is_release_commit(entry: LogEntry, keyword: str, overrides: AbstractSet[str]) -> bool:
    """Return True if the subject contains ``keyword`` or the SHA is an override."""
    return keyword in entry.subject or entry.sha in overrides


def classify_release_commits(
    history: Iterable[LogEntry], keyword: str, overrides: AbstractSet[str] = frozenset()
) -> List[ReleaseCommit]:
    """Select release commits from an oldest-first history, numbering them from 1."""
    releases: List[ReleaseCommit] = []
    for entry in history:
        if is_release_commit(entry, keyword, overrides):
            releases.append(ReleaseCommit(entry.sha, entry.subject, len(releases) + 1))
    return releases


class TagRebuilder:
    """Replace legacy and semantic tags with a gap-free ``v0.0.N`` sequence."""

    def __init__(
        self,
        client: GitClient,
        config: Optional[WorkflowConfig] = None,
        confirm: Confirm = always_confirm,
        overrides: Optional[AbstractSet[str]] = None,
    ) -> None:
        self.client = client
        self.config = config or WorkflowConfig()
        self.confirm = confirm
        if overrides is None:
            overrides = frozenset(self.config.release_overrides)
        self.overrides = frozenset(overrides)

    def check_preconditions(self) -> None:
        cfg = self.config
        if not self.client.is_inside_work_tree():
            raise PreconditionError("Must be run inside a Git repository.")
        if self.client.status_porcelain().strip():
            raise PreconditionError(
                "There are uncommitted changes. Commit or stash them before retagging."
            )
        for branch in (cfg.release_branch, cfg.staging_branch):
            if not self.client.ref_exists(branch):
                raise PreconditionError(f"Branch '{branch}' not found.")

    def update_branches(self) -> None:
        cfg = self.config
        client = self.client
        (
            Pipeline("retag")
            .add(f"fetch {cfg.remote}", lambda: client.fetch(cfg.remote))
            .add(f"switch to {cfg.staging_branch}", lambda: client.checkout(cfg.staging_branch))
            .add(
                f"update {cfg.staging_branch} from {cfg.remote}",
                lambda: client.pull_ff_only(cfg.remote, cfg.staging_branch),
                on_failure=FailureMode.WARN,
            )
            .add(f"switch to {cfg.release_branch}", lambda: client.checkout(cfg.release_branch))
            .add(
                f"update {cfg.release_branch} from {cfg.remote}",
                lambda: client.pull_ff_only(cfg.remote, cfg.release_branch),
            )
            .run()
        )

    def tags_to_delete(self) -> List[str]:
        legacy = self.client.list_tags(self.config.legacy_tag_pattern)
        semver = self.client.list_tags("v*")
        # a tag may match both patterns
        return list(dict.fromkeys(legacy + semver))

    def delete_tags(self, tags: List[str]) -> None:
        cfg = self.config
        pipeline = Pipeline("retag-delete")
        for tag in tags:
            pipeline.add(f"delete local tag {tag}", lambda t=tag: self.client.delete_tag(t))
            pipeline.add(
                f"delete remote tag {tag}",
                lambda t=tag: self.client.delete_remote_tag(t, cfg.remote),
                on_failure=FailureMode.WARN,
            )
        pipeline.run()

    def rebuild(self) -> List[Tuple[str, ReleaseCommit]]:
        """Delete the old tags and tag every release commit.

        Returns
        -------
        List[Tuple[str, ReleaseCommit]]
            The created tags paired with their commits, oldest first.

        Raises
        ------
        PreconditionError
            If the repository is not usable for retagging.
        OperationCancelled
            If the deletion is not confirmed; no tag is touched then.
        NoReleaseCommitsError
            If no release commit exists. Old tags are already deleted at
            this point and nothing further is done.
        """
        self.check_preconditions()
        self.update_branches()
        cfg = self.config

        doomed = self.tags_to_delete()
        prompt = (
            f"{len(doomed)} tag(s) will be deleted locally and on {cfg.remote} "
            "and recreated as v0.0.N"
        )
        if doomed:
            prompt += ":\n" + "\n".join(f"  - {tag}" for tag in doomed)
        if not self.confirm(prompt + "\nContinue?"):
            raise OperationCancelled("Retag cancelled by the user. No tag was changed.")

        self.delete_tags(doomed)

        history = self.client.log_first_parent(cfg.release_branch, reverse=True)
        releases = classify_release_commits(history, cfg.release_keyword, self.overrides)
        if not releases:
            raise NoReleaseCommitsError(
                f"No release commit found on {cfg.release_branch}. No tags were created."
            )

        pipeline = Pipeline("retag-create")
        for release in releases:
            logger.info("%d: %s  %s", release.index, release.sha, release.subject)
            pipeline.add(
                f"tag {release.sha[:12]} as {release.tag}",
                lambda r=release: self.client.create_tag(r.tag, f"Release {r.tag}", r.sha),
            )
        pipeline.add(
            f"force-push tags to {cfg.remote}",
            lambda: self.client.push_all_tags(cfg.remote, force=True),
        )
        pipeline.run()
        return [(release.tag, release) for release in releases]
