"""
Batch commit workflow.

Stages, commits and pushes every change group in turn. Each commit is
limited to its group's paths, so changes staged before the run only end
up in the commit of the group they belong to. A failure while staging,
committing or pushing one group is logged and the batch moves on to the
next group; only fully successful groups are reported back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import List, Sequence, Tuple

from vc_workflow.commits.spec_parser import CommitSpec
from vc_workflow.errors import OperationCancelled
from vc_workflow.grouping.group_model import ChangeGroup
from vc_workflow.vcs.git_client import GitClient, GitCommandError

from .pipeline import Confirm, Pipeline


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass(frozen=True)
class PlannedCommit:
    """A group together with the message it will be committed with."""

    position: int
    group: ChangeGroup
    message: str

    @property
    def title(self) -> str:
        return self.message.splitlines()[0]


def parent_pathspecs(files: Sequence[str]) -> List[str]:
    """Distinct parent directories of ``files``, ``.`` for the root.

    Deleted files no longer exist on disk, so tracked changes are staged
    through their directories instead of their own paths.
    """
    return sorted({str(PurePosixPath(f).parent) for f in files})


class CommitOrchestrator:
    """Commit and push groups of changes, one commit per group."""

    def __init__(self, client: GitClient, confirm: Confirm, remote: str = "origin") -> None:
        self.client = client
        self.confirm = confirm
        self.remote = remote

    def plan(self, groups: Sequence[ChangeGroup], spec: CommitSpec) -> List[PlannedCommit]:
        ordered = sorted(groups, key=lambda group: group.key)
        return [
            PlannedCommit(position=position, group=group, message=spec.message_for(position))
            for position, group in enumerate(ordered)
        ]

    @staticmethod
    def describe(plan: Sequence[PlannedCommit]) -> str:
        lines = ["Commits to be created and pushed:"]
        for planned in plan:
            lines.append(f"  {planned.position + 1}. {planned.title}")
            lines.append(f"     Group: {planned.group.key} ({len(planned.group.files)} file(s))")
        lines.append("Proceed with the commits and pushes?")
        return "\n".join(lines)

    def _group_pipeline(self, planned: PlannedCommit, branch: str) -> Pipeline:
        files = planned.group.files
        pipeline = Pipeline(f"group {planned.group.key}")
        pipeline.add(
            "stage tracked modifications and deletions",
            lambda: self.client.stage_tracked(parent_pathspecs(files)),
        )
        existing = [f for f in files if (self.client.repo_root / f).exists()]
        if existing:
            pipeline.add("stage new and modified files", lambda: self.client.stage_paths(existing))
        pipeline.add("commit", lambda: self.client.commit(planned.message, list(files)))
        pipeline.add(f"push {branch} to {self.remote}", lambda: self.client.push(self.remote, branch))
        return pipeline

    def run(self, groups: Sequence[ChangeGroup], spec: CommitSpec) -> List[Tuple[str, str]]:
        """Commit every group and return ``(message, group_key)`` for each success.

        Raises
        ------
        OperationCancelled
            If the preview is not confirmed; nothing is staged in that case.
        """
        plan = self.plan(groups, spec)
        if not self.confirm(self.describe(plan)):
            raise OperationCancelled("Commit operation cancelled by the user")

        branch = self.client.get_current_branch()
        executed: List[Tuple[str, str]] = []
        for planned in plan:
            logger.info(
                "Processing group %d/%d: %s", planned.position + 1, len(plan), planned.group.key
            )
            try:
                self._group_pipeline(planned, branch).run()
            except GitCommandError as exc:
                logger.warning("Skipping group %s: %s", planned.group.key, exc)
                continue
            logger.info("Committed and pushed: %s", planned.title)
            executed.append((planned.message, planned.group.key))
        return executed
