"""
Git workflows: batch commits, feature branches, releases and retagging.

Every workflow receives an explicit :class:`~vc_workflow.vcs.git_client.GitClient`
and runs its git calls through a :class:`~vc_workflow.workflows.pipeline.Pipeline`.
"""

from .branch_workflow import BranchState, BranchWorkflowEngine  # noqa: F401
from .commit_orchestrator import CommitOrchestrator  # noqa: F401
from .pipeline import FailureMode, Pipeline, always_confirm, is_affirmative  # noqa: F401
from .release_manager import ReleaseManager, next_semver_tag, resolve_release_title  # noqa: F401
from .tag_rebuilder import TagRebuilder  # noqa: F401
