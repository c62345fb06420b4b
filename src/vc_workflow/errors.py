"""
Exception hierarchy for vc_workflow.

Every failure a workflow can report derives from :class:`WorkflowError`
so that the CLI can turn it into a single error line and exit code 1.
Git subprocess failures are represented by
:class:`vc_workflow.vcs.git_client.GitCommandError`, which also derives
from :class:`WorkflowError`.
"""

from __future__ import annotations

from typing import Iterable


class WorkflowError(Exception):
    """Base class for all errors raised by vc_workflow."""

    pass


class ValidationError(WorkflowError):
    """Raised when a commit specification is malformed or not allowed."""

    pass


class ConflictError(WorkflowError):
    """Raised when structured flags and a positional spec are both given."""

    pass


class FormatError(WorkflowError):
    """Raised when a release title does not follow Conventional Commits."""

    pass


class PreconditionError(WorkflowError):
    """Raised when the repository is not in a state a workflow can start from."""

    pass


class BranchNameError(PreconditionError):
    """Raised when the current branch does not have the expected shape."""

    pass


class DirtyTreeError(PreconditionError):
    """Raised when the working tree has staged or unstaged changes."""

    pass


class NoReleaseCommitsError(PreconditionError):
    """Raised when no release commit is found on the release branch."""

    pass


class StateError(WorkflowError):
    """Raised on an illegal branch workflow transition."""

    pass


class VersionFormatError(WorkflowError):
    """Raised when a semantic version tag cannot be parsed."""

    pass


class TagExistsError(WorkflowError):
    """Raised when the next release tag already exists."""

    pass


class OperationCancelled(WorkflowError):
    """Raised when the user declines a confirmation prompt."""

    pass


def format_allowed(values: Iterable[str]) -> str:
    """Render an allowed-value set for error messages."""
    return ", ".join(values)
