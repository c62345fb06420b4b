"""
Version control system (VCS) integration.

This package contains the Git client used by every workflow. The client
exposes the read-only repository queries and the mutating commands
(staging, committing, merging, tagging and pushing).
"""

from .git_client import FileChange, GitClient, GitCommandError, LogEntry  # noqa: F401
