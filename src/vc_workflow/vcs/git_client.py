"""
Git client implementation for vc_workflow.

This module wraps every Git operation the workflows need: the read-only
queries (current branch, working tree state, tags, first-parent log) and
the mutating commands (stage, commit, merge, tag, push). Each call is a
blocking ``git`` subprocess run in the repository root. A non-zero exit
is authoritative and raises :class:`GitCommandError`, except for the few
queries that interpret the exit code themselves.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from vc_workflow.errors import WorkflowError


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings when the CLI has
# not configured logging (for example when the client is used as a library).
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


@dataclass
class FileChange:
    """Representation of a single file change in the working tree."""

    path: str
    status: str  # e.g. 'M' modified, 'A' added, 'D' deleted, 'R' renamed, '?' untracked
    original_path: Optional[str] = None


@dataclass(frozen=True)
class LogEntry:
    """One commit of a ``git log`` listing."""

    sha: str
    subject: str


class GitCommandError(WorkflowError):
    """Raised when a Git command exits with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr or f"exit status {returncode}"
        super().__init__(f"'{' '.join(self.command)}' failed: {detail}")


class GitClient:
    """Client for interacting with a Git repository and its remote."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                # reached filesystem root
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitCommandError
            If the command exits with a non-zero status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",  # Replace invalid characters instead of failing
            )
        except FileNotFoundError as e:
            logger.error("Git executable not found: %s", e)
            raise GitCommandError(full_cmd, 127, "git executable not found") from e

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitCommandError(
                full_cmd, result.returncode, result.stderr.strip() or result.stdout.strip()
            )
        return result

    def _diff_is_empty(self, args: List[str]) -> bool:
        # git diff --quiet exits 1 when there are differences
        result = self._run(args, check=False)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        raise GitCommandError(["git"] + args, result.returncode, result.stderr.strip())

    # ------------------------------------------------------------------
    # Repository state
    # ------------------------------------------------------------------
    def is_inside_work_tree(self) -> bool:
        """Return True if the client's root lies inside a Git work tree."""
        result = self._run(["rev-parse", "--is-inside-work-tree"], check=False)
        return result.returncode == 0 and result.stdout.strip() == "true"

    def is_worktree_clean(self) -> bool:
        """Return True when there is neither an unstaged nor a staged diff.

        Untracked files are ignored, matching ``git diff --quiet`` and
        ``git diff --cached --quiet``.
        """
        return self._diff_is_empty(["diff", "--quiet"]) and self._diff_is_empty(
            ["diff", "--cached", "--quiet"]
        )

    def status_porcelain(self) -> str:
        """Return the raw ``git status --porcelain`` output."""
        return self._run(["status", "--porcelain"], check=True).stdout

    def get_changes(self, include_untracked: bool = True) -> List[FileChange]:
        """Get the list of changed files in the working tree.

        The status is read NUL-separated with ``core.quotePath`` off, so
        paths arrive verbatim (non-ASCII names, quotes and backslashes
        included).

        Parameters
        ----------
        include_untracked : bool
            When False, entries with status ``??`` are skipped.

        Returns
        -------
        List[FileChange]
            One entry per changed path. Renames carry the previous path in
            ``original_path``.
        """
        result = self._run(
            ["-c", "core.quotePath=false", "status", "--porcelain", "-z"], check=True
        )
        records = iter(result.stdout.split("\0"))
        changes: List[FileChange] = []
        for record in records:
            # Record format: XY<space>path; renames and copies are followed
            # by one more record holding the source path
            if len(record) < 4:
                continue
            status_code = record[:2]
            path = record[3:]
            if status_code == "??":
                if include_untracked:
                    changes.append(FileChange(path=path, status="?"))
                continue
            original_path = None
            if "R" in status_code or "C" in status_code:
                original_path = next(records, None) or None
            status = status_code.strip()
            if not status:
                continue
            changes.append(FileChange(path=path, status=status[0], original_path=original_path))
        return changes

    # ------------------------------------------------------------------
    # Refs and branches
    # ------------------------------------------------------------------
    def get_current_branch(self) -> str:
        """Get the name of the current branch.

        Raises
        ------
        GitCommandError
            If unable to determine the current branch.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], check=True)
        return result.stdout.strip()

    def ref_exists(self, ref: str) -> bool:
        """Return True if ``ref`` resolves to an object."""
        result = self._run(["rev-parse", "--verify", "--quiet", ref], check=False)
        return result.returncode == 0

    def rev_parse(self, ref: str) -> str:
        """Resolve ``ref`` to a full commit SHA."""
        return self._run(["rev-parse", ref], check=True).stdout.strip()

    def checkout(self, branch: str) -> None:
        """Switch the working tree to ``branch``."""
        self._run(["checkout", branch], check=True)

    def delete_branch(self, branch: str) -> None:
        """Delete a local branch, refusing when it is not fully merged."""
        self._run(["branch", "-d", branch], check=True)

    # ------------------------------------------------------------------
    # Remote synchronisation
    # ------------------------------------------------------------------
    def fetch(self, remote: str = "origin") -> None:
        """Fetch all refs from ``remote``."""
        self._run(["fetch", remote], check=True)

    def pull_ff_only(self, remote: str, branch: str) -> None:
        """Fast-forward the current branch from ``remote/branch``."""
        self._run(["pull", "--ff-only", remote, branch], check=True)

    def push(self, remote: str, branch: str) -> None:
        """Push ``branch`` to ``remote``."""
        self._run(["push", remote, branch], check=True)

    def delete_remote_branch(self, branch: str, remote: str = "origin") -> None:
        """Delete ``branch`` on ``remote``."""
        self._run(["push", remote, "--delete", branch], check=True)

    # ------------------------------------------------------------------
    # Staging, committing, merging
    # ------------------------------------------------------------------
    def stage_tracked(self, pathspecs: List[str]) -> None:
        """Stage modifications and deletions of tracked files under ``pathspecs``."""
        self._run(["add", "-u", "--"] + pathspecs, check=True)

    def stage_paths(self, paths: List[str]) -> None:
        """Stage the given existing paths, including untracked ones."""
        self._run(["add", "--"] + paths, check=True)

    def commit(self, message: str, paths: Optional[List[str]] = None) -> None:
        """Create a commit with the given message.

        Multi-line commit messages are supported. When ``paths`` is given
        only those paths are committed; anything else in the index stays
        staged.
        """
        args = ["commit", "-m", message]
        if paths:
            args += ["--"] + list(paths)
        self._run(args, check=True)

    def merge_no_ff(self, ref: str, message_file: Optional[Path] = None) -> None:
        """Merge ``ref`` into the current branch, always creating a merge commit.

        When ``message_file`` is given it provides the merge commit message;
        otherwise Git's default message is used without opening an editor.
        """
        args = ["merge", "--no-ff"]
        if message_file is not None:
            args += ["-F", str(message_file)]
        else:
            args.append("--no-edit")
        args.append(ref)
        self._run(args, check=True)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def log_subjects(self, revision_range: str) -> List[str]:
        """Return the subject lines of the commits in ``revision_range``."""
        result = self._run(["log", revision_range, "--pretty=format:%s"], check=True)
        return [line for line in result.stdout.splitlines() if line.strip()]

    def log_first_parent(self, ref: str, reverse: bool = True) -> List[LogEntry]:
        """Return the first-parent history of ``ref``.

        Parameters
        ----------
        ref : str
            Branch or commit to walk from.
        reverse : bool
            Oldest commit first when True (the default).
        """
        args = ["log", ref, "--first-parent", "--format=%H %s"]
        if reverse:
            args.insert(3, "--reverse")
        result = self._run(args, check=True)
        entries = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            sha, _, subject = line.partition(" ")
            entries.append(LogEntry(sha=sha, subject=subject))
        return entries

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------
    def list_tags(self, pattern: Optional[str] = None) -> List[str]:
        """List local tag names, optionally filtered by a glob ``pattern``."""
        args = ["tag", "--list"]
        if pattern:
            args.append(pattern)
        result = self._run(args, check=True)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def tag_exists(self, name: str) -> bool:
        """Return True if a tag called ``name`` exists locally."""
        return self.ref_exists(f"refs/tags/{name}")

    def create_tag(self, name: str, message: str, target: Optional[str] = None) -> None:
        """Create an annotated tag at ``target`` (HEAD when omitted)."""
        args = ["tag", "-a", name, "-m", message]
        if target:
            args.append(target)
        self._run(args, check=True)

    def delete_tag(self, name: str) -> None:
        """Delete a local tag."""
        self._run(["tag", "-d", name], check=True)

    def delete_remote_tag(self, name: str, remote: str = "origin") -> None:
        """Delete a tag on ``remote`` by pushing an empty ref."""
        self._run(["push", remote, f":refs/tags/{name}"], check=True)

    def push_tag(self, name: str, remote: str = "origin") -> None:
        """Push a single tag to ``remote``."""
        self._run(["push", remote, name], check=True)

    def push_all_tags(self, remote: str = "origin", force: bool = False) -> None:
        """Push every local tag to ``remote`` in one operation."""
        args = ["push", remote]
        if force:
            args.append("--force")
        args.append("--tags")
        self._run(args, check=True)
