import fnmatch
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from vc_workflow.vcs.git_client import FileChange, GitCommandError, LogEntry


class FakeGitClient:
    """In-memory stand-in for GitClient.

    Records every call in ``calls`` as ``(method, *args)``. A method listed
    in ``fail_on`` raises GitCommandError, either always (``True``) or when
    the predicate returns True for the call's arguments.
    """

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root
        self.current_branch = "develop"
        self.branches = {"develop", "main"}
        self.clean = True
        self.inside_work_tree = True
        self.porcelain = ""
        self.changes: List[FileChange] = []
        self.tags: Dict[str, tuple] = {}
        self.history: List[LogEntry] = []
        self.subjects: List[str] = []
        self.head = "f" * 40
        self.merge_messages: List[str] = []
        self.commit_paths: List[List[str]] = []
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, object] = {}

    def _record(self, name: str, *args) -> None:
        self.calls.append((name,) + args)
        fail = self.fail_on.get(name)
        if fail is True or (callable(fail) and fail(*args)):
            raise GitCommandError(["git", name] + [str(a) for a in args], 1, f"{name} failed")

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def mutating_calls(self) -> List[tuple]:
        readers = {
            "get_current_branch", "is_worktree_clean", "status_porcelain", "get_changes",
            "ref_exists", "rev_parse", "list_tags", "tag_exists", "log_subjects",
            "log_first_parent", "is_inside_work_tree",
        }
        return [call for call in self.calls if call[0] not in readers]

    # queries
    def get_current_branch(self) -> str:
        self._record("get_current_branch")
        return self.current_branch

    def is_inside_work_tree(self) -> bool:
        self._record("is_inside_work_tree")
        return self.inside_work_tree

    def is_worktree_clean(self) -> bool:
        self._record("is_worktree_clean")
        return self.clean

    def status_porcelain(self) -> str:
        self._record("status_porcelain")
        return self.porcelain

    def get_changes(self, include_untracked: bool = True) -> List[FileChange]:
        self._record("get_changes")
        return list(self.changes)

    def ref_exists(self, ref: str) -> bool:
        self._record("ref_exists", ref)
        if ref.startswith("refs/tags/"):
            return ref[len("refs/tags/"):] in self.tags
        return ref in self.branches

    def rev_parse(self, ref: str) -> str:
        self._record("rev_parse", ref)
        return self.head

    def log_subjects(self, revision_range: str) -> List[str]:
        self._record("log_subjects", revision_range)
        return list(self.subjects)

    def log_first_parent(self, ref: str, reverse: bool = True) -> List[LogEntry]:
        self._record("log_first_parent", ref)
        return list(self.history) if reverse else list(reversed(self.history))

    def list_tags(self, pattern: Optional[str] = None) -> List[str]:
        self._record("list_tags", pattern)
        names = sorted(self.tags)
        if pattern:
            names = [name for name in names if fnmatch.fnmatchcase(name, pattern)]
        return names

    def tag_exists(self, name: str) -> bool:
        self._record("tag_exists", name)
        return name in self.tags

    # branches and remotes
    def checkout(self, branch: str) -> None:
        self._record("checkout", branch)
        self.current_branch = branch

    def fetch(self, remote: str = "origin") -> None:
        self._record("fetch", remote)

    def pull_ff_only(self, remote: str, branch: str) -> None:
        self._record("pull_ff_only", remote, branch)

    def push(self, remote: str, branch: str) -> None:
        self._record("push", remote, branch)

    def delete_branch(self, branch: str) -> None:
        self._record("delete_branch", branch)
        self.branches.discard(branch)

    def delete_remote_branch(self, branch: str, remote: str = "origin") -> None:
        self._record("delete_remote_branch", branch, remote)

    # index and commits
    def stage_tracked(self, pathspecs: List[str]) -> None:
        self._record("stage_tracked", list(pathspecs))

    def stage_paths(self, paths: List[str]) -> None:
        self._record("stage_paths", list(paths))

    def commit(self, message: str, paths: Optional[List[str]] = None) -> None:
        self._record("commit", message)
        self.commit_paths.append(list(paths or []))

    def merge_no_ff(self, ref: str, message_file: Optional[Path] = None) -> None:
        if message_file is not None:
            self.merge_messages.append(Path(message_file).read_text(encoding="utf-8"))
        self._record("merge_no_ff", ref)

    # tags
    def create_tag(self, name: str, message: str, target: Optional[str] = None) -> None:
        self._record("create_tag", name, message, target)
        self.tags[name] = (target or self.head, message)

    def delete_tag(self, name: str) -> None:
        self._record("delete_tag", name)
        self.tags.pop(name, None)

    def delete_remote_tag(self, name: str, remote: str = "origin") -> None:
        self._record("delete_remote_tag", name, remote)

    def push_tag(self, name: str, remote: str = "origin") -> None:
        self._record("push_tag", name, remote)

    def push_all_tags(self, remote: str = "origin", force: bool = False) -> None:
        self._record("push_all_tags", remote, force)


@pytest.fixture
def fake_git(tmp_path):
    """A FakeGitClient rooted in a temporary directory."""
    return FakeGitClient(tmp_path)


@pytest.fixture
def declining() -> Callable[[str], bool]:
    prompts: List[str] = []

    def confirm(prompt: str) -> bool:
        prompts.append(prompt)
        return False

    confirm.prompts = prompts
    return confirm
