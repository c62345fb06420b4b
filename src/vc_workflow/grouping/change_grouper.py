"""
Partitioning of changed files into commit groups.

Files are grouped by their immediate parent directory so that each
directory of the repository gets its own commit. The grouping is
deterministic and does not touch the repository, so it can be unit
tested with plain path lists.
"""

from __future__ import annotations

from collections import defaultdict
from pathlib import PurePosixPath
from typing import Dict, Iterable, List

from .group_model import ROOT_KEY, WILDCARD_KEY, ChangeGroup


def group_key(file_path: str) -> str:
    """Return the group key of a single path.

    Parameters
    ----------
    file_path : str
        Path relative to the repository root, using forward slashes.

    Returns
    -------
    str
        The parent directory, or ``"root"`` for top-level files.
    """
    parent = str(PurePosixPath(file_path).parent)
    if parent in ("", "."):
        return ROOT_KEY
    return parent


def group_by_directory(files: Iterable[str], use_wildcard: bool = False) -> Dict[str, List[str]]:
    """Group files by parent directory, or into a single wildcard group.

    Every input path lands in exactly one group; input order is kept
    within each group.
    """
    files = list(files)
    if use_wildcard:
        return {WILDCARD_KEY: files}

    groups: Dict[str, List[str]] = defaultdict(list)
    for file_path in files:
        groups[group_key(file_path)].append(file_path)
    return dict(groups)


def paths_from_changes(changes: Iterable) -> List[str]:
    """Flatten file changes into a de-duplicated list of paths.

    A rename contributes both its previous and its new path so that the
    deletion side is staged together with its directory.
    """
    paths: List[str] = []
    seen = set()
    for change in changes:
        for path in (getattr(change, "original_path", None), change.path):
            if path and path not in seen:
                seen.add(path)
                paths.append(path)
    return paths


def build_groups(files: Iterable[str], use_wildcard: bool = False) -> List[ChangeGroup]:
    """Return :class:`ChangeGroup` objects sorted lexicographically by key."""
    grouped = group_by_directory(files, use_wildcard=use_wildcard)
    return [ChangeGroup(key=key, files=grouped[key]) for key in sorted(grouped)]
