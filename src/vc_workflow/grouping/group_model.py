"""
Data models for commit grouping.

The :class:`ChangeGroup` represents a batch of changed files that are
staged and committed together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


WILDCARD_KEY = "*"
ROOT_KEY = "root"


@dataclass
class ChangeGroup:
    """Representation of a group of files committed together.

    Attributes
    ----------
    key : str
        The parent directory of the files, ``"root"`` for files at the
        repository root, or ``"*"`` for the single wildcard group.
    files : List[str]
        Paths of the files in the group, relative to the repository root.
    """

    key: str
    files: List[str] = field(default_factory=list)

    @property
    def is_wildcard(self) -> bool:
        return self.key == WILDCARD_KEY
