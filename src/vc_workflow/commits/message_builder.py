"""
Rendering and validation of Conventional Commit messages.
"""

from __future__ import annotations

import re
from typing import Optional

from vc_workflow.errors import FormatError


COMMIT_TYPES = ("feat", "fix", "refactor", "chore", "docs", "test", "style", "perf")

TITLE_PATTERN = re.compile(
    r"^(" + "|".join(COMMIT_TYPES) + r")(\([a-z0-9-]+\))?: .+$"
)


def render_message(commit_type: str, scope: str, description: str, body: Optional[str] = None) -> str:
    """Create a commit message following Conventional Commits.

    The wildcard scope ``*`` is displayed as ``all``. A body, when given,
    is appended after a blank line without modification.
    """
    display_scope = "all" if scope == "*" else scope
    message = f"{commit_type}({display_scope}): {description}"
    if body:
        message += f"\n\n{body}"
    return message


def validate_title(title: str) -> str:
    """Return ``title`` unchanged if it is a valid Conventional Commit title.

    Raises
    ------
    FormatError
        If the title does not match ``type(scope): description``.
    """
    if not TITLE_PATTERN.match(title):
        raise FormatError(
            "Merge commit title must follow Conventional Commits "
            f"'<type>(<scope>): <description>'. Received: '{title}'"
        )
    return title
