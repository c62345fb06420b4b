"""
Commit specifications and Conventional Commit messages.
"""

from .message_builder import COMMIT_TYPES, render_message, validate_title  # noqa: F401
from .spec_parser import CommitSpec, parse_commit_spec, parse_spec_string  # noqa: F401
