"""
Grouping of working tree changes into commits.

See :mod:`vc_workflow.grouping.change_grouper` and
:mod:`vc_workflow.grouping.group_model` for details.
"""

from .change_grouper import build_groups, group_by_directory, paths_from_changes  # noqa: F401
from .group_model import ChangeGroup  # noqa: F401
