"""
Configuration loader for vc_workflow.

Settings are read from an optional JSON file named ``.vcflow.json`` in
the repository root. Every key is optional; missing keys fall back to
the defaults below, which reproduce the ``develop``/``main`` workflow.
If the file is malformed, contains unknown keys, or has values of the
wrong type, a :class:`ConfigError` is raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from vc_workflow.errors import WorkflowError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


CONFIG_FILENAME = ".vcflow.json"

DEFAULT_COMMIT_SCOPES = ["utils", "controle", "sql", "dag", "config", "monitoring", "scripts", "docs", "*"]
DEFAULT_RELEASE_SCOPES = [
    "dag", "controle", "sql", "docs", "utils", "config", "operators", "monitoring", "scripts", "release",
]


class ConfigError(WorkflowError):
    """Raised when the settings file is unreadable or invalid."""

    pass


@dataclass
class WorkflowConfig:
    """Settings shared by all workflows.

    Attributes
    ----------
    remote : str
        Name of the remote every workflow fetches from and pushes to.
    staging_branch : str
        Integration branch feature branches are merged into.
    release_branch : str
        Branch that receives releases and carries the version tags.
    feature_prefix : str
        Prefix a branch name must have to be treated as a feature branch.
    commit_scopes : List[str]
        Scopes accepted by the commit workflow (``*`` means all files).
    release_scopes : List[str]
        Scopes accepted by the release workflow.
    legacy_tag_pattern : str
        Glob matching obsolete release tags removed by the retag workflow.
    release_keyword : str
        Word whose presence in a subject marks a release commit.
    release_overrides : List[str]
        Commit SHAs treated as release commits regardless of their subject.
    """

    remote: str = "origin"
    staging_branch: str = "develop"
    release_branch: str = "main"
    feature_prefix: str = "feature/"
    commit_scopes: List[str] = field(default_factory=lambda: list(DEFAULT_COMMIT_SCOPES))
    release_scopes: List[str] = field(default_factory=lambda: list(DEFAULT_RELEASE_SCOPES))
    legacy_tag_pattern: str = "release-*"
    release_keyword: str = "release"
    release_overrides: List[str] = field(default_factory=list)


_LIST_KEYS = {"commit_scopes", "release_scopes", "release_overrides"}


def _validate(data: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(WorkflowConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    for key, value in data.items():
        if key in _LIST_KEYS:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError(f"'{key}' must be a list of strings")
        elif not isinstance(value, str) or not value:
            raise ConfigError(f"'{key}' must be a non-empty string")
    return data


def load_config(repo_root: Optional[Path] = None) -> WorkflowConfig:
    """Load the workflow settings for ``repo_root``.

    Args:
        repo_root: Repository root containing ``.vcflow.json``. When None,
                   or when the file does not exist, defaults are returned.

    Returns:
        A :class:`WorkflowConfig` with file values applied over the defaults.

    Raises:
        ConfigError: If the file cannot be read, is not a JSON object, or
                     holds unknown keys or values of the wrong type.
    """
    if repo_root is None:
        return WorkflowConfig()

    config_path = repo_root / CONFIG_FILENAME
    if not config_path.exists():
        logger.debug("No %s in %s, using defaults", CONFIG_FILENAME, repo_root)
        return WorkflowConfig()

    try:
        content = config_path.read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path.name}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path.name} must contain a JSON object")

    config = WorkflowConfig(**_validate(data))
    logger.debug("Loaded configuration from: %s", config_path)
    return config
