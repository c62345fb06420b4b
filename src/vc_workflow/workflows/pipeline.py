"""
Ordered pipelines of fallible git steps.

Each workflow is a chain of dependent subprocess calls. Steps declare
how a failure is handled: ``ABORT`` re-raises and stops the pipeline,
``WARN`` logs a warning and lets the pipeline continue. The module also
defines the ``confirm`` capability used before mutating the repository.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from vc_workflow.vcs.git_client import GitCommandError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


Confirm = Callable[[str], bool]

AFFIRMATIVE_ANSWERS = frozenset({"y", "yes", "s", "sim"})


def is_affirmative(answer: Optional[str]) -> bool:
    """Return True if ``answer`` is one of the accepted affirmative tokens."""
    return (answer or "").strip().lower() in AFFIRMATIVE_ANSWERS


def always_confirm(prompt: str) -> bool:
    """Confirmation used in non-interactive mode (``--yes``)."""
    logger.debug("Auto-confirmed: %s", prompt)
    return True


class FailureMode(enum.Enum):
    ABORT = "abort"
    WARN = "warn"


@dataclass
class Step:
    """A single named action in a :class:`Pipeline`."""

    description: str
    action: Callable[[], Any]
    on_failure: FailureMode = FailureMode.ABORT


@dataclass
class PipelineResult:
    completed: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


class Pipeline:
    """Run steps in order, applying each step's failure mode.

    Only :class:`GitCommandError` is subject to the failure mode; any
    other exception is a programming error and always propagates.
    """

    def __init__(self, name: str, steps: Optional[List[Step]] = None) -> None:
        self.name = name
        self.steps: List[Step] = list(steps or [])

    def add(
        self,
        description: str,
        action: Callable[[], Any],
        on_failure: FailureMode = FailureMode.ABORT,
    ) -> "Pipeline":
        self.steps.append(Step(description, action, on_failure))
        return self

    def run(self) -> PipelineResult:
        result = PipelineResult()
        for step in self.steps:
            logger.info("[%s] %s", self.name, step.description)
            try:
                step.action()
            except GitCommandError as exc:
                if step.on_failure is FailureMode.ABORT:
                    logger.error("[%s] %s failed: %s", self.name, step.description, exc)
                    raise
                logger.warning("[%s] %s failed (continuing): %s", self.name, step.description, exc)
                result.warnings.append(f"{step.description}: {exc}")
                continue
            result.completed.append(step.description)
        return result
