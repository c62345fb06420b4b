"""
Release workflow: merge the staging branch into the release branch.

The merge commit message lists every commit being released, and the
merge commit receives the next semantic version tag ``vX.Y.Z`` (patch
bump of the highest existing tag, ``v0.0.1`` when there is none).

Tag errors are raised after the release branch has already been merged
and pushed. The release is then valid but untagged and has to be tagged
by hand; nothing is rolled back.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Tuple

from vc_workflow.commits.message_builder import render_message, validate_title
from vc_workflow.commits.spec_parser import has_structured_fields, parse_commit_spec
from vc_workflow.config.loader import WorkflowConfig
from vc_workflow.errors import (
    ConflictError,
    OperationCancelled,
    PreconditionError,
    TagExistsError,
    ValidationError,
    VersionFormatError,
)
from vc_workflow.vcs.git_client import GitClient

from .pipeline import Confirm, Pipeline, always_confirm


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


SEMVER_TAG = re.compile(r"^v([0-9]+)\.([0-9]+)\.([0-9]+)$")
INITIAL_TAG = "v0.0.1"


class SemVer(NamedTuple):
    major: int
    minor: int
    patch: int

    def bump_patch(self) -> "SemVer":
        return SemVer(self.major, self.minor, self.patch + 1)

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"


def parse_semver(tag: str) -> SemVer:
    """Parse ``vX.Y.Z`` into a :class:`SemVer`.

    Raises
    ------
    VersionFormatError
        If the tag is not three dot-separated integers prefixed by ``v``.
    """
    match = SEMVER_TAG.match(tag)
    if not match:
        raise VersionFormatError(f"Tag '{tag}' does not follow the expected pattern vX.Y.Z")
    return SemVer(*(int(part) for part in match.groups()))


def latest_semver_tag(tags: Iterable[str]) -> Optional[str]:
    """Return the highest ``vX.Y.Z`` tag in semantic order, ignoring other tags."""
    candidates = [tag for tag in tags if SEMVER_TAG.match(tag)]
    if not candidates:
        return None
    return max(candidates, key=parse_semver)


def next_semver_tag(tags: Iterable[str]) -> str:
    """Compute the tag for the next release.

    Only the patch number is incremented; major and minor stay fixed.
    """
    latest = latest_semver_tag(tags)
    if latest is None:
        return INITIAL_TAG
    return str(parse_semver(latest).bump_patch())


def resolve_release_title(
    allowed_scopes: Iterable[str],
    *,
    commit_type: Optional[str] = None,
    scope: Optional[str] = None,
    description: Optional[str] = None,
    body: Optional[str] = None,
    spec_string: Optional[str] = None,
) -> Tuple[str, Optional[str]]:
    """Resolve the release inputs into ``(title, body)``.

    A positional value without a comma is taken as an already formatted
    title (``"type(scope): description"``); with commas it is a commit
    spec string. Structured fields and a positional value are mutually
    exclusive.

    Raises
    ------
    ConflictError
        If structured fields and a positional value are both given.
    ValidationError
        If the spec is invalid or holds more than one description.
    FormatError
        If the resulting title is not a Conventional Commit title.
    """
    has_flags = has_structured_fields(commit_type, scope, description, body)
    if spec_string is not None and "," not in spec_string:
        if has_flags:
            raise ConflictError(
                "Do not use flags (--type/--scope/--description) together with a positional title."
            )
        return validate_title(spec_string.strip()), None

    spec = parse_commit_spec(
        allowed_scopes,
        commit_type=commit_type,
        scope=scope,
        description=description,
        body=body,
        spec_string=spec_string,
    )
    if len(spec.descriptions) > 1:
        raise ValidationError("A release takes a single description; '|' is not supported here")
    title = render_message(spec.type, spec.scope, spec.descriptions[0])
    return validate_title(title), spec.body


def compose_merge_message(title: str, body: Optional[str], subjects: List[str]) -> str:
    """Build the release merge message: title, optional body, then one bullet per commit."""
    lines = [title]
    if body:
        lines += ["", body]
    lines.append("")
    lines += [f"- {subject}" for subject in subjects]
    return "\n".join(lines) + "\n"


@dataclass
class ReleaseResult:
    title: str
    merge_commit: str
    tag: Optional[str] = None
    included_subjects: List[str] = field(default_factory=list)


class ReleaseManager:
    """Merge staging into release, tag the merge commit and push everything."""

    def __init__(
        self,
        client: GitClient,
        config: Optional[WorkflowConfig] = None,
        confirm: Confirm = always_confirm,
    ) -> None:
        self.client = client
        self.config = config or WorkflowConfig()
        self.confirm = confirm

    def check_preconditions(self) -> None:
        if not self.client.is_worktree_clean():
            raise PreconditionError(
                "Working tree not clean. Commit, stash, or discard changes before releasing."
            )
        current = self.client.get_current_branch()
        if current != self.config.staging_branch:
            logger.warning(
                "Releases should start from '%s' (current branch: %s)",
                self.config.staging_branch,
                current,
            )

    def _merge(self, message: str) -> None:
        cfg = self.config
        # git merge -F reads the message from a file
        with tempfile.NamedTemporaryFile(
            mode="w", delete=False, suffix=".txt", prefix="vcflow-merge-", encoding="utf-8"
        ) as tmp:
            tmp.write(message)
            msg_path = Path(tmp.name)
        try:
            self.client.merge_no_ff(cfg.staging_branch, message_file=msg_path)
        finally:
            os.unlink(msg_path)

    def describe(self, title: str, subjects: List[str], create_tag: bool) -> str:
        cfg = self.config
        tag = next_semver_tag(self.client.list_tags("v*")) if create_tag else "(none)"
        lines = [
            f"Release {cfg.staging_branch} into {cfg.release_branch}:",
            f"  Title: {title}",
            f"  Commits: {len(subjects)}",
            f"  Tag: {tag}",
            "Proceed with the merge and push?",
        ]
        return "\n".join(lines)

    def compute_tag(self) -> str:
        """Return the next tag, refusing one that already exists."""
        tag = next_semver_tag(self.client.list_tags("v*"))
        if self.client.tag_exists(tag):
            raise TagExistsError(f"Semantic version tag {tag} already exists. Aborting.")
        return tag

    def release(self, title: str, body: Optional[str] = None, create_tag: bool = True) -> ReleaseResult:
        """Run the full release.

        Raises
        ------
        PreconditionError
            If the working tree is not clean.
        OperationCancelled
            If the preview is not confirmed; the staging branch is checked
            out again and nothing is merged.
        VersionFormatError, TagExistsError
            After the release branch was already merged and pushed.
        """
        validate_title(title)
        self.check_preconditions()
        cfg = self.config
        client = self.client

        (
            Pipeline("release")
            .add(f"fetch {cfg.remote}", lambda: client.fetch(cfg.remote))
            .add(f"switch to {cfg.staging_branch}", lambda: client.checkout(cfg.staging_branch))
            .add(
                f"update {cfg.staging_branch} from {cfg.remote}",
                lambda: client.pull_ff_only(cfg.remote, cfg.staging_branch),
            )
            .add(f"switch to {cfg.release_branch}", lambda: client.checkout(cfg.release_branch))
            .add(
                f"update {cfg.release_branch} from {cfg.remote}",
                lambda: client.pull_ff_only(cfg.remote, cfg.release_branch),
            )
            .run()
        )

        subjects = client.log_subjects(f"{cfg.release_branch}..{cfg.staging_branch}")
        message = compose_merge_message(title, body, subjects)
        logger.info("Merge message includes %d commit(s)", len(subjects))
        if not self.confirm(self.describe(title, subjects, create_tag)):
            client.checkout(cfg.staging_branch)
            raise OperationCancelled("Release cancelled by the user. Nothing was merged.")

        (
            Pipeline("release")
            .add(
                f"merge {cfg.staging_branch} into {cfg.release_branch} (--no-ff)",
                lambda: self._merge(message),
            )
            .add(f"push {cfg.release_branch}", lambda: client.push(cfg.remote, cfg.release_branch))
            .run()
        )
        result = ReleaseResult(
            title=title, merge_commit=client.rev_parse("HEAD"), included_subjects=subjects
        )

        if create_tag:
            tag = self.compute_tag()
            logger.info("Next semantic version: %s", tag)
            (
                Pipeline("release-tag")
                .add(
                    f"create annotated tag {tag}",
                    lambda: client.create_tag(tag, f"Release {tag} - {title}", result.merge_commit),
                )
                .add(f"push tag {tag}", lambda: client.push_tag(tag, cfg.remote))
                .run()
            )
            result.tag = tag
        else:
            logger.warning("Semantic version tag skipped (--no-tag)")

        (
            Pipeline("release-resync")
            .add(f"switch to {cfg.release_branch}", lambda: client.checkout(cfg.release_branch))
            .add(
                f"update {cfg.release_branch} from {cfg.remote}",
                lambda: client.pull_ff_only(cfg.remote, cfg.release_branch),
            )
            .add(f"switch to {cfg.staging_branch}", lambda: client.checkout(cfg.staging_branch))
            .add(
                f"update {cfg.staging_branch} from {cfg.remote}",
                lambda: client.pull_ff_only(cfg.remote, cfg.staging_branch),
            )
            .run()
        )
        return result
