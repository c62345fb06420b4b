"""
Command line interface for the vc_workflow tool.

This module defines the ``vcflow`` command group. Each sub-command opens
the repository, loads the settings file and hands over to one workflow:

* ``commit``          - group changed files by directory, commit and push
* ``feature-sync``    - merge the staging branch into the current feature branch
* ``feature-finish``  - sync, merge the feature branch into staging and delete it
* ``release``         - merge staging into the release branch and tag it
* ``retag``           - rebuild the ``v0.0.N`` tags from the release history

Every failure exits with status 1; a declined confirmation exits with 0.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import click

from vc_workflow import __version__
from vc_workflow.commits.spec_parser import parse_commit_spec
from vc_workflow.config.loader import WorkflowConfig, load_config
from vc_workflow.errors import OperationCancelled, PreconditionError, WorkflowError
from vc_workflow.grouping.change_grouper import build_groups, paths_from_changes
from vc_workflow.grouping.group_model import ChangeGroup
from vc_workflow.vcs.git_client import GitClient
from vc_workflow.workflows.branch_workflow import BranchWorkflowEngine
from vc_workflow.workflows.commit_orchestrator import CommitOrchestrator
from vc_workflow.workflows.pipeline import Confirm, PipelineResult, always_confirm, is_affirmative
from vc_workflow.workflows.release_manager import ReleaseManager, resolve_release_title
from vc_workflow.workflows.tag_rebuilder import TagRebuilder

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_FAILURE = 1

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def print_header(text: str) -> None:
    """Print a section header."""
    click.echo(f"\n{'=' * 60}")
    click.echo(click.style(text.center(60), fg="cyan", bold=True))
    click.echo(f"{'=' * 60}\n")


def print_info(message: str, indent: int = 0):
    """Print an info message."""
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}", err=False)


def print_success(message: str, indent: int = 0):
    """Print a success message."""
    prefix = "  " * indent
    click.echo(click.style(f"{prefix}✓ {message}", fg="green"), err=False)


def print_warning(message: str, indent: int = 0):
    """Print a warning message."""
    prefix = "  " * indent
    click.echo(click.style(f"{prefix}⚠ {message}", fg="yellow"), err=False)


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(click.style(f"{prefix}✗ {message}", fg="red"), err=True)


def print_summary_box(title: str, items: List[str]):
    """Print a formatted summary box."""
    max_width = max(len(title), max(len(item) for item in items) if items else 0)
    box_width = min(max_width + 4, 72)

    click.echo(f"\n┌{'─' * box_width}┐")
    click.echo(f"│ {title.ljust(box_width - 2)}│")
    click.echo(f"├{'─' * box_width}┤")
    for item in items:
        click.echo(f"│ {item[:box_width - 2].ljust(box_width - 2)}│")
    click.echo(f"└{'─' * box_width}┘")


def print_pipeline_warnings(result: PipelineResult) -> None:
    for warning in result.warnings:
        print_warning(warning)


# ---------------------------------------------------------------------------
# Shared plumbing
# ---------------------------------------------------------------------------

def prompt_confirm(prompt: str) -> bool:
    """Ask the user to confirm ``prompt``; only affirmative answers confirm."""
    answer = click.prompt(
        click.style(f"\n{prompt} (y/n)", fg="yellow"), default="", show_default=False
    )
    return is_affirmative(answer)


def make_confirm(yes: bool) -> Confirm:
    return always_confirm if yes else prompt_confirm


def open_repository(start: Path) -> Tuple[GitClient, WorkflowConfig]:
    """Locate the repository containing ``start`` and load its settings.

    Raises
    ------
    PreconditionError
        If ``start`` is not inside a Git repository.
    """
    repo_root = GitClient.find_repo_root(start)
    if repo_root is None:
        raise PreconditionError("No Git repository found in current directory or parent directories.")
    logger.debug("Repository root: %s", repo_root)
    return GitClient(repo_root), load_config(repo_root)


@contextmanager
def handle_workflow_errors() -> Iterator[None]:
    """Translate workflow exceptions into messages and exit codes."""
    try:
        yield
    except click.exceptions.Exit:
        raise
    except OperationCancelled as exc:
        print_warning(str(exc))
        raise click.exceptions.Exit(EXIT_SUCCESS)
    except WorkflowError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_FAILURE)
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        raise click.exceptions.Exit(EXIT_FAILURE)


@contextmanager
def usage_errors_as_failure() -> Iterator[None]:
    """Give click usage errors the general failure status instead of 2."""
    try:
        yield
    except click.UsageError as exc:
        exc.exit_code = EXIT_FAILURE
        raise


class WorkflowGroup(click.Group):
    """Command group whose argument errors exit with :data:`EXIT_FAILURE`."""

    def make_context(self, info_name, args, parent=None, **extra):
        with usage_errors_as_failure():
            return super().make_context(info_name, args, parent=parent, **extra)

    def invoke(self, ctx):
        # sub-command arguments are parsed here
        with usage_errors_as_failure():
            return super().invoke(ctx)


def ensure_staging_branch(client: GitClient, config: WorkflowConfig, confirm: Confirm) -> None:
    """Switch to the staging branch, asking first when on another branch."""
    branch = client.get_current_branch()
    if branch == config.staging_branch:
        print_success(f"Current branch: {branch}")
        return
    print_warning(f"You are not on '{config.staging_branch}'. Current branch: {branch}")
    if not confirm(f"Switch to branch '{config.staging_branch}'?"):
        raise OperationCancelled("Operation cancelled by the user")
    client.checkout(config.staging_branch)
    print_success(f"Switched to branch '{config.staging_branch}'")


def display_file_groups(groups: List[ChangeGroup]) -> None:
    print_info("Files grouped by directory:")
    for group in groups:
        click.echo(f"\n  {click.style(group.key + '/', bold=True)}")
        for path in sorted(group.files):
            click.echo(f"    • {path}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group(cls=WorkflowGroup, context_settings=CONTEXT_SETTINGS)
@click.option(
    "--repo",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path inside the Git repository (defaults to the current directory).",
)
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="vcflow")
@click.pass_context
def main(ctx: click.Context, repo: Optional[Path], verbose: bool) -> None:
    """Disciplined git workflows: grouped commits, feature branches and releases."""
    # force=True reconfigures handlers on repeated invocations (tests)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    ctx.ensure_object(dict)
    ctx.obj["start"] = repo or Path.cwd()


def _start(ctx: click.Context) -> Path:
    obj: Dict = ctx.obj or {}
    return obj.get("start") or Path.cwd()


@main.command("commit", context_settings=CONTEXT_SETTINGS)
@click.option("-t", "--type", "commit_type", help="Commit type (feat, fix, docs, ...).")
@click.option("-s", "--scope", help="Commit scope; '*' puts every file in one commit.")
@click.option("-d", "--description", help='Description(s); separate one per group with "|".')
@click.option("-b", "--body", default=None, help="Optional commit body.")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.argument("spec", required=False)
@click.pass_context
def commit_command(
    ctx: click.Context,
    commit_type: Optional[str],
    scope: Optional[str],
    description: Optional[str],
    body: Optional[str],
    yes: bool,
    spec: Optional[str],
) -> None:
    """Commit and push changed files, one commit per directory.

    SPEC is "type,scope,description[,body]"; use either SPEC or the flags.
    """
    with handle_workflow_errors():
        client, config = open_repository(_start(ctx))
        commit_spec = parse_commit_spec(
            config.commit_scopes,
            commit_type=commit_type,
            scope=scope,
            description=description,
            body=body,
            spec_string=spec,
        )
        confirm = make_confirm(yes)

        print_header("GIT COMMIT - GROUPED COMMITS")
        ensure_staging_branch(client, config, confirm)

        changes = client.get_changes()
        if not changes:
            raise PreconditionError("No modified files found")
        print_info(f"Total modified files: {len(changes)}")

        groups = build_groups(paths_from_changes(changes), use_wildcard=commit_spec.is_wildcard)
        display_file_groups(groups)

        print_header("COMMITTING AND PUSHING")
        orchestrator = CommitOrchestrator(client, confirm, remote=config.remote)
        commits = orchestrator.run(groups, commit_spec)

        print_header("SUMMARY")
        if not commits:
            print_warning("No commit was made")
            raise click.exceptions.Exit(EXIT_FAILURE)
        items = [f"{idx}. {msg.splitlines()[0]}  [{key}]" for idx, (msg, key) in enumerate(commits, 1)]
        print_summary_box(f"Commits made: {len(commits)}/{len(groups)}", items)
        if len(commits) < len(groups):
            print_warning(f"{len(groups) - len(commits)} group(s) failed; see the log above")


@main.command("feature-sync", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def feature_sync_command(ctx: click.Context) -> None:
    """Merge the latest staging branch into the current feature branch."""
    with handle_workflow_errors():
        client, config = open_repository(_start(ctx))
        engine = BranchWorkflowEngine(client, config)
        branch = engine.begin()
        print_header(f"FEATURE SYNC - {config.staging_branch} → {branch}")
        engine.sync()
        print_success(f"{branch} is synchronized with {config.staging_branch}")


@main.command("feature-finish", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def feature_finish_command(ctx: click.Context) -> None:
    """Sync the feature branch, merge it into staging and delete it."""
    with handle_workflow_errors():
        client, config = open_repository(_start(ctx))
        engine = BranchWorkflowEngine(client, config)
        branch = engine.begin()
        print_header(f"FEATURE FINISH - {branch} → {config.staging_branch}")
        engine.sync()
        result = engine.finish()
        print_pipeline_warnings(result)
        print_success(f"{branch} merged into {config.staging_branch} and cleaned up")


@main.command("release", context_settings=CONTEXT_SETTINGS)
@click.option("-t", "--type", "commit_type", help="Commit type of the merge title.")
@click.option("-s", "--scope", help="Scope of the merge title.")
@click.option("-d", "--description", help="Description of the merge title.")
@click.option("-b", "--body", default=None, help="Optional body added below the title.")
@click.option("--no-tag", is_flag=True, help="Do not create the vX.Y.Z tag.")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation.")
@click.argument("spec", required=False)
@click.pass_context
def release_command(
    ctx: click.Context,
    commit_type: Optional[str],
    scope: Optional[str],
    description: Optional[str],
    body: Optional[str],
    no_tag: bool,
    yes: bool,
    spec: Optional[str],
) -> None:
    """Merge staging into the release branch and tag the release.

    SPEC is "type,scope,description[,body]" or a formatted title
    "type(scope): description"; use either SPEC or the flags.
    """
    with handle_workflow_errors():
        client, config = open_repository(_start(ctx))
        title, merge_body = resolve_release_title(
            config.release_scopes,
            commit_type=commit_type,
            scope=scope,
            description=description,
            body=body,
            spec_string=spec,
        )

        print_header(f"GIT RELEASE - {config.staging_branch} → {config.release_branch}")
        print_info(f"Merge commit title: {title}")
        if no_tag:
            print_warning("Release mode: without semantic version tag (--no-tag)")
        else:
            print_info("Release mode: with automatic semantic version tag (vX.Y.Z)")

        manager = ReleaseManager(client, config, confirm=make_confirm(yes))
        result = manager.release(title, merge_body, create_tag=not no_tag)

        items = [
            f"Merge commit: {result.merge_commit[:12]}",
            f"Commits released: {len(result.included_subjects)}",
            f"Tag: {result.tag or '(none)'}",
        ]
        print_summary_box("RELEASE COMPLETE", items)


@main.command("retag", context_settings=CONTEXT_SETTINGS)
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def retag_command(ctx: click.Context, yes: bool) -> None:
    """Rebuild the release tags as v0.0.1..v0.0.N from the release history."""
    with handle_workflow_errors():
        client, config = open_repository(_start(ctx))
        print_header("GIT RELEASE RETAG")
        created = TagRebuilder(client, config, confirm=make_confirm(yes)).rebuild()
        items = [f"{tag}  {release.sha[:12]}  {release.subject}" for tag, release in created]
        print_summary_box(f"Tags created: {len(created)}", items)
