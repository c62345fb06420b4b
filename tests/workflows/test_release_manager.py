import pytest

from vc_workflow.errors import (
    ConflictError,
    FormatError,
    OperationCancelled,
    PreconditionError,
    TagExistsError,
    ValidationError,
    VersionFormatError,
)
from vc_workflow.vcs.git_client import GitCommandError
from vc_workflow.workflows.release_manager import (
    ReleaseManager,
    SemVer,
    compose_merge_message,
    latest_semver_tag,
    next_semver_tag,
    parse_semver,
    resolve_release_title,
)


SCOPES = ["dag", "docs", "release"]


# ---------------------------------------------------------------------------
# version computation
# ---------------------------------------------------------------------------

def test_next_tag_bumps_patch_only():
    assert next_semver_tag(["v1.2.3"]) == "v1.2.4"


def test_next_tag_without_semver_tags():
    assert next_semver_tag([]) == "v0.0.1"
    assert next_semver_tag(["release-2024-05-01", "v1", "v1.2"]) == "v0.0.1"


def test_latest_tag_uses_semantic_order():
    tags = ["v0.0.9", "v0.0.10", "v0.1.0", "v0.0.11", "vnext", "v2.0.0-rc1"]
    assert latest_semver_tag(tags) == "v0.1.0"
    assert next_semver_tag(tags) == "v0.1.1"
    assert next_semver_tag(["v0.0.9", "v0.0.10"]) == "v0.0.11"


def test_parse_semver():
    assert parse_semver("v10.0.7") == SemVer(10, 0, 7)
    assert str(SemVer(1, 2, 3).bump_patch()) == "v1.2.4"


@pytest.mark.parametrize("tag", ["1.2.3", "v1.2", "v1.2.x", "v1.2.3.4"])
def test_parse_semver_rejects_malformed(tag):
    with pytest.raises(VersionFormatError, match="vX.Y.Z"):
        parse_semver(tag)


# ---------------------------------------------------------------------------
# title resolution
# ---------------------------------------------------------------------------

def test_title_from_flags():
    title, body = resolve_release_title(
        SCOPES, commit_type="chore", scope="release", description="integrate improvements", body="Details"
    )
    assert title == "chore(release): integrate improvements"
    assert body == "Details"


def test_title_from_spec_string():
    assert resolve_release_title(SCOPES, spec_string="docs,docs,update docs,Longer text") == (
        "docs(docs): update docs",
        "Longer text",
    )


def test_legacy_formatted_title():
    assert resolve_release_title(SCOPES, spec_string="docs(docs): update docs") == (
        "docs(docs): update docs",
        None,
    )


def test_legacy_title_must_match_grammar():
    with pytest.raises(FormatError):
        resolve_release_title(SCOPES, spec_string="Release everything")


@pytest.mark.parametrize("spec_string", ["docs(docs): update docs", "docs,docs,update docs"])
def test_flags_and_positional_conflict(spec_string):
    with pytest.raises(ConflictError):
        resolve_release_title(SCOPES, commit_type="docs", spec_string=spec_string)


def test_release_scope_validation():
    with pytest.raises(ValidationError, match="'utils'"):
        resolve_release_title(SCOPES, spec_string="feat,utils,x")


def test_release_takes_single_description():
    with pytest.raises(ValidationError, match="single description"):
        resolve_release_title(SCOPES, spec_string="feat,dag,a|b")


def test_compose_merge_message():
    assert compose_merge_message("chore(release): ship", None, ["feat(dag): a", "fix(sql): b"]) == (
        "chore(release): ship\n\n- feat(dag): a\n- fix(sql): b\n"
    )
    assert compose_merge_message("chore(release): ship", "Body", ["x"]) == (
        "chore(release): ship\n\nBody\n\n- x\n"
    )


# ---------------------------------------------------------------------------
# release procedure
# ---------------------------------------------------------------------------

TITLE = "chore(release): integrate improvements"


def test_release_requires_clean_tree(fake_git):
    fake_git.clean = False
    with pytest.raises(PreconditionError):
        ReleaseManager(fake_git).release(TITLE)
    assert fake_git.mutating_calls() == []


def test_release_rejects_bad_title_before_mutation(fake_git):
    with pytest.raises(FormatError):
        ReleaseManager(fake_git).release("not a title")
    assert fake_git.mutating_calls() == []


def test_full_release_sequence(fake_git):
    fake_git.tags = {"v1.2.3": ("abc", "Release v1.2.3"), "release-2023-01-01": ("abd", "")}
    fake_git.subjects = ["feat(dag): add loader", "fix(sql): quote names"]

    result = ReleaseManager(fake_git).release(TITLE, body="Highlights")

    assert result.tag == "v1.2.4"
    assert result.merge_commit == fake_git.head
    assert result.included_subjects == fake_git.subjects
    assert fake_git.mutating_calls() == [
        ("fetch", "origin"),
        ("checkout", "develop"),
        ("pull_ff_only", "origin", "develop"),
        ("checkout", "main"),
        ("pull_ff_only", "origin", "main"),
        ("merge_no_ff", "develop"),
        ("push", "origin", "main"),
        ("create_tag", "v1.2.4", f"Release v1.2.4 - {TITLE}", fake_git.head),
        ("push_tag", "v1.2.4", "origin"),
        ("checkout", "main"),
        ("pull_ff_only", "origin", "main"),
        ("checkout", "develop"),
        ("pull_ff_only", "origin", "develop"),
    ]
    assert ("log_subjects", "main..develop") in fake_git.calls
    assert fake_git.merge_messages == [
        f"{TITLE}\n\nHighlights\n\n- feat(dag): add loader\n- fix(sql): quote names\n"
    ]


def test_first_release_is_v0_0_1(fake_git):
    assert ReleaseManager(fake_git).release(TITLE).tag == "v0.0.1"


def test_no_tag_skips_tagging(fake_git):
    result = ReleaseManager(fake_git).release(TITLE, create_tag=False)
    assert result.tag is None
    assert "create_tag" not in fake_git.names()
    assert "push_tag" not in fake_git.names()
    assert fake_git.current_branch == "develop"


def test_release_from_other_branch_only_warns(fake_git, caplog):
    fake_git.current_branch = "feature/x"
    with caplog.at_level("WARNING"):
        ReleaseManager(fake_git).release(TITLE, create_tag=False)
    assert "should start from 'develop'" in caplog.text


def test_existing_tag_fails_after_release_was_pushed(fake_git, monkeypatch):
    fake_git.tags = {"v0.0.1": ("abc", "")}
    monkeypatch.setattr(
        "vc_workflow.workflows.release_manager.next_semver_tag", lambda tags: "v0.0.1"
    )
    with pytest.raises(TagExistsError, match="v0.0.1"):
        ReleaseManager(fake_git).release(TITLE)
    assert ("push", "origin", "main") in fake_git.calls
    assert "create_tag" not in fake_git.names()


def test_merge_failure_is_fatal(fake_git):
    fake_git.fail_on["merge_no_ff"] = True
    with pytest.raises(GitCommandError):
        ReleaseManager(fake_git).release(TITLE)
    assert ("push", "origin", "main") not in fake_git.calls


def test_declined_preview_merges_nothing(fake_git, declining):
    fake_git.tags = {"v1.2.3": ("abc", "")}
    fake_git.subjects = ["feat(dag): add loader", "fix(sql): quote names"]

    with pytest.raises(OperationCancelled):
        ReleaseManager(fake_git, confirm=declining).release(TITLE)

    prompt = declining.prompts[0]
    assert f"Title: {TITLE}" in prompt
    assert "Commits: 2" in prompt
    assert "Tag: v1.2.4" in prompt
    assert "merge_no_ff" not in fake_git.names()
    assert ("push", "origin", "main") not in fake_git.calls
    assert fake_git.current_branch == "develop"


def test_preview_without_tag(fake_git, declining):
    with pytest.raises(OperationCancelled):
        ReleaseManager(fake_git, confirm=declining).release(TITLE, create_tag=False)
    assert "Tag: (none)" in declining.prompts[0]
