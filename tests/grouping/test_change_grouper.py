import pytest

from vc_workflow.grouping.change_grouper import (
    build_groups,
    group_by_directory,
    group_key,
    paths_from_changes,
)
from vc_workflow.vcs.git_client import FileChange


FILES = [
    "README.md",
    "dags/etl_stock/dag.py",
    "dags/etl_stock/sql/load.sql",
    "dags/etl_stock/utils.py",
    "scripts/release.sh",
    ".gitignore",
]


def test_groups_by_parent_directory():
    groups = group_by_directory(FILES)
    assert groups == {
        "root": ["README.md", ".gitignore"],
        "dags/etl_stock": ["dags/etl_stock/dag.py", "dags/etl_stock/utils.py"],
        "dags/etl_stock/sql": ["dags/etl_stock/sql/load.sql"],
        "scripts": ["scripts/release.sh"],
    }


@pytest.mark.parametrize(
    "files",
    [
        FILES,
        ["a.py"],
        ["x/y/z/deep.py", "x/y/shallow.py", "x/top.py", "top.py"],
        [],
    ],
)
def test_grouping_is_a_strict_partition(files):
    groups = group_by_directory(files)
    members = [path for paths in groups.values() for path in paths]
    assert sorted(members) == sorted(files)
    assert len(members) == len(set(members))
    for key, paths in groups.items():
        assert all(group_key(path) == key for path in paths)


def test_wildcard_puts_everything_in_one_group():
    assert group_by_directory(FILES, use_wildcard=True) == {"*": FILES}


def test_root_files_use_root_key():
    assert group_key("setup.cfg") == "root"
    assert group_key("docs/index.md") == "docs"


def test_build_groups_sorted_by_key():
    keys = [group.key for group in build_groups(FILES)]
    assert keys == sorted(keys)
    assert keys[0] == "dags/etl_stock"


def test_paths_from_changes_includes_rename_source():
    changes = [
        FileChange(path="new/mod.py", status="R", original_path="old/mod.py"),
        FileChange(path="a.py", status="M"),
        FileChange(path="a.py", status="M"),
    ]
    assert paths_from_changes(changes) == ["old/mod.py", "new/mod.py", "a.py"]
