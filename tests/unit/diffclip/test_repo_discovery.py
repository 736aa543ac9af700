from __future__ import annotations

import re
from typing import TYPE_CHECKING

import pytest

from diffclip.config import Repository
from diffclip.exceptions import NoRepositoriesFoundError
from diffclip.repo_discovery import discover_repositories, is_skipped_directory

if TYPE_CHECKING:
    from pathlib import Path


def make_repo(path: Path) -> Path:
    (path / ".git").mkdir(parents=True)
    return path


@pytest.mark.unit
def test_discover_root_and_child_skipping_node_modules(tmp_path: Path) -> None:
    make_repo(tmp_path)
    make_repo(tmp_path / "api")
    make_repo(tmp_path / "node_modules")
    (tmp_path / "docs").mkdir()

    repos = discover_repositories(tmp_path)

    assert repos == [
        Repository(name="Root", relative_dir=""),
        Repository(name="api", relative_dir="api"),
    ]


@pytest.mark.unit
def test_discover_order_is_stable_and_sorted(tmp_path: Path) -> None:
    for name in ["web", "api", "mobile"]:
        make_repo(tmp_path / name)

    first = discover_repositories(tmp_path)
    second = discover_repositories(tmp_path)

    assert first == second
    assert [r.name for r in first] == ["api", "mobile", "web"]


@pytest.mark.unit
def test_discover_accepts_git_file_marker(tmp_path: Path) -> None:
    worktree = tmp_path / "feature"
    worktree.mkdir()
    (worktree / ".git").write_text("gitdir: /elsewhere/.git/worktrees/feature\n", encoding="utf-8")

    repos = discover_repositories(tmp_path)

    assert [r.relative_dir for r in repos] == ["feature"]


@pytest.mark.unit
def test_discover_applies_exclude_pattern_to_children_only(tmp_path: Path) -> None:
    make_repo(tmp_path)
    make_repo(tmp_path / "api")
    make_repo(tmp_path / "legacy-api")

    repos = discover_repositories(tmp_path, exclude=re.compile("legacy"))

    assert [r.name for r in repos] == ["Root", "api"]


@pytest.mark.unit
def test_discover_raises_when_nothing_found(tmp_path: Path) -> None:
    (tmp_path / "plain").mkdir()
    (tmp_path / "notes.txt").write_text("hello", encoding="utf-8")

    with pytest.raises(NoRepositoriesFoundError) as exc_info:
        discover_repositories(tmp_path)

    assert exc_info.value.root == tmp_path


@pytest.mark.unit
def test_is_skipped_directory() -> None:
    assert is_skipped_directory(".idea")
    assert is_skipped_directory("dist")
    assert not is_skipped_directory("api")
    assert is_skipped_directory("old-web", re.compile("^old-"))
