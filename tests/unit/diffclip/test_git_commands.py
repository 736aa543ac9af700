from __future__ import annotations

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from diffclip import git_commands
from diffclip.config import Branch, Commit
from diffclip.git_commands import GitOutcome, GitResult, run_git

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from pytest_mock import MockerFixture

REPO = Path("/workspace/api")


def fake_git(responses: dict[tuple[str, ...], str]) -> Callable[..., GitResult]:
    """Build a run_git replacement answering known argument lists."""

    def _run(repo_dir: Path, args: Sequence[str], **_kwargs: object) -> GitResult:
        out = responses.get(tuple(args), "")
        outcome = GitOutcome.OUTPUT if out else GitOutcome.NO_OUTPUT
        return GitResult(args=tuple(args), outcome=outcome, returncode=0 if out else 128, stdout=out)

    return _run


@pytest.mark.unit
def test_run_git_classifies_output(mocker: MockerFixture) -> None:
    mocker.patch.object(
        git_commands.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="line \n\n", stderr=""),
    )

    result = run_git(REPO, ["diff"])

    assert result.outcome is GitOutcome.OUTPUT
    assert result.text == "line "


@pytest.mark.unit
def test_run_git_failure_exit_is_no_output(mocker: MockerFixture) -> None:
    mocker.patch.object(
        git_commands.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(
            args=[],
            returncode=128,
            stdout="",
            stderr="fatal: no upstream configured for branch 'main'",
        ),
    )

    result = run_git(REPO, ["rev-parse", "@{u}"])

    assert result.outcome is GitOutcome.NO_OUTPUT
    assert result.text == ""
    assert "no upstream" in result.stderr


@pytest.mark.unit
def test_run_git_accepts_extra_returncodes(mocker: MockerFixture) -> None:
    mocker.patch.object(
        git_commands.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(args=[], returncode=1, stdout="diff --git a/f b/f\n", stderr=""),
    )

    assert run_git(REPO, ["diff", "--no-index"], ok_returncodes=(0, 1)).text == "diff --git a/f b/f"
    assert run_git(REPO, ["diff", "--no-index"]).text == ""


@pytest.mark.unit
def test_run_git_missing_binary_is_execution_error(mocker: MockerFixture) -> None:
    mocker.patch.object(git_commands.subprocess, "run", side_effect=FileNotFoundError("git"))

    result = run_git(REPO, ["status"])

    assert result.outcome is GitOutcome.EXECUTION_ERROR
    assert result.text == ""


@pytest.mark.unit
def test_resolve_upstream_prefers_tracking_branch(mocker: MockerFixture) -> None:
    mocker.patch.object(
        git_commands,
        "run_git",
        side_effect=fake_git({("rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"): "origin/feature"}),
    )

    assert git_commands.resolve_upstream(REPO) == "origin/feature"


@pytest.mark.unit
def test_resolve_upstream_falls_back_to_remote_default(mocker: MockerFixture) -> None:
    mocker.patch.object(
        git_commands,
        "run_git",
        side_effect=fake_git({("symbolic-ref", "refs/remotes/origin/HEAD"): "refs/remotes/origin/main"}),
    )

    assert git_commands.resolve_upstream(REPO) == "origin/main"


@pytest.mark.unit
def test_resolve_upstream_none(mocker: MockerFixture) -> None:
    mocker.patch.object(git_commands, "run_git", side_effect=fake_git({}))

    assert git_commands.resolve_upstream(REPO) is None


@pytest.mark.unit
def test_list_branches_parses_refs_and_counts(mocker: MockerFixture) -> None:
    responses = {
        ("for-each-ref", "--format=%(refname:short)%09%(HEAD)%09%(upstream:short)", "refs/heads"): (
            "main\t*\torigin/main\nspike\t \t"
        ),
        ("rev-list", "--left-right", "--count", "main...origin/main"): "3\t1",
    }
    mocker.patch.object(git_commands, "run_git", side_effect=fake_git(responses))

    branches = git_commands.list_branches(REPO)

    assert branches == [
        Branch(name="main", is_current_head=True, upstream="origin/main", ahead=3, behind=1),
        Branch(name="spike", is_current_head=False, upstream=None),
    ]


@pytest.mark.unit
def test_list_commits_parses_log(mocker: MockerFixture) -> None:
    responses = {
        ("log", "main", "-n2", "--pretty=format:%h%x09%ad%x09%s", "--date=short", "--"): (
            "abc1234\t2025-06-02\tAdd endpoint\ndef5678\t2025-06-01\tFix\ttabs"
        ),
    }
    mocker.patch.object(git_commands, "run_git", side_effect=fake_git(responses))

    commits = git_commands.list_commits(REPO, "main", 2)

    assert commits == [
        Commit(short_hash="abc1234", date="2025-06-02", subject="Add endpoint"),
        Commit(short_hash="def5678", date="2025-06-01", subject="Fix\ttabs"),
    ]


@pytest.mark.unit
def test_fetch_remotes_swallows_failures(mocker: MockerFixture) -> None:
    fetch = mocker.patch.object(git_commands, "fetch_remote", side_effect=[RuntimeError("boom"), None])

    git_commands.fetch_remotes([Path("/a"), Path("/b")])

    assert fetch.call_count == 2


@pytest.mark.unit
def test_run_git_disables_path_quoting(mocker: MockerFixture) -> None:
    run = mocker.patch.object(
        git_commands.subprocess,
        "run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr=""),
    )

    run_git(REPO, ["diff", "--cached"])

    assert run.call_args.args[0] == ["git", "-c", "core.quotePath=false", "-C", str(REPO), "diff", "--cached"]


@pytest.mark.unit
def test_untracked_files_splits_nul_separated_names(mocker: MockerFixture) -> None:
    mocker.patch.object(
        git_commands,
        "run_git",
        side_effect=fake_git(
            {("ls-files", "-z", "--others", "--exclude-standard"): "café.txt\0dir/with\nnewline.txt\0plain.txt\0"},
        ),
    )

    assert git_commands.untracked_files(REPO) == ["café.txt", "dir/with\nnewline.txt", "plain.txt"]
