from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from diffclip import cli, delivery, git_commands
from diffclip.git_commands import GitOutcome, GitResult

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from pytest_mock import MockerFixture

API_STAGED = (
    "diff --git a/package-lock.json b/package-lock.json\n"
    "--- a/package-lock.json\n"
    "+++ b/package-lock.json\n"
    "@@ -1 +1 @@\n"
    "-1\n"
    "+2\n"
    "diff --git a/src/x.ts b/src/x.ts\n"
    "--- a/src/x.ts\n"
    "+++ b/src/x.ts\n"
    "@@ -1 +1 @@\n"
    "-export const x = 1;\n"
    "+export const x = 2;"
)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    for rel in ["", "api", "node_modules"]:
        (tmp_path / rel / ".git").mkdir(parents=True, exist_ok=True)
    return tmp_path.resolve()


def fake_run_git(workspace: Path) -> object:
    def _run(repo_dir: Path, args: Sequence[str], **_kwargs: object) -> GitResult:
        out = ""
        if repo_dir == workspace / "api" and list(args[:2]) == ["diff", "--cached"]:
            out = API_STAGED
        outcome = GitOutcome.OUTPUT if out else GitOutcome.NO_OUTPUT
        return GitResult(args=tuple(args), outcome=outcome, returncode=0, stdout=out)

    return _run


@pytest.mark.integration
def test_live_report_for_workspace_is_copied(
    workspace: Path,
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    run = mocker.patch.object(git_commands, "run_git", side_effect=fake_run_git(workspace))
    copied: list[str] = []
    mocker.patch.object(delivery.pyperclip, "copy", side_effect=copied.append)

    exit_code = cli.main(["--root", str(workspace), "--quiet"], interactive=False)

    assert exit_code == 0
    assert capsys.readouterr().out == ""
    [report] = copied
    assert "repositories=2\n" in report
    assert "### Root (.)\n\n_No local changes - working tree clean_\n" in report
    assert "### api (api)\n\n# Staged changes\ndiff --git a/api/src/x.ts b/api/src/x.ts\n" in report
    assert "package-lock.json" not in report
    assert "node_modules" not in report
    fetched = {call.args[0] for call in run.call_args_list if call.args[1][0] == "fetch"}
    assert fetched == {workspace, workspace / "api"}


@pytest.mark.integration
def test_live_report_printed_when_clipboard_unavailable(
    workspace: Path,
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    mocker.patch.object(git_commands, "run_git", side_effect=fake_run_git(workspace))
    mocker.patch.object(
        delivery.pyperclip,
        "copy",
        side_effect=delivery.pyperclip.PyperclipException("no clipboard"),
    )
    mocker.patch.object(delivery.shutil, "which", return_value=None)

    exit_code = cli.main(["--root", str(workspace)], interactive=False)

    assert exit_code != 0
    captured = capsys.readouterr()
    assert "diff --git a/api/src/x.ts b/api/src/x.ts" in captured.out
    assert "Could not copy to clipboard" in captured.err
