"""Thin wrappers around the git executable.

Every function here returns text or an empty value and never raises: a branch
without upstream, a missing ref or an absent git binary all end up as "no
output". `run_git` still records which of those happened in its `GitResult`.
"""

from __future__ import annotations

import os
import subprocess  # noqa: S404
from concurrent.futures import ThreadPoolExecutor
from enum import StrEnum, auto
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, computed_field

from diffclip.config import Branch, Commit
from diffclip.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from pathlib import Path

FETCH_TIMEOUT_S = 120
MAX_FETCH_WORKERS = 8
# paths come out as raw UTF-8 instead of octal-escaped quoted strings
GIT_CONFIG_OVERRIDES = ("-c", "core.quotePath=false")


class GitOutcome(StrEnum):
    """How a git invocation ended."""

    OUTPUT = auto()
    NO_OUTPUT = auto()
    EXECUTION_ERROR = auto()


class GitResult(BaseModel):
    """Result of one git invocation."""

    model_config = ConfigDict(frozen=True)

    args: tuple[str, ...] = Field(..., description="Arguments passed after `git -C <dir>`")
    outcome: GitOutcome
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""

    @computed_field
    @property
    def text(self) -> str:
        """Command output, empty unless the command produced usable output."""
        return self.stdout if self.outcome is GitOutcome.OUTPUT else ""


def run_git(
    repo_dir: Path,
    args: Sequence[str],
    *,
    ok_returncodes: Sequence[int] = (0,),
    timeout_s: float | None = None,
    env: Mapping[str, str] | None = None,
) -> GitResult:
    """Run ``git -C repo_dir <args>`` and classify the outcome.

    Args:
        repo_dir (Path): repository the command runs in
        args (Sequence[str]): git arguments
        ok_returncodes (Sequence[int], optional): exit statuses whose stdout is usable.
            Defaults to (0,).
        timeout_s (float | None, optional): kill the command after this many seconds.
        env (Mapping[str, str] | None, optional): extra environment variables.

    Returns:
        GitResult: the outcome; stdout keeps its exact bytes except trailing newlines
    """
    full_env = {**os.environ, **env} if env else None
    try:
        proc = subprocess.run(
            ["git", *GIT_CONFIG_OVERRIDES, "-C", str(repo_dir), *args],  # noqa: S607
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout_s,
            env=full_env,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.info("git_execution_error", repo=str(repo_dir), args=list(args), error=str(e))
        return GitResult(args=tuple(args), outcome=GitOutcome.EXECUTION_ERROR, stderr=str(e))

    stdout = proc.stdout.rstrip("\n")
    if proc.returncode not in ok_returncodes or not stdout:
        outcome = GitOutcome.NO_OUTPUT
    else:
        outcome = GitOutcome.OUTPUT
    return GitResult(
        args=tuple(args),
        outcome=outcome,
        returncode=proc.returncode,
        stdout=stdout,
        stderr=proc.stderr,
    )


def fetch_remote(repo_dir: Path) -> GitResult:
    """Synchronize all remotes of one repository, without credential prompts."""
    return run_git(
        repo_dir,
        ["fetch", "--all", "--prune", "--quiet"],
        timeout_s=FETCH_TIMEOUT_S,
        env={"GIT_TERMINAL_PROMPT": "0"},
    )


def fetch_remotes(repo_dirs: Iterable[Path]) -> None:
    """Fetch every repository in parallel and wait for all of them.

    Fetching only refreshes remote-tracking refs; a failure in one repository
    is ignored and never affects the others.
    """
    dirs = list(repo_dirs)
    if not dirs:
        return
    with ThreadPoolExecutor(max_workers=min(MAX_FETCH_WORKERS, len(dirs))) as pool:
        futures = [pool.submit(fetch_remote, d) for d in dirs]
    for future in futures:
        if future.exception() is not None:
            logger.info("fetch_failed", error=str(future.exception()))


def resolve_upstream(repo_dir: Path) -> str | None:
    """Find the ref the current branch should be compared against.

    Tries the tracked upstream first, then the default branch advertised by
    ``origin`` (``refs/remotes/origin/HEAD``).

    Returns:
        str | None: a short ref such as ``origin/main``, or None
    """
    tracked = run_git(repo_dir, ["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"]).text.strip()
    if tracked:
        return tracked
    default = run_git(repo_dir, ["symbolic-ref", "refs/remotes/origin/HEAD"]).text.strip()
    if default:
        return default.removeprefix("refs/remotes/")
    return None


def unstaged_diff(repo_dir: Path) -> str:
    return run_git(repo_dir, ["diff", "--color=never"]).text


def staged_diff(repo_dir: Path) -> str:
    return run_git(repo_dir, ["diff", "--cached", "--color=never"]).text


def ahead_diff(repo_dir: Path, upstream: str) -> str:
    """Diff of the commits on HEAD that `upstream` does not have yet."""
    return run_git(repo_dir, ["diff", "--color=never", f"{upstream}...HEAD"]).text


def untracked_files(repo_dir: Path) -> list[str]:
    """List untracked files that are not ignored by .gitignore.

    Names are NUL-separated so they reach the caller unquoted, whatever
    characters they hold.
    """
    out = run_git(repo_dir, ["ls-files", "-z", "--others", "--exclude-standard"]).text
    return [name for name in out.split("\0") if name]


def untracked_diff(repo_dir: Path, rel_path: str) -> str:
    """Show an untracked file as a diff against an empty file.

    ``git diff --no-index`` exits with 1 when the inputs differ, which is
    always the case here.
    """
    return run_git(
        repo_dir,
        ["diff", "--no-index", "--color=never", "--", "/dev/null", rel_path],
        ok_returncodes=(0, 1),
    ).text


def ahead_behind(repo_dir: Path, branch: str, upstream: str) -> tuple[int, int]:
    """Count commits only on `branch` (ahead) and only on `upstream` (behind)."""
    out = run_git(repo_dir, ["rev-list", "--left-right", "--count", f"{branch}...{upstream}"]).text
    parts = out.split()
    if len(parts) != 2:  # noqa: PLR2004
        return (0, 0)
    try:
        return (int(parts[0]), int(parts[1]))
    except ValueError:
        return (0, 0)


def list_branches(repo_dir: Path) -> list[Branch]:
    """List local branches with their upstream and ahead/behind counts."""
    out = run_git(
        repo_dir,
        ["for-each-ref", "--format=%(refname:short)%09%(HEAD)%09%(upstream:short)", "refs/heads"],
    ).text
    branches: list[Branch] = []
    for line in out.splitlines():
        if not line.strip():
            continue
        name, head_mark, upstream = ([*line.split("\t"), "", ""])[:3]
        upstream = upstream.strip()
        ahead, behind = ahead_behind(repo_dir, name, upstream) if upstream else (0, 0)
        branches.append(
            Branch(
                name=name,
                is_current_head=head_mark.strip() == "*",
                upstream=upstream or None,
                ahead=ahead,
                behind=behind,
            ),
        )
    return branches


def list_commits(repo_dir: Path, branch: str, limit: int) -> list[Commit]:
    """List the newest `limit` commits of `branch`, newest first."""
    out = run_git(
        repo_dir,
        ["log", branch, f"-n{limit}", "--pretty=format:%h%x09%ad%x09%s", "--date=short", "--"],
    ).text
    commits: list[Commit] = []
    for line in out.splitlines():
        if not line.strip():
            continue
        sha, date, subject = ([*line.split("\t", 2), "", ""])[:3]
        commits.append(Commit(short_hash=sha, date=date, subject=subject))
    return commits


def commit_summary(repo_dir: Path, sha: str) -> str:
    """One-line commit metadata: ``<hash> <date> <author>: <subject>``."""
    return run_git(repo_dir, ["log", "-1", "--pretty=format:%h %ad %an: %s", "--date=short", sha]).text


def show_commit(repo_dir: Path, sha: str) -> str:
    """Patch introduced by a commit, without the commit message header."""
    return run_git(
        repo_dir,
        ["show", "--patch", "--find-renames", "--binary", "--color=never", "--format=", sha],
    ).text.lstrip("\n")
