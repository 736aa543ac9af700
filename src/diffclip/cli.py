"""
diffclip — hand a reviewer the changes of a whole workspace in one paste.

Overview
--------
A workspace is a directory that is a git repository, holds git repositories
one level down, or both. diffclip collects their changes into one text
report, drops noise files (lockfiles, dependency and build directories,
editor settings, logs, ``.env``), rewrites diff paths so every sub-repository
reads as a subtree of one patch, and copies the result to the clipboard.

1) **live** (default) — for every repository: commits not pushed yet, staged
   changes, unstaged changes and untracked files.

2) **history** — pick repositories, branches and commits (interactively, or
   with ``--repos/--branches/--commits``) and collect those commits' patches.

Usage
-----
    - Pending changes of the current workspace:
        diffclip

    - Headless history export, printed as well as copied:
        diffclip history --yes --repos api,web --branches main --limit 10

    - Print only, without touching the clipboard:
        diffclip --stdout > review.diff

Exit status: 0 on success, 1 when the confirmation was declined, nothing was
selected or the clipboard was unavailable (report printed instead), 2 when no
repository was found or a selection is missing without a terminal.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from diffclip import __version__, git_commands
from diffclip.config import DEFAULT_COMMIT_LIMIT, ExitStatus
from diffclip.delivery import deliver_report
from diffclip.exceptions import DiffClipError
from diffclip.logging import logger, setup_logging
from diffclip.output_construction import build_history_report, build_live_report
from diffclip.repo_discovery import discover_repositories
from diffclip.selection import Prompter, QuestionaryPrompter, SelectionEngine
from diffclip.settings import Settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pydantic_core import ErrorDetails


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="diffclip",
        description="Copy filtered git diffs of a workspace and its sub-repositories to the clipboard.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument(
        "mode",
        nargs="?",
        choices=["live", "history"],
        default="live",
        help="live: pending changes (default); history: selected commits.",
    )
    p.add_argument("--root", type=str, default=".", help="Workspace directory to scan.")
    p.add_argument("--yes", action="store_true", help="Skip the copy confirmation.")
    p.add_argument("--repos", type=str, default=None, help="Comma list of repository names or dirs.")
    p.add_argument("--branches", type=str, default=None, help="Comma list of branch names.")
    p.add_argument("--commits", type=str, default=None, help="Comma list of commit short hashes.")
    p.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_COMMIT_LIMIT,
        help="Max commits listed per branch.",
    )
    p.add_argument("--exclude", type=str, default=None, help="Regex dropping sub-repositories by name.")
    output = p.add_mutually_exclusive_group()
    output.add_argument(
        "--stdout",
        action="store_true",
        help="Print the report instead of copying it.",
    )
    output.add_argument(
        "--quiet",
        action="store_true",
        help="Do not print the report after copying it.",
    )
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    return p


def parse_args(argv: Sequence[str] | None = None, *, interactive: bool | None = None) -> Settings:
    """Parse command-line arguments into the run settings.

    Args:
        argv (Sequence[str] | None, optional): arguments, defaults to `sys.argv[1:]`
        interactive (bool | None, optional): force terminal detection; by default
            the run is interactive when stdin is a terminal

    Returns:
        Settings: the settings of this run; invalid values exit with a usage error (status 2)
    """
    parser = build_parser()
    values = vars(parser.parse_args(argv))
    values["root"] = Path(values["root"]).resolve()
    values["interactive"] = sys.stdin.isatty() if interactive is None else interactive
    try:
        return Settings(**values)
    except ValidationError as e:
        parser.error("; ".join(_describe_error(err) for err in e.errors()))


def _describe_error(err: ErrorDetails) -> str:
    option = "--" + "-".join(str(part) for part in err["loc"]).replace("_", "-")
    return f"{option}: {err['msg']}"


def collect_report(settings: Settings, prompter: Prompter) -> str:
    """Run discovery, selection and aggregation for the configured mode.

    Raises:
        DiffClipError: when a precondition fails before any aggregation.

    Returns:
        str: the report, empty when nothing was selected in history mode
    """
    root = settings.root
    repositories = discover_repositories(root, exclude=settings.exclude)

    if settings.mode == "live":
        git_commands.fetch_remotes(repo.path(root) for repo in repositories)
        return build_live_report(root, repositories)

    selection = SelectionEngine(root, settings, prompter).run(repositories)
    if selection.is_empty:
        return ""
    return build_history_report(root, selection)


def confirm_delivery(settings: Settings, prompter: Prompter) -> bool:
    if settings.mode != "history" or settings.yes or settings.stdout or not settings.interactive:
        return True
    return bool(prompter.confirm("Copy diffs to clipboard?", default=True))


def main(
    argv: Sequence[str] | None = None,
    *,
    prompter: Prompter | None = None,
    interactive: bool | None = None,
) -> int:
    settings = parse_args(argv, interactive=interactive)
    if settings.log_file:
        setup_logging(settings.log_file)
    prompter = prompter or QuestionaryPrompter()

    try:
        report = collect_report(settings, prompter)
    except DiffClipError as e:
        logger.info("precondition_failed", error=str(e))
        sys.stderr.write(f"ERROR: {e}\n")
        return ExitStatus.PRECONDITION_FAILED

    if not report:
        sys.stderr.write("No diffs selected. Goodbye!\n")
        return ExitStatus.DEGRADED

    if not confirm_delivery(settings, prompter):
        return ExitStatus.DEGRADED

    if settings.stdout:
        sys.stdout.write(report)
        return ExitStatus.SUCCESS

    return deliver_report(report, quiet=settings.quiet)


if __name__ == "__main__":
    raise SystemExit(main())
