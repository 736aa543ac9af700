from __future__ import annotations

import io
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

from diffclip import git_commands
from diffclip.config import CLEAN_TREE_MARKER, ChangeCategory, Repository, category_label
from diffclip.diff_processing import filter_diff, has_file_changes, prepare_diff, rewrite_paths, should_ignore
from diffclip.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from diffclip.selection import SelectionSet

ReportMode = Literal["live", "history"]

REPOSITORY_RULE = "=" * 20
COMMIT_RULE = "-" * 42


class ReportSection(BaseModel):
    """The part of a report belonging to one repository.

    Attributes:
        repository: The repository the section describes.
        heading: Section heading text.
        subsections: Ordered (label, text) pairs, one per change category or commit.
        clean: Whether the repository had nothing to report.
    """

    model_config = ConfigDict(frozen=True)

    repository: Repository
    heading: str
    subsections: list[tuple[str, str]] = Field(default_factory=list)
    clean: bool = False


def collect_untracked(repo_dir: Path, prefix: str) -> str:
    """Render the untracked files of a repository as diffs against empty files.

    The synthetic diffs go through the same filter and path rewrite as the
    tracked ones.

    Args:
        repo_dir (Path): repository location
        prefix (str): path prefix of the repository in the combined report

    Returns:
        str: concatenated diffs of the kept untracked files
    """
    parts: list[str] = []
    for rel in git_commands.untracked_files(repo_dir):
        if should_ignore(rel) or not (repo_dir / rel).is_file():
            continue
        diff = git_commands.untracked_diff(repo_dir, rel)
        if diff:
            parts.append(diff + "\n")
    return prepare_diff("".join(parts), prefix)


def build_live_section(root: Path, repository: Repository) -> ReportSection:
    """Collect the pending changes of one repository.

    Categories come in a fixed order: commits not pushed to the upstream,
    staged changes, unstaged changes, then untracked files.

    Args:
        root (Path): the scanned workspace root
        repository (Repository): the repository to inspect

    Returns:
        ReportSection: the labelled diffs, or a clean section
    """
    repo_dir = repository.path(root)
    prefix = repository.prefix
    heading = f"### {repository.name} ({repository.display_dir})"

    upstream = git_commands.resolve_upstream(repo_dir)
    ahead = prepare_diff(git_commands.ahead_diff(repo_dir, upstream), prefix) if upstream else ""
    staged = prepare_diff(git_commands.staged_diff(repo_dir), prefix)
    unstaged = prepare_diff(git_commands.unstaged_diff(repo_dir), prefix)
    untracked = collect_untracked(repo_dir, prefix)

    subsections: list[tuple[str, str]] = []
    if ahead:
        subsections.append((category_label(ChangeCategory.REMOTE_VS_HEAD, upstream=upstream or ""), ahead))
    if staged:
        subsections.append((category_label(ChangeCategory.STAGED), staged))
    if unstaged:
        subsections.append((category_label(ChangeCategory.UNSTAGED), unstaged))
    if untracked:
        subsections.append((category_label(ChangeCategory.UNTRACKED), untracked))

    return ReportSection(repository=repository, heading=heading, subsections=subsections, clean=not subsections)


def build_live_sections(root: Path, repositories: Sequence[Repository]) -> list[ReportSection]:
    return [build_live_section(root, repository) for repository in repositories]


def build_commit_subsection(repo_dir: Path, sha: str, prefix: str) -> tuple[str, str] | None:
    """Build the labelled patch of one commit.

    Args:
        repo_dir (Path): repository location
        sha (str): commit to show
        prefix (str): path prefix of the repository in the combined report

    Returns:
        tuple[str, str] | None: (commit line, patch), or None when every changed
            file of the commit is ignored
    """
    patch = filter_diff(git_commands.show_commit(repo_dir, sha))
    if not has_file_changes(patch):
        logger.info("commit_dropped", repo=str(repo_dir), commit=sha)
        return None
    summary = git_commands.commit_summary(repo_dir, sha) or sha
    return (f"Commit: {summary}", rewrite_paths(patch, prefix))


def build_history_sections(root: Path, selection: SelectionSet) -> list[ReportSection]:
    """Collect the selected commits of every selected repository.

    Repositories whose selected commits were all dropped are left out.

    Args:
        root (Path): the scanned workspace root
        selection (SelectionSet): the chosen repositories, branches and commits

    Returns:
        list[ReportSection]: one section per repository with at least one commit
    """
    sections: list[ReportSection] = []
    for repo_selection in selection.repositories:
        repository = repo_selection.repository
        repo_dir = repository.path(root)
        subsections: list[tuple[str, str]] = []
        for commit in repo_selection.unique_commits():
            sub = build_commit_subsection(repo_dir, commit.short_hash, repository.prefix)
            if sub is not None:
                subsections.append(sub)
        if subsections:
            sections.append(
                ReportSection(
                    repository=repository,
                    heading=f"Repository: {repository.name} ({repository.display_dir})",
                    subsections=subsections,
                ),
            )
    return sections


def _write_live_section(out: io.StringIO, section: ReportSection) -> None:
    out.write(f"{section.heading}\n\n")
    if section.clean:
        out.write(f"{CLEAN_TREE_MARKER}\n\n")
        return
    for label, text in section.subsections:
        body = text.rstrip("\n")
        out.write(f"{label}\n{body}\n\n")


def _write_history_section(out: io.StringIO, section: ReportSection) -> None:
    out.write(f"\n{REPOSITORY_RULE}\n{section.heading}\n{REPOSITORY_RULE}\n")
    for label, text in section.subsections:
        body = text.rstrip("\n")
        out.write(f"\n{COMMIT_RULE}\n{label}\n{COMMIT_RULE}\n")
        out.write(f"DIFF=\n{body}\n\n")


def render_report(root: Path, sections: Sequence[ReportSection], *, mode: ReportMode) -> str:
    """Render report sections into the final clipboard text.

    Args:
        root (Path): the scanned workspace root, shown in the banner
        sections (Sequence[ReportSection]): sections in discovery order
        mode (ReportMode): "live" or "history", selects the section layout

    Returns:
        str: the report
    """
    out = io.StringIO()
    out.write("# Git changes for review\n")
    out.write(f"root={root}\n")
    out.write(f"mode={mode}\n")
    out.write(f"repositories={len(sections)}\n\n")
    write_section = _write_live_section if mode == "live" else _write_history_section
    for section in sections:
        write_section(out, section)
    return out.getvalue().rstrip("\n") + "\n"


def build_live_report(root: Path, repositories: Sequence[Repository]) -> str:
    return render_report(root, build_live_sections(root, repositories), mode="live")


def build_history_report(root: Path, selection: SelectionSet) -> str:
    """Render the selected commits, or return an empty string when none was kept."""
    sections = build_history_sections(root, selection)
    if not sections:
        return ""
    return render_report(root, sections, mode="history")
