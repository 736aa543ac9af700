"""Choose repositories, branches and commits, from arguments or prompts.

Selection runs as a sequence of stages: repositories, then the branches of
each chosen repository, then the commits of each chosen branch. Each stage is
answered either by a command-line list (headless) or by a checkbox prompt
(interactive). Aborting a prompt selects nothing for that unit only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

import questionary
from pydantic import BaseModel, ConfigDict, Field

from diffclip import git_commands
from diffclip.config import Branch, Commit, Repository
from diffclip.exceptions import SelectionRequiredError
from diffclip.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from diffclip.settings import Settings

T = TypeVar("T")


class Prompter(Protocol):
    """Terminal interaction needed by the selection flow."""

    def checkbox(self, message: str, titles: Sequence[str]) -> list[int] | None:
        """Let the user pick any number of `titles`; return their indexes, or None when aborted."""
        ...

    def confirm(self, message: str, *, default: bool = True) -> bool | None:
        """Ask a yes/no question; return None when aborted."""
        ...


class QuestionaryPrompter:
    """Prompter rendering questionary checkboxes and confirmations."""

    def checkbox(self, message: str, titles: Sequence[str]) -> list[int] | None:
        choices = [questionary.Choice(title=title, value=index) for index, title in enumerate(titles)]
        return questionary.checkbox(message, choices=choices).ask()

    def confirm(self, message: str, *, default: bool = True) -> bool | None:
        return questionary.confirm(message, default=default).ask()


@dataclass(frozen=True)
class Option(Generic[T]):
    """A selectable candidate: its prompt title, the identifiers it answers to, and its value."""

    title: str
    keys: tuple[str, ...]
    value: T
    prefix_match: bool = field(default=False)

    def matches(self, wanted: Sequence[str]) -> bool:
        for key in self.keys:
            for ident in wanted:
                if key == ident:
                    return True
                if self.prefix_match and key and ident and (key.startswith(ident) or ident.startswith(key)):
                    return True
        return False


def choose(
    options: Sequence[Option[T]],
    message: str,
    override: Sequence[str] | None,
    *,
    category: str,
    interactive: bool,
    prompter: Prompter,
) -> list[T]:
    """Resolve one selection stage.

    Args:
        options (Sequence[Option[T]]): candidates, in display order
        message (str): prompt message
        override (Sequence[str] | None): identifiers given on the command line, None if absent
        category (str): argument name answering this stage, used in errors
        interactive (bool): whether a terminal is attached
        prompter (Prompter): prompt implementation

    Raises:
        SelectionRequiredError: if there is no override and no terminal to ask.

    Returns:
        list[T]: the chosen values, in candidate order
    """
    if override is not None:
        return [opt.value for opt in options if opt.matches(override)]
    if not interactive:
        raise SelectionRequiredError(category=category)
    if not options:
        return []
    picked = prompter.checkbox(message, [opt.title for opt in options])
    if picked is None:
        logger.info("selection_cancelled", stage=category, message=message)
        return []
    indexes = set(picked)
    return [opt.value for i, opt in enumerate(options) if i in indexes]


class BranchSelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    branch: Branch
    commits: list[Commit] = Field(default_factory=list)


class RepositorySelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    repository: Repository
    branches: list[BranchSelection] = Field(default_factory=list)

    def unique_commits(self) -> list[Commit]:
        """Chosen commits across all branches, in selection order, each hash once."""
        seen: set[str] = set()
        out: list[Commit] = []
        for branch_selection in self.branches:
            for commit in branch_selection.commits:
                if commit.short_hash in seen:
                    continue
                seen.add(commit.short_hash)
                out.append(commit)
        return out


class SelectionSet(BaseModel):
    """Everything chosen for a history report, in discovery order."""

    model_config = ConfigDict(frozen=True)

    repositories: list[RepositorySelection] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(rs.unique_commits() for rs in self.repositories)


class SelectionEngine:
    """Drive the repository → branch → commit selection for history mode."""

    def __init__(self, root: Path, settings: Settings, prompter: Prompter | None = None) -> None:
        self.root = root
        self.settings = settings
        self.prompter = prompter or QuestionaryPrompter()

    def _choose(self, options: Sequence[Option[T]], message: str, category: str) -> list[T]:
        return choose(
            options,
            message,
            getattr(self.settings, category),
            category=category,
            interactive=self.settings.interactive,
            prompter=self.prompter,
        )

    def select_repositories(self, candidates: Sequence[Repository]) -> list[Repository]:
        options = [
            Option(title=repo.name, keys=(repo.name, repo.relative_dir or "."), value=repo) for repo in candidates
        ]
        return self._choose(options, "Select repos:", "repos")

    def select_branches(self, repository: Repository) -> list[Branch]:
        branches = git_commands.list_branches(repository.path(self.root))
        options = [Option(title=b.label, keys=(b.name,), value=b) for b in branches]
        return self._choose(options, f"Branches in {repository.name}:", "branches")

    def select_commits(self, repository: Repository, branch: Branch) -> list[Commit]:
        commits = git_commands.list_commits(repository.path(self.root), branch.name, self.settings.limit)
        if not commits:
            return []
        options = [Option(title=c.label, keys=(c.short_hash,), value=c, prefix_match=True) for c in commits]
        return self._choose(options, f"Commits in {repository.name}/{branch.name}:", "commits")

    def run(self, candidates: Sequence[Repository]) -> SelectionSet:
        """Run every stage and collect the result.

        Remotes of the chosen repositories are fetched once, between the
        repository stage and the branch stage, so ahead/behind counts are fresh.

        Args:
            candidates (Sequence[Repository]): discovered repositories

        Returns:
            SelectionSet: the chosen repositories, branches and commits
        """
        repositories = self.select_repositories(candidates)
        git_commands.fetch_remotes(repo.path(self.root) for repo in repositories)

        selections: list[RepositorySelection] = []
        for repository in repositories:
            branch_selections = [
                BranchSelection(branch=branch, commits=self.select_commits(repository, branch))
                for branch in self.select_branches(repository)
            ]
            selections.append(RepositorySelection(repository=repository, branches=branch_selections))
        return SelectionSet(repositories=selections)
