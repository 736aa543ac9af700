from __future__ import annotations

from typing import TYPE_CHECKING

from diffclip.config import GIT_MARKER, ROOT_REPOSITORY_NAME, SKIPPED_DIRECTORIES, Repository
from diffclip.exceptions import NoRepositoriesFoundError
from diffclip.logging import logger

if TYPE_CHECKING:
    import re
    from pathlib import Path


def has_git_marker(path: Path) -> bool:
    """Check whether `path` holds git metadata (a directory, or a file for worktrees)."""
    return (path / GIT_MARKER).exists()


def is_skipped_directory(name: str, exclude: re.Pattern[str] | None = None) -> bool:
    """Check if a child directory must not be considered as a repository.

    Args:
        name (str): the directory name
        exclude (re.Pattern[str] | None, optional): user supplied pattern, searched in `name`

    Returns:
        bool: True for well-known non-project directories and names matching `exclude`
    """
    if name in SKIPPED_DIRECTORIES:
        return True
    return bool(exclude is not None and exclude.search(name))


def discover_repositories(root: Path, *, exclude: re.Pattern[str] | None = None) -> list[Repository]:
    """Find the repositories of a workspace.

    The root directory comes first when it is a repository itself, followed by
    its immediate sub-directories holding a ``.git`` entry, sorted by name.

    Args:
        root (Path): the directory to scan
        exclude (re.Pattern[str] | None, optional): drop sub-directories whose name matches

    Raises:
        NoRepositoriesFoundError: when neither the root nor any child is a repository.

    Returns:
        list[Repository]: the repositories, in report order
    """
    repositories: list[Repository] = []
    if has_git_marker(root):
        repositories.append(Repository(name=ROOT_REPOSITORY_NAME, relative_dir=""))

    children = sorted((p for p in root.iterdir() if p.is_dir()), key=lambda p: p.name)
    for child in children:
        if is_skipped_directory(child.name, exclude):
            continue
        if has_git_marker(child):
            repositories.append(Repository(name=child.name, relative_dir=child.name))

    if not repositories:
        raise NoRepositoriesFoundError(root=root)
    logger.info("repositories_discovered", root=str(root), count=len(repositories))
    return repositories
