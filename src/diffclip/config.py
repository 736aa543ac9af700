from __future__ import annotations

from enum import IntEnum, StrEnum, auto
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field

DEFAULT_COMMIT_LIMIT = 6

ROOT_REPOSITORY_NAME = "Root"

GIT_MARKER = ".git"

SKIPPED_DIRECTORIES = {
    ".git",
    "node_modules",
    ".next",
    ".vscode",
    ".idea",
    "dist",
    "build",
    "out",
    ".venv",
    "venv",
    "__pycache__",
}

CLEAN_TREE_MARKER = "_No local changes - working tree clean_"


class ExitStatus(IntEnum):
    """Process exit statuses understood by calling scripts."""

    SUCCESS = 0
    DEGRADED = 1
    PRECONDITION_FAILED = 2


class ChangeCategory(StrEnum):
    """Kinds of pending change, declared in report priority order."""

    REMOTE_VS_HEAD = auto()
    STAGED = auto()
    UNSTAGED = auto()
    UNTRACKED = auto()


_CATEGORY_LABEL: dict[ChangeCategory, str] = {
    ChangeCategory.REMOTE_VS_HEAD: "# Remote vs HEAD ({upstream})",
    ChangeCategory.STAGED: "# Staged changes",
    ChangeCategory.UNSTAGED: "# Unstaged changes",
    ChangeCategory.UNTRACKED: "# Untracked files (full contents below)",
}


def category_label(category: ChangeCategory, *, upstream: str = "") -> str:
    """Get the report heading of a change category.

    Args:
        category (ChangeCategory): the change category
        upstream (str, optional): upstream ref name, only used by the remote-vs-head heading

    Returns:
        str: the heading line, without trailing newline
    """
    return _CATEGORY_LABEL[category].format(upstream=upstream)


class Repository(BaseModel):
    """A git repository found by discovery.

    Attributes:
        name: Display name (``Root`` for the scanned directory itself).
        relative_dir: Directory relative to the scanned root, empty for the root.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Display name")
    relative_dir: str = Field("", description="Directory relative to the scanned root")

    @computed_field
    @property
    def prefix(self) -> str:
        """Path prefix put in front of every diff header path of this repository."""
        if not self.relative_dir:
            return ""
        return self.relative_dir.replace("\\", "/").rstrip("/") + "/"

    @computed_field
    @property
    def display_dir(self) -> str:
        """Relative directory as shown in report headings."""
        return self.relative_dir or "."

    def path(self, root: Path) -> Path:
        """Absolute location of the repository below `root`."""
        return root / self.relative_dir if self.relative_dir else root


class DiffBlock(BaseModel):
    """One file's change inside a larger diff.

    `body` holds the exact original text of the block, header line included.
    A chunk without a recognizable ``diff --git`` header has no paths.
    """

    model_config = ConfigDict(frozen=True)

    path_a: str | None = Field(None, description="Path captured after a/")
    path_b: str | None = Field(None, description="Path captured after b/")
    body: str = Field(..., description="Verbatim block text")

    @computed_field
    @property
    def has_header(self) -> bool:
        """Whether the block starts with a recognizable per-file header."""
        return self.path_a is not None and self.path_b is not None


class Branch(BaseModel):
    """A local branch with its tracking information."""

    model_config = ConfigDict(frozen=True)

    name: str
    is_current_head: bool = False
    upstream: str | None = None
    ahead: int = Field(0, ge=0)
    behind: int = Field(0, ge=0)

    @computed_field
    @property
    def label(self) -> str:
        """Choice label: the name, marked when checked out, with ahead/behind counts."""
        label = f"* {self.name}" if self.is_current_head else self.name
        if self.ahead:
            label += f" ↑{self.ahead}"
        if self.behind:
            label += f" ↓{self.behind}"
        return label


class Commit(BaseModel):
    """A commit as listed by ``git log``."""

    model_config = ConfigDict(frozen=True)

    short_hash: str
    date: str = ""
    subject: str = ""

    @computed_field
    @property
    def label(self) -> str:
        """Choice label shown in the commit prompt."""
        return f"[{self.short_hash}]  {self.date}  {self.subject}"
