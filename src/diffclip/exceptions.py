from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DiffClipError(Exception):
    """Base exception for errors in the diffclip package."""


@dataclass(frozen=True)
class NoRepositoriesFoundError(DiffClipError):
    """Raised when discovery finds no git repository to work on."""

    root: Path
    message: str = "No Git repositories found under the scanned directory."

    def __str__(self) -> str:
        return f"{self.message} ({self.root})"


@dataclass(frozen=True)
class SelectionRequiredError(DiffClipError):
    """Raised when a selection is needed but the terminal is not interactive."""

    category: str
    message: str = "Terminal not interactive and no command-line override given."

    def __str__(self) -> str:
        return f"{self.message} Pass --{self.category} to choose {self.category} explicitly."
