from __future__ import annotations

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from diffclip.config import DEFAULT_COMMIT_LIMIT


def split_identifiers(value: str) -> list[str]:
    """Split a comma separated argument into trimmed, non-empty identifiers."""
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    """Configuration for one diffclip invocation.

    Built once from the command line and passed explicitly to every component.
    A selection field left to None means "not given on the command line",
    which is different from an empty list.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    mode: Literal["live", "history"] = Field(default="live", description="Report mode.")
    root: Path = Field(default_factory=Path.cwd, description="Directory to scan.")
    yes: bool = Field(default=False, description="Skip delivery confirmation.")
    repos: list[str] | None = Field(default=None, description="Repository names or dirs.")
    branches: list[str] | None = Field(default=None, description="Branch names.")
    commits: list[str] | None = Field(default=None, description="Commit short hashes.")
    limit: int = Field(
        default=DEFAULT_COMMIT_LIMIT,
        ge=1,
        description="Max commits listed per branch.",
    )
    exclude: re.Pattern[str] | None = Field(
        default=None,
        description="Pattern dropping candidate sub-repositories.",
    )
    stdout: bool = Field(default=False, description="Print the report instead of copying it.")
    quiet: bool = Field(default=False, description="Do not echo the report after copying.")
    log_file: str = Field(default="", description="Log file path.")
    interactive: bool = Field(default=False, description="A terminal is attached to stdin.")

    @field_validator("repos", "branches", "commits", mode="before")
    @classmethod
    def _parse_identifier_list(cls, value: str | list[str] | None) -> list[str] | None:
        if value is None or isinstance(value, list):
            return value
        return split_identifiers(value)

    @field_validator("exclude", mode="before")
    @classmethod
    def _compile_exclude(cls, value: str | re.Pattern[str] | None) -> re.Pattern[str] | None:
        if value is None or isinstance(value, re.Pattern):
            return value
        if not value.strip():
            return None
        try:
            return re.compile(value)
        except re.error as e:
            msg = f"Invalid exclude pattern {value!r}: {e}"
            raise ValueError(msg) from e
