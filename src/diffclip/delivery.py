"""Put the report on the clipboard, or print it when that is impossible.

Delivery walks an ordered list of strategies and stops at the first one that
reports success: pyperclip first, then the copy utility of the platform.
"""

from __future__ import annotations

import shutil
import subprocess  # noqa: S404
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import pyperclip

from diffclip.config import ExitStatus
from diffclip.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import TextIO


class DeliveryStrategy(Protocol):
    name: str

    def copy(self, text: str) -> bool:
        """Write `text` to the clipboard; return False on any failure."""
        ...


@dataclass(frozen=True)
class PyperclipStrategy:
    """Cross-platform clipboard access through pyperclip."""

    name: str = "pyperclip"

    def copy(self, text: str) -> bool:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            logger.info("clipboard_strategy_failed", strategy=self.name, error=str(e))
            return False
        return True


@dataclass(frozen=True)
class CommandStrategy:
    """Pipe the text into a clipboard utility such as pbcopy, clip or xclip."""

    name: str
    command: tuple[str, ...]

    def available(self) -> bool:
        return shutil.which(self.command[0]) is not None

    def copy(self, text: str) -> bool:
        if not self.available():
            return False
        try:
            proc = subprocess.run(  # noqa: S603
                list(self.command),
                input=text,
                text=True,
                encoding="utf-8",
                capture_output=True,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.info("clipboard_strategy_failed", strategy=self.name, error=str(e))
            return False
        return proc.returncode == 0


def platform_command(platform: str | None = None) -> CommandStrategy:
    """Pick the clipboard utility of a platform.

    Args:
        platform (str | None, optional): a `sys.platform` value. Defaults to the running platform.

    Returns:
        CommandStrategy: pbcopy on macOS, clip on Windows, xclip anywhere else
    """
    platform = platform or sys.platform
    if platform == "darwin":
        return CommandStrategy(name="pbcopy", command=("pbcopy",))
    if platform.startswith("win"):
        return CommandStrategy(name="clip", command=("clip",))
    return CommandStrategy(name="xclip", command=("xclip", "-selection", "clipboard"))


def default_strategies(platform: str | None = None) -> list[DeliveryStrategy]:
    return [PyperclipStrategy(), platform_command(platform)]


def copy_to_clipboard(text: str, strategies: Sequence[DeliveryStrategy] | None = None) -> str | None:
    """Try each strategy in order until one succeeds.

    Args:
        text (str): the text to copy
        strategies (Sequence[DeliveryStrategy] | None, optional): strategies to try.
            Defaults to `default_strategies()`.

    Returns:
        str | None: the name of the strategy that copied the text, or None
    """
    for strategy in strategies if strategies is not None else default_strategies():
        if strategy.copy(text):
            return strategy.name
    return None


def deliver_report(
    text: str,
    *,
    quiet: bool = False,
    stream: TextIO | None = None,
    strategies: Sequence[DeliveryStrategy] | None = None,
) -> ExitStatus:
    """Copy the report, falling back to printing it.

    Args:
        text (str): the report
        quiet (bool, optional): do not echo the report after a successful copy
        stream (TextIO | None, optional): where the report is printed. Defaults to stdout.
        strategies (Sequence[DeliveryStrategy] | None, optional): clipboard strategies

    Returns:
        ExitStatus: SUCCESS when copied, DEGRADED when the report was only printed
    """
    out = stream if stream is not None else sys.stdout
    used = copy_to_clipboard(text, strategies)
    if used is None:
        sys.stderr.write("WARNING: Could not copy to clipboard - printing below.\n")
        out.write(text)
        return ExitStatus.DEGRADED

    logger.info("report_copied", strategy=used, chars=len(text))
    sys.stderr.write(f"Git diffs copied to clipboard ({used}).\n")
    if not quiet:
        out.write(text)
    return ExitStatus.SUCCESS
