"""Split, filter and re-path unified diffs.

Both stages work on per-file blocks, delimited by ``diff --git`` lines. The
filter keeps or drops whole blocks; the rewriter only touches the header lines
of a block and leaves hunks alone.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from diffclip.config import DiffBlock

if TYPE_CHECKING:
    from collections.abc import Sequence

IGNORE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^node_modules/"), "dependency directory"),
    (re.compile(r"\.node$"), "compiled binary module"),
    (re.compile(r"package-lock\.json$"), "npm lockfile"),
    (re.compile(r"npm-shrinkwrap\.json$"), "npm shrinkwrap"),
    (re.compile(r"yarn\.lock$"), "yarn lockfile"),
    (re.compile(r"pnpm-lock\.ya?ml$"), "pnpm lockfile"),
    (re.compile(r"\.DS_Store$"), "macOS metadata file"),
    (re.compile(r"\.log$"), "log file"),
    (re.compile(r"\.env$"), "environment file"),
    (re.compile(r"^\.vscode/"), "VS Code settings"),
    (re.compile(r"^\.idea/"), "JetBrains settings"),
    (re.compile(r"\.gitignore$"), "git ignore rules"),
    (re.compile(r"\.eslint"), "ESLint configuration"),
    (re.compile(r"^\.next/"), "Next.js build output"),
    (re.compile(r"^dist/"), "build output"),
    (re.compile(r"^out/"), "build output"),
)

BLOCK_HEADER = "diff --git "

# git C-quotes a path holding a tab, newline, double quote or backslash
_QUOTED_A = r'"a/(?:[^"\\\n]|\\.)*"'
_QUOTED_B = r'"b/(?:[^"\\\n]|\\.)*"'
_HEADER_PATTERN = rf"diff --git (?P<a>{_QUOTED_A}|a/.+?) (?P<b>{_QUOTED_B}|b/.+?)$"
_HEADER_RE = re.compile(rf"^{_HEADER_PATTERN}", re.MULTILINE)
_GIT_HEADER_LINE_RE = re.compile(rf"^{_HEADER_PATTERN}")
_OLD_PATH_LINE_RE = re.compile(rf"^--- (?P<a>{_QUOTED_A}|a/.+?)(?P<tail>\t?)$")
_NEW_PATH_LINE_RE = re.compile(rf"^\+\+\+ (?P<b>{_QUOTED_B}|b/.+?)(?P<tail>\t?)$")
_BLOCK_START_RE = re.compile(rf"^(?={re.escape(BLOCK_HEADER)})", re.MULTILINE)

_C_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13, '"': 34, "\\": 92}
_QUOTE_ON_ESCAPE = str.maketrans({"\\": "\\\\", '"': '\\"', "\t": "\\t", "\n": "\\n"})


def unquote_path(text: str) -> str:
    """Decode a path git wrote in C-quoted form (``"a/caf\\303\\251"``).

    Octal escapes are raw bytes of the UTF-8 encoded name. Text that is not
    wrapped in double quotes is returned unchanged.

    Args:
        text (str): a path token from git output

    Returns:
        str: the path as it is on disk
    """
    if len(text) < 2 or text[0] != '"' or text[-1] != '"':  # noqa: PLR2004
        return text
    body = text[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\" or i + 1 == len(body):
            out += char.encode("utf-8")
            i += 1
            continue
        octal = body[i + 1 : i + 4]
        if len(octal) == 3 and all(c in "01234567" for c in octal):  # noqa: PLR2004
            out.append(int(octal, 8) & 0xFF)
            i += 4
        else:
            escaped = body[i + 1]
            if escaped in _C_ESCAPES:
                out.append(_C_ESCAPES[escaped])
            else:
                out += escaped.encode("utf-8")
            i += 2
    return out.decode("utf-8", errors="replace")


def _token_path(token: str) -> str:
    # strip the "a/" or "b/" side marker once the token is unquoted
    return unquote_path(token)[2:]


def _prefixed_token(token: str, prefix: str) -> str:
    escaped_prefix = prefix.translate(_QUOTE_ON_ESCAPE)
    if token.startswith('"'):
        return f'"{token[1:3]}{escaped_prefix}{token[3:]}'
    if escaped_prefix != prefix:
        return f'"{token[:2]}{(prefix + token[2:]).translate(_QUOTE_ON_ESCAPE)}"'
    return f"{token[:2]}{prefix}{token[2:]}"


def ignore_reason(path: str) -> str | None:
    """Get the description of the first ignore pattern matching `path`.

    Args:
        path (str): a path as written in a diff header, relative to its repository

    Returns:
        str | None: the matching pattern's description, or None when the path is kept
    """
    for pattern, description in IGNORE_PATTERNS:
        if pattern.search(path):
            return description
    return None


def should_ignore(path: str) -> bool:
    return ignore_reason(path) is not None


def split_diff_blocks(diff: str) -> list[DiffBlock]:
    """Split raw diff text into per-file blocks.

    Joining the bodies of the returned blocks gives back `diff` exactly. Text
    before the first header (if any) becomes a block without paths.

    Args:
        diff (str): raw output of a git diff-like command

    Returns:
        list[DiffBlock]: blocks in their original order
    """
    if not diff:
        return []
    blocks: list[DiffBlock] = []
    for chunk in _BLOCK_START_RE.split(diff):
        if not chunk:
            continue
        match = _HEADER_RE.match(chunk)
        if match:
            path_a, path_b = _token_path(match["a"]), _token_path(match["b"])
            blocks.append(DiffBlock(path_a=path_a, path_b=path_b, body=chunk))
        else:
            blocks.append(DiffBlock(body=chunk))
    return blocks


def is_ignored_block(block: DiffBlock) -> bool:
    """A block is ignored when either of its header paths matches an ignore pattern."""
    if not block.has_header:
        return False
    return should_ignore(block.path_a or "") or should_ignore(block.path_b or "")


def kept_blocks(diff: str) -> list[DiffBlock]:
    return [block for block in split_diff_blocks(diff) if not is_ignored_block(block)]


def filter_diff(diff: str) -> str:
    """Drop the blocks of noise files from a diff.

    Surviving blocks keep their order and their exact text; filtering an
    already filtered diff changes nothing.

    Args:
        diff (str): raw diff text

    Returns:
        str: the diff without ignored blocks
    """
    return join_blocks(kept_blocks(diff))


def join_blocks(blocks: Sequence[DiffBlock]) -> str:
    return "".join(block.body for block in blocks)


def has_file_changes(diff: str) -> bool:
    """Whether a diff contains at least one per-file block."""
    return any(block.has_header for block in split_diff_blocks(diff))


def _rewrite_header_line(line: str, prefix: str) -> str:
    match = _GIT_HEADER_LINE_RE.match(line)
    if match:
        return f"diff --git {_prefixed_token(match['a'], prefix)} {_prefixed_token(match['b'], prefix)}"
    match = _OLD_PATH_LINE_RE.match(line)
    if match:
        return f"--- {_prefixed_token(match['a'], prefix)}{match['tail']}"
    match = _NEW_PATH_LINE_RE.match(line)
    if match:
        return f"+++ {_prefixed_token(match['b'], prefix)}{match['tail']}"
    return line


def _rewrite_block(body: str, prefix: str) -> str:
    lines = body.splitlines(keepends=True)
    out: list[str] = []
    in_header = True
    for line in lines:
        if in_header and line.startswith("@@"):
            in_header = False
        if in_header:
            content = line.rstrip("\r\n")
            ending = line[len(content) :]
            out.append(_rewrite_header_line(content, prefix) + ending)
        else:
            out.append(line)
    return "".join(out)


def rewrite_paths(diff: str, prefix: str) -> str:
    """Put `prefix` in front of every path of the diff headers.

    Rewrites ``diff --git a/<p> b/<q>``, ``--- a/<p>`` and ``+++ b/<p>`` lines
    found before the first hunk of each block, in their plain or C-quoted
    form; every other line, including ``--- /dev/null``, is kept byte for byte.

    Args:
        diff (str): diff text relative to one repository
        prefix (str): repository directory plus ``/``, or empty for the root repository

    Returns:
        str: the rewritten diff; `diff` itself when `prefix` is empty
    """
    if not prefix or not diff:
        return diff
    return "".join(
        _rewrite_block(block.body, prefix) if block.has_header else block.body
        for block in split_diff_blocks(diff)
    )


def prepare_diff(diff: str, prefix: str) -> str:
    """Filter a repository diff, then rewrite its paths for the combined report."""
    return rewrite_paths(filter_diff(diff), prefix)
