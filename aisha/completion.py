"""Tab completion of command names, file paths and variable names."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

__all__ = [
    "MAX_LINE_LENGTH",
    "COMMON_VARIABLES",
    "CompletionResult",
    "CompletionEdit",
    "word_at",
    "common_prefix",
    "complete_files",
    "complete_commands",
    "complete_variables",
    "get_completions",
    "apply_completion",
    "format_listing",
]

MAX_LINE_LENGTH = 4096

COMMON_VARIABLES = (
    "HOME",
    "USER",
    "PATH",
    "PWD",
    "SHELL",
    "TERM",
    "EDITOR",
    "LANG",
    "LC_ALL",
    "PS1",
    "PS2",
)

_WORD_BREAKS = frozenset(" \t|;&")
_BLANKS = frozenset(" \t")
_SEPARATORS = frozenset("|;&")


@dataclass
class CompletionResult:
    """Sorted candidate completions and their longest common prefix."""

    completions: list[str] = field(default_factory=list)
    common_prefix: str | None = None

    def __post_init__(self) -> None:
        if self.common_prefix is None:
            self.common_prefix = common_prefix(self.completions)

    def __iter__(self) -> Iterator[str]:
        return iter(self.completions)

    def __len__(self) -> int:
        return len(self.completions)


@dataclass(frozen=True)
class CompletionEdit:
    """The line after a completion attempt, and what the terminal should show."""

    line: str
    cursor: int
    show_listing: bool = False
    beep: bool = False


def word_at(line: str, cursor: int) -> tuple[str, int, bool]:
    """The word ending at ``cursor``: (word, start, is_first_word_of_command)."""
    start = cursor
    while start > 0 and line[start - 1] not in _WORD_BREAKS:
        start -= 1
    before = start
    while before > 0 and line[before - 1] in _BLANKS:
        before -= 1
    is_first = before == 0 or line[before - 1] in _SEPARATORS
    return line[start:cursor], start, is_first


def common_prefix(words: Sequence[str]) -> str:
    """Longest prefix shared by all words; empty for no words."""
    if not words:
        return ""
    return os.path.commonprefix(list(words))


def complete_files(partial: str) -> list[str]:
    """File and directory names starting with ``partial``; directories end in '/'."""
    head, slash, prefix = partial.rpartition("/")
    if slash:
        directory = head or "/"
    else:
        directory = "."
        prefix = partial

    try:
        names = os.listdir(directory)
    except OSError:
        return []

    matches: list[str] = []
    for name in names:
        if name.startswith(".") and not prefix.startswith("."):
            continue
        if not name.startswith(prefix):
            continue
        full = f"{head}/{name}" if slash else name
        if os.path.isdir(full):
            full += "/"
        matches.append(full)
    return matches


def complete_commands(
    partial: str,
    builtin_names: Iterable[str] = (),
    path: str | None = None,
) -> list[str]:
    """Builtins, then executables on ``path`` (default $PATH), starting with ``partial``."""
    matches = [name for name in builtin_names if name.startswith(partial)]
    if path is None:
        path = os.environ.get("PATH")
    if path is None:
        return matches

    seen = set(matches)
    for directory in filter(None, path.split(":")):
        try:
            names = os.listdir(directory)
        except OSError:
            continue
        for name in names:
            if not name.startswith(partial) or name in seen:
                continue
            if os.access(os.path.join(directory, name), os.X_OK):
                matches.append(name)
                seen.add(name)
    return matches


def complete_variables(partial: str) -> list[str]:
    """Common variable names, with their '$', that start with ``partial``."""
    name = partial[1:] if partial.startswith("$") else partial
    return [f"${var}" for var in COMMON_VARIABLES if var.startswith(name)]


def get_completions(
    line: str,
    cursor: int,
    builtin_names: Iterable[str] = (),
    path: str | None = None,
) -> CompletionResult:
    """Completions for the word before ``cursor`` in ``line``."""
    word, _, is_first = word_at(line, cursor)
    if word.startswith("$"):
        found = complete_variables(word)
    elif is_first and "/" not in word:
        found = complete_commands(word, builtin_names, path)
    else:
        found = complete_files(word)
    return CompletionResult(sorted(found))


def _replace_word(line: str, start: int, cursor: int, text: str) -> str:
    return line[:start] + text + line[cursor:]


def apply_completion(line: str, cursor: int, result: CompletionResult) -> CompletionEdit:
    """Insert a completion into the line, or ask for a listing of the choices."""
    completions = result.completions
    if not completions:
        return CompletionEdit(line, cursor, beep=True)

    start = cursor
    while start > 0 and line[start - 1] not in _BLANKS:
        start -= 1
    word_len = cursor - start

    if len(completions) == 1:
        completion = completions[0]
        if len(line) - word_len + len(completion) >= MAX_LINE_LENGTH:
            return CompletionEdit(line, cursor)
        line = _replace_word(line, start, cursor, completion)
        cursor = start + len(completion)
        if not completion.endswith("/") and len(line) < MAX_LINE_LENGTH - 1:
            line = line[:cursor] + " " + line[cursor:]
            cursor += 1
        return CompletionEdit(line, cursor)

    prefix = result.common_prefix or ""
    if len(prefix) > word_len:
        if len(line) - word_len + len(prefix) >= MAX_LINE_LENGTH:
            return CompletionEdit(line, cursor)
        line = _replace_word(line, start, cursor, prefix)
        return CompletionEdit(line, start + len(prefix))
    return CompletionEdit(line, cursor, show_listing=True)


def format_listing(completions: Sequence[str], width: int = 80) -> str:
    """Lay completions out in columns across a terminal of ``width`` characters."""
    if not completions:
        return ""
    max_len = max(len(item) for item in completions)
    cols = max(width // (max_len + 2), 1)
    parts: list[str] = []
    last = len(completions) - 1
    for index, item in enumerate(completions):
        parts.append(f"{item:<{max_len}}  ")
        if (index + 1) % cols == 0 or index == last:
            parts.append("\n")
    return "".join(parts)