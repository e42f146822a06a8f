"""A small persistent log of recent commands."""

from __future__ import annotations

import itertools
import os
from collections import deque
from collections.abc import Iterator
from contextlib import suppress

__all__ = ["MAX_ENTRIES", "MAX_COMMAND_LENGTH", "CommandLog", "default_log_path"]

MAX_ENTRIES = 15
MAX_COMMAND_LENGTH = 4096
_LOG_FILE_NAME = ".shell_history"


def default_log_path(directory: str | os.PathLike[str] | None = None) -> str:
    """The log file path inside ``directory`` (the working directory by default)."""
    if directory is None:
        try:
            directory = os.getcwd()
        except OSError:
            directory = "/tmp"
    return os.path.join(os.fspath(directory), _LOG_FILE_NAME)


class CommandLog:
    """The most recent commands, oldest first, saved to a file after each change."""

    def __init__(
        self, path: str | os.PathLike[str] | None = None, max_entries: int = MAX_ENTRIES
    ) -> None:
        self.path = os.fspath(path) if path is not None else default_log_path()
        self.max_entries = max_entries
        self._entries: deque[str] = deque(maxlen=max_entries)
        self.load()

    def load(self) -> None:
        """Replace the entries with those in the log file, if it can be read."""
        try:
            with open(self.path, encoding="utf-8", errors="replace") as handle:
                lines = [
                    line.removesuffix("\n")[: MAX_COMMAND_LENGTH - 1]
                    for line in itertools.islice(handle, self.max_entries)
                ]
        except OSError:
            return
        self._entries = deque(lines, maxlen=self.max_entries)

    def save(self) -> None:
        """Write the entries to the log file; failures are ignored."""
        with suppress(OSError):
            with open(self.path, "w", encoding="utf-8") as handle:
                handle.writelines(f"{entry}\n" for entry in self._entries)

    def add(self, command: str) -> None:
        """Record a command unless it is empty or repeats the last one."""
        if not command:
            return
        command = command[: MAX_COMMAND_LENGTH - 1]
        if self._entries and self._entries[-1] == command:
            return
        self._entries.append(command)
        self.save()

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)