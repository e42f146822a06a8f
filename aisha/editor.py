"""Line editing state: the edit buffer, the kill buffer and command history."""

from __future__ import annotations

from collections.abc import Iterator

__all__ = ["HISTORY_SIZE", "LINE_BUFFER_SIZE", "History", "LineEditor"]

HISTORY_SIZE = 1000
LINE_BUFFER_SIZE = 4096
_MAX_LINE = LINE_BUFFER_SIZE - 1


class History:
    """Entered lines, oldest first, holding at most ``capacity`` entries."""

    def __init__(self, capacity: int = HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError("history capacity must be at least 1")
        self.capacity = capacity
        self._entries: list[str] = []

    def add(self, line: str) -> None:
        """Record a line unless it is empty or repeats the last entry.

        When the history is full the oldest entry is dropped.
        """
        if not line:
            return
        if self._entries and self._entries[-1] == line:
            return
        if len(self._entries) >= self.capacity:
            del self._entries[0]
        self._entries.append(line)

    def clear(self) -> None:
        self._entries.clear()

    def get(self, index: int) -> str | None:
        """The entry at ``index`` (0 is the oldest), or None when out of range."""
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))


class LineEditor:
    """The line being edited, its cursor, the kill buffer and history position.

    Editing methods return True when the line or cursor changed.
    """

    def __init__(self, history: History | None = None) -> None:
        self.history = history if history is not None else History()
        self.line = ""
        self.cursor = 0
        self.killed = ""
        self.history_index = len(self.history)

    def reset(self) -> None:
        """Start a fresh, empty line positioned after the newest history entry."""
        self.line = ""
        self.cursor = 0
        self.history_index = len(self.history)

    def insert(self, text: str) -> bool:
        """Insert text at the cursor, stopping when the buffer is full."""
        room = _MAX_LINE - len(self.line)
        if room <= 0 or not text:
            return False
        text = text[:room]
        self.line = self.line[: self.cursor] + text + self.line[self.cursor :]
        self.cursor += len(text)
        return True

    def delete(self) -> bool:
        """Delete the character under the cursor."""
        if self.cursor >= len(self.line):
            return False
        self.line = self.line[: self.cursor] + self.line[self.cursor + 1 :]
        return True

    def backspace(self) -> bool:
        """Delete the character before the cursor."""
        if self.cursor == 0:
            return False
        self.cursor -= 1
        self.delete()
        return True

    def move_left(self) -> bool:
        if self.cursor == 0:
            return False
        self.cursor -= 1
        return True

    def move_right(self) -> bool:
        if self.cursor >= len(self.line):
            return False
        self.cursor += 1
        return True

    def home(self) -> bool:
        self.cursor = 0
        return True

    def end(self) -> bool:
        self.cursor = len(self.line)
        return True

    def kill_to_end(self) -> bool:
        """Cut from the cursor to the end of the line into the kill buffer."""
        if self.cursor >= len(self.line):
            return False
        self.killed = self.line[self.cursor :]
        self.line = self.line[: self.cursor]
        return True

    def kill_to_start(self) -> bool:
        """Cut from the start of the line to the cursor into the kill buffer."""
        if self.cursor == 0:
            return False
        self.killed = self.line[: self.cursor]
        self.line = self.line[self.cursor :]
        self.cursor = 0
        return True

    def kill_word(self) -> bool:
        """Cut the word before the cursor, with any spaces after it."""
        if self.cursor == 0:
            return False
        end = self.cursor
        start = end
        while start > 0 and self.line[start - 1] == " ":
            start -= 1
        while start > 0 and self.line[start - 1] != " ":
            start -= 1
        self.killed = self.line[start:end]
        self.line = self.line[:start] + self.line[end:]
        self.cursor = start
        return True

    def yank(self) -> bool:
        """Insert the kill buffer at the cursor."""
        if not self.killed:
            return False
        self.insert(self.killed)
        return True

    def transpose(self) -> bool:
        """Swap the characters around the cursor and move past them."""
        if not 0 < self.cursor < len(self.line):
            return False
        i = self.cursor
        self.line = self.line[: i - 1] + self.line[i] + self.line[i - 1] + self.line[i + 1 :]
        self.cursor += 1
        return True

    def _load_history(self) -> None:
        entry = self.history.get(self.history_index)
        if entry is not None:
            self.line = entry[:_MAX_LINE]
            self.cursor = len(self.line)

    def history_previous(self) -> bool:
        """Show the next older history entry."""
        if self.history_index <= 0:
            return False
        self.history_index -= 1
        self._load_history()
        return True

    def history_next(self) -> bool:
        """Show the next newer history entry, or an empty line past the newest."""
        if self.history_index >= len(self.history):
            return False
        self.history_index += 1
        if self.history_index == len(self.history):
            self.line = ""
            self.cursor = 0
        else:
            self._load_history()
        return True

    def replace(self, line: str, cursor: int | None = None) -> None:
        """Set the whole line and cursor, as after a completion."""
        self.line = line[:_MAX_LINE]
        if cursor is None:
            cursor = len(self.line)
        self.cursor = max(0, min(cursor, len(self.line)))