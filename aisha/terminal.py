"""Interactive line reading: raw terminal mode, key decoding and redrawing."""

from __future__ import annotations

import os
import sys
import termios
from collections.abc import Iterable
from enum import IntEnum
from typing import TextIO

from .completion import apply_completion, format_listing, get_completions
from .editor import LINE_BUFFER_SIZE, LineEditor

__all__ = [
    "Key",
    "RawMode",
    "decode_key",
    "read_key",
    "visible_length",
    "render_line",
    "handle_key",
    "read_line",
]

_ESC = 27
_CLEAR_SCREEN = "\033[2J\033[H"


class Key(IntEnum):
    """Key codes; control keys keep their byte value, special keys are above 999."""

    CTRL_A = 1
    CTRL_B = 2
    CTRL_C = 3
    CTRL_D = 4
    CTRL_E = 5
    CTRL_F = 6
    CTRL_H = 8
    TAB = 9
    CTRL_J = 10
    CTRL_K = 11
    CTRL_L = 12
    ENTER = 13
    CTRL_N = 14
    CTRL_P = 16
    CTRL_R = 18
    CTRL_T = 20
    CTRL_U = 21
    CTRL_W = 23
    CTRL_Y = 25
    ESCAPE = 27
    BACKSPACE = 127
    ARROW_UP = 1000
    ARROW_DOWN = 1001
    ARROW_RIGHT = 1002
    ARROW_LEFT = 1003
    HOME = 1004
    END = 1005
    DELETE = 1006
    PAGE_UP = 1007
    PAGE_DOWN = 1008


_TILDE_KEYS = {
    "1": Key.HOME,
    "3": Key.DELETE,
    "4": Key.END,
    "5": Key.PAGE_UP,
    "6": Key.PAGE_DOWN,
    "7": Key.HOME,
    "8": Key.END,
}
_CSI_KEYS = {
    "A": Key.ARROW_UP,
    "B": Key.ARROW_DOWN,
    "C": Key.ARROW_RIGHT,
    "D": Key.ARROW_LEFT,
    "H": Key.HOME,
    "F": Key.END,
}
_SS3_KEYS = {"H": Key.HOME, "F": Key.END}


def decode_key(data: bytes) -> tuple[int, int]:
    """Decode one key from the start of ``data``: (key code, bytes consumed).

    An incomplete or unknown escape sequence decodes as Key.ESCAPE.
    """
    if not data:
        raise ValueError("no key data")
    first = data[0]
    if first != _ESC:
        return first, 1
    if len(data) < 3:
        return Key.ESCAPE, len(data)
    intro, code = chr(data[1]), chr(data[2])
    if intro == "[":
        if code.isdigit():
            if len(data) < 4:
                return Key.ESCAPE, 3
            if chr(data[3]) == "~" and code in _TILDE_KEYS:
                return _TILDE_KEYS[code], 4
            return Key.ESCAPE, 4
        return _CSI_KEYS.get(code, Key.ESCAPE), 3
    if intro == "O":
        return _SS3_KEYS.get(code, Key.ESCAPE), 3
    return Key.ESCAPE, 3


def _read_byte(fd: int) -> bytes | None:
    try:
        data = os.read(fd, 1)
    except OSError:
        return None
    return data or None


def read_key(fd: int) -> int:
    """Read one key from ``fd``, gathering escape sequences.

    Raises EOFError when the descriptor is at end of input.
    """
    first = os.read(fd, 1)
    if not first:
        raise EOFError
    if first[0] != _ESC:
        return first[0]
    buf = first
    for _ in range(2):
        byte = _read_byte(fd)
        if byte is None:
            return Key.ESCAPE
        buf += byte
    if chr(buf[1]) == "[" and chr(buf[2]).isdigit():
        byte = _read_byte(fd)
        if byte is None:
            return Key.ESCAPE
        buf += byte
    return decode_key(buf)[0]


def visible_length(prompt: str) -> int:
    """Width of ``prompt`` on screen, ignoring ANSI colour sequences."""
    length = 0
    in_escape = False
    for ch in prompt:
        if ch == "\033":
            in_escape = True
        elif in_escape:
            if ch == "m":
                in_escape = False
        else:
            length += 1
    return length


def render_line(prompt: str, editor: LineEditor) -> str:
    """Terminal output that redraws the prompt and line and places the cursor."""
    column = visible_length(prompt) + editor.cursor
    return f"\r{prompt}{editor.line}\033[K\r\033[{column}C"


def handle_key(
    key: int,
    editor: LineEditor,
    prompt: str,
    builtin_names: Iterable[str] = (),
) -> tuple[str, str | None]:
    """Apply a key to the editor.

    Returns (output for the terminal, finished line or None while editing).
    Ctrl+C finishes with an empty line; Ctrl+D on an empty line raises EOFError.
    """
    redraw = lambda: render_line(prompt, editor)  # noqa: E731

    if key in (Key.ENTER, Key.CTRL_J):
        return "\n", editor.line
    if key == Key.CTRL_D:
        if not editor.line:
            raise EOFError
        editor.delete()
        return redraw(), None
    if key == Key.CTRL_C:
        editor.replace("", 0)
        return "^C\n", ""
    if key in (Key.BACKSPACE, Key.CTRL_H):
        editor.backspace()
        return redraw(), None
    if key == Key.DELETE:
        editor.delete()
        return redraw(), None
    if key == Key.CTRL_L:
        return _CLEAR_SCREEN + prompt + redraw(), None
    if key == Key.TAB:
        return _complete(editor, prompt, builtin_names), None
    if key == Key.CTRL_R:
        return "", None

    movements = {
        Key.ARROW_LEFT: editor.move_left,
        Key.CTRL_B: editor.move_left,
        Key.ARROW_RIGHT: editor.move_right,
        Key.CTRL_F: editor.move_right,
        Key.ARROW_UP: editor.history_previous,
        Key.CTRL_P: editor.history_previous,
        Key.ARROW_DOWN: editor.history_next,
        Key.CTRL_N: editor.history_next,
        Key.HOME: editor.home,
        Key.CTRL_A: editor.home,
        Key.END: editor.end,
        Key.CTRL_E: editor.end,
        Key.CTRL_K: editor.kill_to_end,
        Key.CTRL_U: editor.kill_to_start,
        Key.CTRL_W: editor.kill_word,
        Key.CTRL_Y: editor.yank,
        Key.CTRL_T: editor.transpose,
    }
    action = movements.get(key)
    if action is not None:
        return (redraw() if action() else ""), None

    if 32 <= key < 127:
        editor.insert(chr(key))
        return redraw(), None
    return "", None


def _complete(editor: LineEditor, prompt: str, builtin_names: Iterable[str]) -> str:
    result = get_completions(editor.line, editor.cursor, builtin_names)
    edit = apply_completion(editor.line, editor.cursor, result)
    output = ""
    if edit.beep:
        output += "\a"
    if edit.show_listing:
        output += "\n" + format_listing(result.completions) + prompt
    editor.replace(edit.line, edit.cursor)
    return output + render_line(prompt, editor)


def _write(stream: TextIO, text: str) -> None:
    if text:
        stream.write(text)
        stream.flush()


def read_line(
    prompt: str,
    editor: LineEditor | None = None,
    builtin_names: Iterable[str] = (),
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> str | None:
    """Read a line with editing; None at end of input.

    Without a terminal on ``stdin`` the line is read plainly, without a prompt.
    """
    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout
    editor = editor if editor is not None else LineEditor()
    editor.reset()

    if not stdin.isatty():
        line = stdin.readline(LINE_BUFFER_SIZE - 1)
        if not line:
            return None
        return line.removesuffix("\n")

    names = list(builtin_names)
    _write(stdout, prompt)
    fd = stdin.fileno()
    with RawMode(fd):
        while True:
            try:
                key = read_key(fd)
                output, finished = handle_key(key, editor, prompt, names)
            except (EOFError, OSError):
                return None
            if finished is not None:
                break
            _write(stdout, output)
    _write(stdout, output)
    return finished


class RawMode:
    """Context manager that puts a terminal into raw mode and restores it."""

    def __init__(self, fd: int) -> None:
        self.fd = fd
        self.enabled = False
        self._saved: list | None = None

    def __enter__(self) -> RawMode:
        if self.enabled or not os.isatty(self.fd):
            return self
        try:
            saved = termios.tcgetattr(self.fd)
        except termios.error:
            return self
        raw = [list(item) if isinstance(item, list) else item for item in saved]
        raw[0] &= ~(termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON)
        raw[1] &= ~termios.OPOST
        raw[2] |= termios.CS8
        raw[3] &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)
        raw[6][termios.VMIN] = 1
        raw[6][termios.VTIME] = 0
        try:
            termios.tcsetattr(self.fd, termios.TCSAFLUSH, raw)
        except termios.error:
            return self
        self._saved = saved
        self.enabled = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.enabled and self._saved is not None:
            try:
                termios.tcsetattr(self.fd, termios.TCSAFLUSH, self._saved)
            except termios.error:
                pass
        self.enabled = False
        self._saved = None