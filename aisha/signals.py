"""Forwarding of keyboard interrupt and stop signals to the foreground process."""

from __future__ import annotations

import os
import signal
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType
from typing import TextIO

__all__ = ["SignalForwarder"]


class SignalForwarder:
    """Passes Ctrl+C and Ctrl+Z on to the current foreground process."""

    def __init__(self, out: TextIO | None = None) -> None:
        self._out = out
        self.foreground_pid = -1

    def _newline(self) -> None:
        out = self._out if self._out is not None else sys.stdout
        out.write("\n")
        out.flush()

    def _forward(self, signum: int) -> None:
        if self.foreground_pid > 0:
            try:
                os.kill(self.foreground_pid, signum)
            except ProcessLookupError:
                pass
        self._newline()

    def handle_sigint(self, signum: int, frame: FrameType | None) -> None:
        """Send SIGINT to the foreground process, if any."""
        self._forward(signal.SIGINT)

    def handle_sigtstp(self, signum: int, frame: FrameType | None) -> None:
        """Send SIGTSTP to the foreground process, if any."""
        self._forward(signal.SIGTSTP)

    def install(self) -> None:
        """Install the handlers and ignore SIGQUIT."""
        signal.signal(signal.SIGINT, self.handle_sigint)
        signal.signal(signal.SIGTSTP, self.handle_sigtstp)
        signal.signal(signal.SIGQUIT, signal.SIG_IGN)

    @contextmanager
    def foreground(self, pid: int) -> Iterator[int]:
        """Mark ``pid`` as the foreground process for the duration of the block."""
        self.foreground_pid = pid
        try:
            yield pid
        finally:
            self.foreground_pid = -1