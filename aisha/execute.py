"""Running parsed command lines: simple commands, pipelines, lists and jobs."""

from __future__ import annotations

import os
import signal
import sys
from collections.abc import Callable, Mapping, Sequence
from contextlib import nullcontext, suppress
from functools import partial
from typing import ContextManager

from .command import (
    Command,
    Pipeline,
    RedirectionError,
    has_pipes,
    open_redirections,
    parse_command,
    parse_pipeline,
)
from .jobs import JobStatus, JobTable
from .parser import Token, TokenType
from .signals import SignalForwarder

__all__ = [
    "SUCCESS",
    "FAILURE",
    "NOT_FOUND",
    "STOPPED_STATUS",
    "Builtin",
    "Executor",
    "has_and_or",
    "has_sequential_or_background",
]

SUCCESS = 0
FAILURE = 1
NOT_FOUND = 127
STOPPED_STATUS = 148

Builtin = Callable[[list[str]], "int | None"]

_LIST_SEPARATORS = (TokenType.SEMICOLON, TokenType.AMPERSAND)


def has_and_or(tokens: Sequence[Token]) -> bool:
    """True if any token is && or ||."""
    return any(token.type in (TokenType.AND, TokenType.OR) for token in tokens)


def has_sequential_or_background(tokens: Sequence[Token]) -> bool:
    """True if any token is ; or &."""
    return any(token.type in _LIST_SEPARATORS for token in tokens)


def _error(message: str) -> None:
    """Write a message straight to file descriptor 2."""
    with suppress(OSError):
        sys.stderr.flush()
    with suppress(OSError):
        os.write(2, (message + "\n").encode(errors="replace"))


def _flush_std() -> None:
    for stream in (sys.stdout, sys.stderr):
        with suppress(Exception):
            stream.flush()


def _as_status(code: object) -> int:
    if code is None:
        return SUCCESS
    if isinstance(code, bool):
        return int(code)
    if isinstance(code, int):
        return code
    return FAILURE


def _exit_child(body: Callable[[], object]) -> None:
    """Run ``body`` in a forked child and leave the process with its status."""
    code = FAILURE
    try:
        code = _as_status(body())
    except SystemExit as exc:
        code = _as_status(exc.code)
    except BaseException as exc:  # noqa: BLE001 - the child must never return
        _error(f"{exc}")
        code = FAILURE
    finally:
        _flush_std()
        os._exit(code & 0xFF)


def _reset_signals() -> None:
    for signum in (signal.SIGINT, signal.SIGTSTP, signal.SIGQUIT):
        signal.signal(signum, signal.SIG_DFL)


def _status_of(status: int) -> int:
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status)
    if os.WIFSIGNALED(status):
        return 128 + os.WTERMSIG(status)
    return FAILURE


class Executor:
    """Runs token lists as commands, pipelines, &&/|| lists and ;/& sequences."""

    def __init__(
        self,
        builtins: Mapping[str, Builtin] | None = None,
        jobs: JobTable | None = None,
        set_variable: Callable[[str, str], object] | None = None,
        on_exit_status: Callable[[int], object] | None = None,
        on_background_pid: Callable[[int], object] | None = None,
        forwarder: SignalForwarder | None = None,
    ) -> None:
        self.builtins: Mapping[str, Builtin] = builtins if builtins is not None else {}
        self.jobs = jobs if jobs is not None else JobTable()
        self._set_variable = set_variable
        self._on_exit_status = on_exit_status
        self._on_background_pid = on_background_pid
        self.forwarder = forwarder

    # -- helpers -----------------------------------------------------------

    def _report(self, status: int) -> None:
        if self._on_exit_status is not None:
            self._on_exit_status(status)

    def _foreground(self, pid: int) -> ContextManager[object]:
        if self.forwarder is None:
            return nullcontext(pid)
        return self.forwarder.foreground(pid)

    def _exec(self, argv: list[str]) -> int:
        """Replace the current (child) process with the command."""
        if not argv:
            return FAILURE
        builtin = self.builtins.get(argv[0])
        if builtin is not None:
            return _as_status(builtin(list(argv)))
        try:
            os.execvp(argv[0], argv)
        except OSError:
            pass
        _error(f"{argv[0]}: command not found")
        return NOT_FOUND

    def _segment(self, tokens: Sequence[Token]) -> int | None:
        """Run a pipe-only segment; None when it could not be parsed."""
        if has_pipes(tokens):
            pipeline = parse_pipeline(tokens)
            return None if pipeline is None else self.run_pipeline(pipeline)
        try:
            command = parse_command(tokens)
        except RedirectionError as exc:
            _error(str(exc))
            return None
        return None if command is None else self.run_single(command)

    # -- single commands ---------------------------------------------------

    def run_single(self, command: Command) -> int:
        """Run one command: an assignment, a builtin or an external program."""
        if command is None or not command.argv:
            return FAILURE
        try:
            stdin, stdout = open_redirections(command)
        except RedirectionError as exc:
            _error(str(exc))
            return FAILURE

        argv = command.argv
        if len(argv) == 1 and argv[0].find("=") > 0:
            name, _, value = argv[0].partition("=")
            if self._set_variable is not None:
                self._set_variable(name, value)
            for handle in (stdin, stdout):
                if handle is not None:
                    handle.close()
            self._report(SUCCESS)
            return SUCCESS

        builtin = self.builtins.get(argv[0])
        if builtin is not None:
            return self._run_builtin(builtin, argv, stdin, stdout)
        return self._run_external(command, stdin, stdout)

    def _run_builtin(self, builtin: Builtin, argv: list[str], stdin, stdout) -> int:
        _flush_std()
        try:
            saved_in = os.dup(0)
            saved_out = os.dup(1)
        except OSError as exc:
            _error(f"dup: {exc.strerror}")
            for handle in (stdin, stdout):
                if handle is not None:
                    handle.close()
            return FAILURE
        try:
            if stdin is not None:
                os.dup2(stdin.fileno(), 0)
                stdin.close()
            if stdout is not None:
                os.dup2(stdout.fileno(), 1)
                stdout.close()
            result = _as_status(builtin(list(argv)))
        finally:
            _flush_std()
            os.dup2(saved_in, 0)
            os.dup2(saved_out, 1)
            os.close(saved_in)
            os.close(saved_out)
        self._report(result)
        return result

    def _run_external(self, command: Command, stdin, stdout) -> int:
        _flush_std()
        try:
            pid = os.fork()
        except OSError as exc:
            _error(f"fork: {exc.strerror}")
            for handle in (stdin, stdout):
                if handle is not None:
                    handle.close()
            return FAILURE

        if pid == 0:
            def child() -> int:
                _reset_signals()
                if stdin is not None:
                    os.dup2(stdin.fileno(), 0)
                if stdout is not None:
                    os.dup2(stdout.fileno(), 1)
                return self._exec(command.argv)

            _exit_child(child)

        for handle in (stdin, stdout):
            if handle is not None:
                handle.close()

        with self._foreground(pid):
            try:
                _, status = os.waitpid(pid, os.WUNTRACED)
            except OSError as exc:
                _error(f"waitpid: {exc.strerror}")
                return FAILURE

        if os.WIFSTOPPED(status):
            text = " ".join(command.argv)
            job_id = self.jobs.add(pid, text, JobStatus.STOPPED)
            print(f"\n[{job_id}] Stopped                 {text}", flush=True)
            self._report(STOPPED_STATUS)
            return SUCCESS

        result = _status_of(status)
        self._report(result)
        return result

    # -- pipelines ---------------------------------------------------------

    def run_pipeline(self, pipeline: Pipeline) -> int:
        """Run commands connected by pipes and wait for all of them."""
        if pipeline is None or len(pipeline) == 0:
            return FAILURE
        commands = list(pipeline)
        if len(commands) == 1:
            return self.run_single(commands[0])

        pipes: list[tuple[int, int]] = []
        try:
            for _ in range(len(commands) - 1):
                pipes.append(os.pipe())
        except OSError as exc:
            _error(f"pipe: {exc.strerror}")
            self._close_pipes(pipes)
            return FAILURE

        pids: list[int] = []
        for index, command in enumerate(commands):
            _flush_std()
            try:
                pid = os.fork()
            except OSError as exc:
                _error(f"fork: {exc.strerror}")
                self._close_pipes(pipes)
                for started in pids:
                    with suppress(OSError):
                        os.kill(started, signal.SIGTERM)
                return FAILURE
            if pid == 0:
                _exit_child(partial(self._pipeline_child, command, index, len(commands), pipes))
            pids.append(pid)

        self._close_pipes(pipes)

        result = SUCCESS
        with self._foreground(pids[-1]):
            for pid in pids:
                try:
                    _, status = os.waitpid(pid, os.WUNTRACED)
                except OSError as exc:
                    _error(f"waitpid: {exc.strerror}")
                    result = FAILURE
                    continue
                if os.WIFEXITED(status) and os.WEXITSTATUS(status) != 0:
                    result = os.WEXITSTATUS(status)
                elif os.WIFSIGNALED(status):
                    result = 128 + os.WTERMSIG(status)

        self._report(result)
        return result

    @staticmethod
    def _close_pipes(pipes: list[tuple[int, int]]) -> None:
        for read_end, write_end in pipes:
            with suppress(OSError):
                os.close(read_end)
            with suppress(OSError):
                os.close(write_end)

    def _pipeline_child(
        self, command: Command, index: int, count: int, pipes: list[tuple[int, int]]
    ) -> int:
        if index == 0:
            if command.input_file is not None:
                try:
                    fd = os.open(command.input_file, os.O_RDONLY)
                except OSError as exc:
                    _error(f"{command.input_file}: {exc.strerror}")
                    return FAILURE
                os.dup2(fd, 0)
                os.close(fd)
        else:
            os.dup2(pipes[index - 1][0], 0)

        if index == count - 1:
            if command.output_file is not None:
                flags = os.O_WRONLY | os.O_CREAT
                flags |= os.O_APPEND if command.append_output else os.O_TRUNC
                try:
                    fd = os.open(command.output_file, flags, 0o644)
                except OSError as exc:
                    _error(f"{command.output_file}: {exc.strerror}")
                    return FAILURE
                os.dup2(fd, 1)
                os.close(fd)
        else:
            os.dup2(pipes[index][1], 1)

        self._close_pipes(pipes)
        return self._exec(command.argv)

    # -- token-level entry points -------------------------------------------

    def run_simple(self, tokens: Sequence[Token]) -> int:
        """Run tokens holding at most pipes as operators."""
        tokens = list(tokens)
        if not tokens:
            return FAILURE
        result = self._segment(tokens)
        return FAILURE if result is None else result

    def run_and_or(self, tokens: Sequence[Token]) -> int:
        """Run a list joined by && and ||, short-circuiting as the shell does."""
        tokens = list(tokens)
        count = len(tokens)
        start = 0
        last = SUCCESS
        i = 0
        while i <= count:
            is_end = i == count or tokens[i].type is TokenType.EOF
            is_and = not is_end and tokens[i].type is TokenType.AND
            is_or = not is_end and tokens[i].type is TokenType.OR
            if is_end or is_and or is_or:
                if i > start:
                    result = self._segment(tokens[start:i])
                    if result is not None:
                        last = result
                if is_end:
                    break
                if is_and and last != SUCCESS:
                    i += 1
                    while i < count and tokens[i].type not in (
                        TokenType.OR,
                        *_LIST_SEPARATORS,
                    ):
                        i += 1
                    if i < count and tokens[i].type is TokenType.OR:
                        start = i + 1
                        i += 1
                        continue
                elif is_or and last == SUCCESS:
                    i += 1
                    while i < count and tokens[i].type not in (
                        TokenType.AND,
                        *_LIST_SEPARATORS,
                    ):
                        i += 1
                    if i < count and tokens[i].type is TokenType.AND:
                        start = i + 1
                        i += 1
                        continue
                start = i + 1
            i += 1
        return last

    def run_sequence(self, tokens: Sequence[Token]) -> int:
        """Run commands separated by ; in turn, and those ending in & in the background."""
        last = SUCCESS
        segment: list[Token] = []
        for token in [*tokens, None]:
            if token is not None and token.type not in (*_LIST_SEPARATORS, TokenType.EOF):
                segment.append(token)
                continue
            if segment:
                if token is not None and token.type is TokenType.AMPERSAND:
                    last = self.run_background(segment)
                elif has_and_or(segment):
                    last = self.run_and_or(segment)
                else:
                    result = self._segment(segment)
                    if result is not None:
                        last = result
            segment = []
        return last

    def run_background(self, tokens: Sequence[Token]) -> int:
        """Start the tokens as a background job and return at once."""
        tokens = list(tokens)
        text = " ".join(token.value for token in tokens)
        _flush_std()
        try:
            pid = os.fork()
        except OSError as exc:
            _error(f"fork: {exc.strerror}")
            return FAILURE

        if pid == 0:
            def child() -> int:
                with suppress(OSError):
                    fd = os.open(os.devnull, os.O_RDONLY)
                    os.dup2(fd, 0)
                    os.close(fd)
                _reset_signals()
                if has_and_or(tokens):
                    return self.run_and_or(tokens)
                result = self._segment(tokens)
                return FAILURE if result is None else result

            _exit_child(child)

        self.jobs.add(pid, text, JobStatus.RUNNING)
        if self._on_background_pid is not None:
            self._on_background_pid(pid)
        return SUCCESS

    def run_subshell(self, tokens: Sequence[Token]) -> int:
        """Run the tokens in a child copy of the shell and wait for it."""
        tokens = list(tokens)
        _flush_std()
        try:
            pid = os.fork()
        except OSError as exc:
            _error(f"fork: {exc.strerror}")
            return FAILURE
        if pid == 0:
            _exit_child(partial(self.run, tokens))
        try:
            _, status = os.waitpid(pid, 0)
        except OSError as exc:
            _error(f"waitpid: {exc.strerror}")
            return FAILURE
        if os.WIFEXITED(status):
            return os.WEXITSTATUS(status)
        return FAILURE

    def run(self, tokens: Sequence[Token]) -> int:
        """Run a whole command line's tokens, dispatching on its operators."""
        tokens = list(tokens)
        if not tokens:
            return FAILURE
        if has_sequential_or_background(tokens):
            return self.run_sequence(tokens)
        if has_and_or(tokens):
            return self.run_and_or(tokens)
        return self.run_simple(tokens)