"""Turning token lists into commands and pipelines, and opening their redirections."""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import BinaryIO

from .parser import Token, TokenType

__all__ = [
    "Command",
    "Pipeline",
    "RedirectionError",
    "has_pipes",
    "validate_redirections",
    "parse_command",
    "parse_pipeline",
    "open_redirections",
]

_FILE_MODE = 0o644
_MISSING_INPUT = "No such file or directory"
_UNWRITABLE_OUTPUT = "Unable to create file for writing"
_FILE_REDIRECTS = frozenset(
    {TokenType.INPUT_REDIRECT, TokenType.OUTPUT_REDIRECT, TokenType.OUTPUT_APPEND}
)


class RedirectionError(Exception):
    """A redirection target could not be opened."""


@dataclass
class Command:
    """A simple command: its arguments and where its input and output go."""

    argv: list[str] = field(default_factory=list)
    input_file: str | None = None
    output_file: str | None = None
    append_output: bool = False

    @property
    def argc(self) -> int:
        return len(self.argv)

    def __str__(self) -> str:
        return " ".join(self.argv)


@dataclass
class Pipeline:
    """Commands joined by pipes, in order."""

    commands: list[Command] = field(default_factory=list)

    def __iter__(self) -> Iterator[Command]:
        return iter(self.commands)

    def __len__(self) -> int:
        return len(self.commands)


def _output_flags(append: bool) -> int:
    return os.O_WRONLY | os.O_CREAT | (os.O_APPEND if append else os.O_TRUNC)


def _target(tokens: Sequence[Token], index: int) -> str | None:
    """The word that follows the redirection at ``index``, if there is one."""
    if index + 1 < len(tokens) and tokens[index + 1].type is TokenType.WORD:
        return tokens[index + 1].value
    return None


def has_pipes(tokens: Sequence[Token]) -> bool:
    """True if any token is a pipe."""
    return any(token.type is TokenType.PIPE for token in tokens)


def validate_redirections(tokens: Sequence[Token]) -> None:
    """Check every input file opens and create every output file.

    Output files are created (and truncated unless appended to) as a side
    effect, as the shell does before running a command.
    """
    tokens = list(tokens)
    for index, token in enumerate(tokens):
        if token.type is not TokenType.INPUT_REDIRECT:
            continue
        target = _target(tokens, index)
        if target is None:
            continue
        try:
            fd = os.open(target, os.O_RDONLY)
        except OSError as exc:
            raise RedirectionError(_MISSING_INPUT) from exc
        os.close(fd)

    for index, token in enumerate(tokens):
        if token.type not in (TokenType.OUTPUT_REDIRECT, TokenType.OUTPUT_APPEND):
            continue
        target = _target(tokens, index)
        if target is None:
            continue
        append = token.type is TokenType.OUTPUT_APPEND
        try:
            fd = os.open(target, _output_flags(append), _FILE_MODE)
        except OSError as exc:
            raise RedirectionError(_UNWRITABLE_OUTPUT) from exc
        os.close(fd)


def parse_command(tokens: Sequence[Token]) -> Command | None:
    """Build a command from tokens; None for an empty token list.

    Raises RedirectionError if a redirection target cannot be opened.
    """
    tokens = list(tokens)
    if not tokens:
        return None
    validate_redirections(tokens)

    command = Command()
    previous: TokenType | None = None
    for index, token in enumerate(tokens):
        if token.type is TokenType.WORD:
            if previous not in _FILE_REDIRECTS:
                command.argv.append(token.value)
        elif token.type in _FILE_REDIRECTS:
            target = _target(tokens, index)
            if target is not None:
                if token.type is TokenType.INPUT_REDIRECT:
                    command.input_file = target
                else:
                    command.output_file = target
                    command.append_output = token.type is TokenType.OUTPUT_APPEND
        previous = token.type
    return command


def parse_pipeline(tokens: Sequence[Token]) -> Pipeline | None:
    """Split tokens at pipes and parse each part; None for an empty list.

    A part whose redirections fail is reported on stderr and left out.
    """
    tokens = list(tokens)
    if not tokens:
        return None

    pipeline = Pipeline()
    segment: list[Token] = []
    for token in [*tokens, None]:
        if token is not None and token.type is not TokenType.PIPE:
            segment.append(token)
            continue
        if segment:
            try:
                command = parse_command(segment)
            except RedirectionError as exc:
                print(exc, file=sys.stderr)
            else:
                if command is not None:
                    pipeline.commands.append(command)
        segment = []
    return pipeline


def open_redirections(command: Command) -> tuple[BinaryIO | None, BinaryIO | None]:
    """Open the command's input and output files.

    Returns (input, output); each is None when that stream is not redirected.
    The caller closes the files.
    """
    stdin: BinaryIO | None = None
    stdout: BinaryIO | None = None
    if command.input_file is not None:
        try:
            stdin = open(command.input_file, "rb")
        except OSError as exc:
            raise RedirectionError(_MISSING_INPUT) from exc
    if command.output_file is not None:
        try:
            fd = os.open(
                command.output_file, _output_flags(command.append_output), _FILE_MODE
            )
        except OSError as exc:
            if stdin is not None:
                stdin.close()
            raise RedirectionError(_UNWRITABLE_OUTPUT) from exc
        stdout = os.fdopen(fd, "ab" if command.append_output else "wb")
    return stdin, stdout