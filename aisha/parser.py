"""Tokenizer, input pre-processing and syntax validation for shell command lines."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

MAX_TOKENS = 1024
MAX_TOKEN_LENGTH = 4096

__all__ = [
    "MAX_TOKENS",
    "MAX_TOKEN_LENGTH",
    "TokenType",
    "Token",
    "ShellSyntaxError",
    "TooManyTokensError",
    "tokenize",
    "preprocess",
    "validate_syntax",
    "is_operator",
    "is_redirect",
    "token_type_name",
]


class TokenType(Enum):
    """Kinds of lexical unit in a command line."""

    WORD = auto()
    PIPE = auto()
    SEMICOLON = auto()
    AMPERSAND = auto()
    AND = auto()
    OR = auto()
    INPUT_REDIRECT = auto()
    OUTPUT_REDIRECT = auto()
    OUTPUT_APPEND = auto()
    HEREDOC = auto()
    HERESTRING = auto()
    LPAREN = auto()
    RPAREN = auto()
    NEWLINE = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A single token: its type, its text and whether it came from quotes."""

    type: TokenType
    value: str
    quoted: bool = False


class ShellSyntaxError(Exception):
    """The command line does not follow the shell grammar."""


class TooManyTokensError(ShellSyntaxError):
    """The command line holds more tokens than the limit allows."""


_OPERATORS = (
    ("<<<", TokenType.HERESTRING),
    ("||", TokenType.OR),
    ("&&", TokenType.AND),
    ("<<", TokenType.HEREDOC),
    (">>", TokenType.OUTPUT_APPEND),
    ("|", TokenType.PIPE),
    ("&", TokenType.AMPERSAND),
    (";", TokenType.SEMICOLON),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    ("<", TokenType.INPUT_REDIRECT),
    (">", TokenType.OUTPUT_REDIRECT),
)

_SPACE = frozenset(" \t\n\v\f\r")
_WORD_STOP = frozenset("|&;<>()#")
_DOUBLE_QUOTE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "$": "$",
    "`": "`",
}
_OPERATOR_TYPES = frozenset(
    {TokenType.PIPE, TokenType.SEMICOLON, TokenType.AMPERSAND, TokenType.AND, TokenType.OR}
)
_REDIRECT_TYPES = frozenset(
    {
        TokenType.INPUT_REDIRECT,
        TokenType.OUTPUT_REDIRECT,
        TokenType.OUTPUT_APPEND,
        TokenType.HEREDOC,
        TokenType.HERESTRING,
    }
)
_VALUE_LIMIT = MAX_TOKEN_LENGTH - 1


def is_operator(token_type: TokenType) -> bool:
    """True for |, ;, &, && and ||."""
    return token_type in _OPERATOR_TYPES


def is_redirect(token_type: TokenType) -> bool:
    """True for <, >, >>, << and <<<."""
    return token_type in _REDIRECT_TYPES


def token_type_name(token_type: TokenType) -> str:
    """Upper-case name of a token type."""
    return token_type.name


def _read_quoted(text: str, pos: int, quote: str) -> tuple[str, int]:
    """Read a quoted string whose opening quote is at text[pos - 1]."""
    buf: list[str] = []
    length = 0
    end = len(text)
    is_double = quote == '"'
    while pos < end and text[pos] != quote and length < _VALUE_LIMIT:
        ch = text[pos]
        if ch == "\\" and is_double and pos + 1 < end:
            nxt = text[pos + 1]
            piece = _DOUBLE_QUOTE_ESCAPES.get(nxt, "\\" + nxt)
            buf.append(piece)
            length += len(piece)
            pos += 2
        else:
            buf.append(ch)
            length += 1
            pos += 1
    if pos < end and text[pos] == quote:
        pos += 1
    return "".join(buf)[:_VALUE_LIMIT], pos


def _read_word(text: str, pos: int) -> tuple[str, int]:
    """Read an unquoted word starting at text[pos]."""
    buf: list[str] = []
    end = len(text)
    while pos < end and len(buf) < _VALUE_LIMIT:
        ch = text[pos]
        if ch in _SPACE or ch in _WORD_STOP:
            break
        if ch == "\\" and pos + 1 < end:
            buf.append(text[pos + 1])
            pos += 2
        else:
            buf.append(ch)
            pos += 1
    return "".join(buf), pos


def tokenize(text: str, max_tokens: int = MAX_TOKENS) -> list[Token]:
    """Split a command line into tokens, ending with an EOF token.

    At most ``max_tokens`` tokens are produced, the EOF token included.
    """
    tokens: list[Token] = []
    pos = 0
    end = len(text)

    while pos < end and len(tokens) < max_tokens - 1:
        while pos < end and text[pos] in _SPACE and text[pos] != "\n":
            pos += 1
        if pos >= end:
            break

        ch = text[pos]
        if ch == "\n":
            tokens.append(Token(TokenType.NEWLINE, "\\n"))
            pos += 1
            continue
        if ch == "#":
            while pos < end and text[pos] != "\n":
                pos += 1
            continue

        for symbol, token_type in _OPERATORS:
            if text.startswith(symbol, pos):
                tokens.append(Token(token_type, symbol))
                pos += len(symbol)
                break
        else:
            if ch in ('"', "'"):
                value, pos = _read_quoted(text, pos + 1, ch)
                tokens.append(Token(TokenType.WORD, value, quoted=True))
            else:
                value, pos = _read_word(text, pos)
                tokens.append(Token(TokenType.WORD, value))

    if len(tokens) < max_tokens:
        tokens.append(Token(TokenType.EOF, ""))
    return tokens


def preprocess(
    text: str,
    expand_aliases: Callable[[str], str | None] | None = None,
    expand_variables: Callable[[str], str | None] | None = None,
) -> str:
    """Apply alias expansion, then variable expansion, to a command line.

    If an expansion step yields None the original text is returned unchanged.
    """
    result = text
    if expand_aliases is not None:
        expanded = expand_aliases(result)
        if expanded is None:
            return text
        result = expanded
    if expand_variables is not None:
        expanded = expand_variables(result)
        if expanded is None:
            return text
        result = expanded
    return result


class _Validator:
    """Recursive-descent check of a token list against the shell grammar."""

    def __init__(self, tokens: list[Token]) -> None:
        self.tokens = tokens
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens) or self.tokens[self.pos].type in (
            TokenType.EOF,
            TokenType.NEWLINE,
        )

    def current(self) -> Token:
        return self.tokens[self.pos]

    def fail(self, reason: str) -> ShellSyntaxError:
        if self.at_end():
            where = "end of input"
        else:
            where = repr(self.current().value)
        return ShellSyntaxError(f"{reason} near {where}")

    def name(self) -> None:
        if self.at_end() or self.current().type is not TokenType.WORD:
            raise self.fail("expected a word")
        self.pos += 1

    def redirection(self) -> None:
        self.pos += 1
        self.name()

    def atomic(self) -> None:
        self.name()
        while not self.at_end():
            token_type = self.current().type
            if is_operator(token_type) or token_type in (TokenType.LPAREN, TokenType.RPAREN):
                break
            if token_type in (
                TokenType.INPUT_REDIRECT,
                TokenType.OUTPUT_REDIRECT,
                TokenType.OUTPUT_APPEND,
            ):
                self.redirection()
            elif token_type is TokenType.WORD:
                self.name()
            else:
                raise self.fail("unexpected token")

    def pipeline(self) -> None:
        if not self.at_end() and self.current().type is TokenType.PIPE:
            raise self.fail("pipe without a command")
        self.atomic()
        while not self.at_end() and self.current().type is TokenType.PIPE:
            self.pos += 1
            if self.at_end() or self.current().type is not TokenType.WORD:
                raise self.fail("expected a command after pipe")
            self.atomic()

    def and_or(self) -> None:
        self.pipeline()
        while not self.at_end() and self.current().type in (TokenType.AND, TokenType.OR):
            self.pos += 1
            if self.at_end():
                raise self.fail("expected a command after logical operator")
            self.pipeline()

    def command_line(self) -> None:
        if self.at_end():
            return
        self.and_or()
        while not self.at_end():
            if self.current().type not in (TokenType.AMPERSAND, TokenType.SEMICOLON):
                raise self.fail("unexpected token")
            self.pos += 1
            if self.at_end():
                return
            self.and_or()


def validate_syntax(text: str) -> list[Token]:
    """Check a command line's syntax and return its tokens.

    Raises TooManyTokensError when the token limit is reached and
    ShellSyntaxError when the grammar is violated. Validation stops at the
    first newline.
    """
    tokens = tokenize(text, MAX_TOKENS)
    if len(tokens) >= MAX_TOKENS:
        raise TooManyTokensError("Too many tokens")
    _Validator(tokens).command_line()
    return tokens