"""Tokenizer for the shell command language."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .exceptions import ParseError

OPERATORS = ("&&", "||", ">>", "|", ">", "<", ";", "&")
_OPERATOR_CHARS = frozenset("|<>;&")
_QUOTES = "'\""


class TokenKind(str, Enum):
    WORD = "word"
    OPERATOR = "operator"


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    value: str
    quoted: bool = False

    @property
    def is_operator(self) -> bool:
        return self.kind is TokenKind.OPERATOR


class Lexer:
    """Split a command line into words and operators.

    Quoted runs are literal and glue onto adjacent unquoted runs, so
    ``a"b c"d`` is the single word ``ab cd``. A backslash outside single
    quotes escapes the next character. ``#`` at the start of a token
    comments out the rest of the line.
    """

    def __init__(self, line: str) -> None:
        self.line = line
        self.pos = 0
        self.tokens: list[Token] = []
        self._word: list[str] = []
        self._in_word = False
        self._quoted = False

    def tokenize(self) -> list[Token]:
        line = self.line
        while self.pos < len(line):
            char = line[self.pos]
            if char.isspace():
                self._flush()
                self.pos += 1
            elif char == "#" and not self._in_word and (self.pos == 0 or line[self.pos - 1].isspace()):
                break
            elif char in _QUOTES:
                self._read_quoted(char)
            elif char == "\\":
                self._read_escape()
            elif char in _OPERATOR_CHARS:
                self._flush()
                self._read_operator()
            else:
                self._word.append(char)
                self._in_word = True
                self.pos += 1
        self._flush()
        return self.tokens

    def _flush(self) -> None:
        if self._in_word:
            self.tokens.append(Token(TokenKind.WORD, "".join(self._word), self._quoted))
        self._word = []
        self._in_word = False
        self._quoted = False

    def _read_quoted(self, quote: str) -> None:
        start = self.pos
        self.pos += 1
        self._in_word = True
        self._quoted = True
        while self.pos < len(self.line):
            char = self.line[self.pos]
            if char == quote:
                self.pos += 1
                return
            if char == "\\" and quote == '"' and self.pos + 1 < len(self.line):
                nxt = self.line[self.pos + 1]
                if nxt in '"\\$':
                    self._word.append(nxt)
                    self.pos += 2
                    continue
            self._word.append(char)
            self.pos += 1
        raise ParseError(f"unterminated quote {quote} starting at column {start + 1}")

    def _read_escape(self) -> None:
        self.pos += 1
        self._in_word = True
        if self.pos < len(self.line):
            self._word.append(self.line[self.pos])
            self._quoted = True
            self.pos += 1

    def _read_operator(self) -> None:
        for op in OPERATORS:
            if self.line.startswith(op, self.pos):
                self.tokens.append(Token(TokenKind.OPERATOR, op))
                self.pos += len(op)
                return
        raise ParseError(f"unexpected character '{self.line[self.pos]}'")  # pragma: no cover


def tokenize(line: str) -> list[Token]:
    return Lexer(line).tokenize()


__all__ = ["Token", "TokenKind", "Lexer", "tokenize", "OPERATORS"]
