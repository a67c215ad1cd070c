"""
Lexical analysis for Rutile source text.

The lexer is a single left-to-right scan producing tokens lazily. Comments
and whitespace are trivia: they never reach the token stream, but comments
can be kept on a side channel for tools that need them (folding, highlighting).
Lexical errors are emitted as ERROR tokens so scanning always continues.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

from ...span import ZeroSpan, ZeroPosition, ZeroRange
from ..types import RutileErrorKind

logger = logging.getLogger(__name__)


class TokenType(Enum):
    """Types of Rutile tokens."""
    # Punctuation
    COLON = ":"
    SEMICOLON = ";"
    LBRACKET = "["
    RBRACKET = "]"
    LBRACE = "{"
    RBRACE = "}"

    # Literals and names
    STRING = "string"
    NUMBER = "number"
    WORD = "word"
    WEBHOOK_SIGIL = "webhook sigil"

    # Special
    EOF = "end of input"
    ERROR = "error"


class TriviaKind(Enum):
    """Kinds of retained trivia."""
    LINE_COMMENT = "line comment"
    BLOCK_COMMENT = "block comment"


@dataclass(frozen=True)
class Token:
    """A token from Rutile source text. ``value`` is the raw slice of the source."""
    type: TokenType
    value: str
    span: ZeroSpan
    error: Optional[RutileErrorKind] = None
    message: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.type.value}({self.value!r}) at {self.span}"


@dataclass(frozen=True)
class Trivia:
    """A comment recognized during lexing."""
    kind: TriviaKind
    value: str
    span: ZeroSpan


PUNCTUATION = {
    ':': TokenType.COLON,
    ';': TokenType.SEMICOLON,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
}

# Characters that may form a symbolic word such as `*`, `-` or `<=`
OPERATOR_CHARS = frozenset("+-*/%<>=!?&|^~")

WORD_CONTINUE_EXTRA = frozenset("_?!-")


def is_ascii_letter(char: str) -> bool:
    return ('a' <= char <= 'z') or ('A' <= char <= 'Z')


def is_ascii_digit(char: str) -> bool:
    return '0' <= char <= '9'


def is_identifier_start(char: str) -> bool:
    return is_ascii_letter(char) or char == '_'


class RutileLexer:
    """Lexical analyzer for Rutile code."""

    def __init__(self, content: str, file_path: Optional[str] = None, retain_trivia: bool = False):
        if not isinstance(content, str):
            raise TypeError(f"Lexer content must be str, got {type(content).__name__}")

        self.content = content
        self.file_path = file_path
        self.retain_trivia = retain_trivia
        self.position = 0
        self.line = 0
        self.column = 0
        self.trivia: List[Trivia] = []

    def tokenize(self) -> Iterator[Token]:
        """Lazily produce tokens, ending with a single EOF token."""
        while True:
            self._skip_trivia()

            if self.position >= len(self.content):
                break

            yield self._next_token()

        eof_pos = ZeroPosition(self.line, self.column)
        eof_span = ZeroSpan(self.file_path, ZeroRange(eof_pos, eof_pos), self.position, self.position)
        yield Token(TokenType.EOF, "", eof_span)

    # Character helpers

    def _current_char(self) -> str:
        """Get the current character, or '' at end of input."""
        if self.position >= len(self.content):
            return ''
        return self.content[self.position]

    def _peek_char(self) -> str:
        """Peek at the next character, or '' at end of input."""
        if self.position + 1 >= len(self.content):
            return ''
        return self.content[self.position + 1]

    def _advance(self) -> None:
        """Advance to the next character, tracking line and column."""
        if self.position < len(self.content):
            if self.content[self.position] == '\n':
                self.line += 1
                self.column = 0
            else:
                self.column += 1
            self.position += 1

    def _mark(self):
        return self.position, ZeroPosition(self.line, self.column)

    def _span_from(self, start_offset: int, start_pos: ZeroPosition) -> ZeroSpan:
        end_pos = ZeroPosition(self.line, self.column)
        return ZeroSpan(self.file_path, ZeroRange(start_pos, end_pos), start_offset, self.position)

    def _make_token(self, token_type: TokenType, start_offset: int, start_pos: ZeroPosition) -> Token:
        span = self._span_from(start_offset, start_pos)
        return Token(token_type, self.content[start_offset:self.position], span)

    def _make_error(self, kind: RutileErrorKind, message: str,
                    start_offset: int, start_pos: ZeroPosition) -> Token:
        span = self._span_from(start_offset, start_pos)
        logger.debug(f"Lexical error {kind.value} at {span}")
        return Token(TokenType.ERROR, self.content[start_offset:self.position], span,
                     error=kind, message=message)

    # Trivia

    def _skip_trivia(self) -> None:
        """Skip whitespace and well-formed comments.

        An unterminated block comment is left in place so that
        ``_next_token`` can report it.
        """
        while self.position < len(self.content):
            char = self._current_char()

            if char.isspace():
                self._advance()
            elif char == '#':
                self._skip_line_comment()
            elif char == '(':
                if not self._skip_block_comment():
                    break
            else:
                break

    def _skip_line_comment(self) -> None:
        start_offset, start_pos = self._mark()
        while self.position < len(self.content) and self._current_char() != '\n':
            self._advance()
        self._record_trivia(TriviaKind.LINE_COMMENT, start_offset, start_pos)

    def _skip_block_comment(self) -> bool:
        """Skip a nested block comment. Returns False (and rewinds) if unterminated."""
        start_offset, start_pos = self._mark()
        saved_line, saved_column = self.line, self.column
        depth = 0

        while self.position < len(self.content):
            char = self._current_char()
            if char == '(':
                depth += 1
            elif char == ')':
                depth -= 1
            self._advance()
            if depth == 0:
                self._record_trivia(TriviaKind.BLOCK_COMMENT, start_offset, start_pos)
                return True

        self.position, self.line, self.column = start_offset, saved_line, saved_column
        return False

    def _record_trivia(self, kind: TriviaKind, start_offset: int, start_pos: ZeroPosition) -> None:
        if self.retain_trivia:
            span = self._span_from(start_offset, start_pos)
            self.trivia.append(Trivia(kind, self.content[start_offset:self.position], span))

    # Tokens

    def _next_token(self) -> Token:
        """Scan one token starting at a non-trivia character."""
        char = self._current_char()
        start_offset, start_pos = self._mark()

        if char == '(':
            # Only reached when the comment never closes
            while self.position < len(self.content):
                self._advance()
            return self._make_error(
                RutileErrorKind.UNTERMINATED_BLOCK_COMMENT,
                "Unterminated block comment: end of input reached before ')'",
                start_offset, start_pos
            )

        if char == '"':
            return self._read_string(start_offset, start_pos)

        if is_ascii_digit(char) or (char == '-' and is_ascii_digit(self._peek_char())):
            return self._read_number(start_offset, start_pos)

        if is_identifier_start(char):
            return self._read_word(start_offset, start_pos)

        if char in OPERATOR_CHARS:
            return self._read_symbolic_word(start_offset, start_pos)

        if char == '@':
            return self._read_webhook_sigil(start_offset, start_pos)

        if char in PUNCTUATION:
            self._advance()
            return self._make_token(PUNCTUATION[char], start_offset, start_pos)

        self._advance()
        return self._make_error(
            RutileErrorKind.UNEXPECTED_CHARACTER,
            f"Unexpected character {char!r}",
            start_offset, start_pos
        )

    def _read_string(self, start_offset: int, start_pos: ZeroPosition) -> Token:
        """Read a string literal; escapes are kept verbatim."""
        self._advance()  # Opening quote

        while self.position < len(self.content):
            char = self._current_char()
            if char == '\n':
                break
            if char == '"':
                self._advance()
                return self._make_token(TokenType.STRING, start_offset, start_pos)
            if char == '\\':
                if self._peek_char() in ('', '\n'):
                    self._advance()
                    break
                self._advance()
            self._advance()

        reason = "newline" if self._current_char() == '\n' else "end of input"
        return self._make_error(
            RutileErrorKind.UNTERMINATED_STRING,
            f"Unterminated string literal: {reason} reached before closing quote",
            start_offset, start_pos
        )

    def _read_number(self, start_offset: int, start_pos: ZeroPosition) -> Token:
        """Read an integer or decimal literal, with an optional leading '-'."""
        if self._current_char() == '-':
            self._advance()

        while is_ascii_digit(self._current_char()):
            self._advance()

        if self._current_char() == '.' and is_ascii_digit(self._peek_char()):
            self._advance()
            while is_ascii_digit(self._current_char()):
                self._advance()

        return self._make_token(TokenType.NUMBER, start_offset, start_pos)

    def _read_word(self, start_offset: int, start_pos: ZeroPosition) -> Token:
        while True:
            char = self._current_char()
            if char and (is_ascii_letter(char) or is_ascii_digit(char) or char in WORD_CONTINUE_EXTRA):
                self._advance()
            else:
                break
        return self._make_token(TokenType.WORD, start_offset, start_pos)

    def _read_symbolic_word(self, start_offset: int, start_pos: ZeroPosition) -> Token:
        while self._current_char() and self._current_char() in OPERATOR_CHARS:
            self._advance()
        return self._make_token(TokenType.WORD, start_offset, start_pos)

    def _read_webhook_sigil(self, start_offset: int, start_pos: ZeroPosition) -> Token:
        self._advance()  # '@'

        if not is_identifier_start(self._current_char()):
            return self._make_error(
                RutileErrorKind.INVALID_SIGIL,
                "Invalid webhook sigil: '@' must be followed by a letter or '_'",
                start_offset, start_pos
            )

        while True:
            char = self._current_char()
            if char and (is_ascii_letter(char) or is_ascii_digit(char) or char in '_.'):
                self._advance()
            else:
                break
        return self._make_token(TokenType.WEBHOOK_SIGIL, start_offset, start_pos)


class TokenStream:
    """
    A position-addressable, lazily filled sequence of tokens.

    Tokens are pulled from the underlying iterator only when the parser looks
    at them; everything pulled so far stays addressable by index.
    """

    def __init__(self, tokens: Iterator[Token]):
        self._source = iter(tokens)
        self._buffer: List[Token] = []
        self._index = 0
        self.lexer: Optional[RutileLexer] = None
        self._fill(1)

    @classmethod
    def from_text(cls, content: str, file_path: Optional[str] = None,
                  retain_trivia: bool = False) -> 'TokenStream':
        lexer = RutileLexer(content, file_path, retain_trivia=retain_trivia)
        stream = cls(lexer.tokenize())
        stream.lexer = lexer
        return stream

    def _fill(self, count: int) -> None:
        while len(self._buffer) < count:
            token = next(self._source, None)
            if token is None:
                if not self._buffer:
                    raise ValueError("Token source produced no tokens")
                # Past the end: keep returning the final EOF
                token = self._buffer[-1]
                if token.type != TokenType.EOF:
                    raise ValueError("Token source did not end with EOF")
            self._buffer.append(token)

    @property
    def index(self) -> int:
        """Index of the current token."""
        return self._index

    @property
    def current(self) -> Token:
        return self._buffer[self._index]

    @property
    def at_end(self) -> bool:
        return self.current.type == TokenType.EOF

    def peek(self) -> Token:
        """Look at the token after the current one."""
        self._fill(self._index + 2)
        return self._buffer[self._index + 1]

    def advance(self) -> Token:
        """Consume the current token and return it. EOF is never consumed."""
        token = self.current
        if token.type != TokenType.EOF:
            self._index += 1
            self._fill(self._index + 1)
        return token

    def token_at(self, index: int) -> Token:
        """Return an already produced token by its index."""
        if index < 0 or index >= len(self._buffer):
            raise IndexError(f"Token {index} has not been produced")
        return self._buffer[index]


__all__ = [
    "RutileLexer",
    "TokenStream",
    "Token",
    "TokenType",
    "Trivia",
    "TriviaKind",
]
