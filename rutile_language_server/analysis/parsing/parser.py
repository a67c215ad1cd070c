"""
Recursive-descent parser for Rutile.

The parser consumes a TokenStream with one token of lookahead and never
backtracks. Malformed input never aborts the parse: every failure is
recorded as a diagnostic and the parser either synthesizes a placeholder or
skips the offending token, so each call yields a tree for the whole input.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import logging
import sys
from typing import List, NamedTuple, Optional, Tuple

from ...span import ZeroSpan, ZeroPosition, ZeroRange
from ..types import DiagnosticCollector, RutileError, RutileErrorKind
from .ast import (
    Item,
    MapLiteral,
    NumberLiteral,
    Quotation,
    SourceFile,
    StringLiteral,
    WebhookSigil,
    Word,
    WordDefinition,
)
from .lexer import Token, TokenStream, TokenType

logger = logging.getLogger(__name__)

DEFAULT_MAX_NESTING_DEPTH = 200

# Three parser frames per nesting level (parse_item, parse_<construct>, _parse_body),
# one more left for the caller's stack.
_FRAMES_PER_LEVEL = 4

STRAY_CLOSERS = (TokenType.SEMICOLON, TokenType.RBRACKET, TokenType.RBRACE)

OPENER_TO_CLOSER = {
    TokenType.COLON: TokenType.SEMICOLON,
    TokenType.LBRACKET: TokenType.RBRACKET,
    TokenType.LBRACE: TokenType.RBRACE,
}


class ParseResult(NamedTuple):
    """The tree for a whole document and the diagnostics found while building it."""
    source_file: SourceFile
    diagnostics: List[RutileError]


def max_safe_nesting_depth() -> int:
    """The deepest nesting limit the current recursion limit can accommodate."""
    return max(1, sys.getrecursionlimit() // _FRAMES_PER_LEVEL)


def describe_token(token: Token) -> str:
    """Human readable description of a token for messages."""
    if token.type == TokenType.EOF:
        return "end of input"
    if token.type in (TokenType.STRING, TokenType.NUMBER, TokenType.WORD,
                      TokenType.WEBHOOK_SIGIL, TokenType.ERROR):
        return f"{token.type.value} {token.value!r}"
    return f"'{token.value}'"


class RutileParser:
    """Parser for Rutile code."""

    def __init__(self, stream: TokenStream, max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH):
        if not isinstance(stream, TokenStream):
            raise TypeError(f"Parser requires a TokenStream, got {type(stream).__name__}")
        if max_nesting_depth < 1:
            raise ValueError("max_nesting_depth must be at least 1")
        ceiling = max_safe_nesting_depth()
        if max_nesting_depth > ceiling:
            logger.warning(f"max_nesting_depth {max_nesting_depth} exceeds the recursion limit, using {ceiling}")
            max_nesting_depth = ceiling

        self.stream = stream
        self.diagnostics = DiagnosticCollector()
        self.max_nesting_depth = max_nesting_depth
        self._depth = 0
        self._last_span: Optional[ZeroSpan] = None
        self._result: Optional[ParseResult] = None

    def parse(self) -> ParseResult:
        """Parse the whole stream. Repeated calls return the same result."""
        if self._result is None:
            source_file = self.parse_source_file()
            self._result = ParseResult(source_file, list(self.diagnostics))
            logger.debug(
                f"Parsed {len(source_file.items)} top-level items "
                f"with {len(self.diagnostics)} diagnostics"
            )
        return self._result

    def parse_source_file(self) -> SourceFile:
        """Parse items until end of input."""
        items: List[Item] = []
        while not self.stream.at_end:
            item = self.parse_item()
            if item is not None:
                items.append(item)

        eof = self.stream.current
        span = ZeroSpan(
            eof.span.file_path,
            ZeroRange(ZeroPosition(0, 0), eof.span.end),
            0,
            eof.span.end_offset
        )
        return SourceFile(tuple(items), span)

    def parse_item(self) -> Optional[Item]:
        """
        Parse one item at the current token.

        Returns None when no item was produced: at end of input, after a
        stray closer, or after a lexical error token. In the last two cases
        the offending token has been consumed.
        """
        token = self.stream.current
        token_type = token.type

        if token_type == TokenType.COLON:
            return self.parse_word_definition()
        if token_type == TokenType.LBRACKET:
            return self.parse_quotation()
        if token_type == TokenType.LBRACE:
            return self.parse_map()

        if token_type == TokenType.STRING:
            self._consume()
            return StringLiteral(token.value[1:-1], token.span)
        if token_type == TokenType.NUMBER:
            self._consume()
            return NumberLiteral(token.value, token.span)
        if token_type == TokenType.WORD:
            self._consume()
            return Word(token.value, token.span)
        if token_type == TokenType.WEBHOOK_SIGIL:
            self._consume()
            return WebhookSigil(token.value[1:], token.span)

        if token_type in STRAY_CLOSERS:
            self._report_stray_closer(token)
            self._consume()
            return None

        if token_type == TokenType.ERROR:
            self._report_lexical_error(token)
            self._consume()
            return None

        # End of input
        return None

    def parse_word_definition(self) -> Optional[WordDefinition]:
        """Parse ``: name body... ;``."""
        colon = self.stream.current
        if self._too_deep():
            return self._skip_nested(colon)
        self._consume()

        name_token = self.stream.current
        if name_token.type == TokenType.WORD:
            self._consume()
            name = Word(name_token.value, name_token.span)
        else:
            self.diagnostics.report(
                RutileErrorKind.EXPECTED_NAME_AFTER_COLON,
                f"Expected a word name after ':', found {describe_token(name_token)}",
                name_token.span
            )
            name = Word("", self._empty_span_at_end(colon.span))

        body, closed = self._parse_body(TokenType.SEMICOLON)
        if not closed:
            self.diagnostics.report(
                RutileErrorKind.UNTERMINATED_DEFINITION,
                f"Unterminated word definition{self._name_suffix(name)}: missing ';'",
                colon.span
            )

        return WordDefinition(name, tuple(body), self._span_from(colon.span))

    def parse_quotation(self) -> Optional[Quotation]:
        """Parse ``[ items... ]``."""
        opener = self.stream.current
        if self._too_deep():
            return self._skip_nested(opener)
        self._consume()

        items, closed = self._parse_body(TokenType.RBRACKET)
        if not closed:
            self.diagnostics.report(
                RutileErrorKind.UNTERMINATED_QUOTATION,
                "Unterminated quotation: missing ']'",
                opener.span
            )

        return Quotation(tuple(items), self._span_from(opener.span))

    def parse_map(self) -> Optional[MapLiteral]:
        """Parse ``{ items... }``. Any number and mix of items is accepted."""
        opener = self.stream.current
        if self._too_deep():
            return self._skip_nested(opener)
        self._consume()

        items, closed = self._parse_body(TokenType.RBRACE)
        if not closed:
            self.diagnostics.report(
                RutileErrorKind.UNTERMINATED_MAP,
                "Unterminated map literal: missing '}'",
                opener.span
            )

        return MapLiteral(tuple(items), self._span_from(opener.span))

    def _parse_body(self, closing: TokenType) -> Tuple[List[Item], bool]:
        """Parse items until ``closing`` or end of input; consume ``closing`` if present."""
        items: List[Item] = []
        self._depth += 1
        while self.stream.current.type not in (closing, TokenType.EOF):
            item = self.parse_item()
            if item is not None:
                items.append(item)
        self._depth -= 1

        if self.stream.current.type == closing:
            self._consume()
            return items, True
        return items, False

    def _too_deep(self) -> bool:
        return self._depth >= self.max_nesting_depth

    def _skip_nested(self, opener: Token) -> None:
        """Skip a construct nested beyond the limit without recursing into it."""
        self.diagnostics.report(
            RutileErrorKind.NESTING_TOO_DEEP,
            f"Nesting deeper than {self.max_nesting_depth} levels; construct skipped",
            opener.span
        )

        expected = [OPENER_TO_CLOSER[opener.type]]
        self._consume()
        while expected and not self.stream.at_end:
            token = self.stream.current
            if token.type in OPENER_TO_CLOSER:
                expected.append(OPENER_TO_CLOSER[token.type])
            elif token.type == expected[-1]:
                expected.pop()
            elif token.type in STRAY_CLOSERS:
                self._report_stray_closer(token)
            elif token.type == TokenType.ERROR:
                self._report_lexical_error(token)
            self._consume()
        return None

    def _report_stray_closer(self, token: Token) -> None:
        self.diagnostics.report(
            RutileErrorKind.UNEXPECTED_TOKEN,
            f"Unexpected {describe_token(token)} with nothing to close",
            token.span
        )

    def _report_lexical_error(self, token: Token) -> None:
        kind = token.error or RutileErrorKind.UNEXPECTED_CHARACTER
        message = token.message or f"Invalid input {token.value!r}"
        self.diagnostics.report(kind, message, token.span)

    def _consume(self) -> Token:
        token = self.stream.advance()
        self._last_span = token.span
        return token

    def _span_from(self, start: ZeroSpan) -> ZeroSpan:
        """Span from ``start`` through the last consumed token."""
        end = self._last_span or start
        return ZeroSpan(
            start.file_path,
            ZeroRange(start.start, end.end),
            start.start_offset,
            end.end_offset
        )

    @staticmethod
    def _empty_span_at_end(span: ZeroSpan) -> ZeroSpan:
        return ZeroSpan(span.file_path, ZeroRange(span.end, span.end), span.end_offset, span.end_offset)

    @staticmethod
    def _name_suffix(name: Word) -> str:
        return f" '{name.name}'" if name.name else ""


__all__ = [
    "RutileParser",
    "ParseResult",
    "DEFAULT_MAX_NESTING_DEPTH",
    "max_safe_nesting_depth",
    "describe_token",
]
