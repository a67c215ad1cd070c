"""
Rutile parsing module.

Provides lexical analysis and parsing for Rutile code. ``parse`` is the
entry point used by the rest of the server: text in, tree and diagnostics out.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import logging
from typing import List, Optional, Tuple

from .ast import (
    CONTAINER_TYPES,
    LEAF_TYPES,
    Item,
    MapLiteral,
    Node,
    NumberLiteral,
    Quotation,
    SourceFile,
    StringLiteral,
    WebhookSigil,
    Word,
    WordDefinition,
    walk,
)
from .lexer import RutileLexer, Token, TokenStream, TokenType, Trivia, TriviaKind
from .parser import DEFAULT_MAX_NESTING_DEPTH, ParseResult, RutileParser

logger = logging.getLogger(__name__)


def parse(content: str, file_path: Optional[str] = None,
          max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH) -> ParseResult:
    """
    Parse Rutile source text.

    Args:
        content: The source text
        file_path: Optional path recorded in every span
        max_nesting_depth: Deepest allowed nesting of definitions, quotations and maps

    Returns:
        ParseResult(source_file, diagnostics)

    Raises:
        TypeError: if ``content`` is not a string
    """
    result, _ = parse_with_trivia(content, file_path, max_nesting_depth)
    return result


def parse_with_trivia(content: str, file_path: Optional[str] = None,
                      max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
                      ) -> Tuple[ParseResult, List[Trivia]]:
    """Parse like ``parse`` and also return the comments seen while lexing."""
    stream = TokenStream.from_text(content, file_path, retain_trivia=True)
    parser = RutileParser(stream, max_nesting_depth=max_nesting_depth)
    result = parser.parse()
    return result, list(stream.lexer.trivia)


def tokenize(content: str, file_path: Optional[str] = None) -> List[Token]:
    """Tokenize the whole input eagerly. The last token is always EOF."""
    return list(RutileLexer(content, file_path).tokenize())


# Export main classes
__all__ = [
    "parse",
    "parse_with_trivia",
    "tokenize",
    "RutileLexer",
    "RutileParser",
    "ParseResult",
    "DEFAULT_MAX_NESTING_DEPTH",
    "Token",
    "TokenStream",
    "TokenType",
    "Trivia",
    "TriviaKind",
    "SourceFile",
    "WordDefinition",
    "Quotation",
    "MapLiteral",
    "StringLiteral",
    "NumberLiteral",
    "Word",
    "WebhookSigil",
    "Item",
    "Node",
    "LEAF_TYPES",
    "CONTAINER_TYPES",
    "walk",
]
