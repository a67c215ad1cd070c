"""
LSP data structures and utilities for the Rutile Language Server.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

from typing import Dict, List, Optional, Tuple, Union
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
import urllib.parse

from pygls.workspace import PositionCodec
from lsprotocol.types import (
    Position as LspPosition,
    Range as LspRange,
    Location as LspLocation,
    Diagnostic as LspDiagnostic,
    DiagnosticSeverity,
    DocumentSymbol as LspDocumentSymbol,
    FoldingRange as LspFoldingRange,
    FoldingRangeKind,
    Hover as LspHover,
    MarkupContent,
    MarkupKind,
    SemanticTokenModifiers,
    SemanticTokenTypes,
    SemanticTokens,
    SemanticTokensLegend,
    SymbolKind,
)

from .span import ZeroPosition, ZeroSpan

SERVER_NAME = "rutile-language-server"


class RutileDiagnosticSeverity(Enum):
    """Severity levels for Rutile diagnostics."""
    ERROR = "error"


class PositionEncoder:
    """
    Converts the columns of one document between code points, which spans
    count, and the client's position encoding (UTF-16 unless negotiated).
    """

    def __init__(self, content: str, codec: Optional[PositionCodec] = None):
        self.lines = content.split('\n')
        self.codec = codec or PositionCodec()

    def to_client(self, position: ZeroPosition) -> LspPosition:
        return self.codec.position_to_client_units(
            self.lines, LspPosition(line=position.line, character=position.column)
        )

    def from_client(self, position: LspPosition) -> ZeroPosition:
        # The codec clamps out-of-range positions in place, so hand it a copy
        requested = LspPosition(line=max(0, position.line), character=max(0, position.character))
        converted = self.codec.position_from_client_units(self.lines, requested)
        return ZeroPosition(line=converted.line, column=converted.character)

    def num_units(self, line: int, start_column: int, end_column: int) -> int:
        """Length of part of a line in client units."""
        text = self.lines[line] if line < len(self.lines) else ""
        return self.codec.client_num_units(text[start_column:end_column])


def span_to_lsp_range(span: ZeroSpan, encoder: Optional[PositionEncoder] = None) -> LspRange:
    """
    Convert a span to an LSP range. Both are zero-based.

    Without an encoder, columns stay in code points.
    """
    if encoder is not None:
        return LspRange(start=encoder.to_client(span.start), end=encoder.to_client(span.end))
    return LspRange(
        start=LspPosition(line=span.start.line, character=span.start.column),
        end=LspPosition(line=span.end.line, character=span.end.column)
    )


@dataclass
class RutileDiagnostic:
    """A diagnostic message for Rutile code."""
    span: ZeroSpan
    message: str
    severity: RutileDiagnosticSeverity
    code: Optional[str] = None
    source: str = SERVER_NAME

    def to_lsp_diagnostic(self, encoder: Optional[PositionEncoder] = None) -> LspDiagnostic:
        """Convert to LSP diagnostic."""
        severity_map = {
            RutileDiagnosticSeverity.ERROR: DiagnosticSeverity.Error,
        }

        return LspDiagnostic(
            range=span_to_lsp_range(self.span, encoder),
            message=self.message,
            severity=severity_map[self.severity],
            code=self.code,
            source=self.source
        )

    def format_for_cli(self, file_path: Path) -> str:
        """Render as ``path:line:col: severity: message [code]`` with one-based positions."""
        start = self.span.start.to_one_indexed()
        code_part = f" [{self.code}]" if self.code else ""
        return f"{file_path}:{start.line}:{start.column}: {self.severity.value}: {self.message}{code_part}"


@dataclass
class RutileLocation:
    """A location in Rutile source code."""
    span: ZeroSpan

    def to_lsp_location(self, uri: Optional[str] = None,
                        encoder: Optional[PositionEncoder] = None) -> LspLocation:
        """Convert to LSP location, deriving the URI from the span when not given."""
        if uri is None:
            if not self.span.file_path:
                raise ValueError("Cannot convert span without file path to LSP location")
            uri = path_to_uri(Path(self.span.file_path))

        return LspLocation(uri=uri, range=span_to_lsp_range(self.span, encoder))


class RutileSymbolKind(Enum):
    """Kinds of Rutile symbols."""
    WORD_DEFINITION = "word definition"


@dataclass
class RutileSymbol:
    """A named symbol in Rutile code, with nested symbols as children."""
    name: str
    kind: RutileSymbolKind
    location: RutileLocation
    selection: RutileLocation
    detail: Optional[str] = None
    children: List['RutileSymbol'] = field(default_factory=list)

    def to_lsp_document_symbol(self, encoder: Optional[PositionEncoder] = None) -> LspDocumentSymbol:
        """Convert to LSP document symbol."""
        kind_map = {
            RutileSymbolKind.WORD_DEFINITION: SymbolKind.Function,
        }

        lsp_children = [child.to_lsp_document_symbol(encoder) for child in self.children]

        return LspDocumentSymbol(
            name=self.name,
            kind=kind_map.get(self.kind, SymbolKind.Variable),
            range=span_to_lsp_range(self.location.span, encoder),
            selection_range=span_to_lsp_range(self.selection.span, encoder),
            detail=self.detail,
            children=lsp_children if lsp_children else None
        )


class FoldKind(Enum):
    """Kinds of foldable regions."""
    REGION = "region"
    COMMENT = "comment"


@dataclass(frozen=True)
class FoldRegion:
    """A foldable line range."""
    start_line: int
    end_line: int
    kind: FoldKind = FoldKind.REGION

    def to_lsp_folding_range(self) -> LspFoldingRange:
        kind_map = {
            FoldKind.REGION: FoldingRangeKind.Region,
            FoldKind.COMMENT: FoldingRangeKind.Comment,
        }
        return LspFoldingRange(
            start_line=self.start_line,
            end_line=self.end_line,
            kind=kind_map[self.kind]
        )


class HighlightCategory(Enum):
    """Display categories assigned to leaves of the syntax tree."""
    DEFINITION_NAME = "definition-name"
    WORD = "word"
    OPERATOR = "operator"
    STRING = "string"
    NUMBER = "number"
    WEBHOOK = "webhook"
    COMMENT = "comment"


@dataclass(frozen=True)
class Classification:
    """A span of source text together with its display category."""
    span: ZeroSpan
    category: HighlightCategory


TOKEN_TYPES = [
    SemanticTokenTypes.Function.value,
    SemanticTokenTypes.Operator.value,
    SemanticTokenTypes.String.value,
    SemanticTokenTypes.Number.value,
    SemanticTokenTypes.Macro.value,
    SemanticTokenTypes.Comment.value,
]

TOKEN_MODIFIERS = [
    SemanticTokenModifiers.Declaration.value,
    SemanticTokenModifiers.Definition.value,
]

SEMANTIC_TOKEN_LEGEND = SemanticTokensLegend(
    token_types=TOKEN_TYPES,
    token_modifiers=TOKEN_MODIFIERS
)

# category -> (token type index, modifier bitmask)
_CATEGORY_ENCODING: Dict[HighlightCategory, Tuple[int, int]] = {
    HighlightCategory.DEFINITION_NAME: (TOKEN_TYPES.index("function"), 0b11),
    HighlightCategory.WORD: (TOKEN_TYPES.index("function"), 0),
    HighlightCategory.OPERATOR: (TOKEN_TYPES.index("operator"), 0),
    HighlightCategory.STRING: (TOKEN_TYPES.index("string"), 0),
    HighlightCategory.NUMBER: (TOKEN_TYPES.index("number"), 0),
    HighlightCategory.WEBHOOK: (TOKEN_TYPES.index("macro"), 0),
    HighlightCategory.COMMENT: (TOKEN_TYPES.index("comment"), 0),
}


def encode_semantic_tokens(classifications: List[Classification], content: str,
                           codec: Optional[PositionCodec] = None) -> SemanticTokens:
    """
    Encode classifications with the relative LSP semantic token encoding.

    LSP tokens may not span lines, so multi-line classifications (block
    comments) are split into one token per line.

    Args:
        classifications: Classifications ordered by start offset
        content: The text the classifications refer to
        codec: Client position encoding, UTF-16 by default

    Returns:
        SemanticTokens with the flat ``data`` array
    """
    encoder = PositionEncoder(content, codec)
    lines = encoder.lines
    data: List[int] = []
    previous_line = 0
    previous_start = 0

    for classification in classifications:
        token_type, modifiers = _CATEGORY_ENCODING[classification.category]
        span = classification.span

        for line in range(span.start.line, span.end.line + 1):
            start_column = span.start.column if line == span.start.line else 0
            if line == span.end.line:
                end_column = span.end.column
            else:
                end_column = len(lines[line]) if line < len(lines) else 0
            if end_column <= start_column:
                continue

            # Client units, so text after astral characters stays aligned
            start = encoder.num_units(line, 0, start_column)
            length = encoder.num_units(line, start_column, end_column)

            delta_line = line - previous_line
            delta_start = start - previous_start if delta_line == 0 else start
            data.extend([delta_line, delta_start, length, token_type, modifiers])
            previous_line = line
            previous_start = start

    return SemanticTokens(data=data)


@dataclass
class RutileHover:
    """Hover information for Rutile code."""
    content: str
    range: Optional[ZeroSpan] = None

    def to_lsp_hover(self, encoder: Optional[PositionEncoder] = None) -> LspHover:
        """Convert to LSP hover."""
        markup_content = MarkupContent(
            kind=MarkupKind.Markdown,
            value=self.content
        )

        lsp_range = span_to_lsp_range(self.range, encoder) if self.range else None
        return LspHover(contents=markup_content, range=lsp_range)


def path_to_uri(path: Path) -> str:
    """Convert a file path to a URI."""
    return path.resolve().as_uri()


def uri_to_path(uri: str) -> Path:
    """Convert a URI to a file path."""
    parsed = urllib.parse.urlparse(uri)
    if parsed.scheme != 'file':
        raise ValueError(f"Only file URIs are supported, got: {uri}")
    return Path(urllib.parse.unquote(parsed.path))


def document_path(uri: str) -> Union[Path, str]:
    """
    The file system path of a file URI. Documents with other schemes, such as
    unsaved ``untitled:`` buffers, are named by their URI.
    """
    if urllib.parse.urlparse(uri).scheme == 'file':
        return uri_to_path(uri)
    return uri


def lsp_position_to_zero_indexed(lsp_pos: LspPosition,
                                 encoder: Optional[PositionEncoder] = None) -> ZeroPosition:
    """Convert an LSP position to an internal position. Both are zero-based."""
    if encoder is not None:
        return encoder.from_client(lsp_pos)
    return ZeroPosition(
        line=max(0, lsp_pos.line),
        column=max(0, lsp_pos.character)
    )
