"""
Shared error types and the diagnostics collector used while parsing.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

from typing import Iterator, List
from dataclasses import dataclass, field
from enum import Enum

from ..span import ZeroSpan
from ..lsp_data import RutileDiagnostic, RutileDiagnosticSeverity


class RutileErrorKind(Enum):
    """Kinds of lexical and syntactic errors. Values double as diagnostic codes."""
    # Lexical
    UNTERMINATED_BLOCK_COMMENT = "unterminated-block-comment"
    UNTERMINATED_STRING = "unterminated-string"
    INVALID_SIGIL = "invalid-sigil"
    UNEXPECTED_CHARACTER = "unexpected-character"

    # Syntactic
    EXPECTED_NAME_AFTER_COLON = "expected-name-after-colon"
    UNTERMINATED_DEFINITION = "unterminated-definition"
    UNTERMINATED_QUOTATION = "unterminated-quotation"
    UNTERMINATED_MAP = "unterminated-map"
    UNEXPECTED_TOKEN = "unexpected-token"
    NESTING_TOO_DEEP = "nesting-too-deep"

    @property
    def is_lexical(self) -> bool:
        return self in _LEXICAL_KINDS


_LEXICAL_KINDS = frozenset({
    RutileErrorKind.UNTERMINATED_BLOCK_COMMENT,
    RutileErrorKind.UNTERMINATED_STRING,
    RutileErrorKind.INVALID_SIGIL,
    RutileErrorKind.UNEXPECTED_CHARACTER,
})


@dataclass(frozen=True)
class RutileError:
    """Represents an error in Rutile source text."""
    kind: RutileErrorKind
    message: str
    span: ZeroSpan
    severity: RutileDiagnosticSeverity = RutileDiagnosticSeverity.ERROR

    @property
    def code(self) -> str:
        return self.kind.value

    def to_diagnostic(self) -> RutileDiagnostic:
        """Convert to diagnostic."""
        return RutileDiagnostic(
            span=self.span,
            message=self.message,
            severity=self.severity,
            code=self.code
        )


@dataclass
class DiagnosticCollector:
    """
    Accumulates errors in the order they are reported.

    One collector belongs to exactly one parse; reporting never interrupts
    the parse.
    """
    errors: List[RutileError] = field(default_factory=list)

    def report(self, kind: RutileErrorKind, message: str, span: ZeroSpan) -> RutileError:
        error = RutileError(kind=kind, message=message, span=span)
        self.errors.append(error)
        return error

    def __iter__(self) -> Iterator[RutileError]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __bool__(self) -> bool:
        return bool(self.errors)
