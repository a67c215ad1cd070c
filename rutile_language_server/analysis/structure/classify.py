"""
Classification of tree leaves into highlighting categories.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

from typing import Iterable, List

from ...lsp_data import Classification, HighlightCategory
from ..parsing.ast import (
    NumberLiteral,
    SourceFile,
    StringLiteral,
    WebhookSigil,
    Word,
    WordDefinition,
    walk,
)
from ..parsing.lexer import OPERATOR_CHARS, Trivia


def is_symbolic(name: str) -> bool:
    """True for words made only of operator characters, like ``*`` or ``<=``."""
    return bool(name) and all(char in OPERATOR_CHARS for char in name)


def classify(tree: SourceFile, trivia: Iterable[Trivia] = ()) -> List[Classification]:
    """Classify every leaf of ``tree`` and every comment, sorted by offset."""
    definition_names = set()
    classifications: List[Classification] = []

    for node in walk(tree):
        if isinstance(node, WordDefinition):
            if not node.name.is_placeholder:
                definition_names.add(id(node.name))
        elif isinstance(node, Word):
            if node.is_placeholder:
                continue
            if id(node) in definition_names:
                category = HighlightCategory.DEFINITION_NAME
            elif is_symbolic(node.name):
                category = HighlightCategory.OPERATOR
            else:
                category = HighlightCategory.WORD
            classifications.append(Classification(node.span, category))
        elif isinstance(node, StringLiteral):
            classifications.append(Classification(node.span, HighlightCategory.STRING))
        elif isinstance(node, NumberLiteral):
            classifications.append(Classification(node.span, HighlightCategory.NUMBER))
        elif isinstance(node, WebhookSigil):
            classifications.append(Classification(node.span, HighlightCategory.WEBHOOK))

    for comment in trivia:
        classifications.append(Classification(comment.span, HighlightCategory.COMMENT))

    classifications.sort(key=lambda classification: classification.span.start_offset)
    return classifications
