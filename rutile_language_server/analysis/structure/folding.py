"""
Foldable regions derived from the syntax tree and retained comments.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

from typing import Iterable, List, Tuple

from ...lsp_data import FoldKind, FoldRegion
from ..parsing.ast import CONTAINER_TYPES, SourceFile, walk
from ..parsing.lexer import Trivia, TriviaKind


def folding_ranges(tree: SourceFile, trivia: Iterable[Trivia] = ()) -> List[FoldRegion]:
    """
    Collect fold regions for multi-line definitions, quotations, maps and
    block comments, ordered by where they start.
    """
    candidates: List[Tuple[int, FoldRegion]] = []

    for node in walk(tree):
        if isinstance(node, CONTAINER_TYPES) and node.span.range.is_multiline:
            region = FoldRegion(node.span.start.line, node.span.end.line, FoldKind.REGION)
            candidates.append((node.span.start_offset, region))

    for comment in trivia:
        if comment.kind == TriviaKind.BLOCK_COMMENT and comment.span.range.is_multiline:
            region = FoldRegion(comment.span.start.line, comment.span.end.line, FoldKind.COMMENT)
            candidates.append((comment.span.start_offset, region))

    candidates.sort(key=lambda candidate: candidate[0])
    return [region for _, region in candidates]
