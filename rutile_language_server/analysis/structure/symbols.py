"""
Document symbols for word definitions.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

from typing import Iterable, List

from ...lsp_data import RutileLocation, RutileSymbol, RutileSymbolKind
from ..parsing.ast import CONTAINER_TYPES, Item, SourceFile, WordDefinition, walk


def document_symbols(tree: SourceFile) -> List[RutileSymbol]:
    """Build the symbol outline: one symbol per named definition, nested as in the source."""
    return _collect(tree.items)


def _collect(items: Iterable[Item]) -> List[RutileSymbol]:
    symbols: List[RutileSymbol] = []
    for item in items:
        if not isinstance(item, CONTAINER_TYPES):
            continue

        children = _collect(item.children)
        if isinstance(item, WordDefinition) and not item.name.is_placeholder:
            symbols.append(RutileSymbol(
                name=item.name.name,
                kind=RutileSymbolKind.WORD_DEFINITION,
                location=RutileLocation(item.span),
                selection=RutileLocation(item.name.span),
                detail=f"{len(item.body)} item{'s' if len(item.body) != 1 else ''}",
                children=children
            ))
        else:
            # Definitions inside quotations, maps and unnamed definitions
            # surface at the enclosing level.
            symbols.extend(children)
    return symbols


def iter_definitions(tree: SourceFile) -> List[WordDefinition]:
    """All named definitions in source order, at any depth."""
    return [
        node for node in walk(tree)
        if isinstance(node, WordDefinition) and not node.name.is_placeholder
    ]
