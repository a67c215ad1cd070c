"""
Re-serialization of syntax trees and span-free tree shapes.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

from typing import Any, List, Tuple

from ..parsing.ast import (
    MapLiteral,
    Node,
    NumberLiteral,
    Quotation,
    SourceFile,
    StringLiteral,
    WebhookSigil,
    Word,
    WordDefinition,
)


def render_source(node: Node) -> str:
    """
    Rebuild source text from a tree.

    Leaves are written from their raw lexemes and structures with their
    brackets; everything is separated by single spaces, so the result equals
    the original input modulo whitespace and comments.
    """
    parts: List[str] = []
    _render_into(node, parts)
    return " ".join(parts)


def _render_into(node: Node, parts: List[str]) -> None:
    if isinstance(node, SourceFile):
        for item in node.items:
            _render_into(item, parts)
    elif isinstance(node, WordDefinition):
        parts.append(":")
        if node.name.name:
            parts.append(node.name.name)
        for item in node.body:
            _render_into(item, parts)
        parts.append(";")
    elif isinstance(node, Quotation):
        parts.append("[")
        for item in node.items:
            _render_into(item, parts)
        parts.append("]")
    elif isinstance(node, MapLiteral):
        parts.append("{")
        for item in node.items:
            _render_into(item, parts)
        parts.append("}")
    elif isinstance(node, StringLiteral):
        parts.append(f'"{node.raw}"')
    elif isinstance(node, NumberLiteral):
        parts.append(node.raw)
    elif isinstance(node, Word):
        parts.append(node.name)
    elif isinstance(node, WebhookSigil):
        parts.append(f"@{node.name}")
    else:
        raise TypeError(f"Not a syntax tree node: {node!r}")


def tree_shape(node: Node) -> Tuple[Any, ...]:
    """Return a nested tuple describing ``node`` with all spans dropped.

    Two trees have equal shapes exactly when they differ only in positions.
    """
    if isinstance(node, SourceFile):
        return ("source_file", tuple(tree_shape(item) for item in node.items))
    if isinstance(node, WordDefinition):
        return ("word_definition", node.name.name, tuple(tree_shape(item) for item in node.body))
    if isinstance(node, Quotation):
        return ("quotation", tuple(tree_shape(item) for item in node.items))
    if isinstance(node, MapLiteral):
        return ("map", tuple(tree_shape(item) for item in node.items))
    if isinstance(node, StringLiteral):
        return ("string", node.raw)
    if isinstance(node, NumberLiteral):
        return ("number", node.raw)
    if isinstance(node, Word):
        return ("word", node.name)
    if isinstance(node, WebhookSigil):
        return ("webhook_sigil", node.name)
    raise TypeError(f"Not a syntax tree node: {node!r}")
