"""
Syntax tree node types for Rutile.

Every production is a flat, frozen dataclass; ``Item`` is the closed set of
nodes that may appear in a sequence. Child sequences are tuples, so a tree
cannot change after the parser hands it out.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

from dataclasses import dataclass
from typing import Iterator, Tuple, Union

from ...span import ZeroSpan


@dataclass(frozen=True)
class Word:
    """A word reference, or the name of a word definition."""
    name: str
    span: ZeroSpan

    @property
    def is_placeholder(self) -> bool:
        """True for the empty name synthesized after a missing definition name."""
        return self.name == ""


@dataclass(frozen=True)
class StringLiteral:
    """A string literal. ``raw`` is the text between the quotes, escapes undecoded."""
    raw: str
    span: ZeroSpan


@dataclass(frozen=True)
class NumberLiteral:
    """A number literal, kept as its raw lexeme."""
    raw: str
    span: ZeroSpan


@dataclass(frozen=True)
class WebhookSigil:
    """An ``@name`` reference. ``name`` excludes the ``@``."""
    name: str
    span: ZeroSpan


@dataclass(frozen=True)
class WordDefinition:
    """``: name body... ;``"""
    name: Word
    body: Tuple['Item', ...]
    span: ZeroSpan

    @property
    def children(self) -> Tuple['Item', ...]:
        return self.body


@dataclass(frozen=True)
class Quotation:
    """``[ items... ]``"""
    items: Tuple['Item', ...]
    span: ZeroSpan

    @property
    def children(self) -> Tuple['Item', ...]:
        return self.items


@dataclass(frozen=True)
class MapLiteral:
    """``{ items... }``. Contents are not paired into keys and values."""
    items: Tuple['Item', ...]
    span: ZeroSpan

    @property
    def children(self) -> Tuple['Item', ...]:
        return self.items


@dataclass(frozen=True)
class SourceFile:
    """The root of a parsed document."""
    items: Tuple['Item', ...]
    span: ZeroSpan

    @property
    def children(self) -> Tuple['Item', ...]:
        return self.items


Item = Union[WordDefinition, Quotation, MapLiteral, StringLiteral, NumberLiteral, Word, WebhookSigil]

Node = Union[SourceFile, WordDefinition, Quotation, MapLiteral, StringLiteral,
             NumberLiteral, Word, WebhookSigil]

LEAF_TYPES = (StringLiteral, NumberLiteral, Word, WebhookSigil)
CONTAINER_TYPES = (WordDefinition, Quotation, MapLiteral)


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all its descendants in depth-first source order.

    A definition's name is yielded before its body.
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, LEAF_TYPES):
            continue
        children = list(current.children)
        if isinstance(current, WordDefinition):
            children.insert(0, current.name)
        stack.extend(reversed(children))


__all__ = [
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
