"""
Rutile Structure Module

Consumers of the syntax tree used by the editor features: re-serialization,
span-free shapes, folding, highlighting classification and document symbols.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

from .render import render_source, tree_shape
from .folding import folding_ranges
from .classify import classify, is_symbolic
from .symbols import document_symbols, iter_definitions

__all__ = [
    'render_source', 'tree_shape',
    'folding_ranges',
    'classify', 'is_symbolic',
    'document_symbols', 'iter_definitions',
]
