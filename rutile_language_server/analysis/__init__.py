"""
Analysis module for the Rutile Language Server.

Holds the per-document analysis (tree, diagnostics, comments and the editor
views derived from them) and a thread-safe cache of analyses for a workspace.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import logging
from pathlib import Path
from typing import List, Dict, Optional, Iterable, Union
import threading
from concurrent.futures import ThreadPoolExecutor

from pygls.workspace import PositionCodec
from lsprotocol.types import SemanticTokens

from .. import internal_error
from ..config import Config
from ..span import ZeroPosition
from ..lsp_data import (
    Classification,
    FoldRegion,
    RutileDiagnostic,
    RutileHover,
    RutileSymbol,
    document_path,
    encode_semantic_tokens,
    path_to_uri,
)
from .types import RutileError, RutileErrorKind, DiagnosticCollector
from .parsing import (
    MapLiteral,
    Node,
    NumberLiteral,
    Quotation,
    SourceFile,
    StringLiteral,
    Trivia,
    WebhookSigil,
    Word,
    WordDefinition,
    parse_with_trivia,
    walk,
)
from .structure import classify, document_symbols, folding_ranges, iter_definitions

logger = logging.getLogger(__name__)


class DocumentAnalysis:
    """Analysis of a single document. The text is parsed once, on construction."""

    def __init__(self, file_path: Union[Path, str], content: str, config: Optional[Config] = None):
        self.file_path = file_path
        self.content = content
        self.config = config or Config()

        options = self.config.options
        parse_args = {}
        if options.max_nesting_depth is not None:
            parse_args['max_nesting_depth'] = options.max_nesting_depth

        result, trivia = parse_with_trivia(content, str(file_path), **parse_args)
        self.tree: SourceFile = result.source_file
        self.errors: List[RutileError] = result.diagnostics
        self.trivia: List[Trivia] = trivia if options.retain_trivia else []

        logger.debug(f"Analyzed {file_path}: {len(self.tree.items)} items, {len(self.errors)} errors")

    def get_diagnostics(self) -> List[RutileDiagnostic]:
        """Get all diagnostics for this file."""
        return [error.to_diagnostic() for error in self.errors]

    def get_symbols(self) -> List[RutileSymbol]:
        return document_symbols(self.tree)

    def get_folding_ranges(self) -> List[FoldRegion]:
        return folding_ranges(self.tree, self.trivia)

    def get_classifications(self) -> List[Classification]:
        return classify(self.tree, self.trivia)

    def get_semantic_tokens(self, codec: Optional[PositionCodec] = None) -> SemanticTokens:
        """Semantic tokens for the whole document, LSP encoded."""
        return encode_semantic_tokens(self.get_classifications(), self.content, codec)

    def find_definitions(self, name: str) -> List[WordDefinition]:
        """All definitions of ``name`` in source order."""
        return [definition for definition in iter_definitions(self.tree)
                if definition.name.name == name]

    def find_definition(self, name: str) -> Optional[WordDefinition]:
        """The definition of ``name`` in effect at the end of the document (the last one)."""
        definitions = self.find_definitions(name)
        return definitions[-1] if definitions else None

    def get_node_at_position(self, position: ZeroPosition) -> Optional[Node]:
        """
        Find the innermost node whose span contains ``position``.

        Returns the source file itself when no item covers the position, and
        None when the position lies outside the document.
        """
        found: Optional[Node] = None
        for node in walk(self.tree):
            if isinstance(node, Word) and node.is_placeholder:
                continue
            if not node.span.contains_position(position):
                continue
            # Pre-order: a descendant comes after its parent, so an equal or
            # smaller span later in the walk is deeper.
            if found is None or len(node.span) <= len(found.span):
                found = node
        return found

    def get_hover(self, position: ZeroPosition) -> Optional[RutileHover]:
        """Describe the node under the cursor."""
        node = self.get_node_at_position(position)
        if node is None or isinstance(node, SourceFile):
            return None
        return RutileHover(content=self._describe(node), range=node.span)

    def _describe(self, node: Node) -> str:
        if isinstance(node, Word):
            owner = self._definition_named_by(node)
            if owner is not None:
                return f"**word definition** `{node.name}`\n\n{_count_items(owner.body)}"
            definition = self.find_definition(node.name)
            if definition is not None:
                line = definition.span.start.line + 1
                return f"**word** `{node.name}`\n\nDefined on line {line}"
            return f"**word** `{node.name}`"
        if isinstance(node, WebhookSigil):
            return f"**webhook** `@{node.name}`"
        if isinstance(node, StringLiteral):
            return "**string literal**"
        if isinstance(node, NumberLiteral):
            return f"**number literal** `{node.raw}`"
        if isinstance(node, WordDefinition):
            name = node.name.name or "<missing name>"
            return f"**word definition** `{name}`\n\n{_count_items(node.body)}"
        if isinstance(node, Quotation):
            return f"**quotation**\n\n{_count_items(node.items)}"
        if isinstance(node, MapLiteral):
            return f"**map literal**\n\n{_count_items(node.items)}"
        return type(node).__name__

    def _definition_named_by(self, word: Word) -> Optional[WordDefinition]:
        for definition in iter_definitions(self.tree):
            if definition.name is word:
                return definition
        return None


def _count_items(items: Iterable[Node]) -> str:
    count = len(tuple(items))
    return f"{count} item{'s' if count != 1 else ''}"


class WorkspaceAnalysis:
    """
    Cache of document analyses keyed by document URI. Files read from disk
    are keyed by their ``file:`` URI.
    """

    def __init__(self, config: Config, max_workers: int = 4):
        self.config = config
        self.document_analyses: Dict[str, DocumentAnalysis] = {}

        # Thread pool for parallel analysis
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._analysis_lock = threading.RLock()

    def analyze_document(self, uri: str, content: str) -> DocumentAnalysis:
        """
        Analyze a document and store the result, replacing any earlier analysis.

        Args:
            uri: URI of the document, of any scheme
            content: Current text of the document

        Returns:
            The new analysis
        """
        analysis = DocumentAnalysis(document_path(uri), content, self.config)
        with self._analysis_lock:
            self.document_analyses[uri] = analysis
        return analysis

    def analyze_file(self, file_path: Path, content: str) -> DocumentAnalysis:
        return self.analyze_document(path_to_uri(file_path), content)

    def analyze_files(self, file_paths: Iterable[Path]) -> Dict[Path, DocumentAnalysis]:
        """
        Read and analyze files from disk concurrently.

        Files that cannot be read are logged and left out of the result.
        """
        file_paths = list(file_paths)
        futures = {
            file_path: self._executor.submit(self._read_and_analyze, file_path)
            for file_path in file_paths
        }

        results: Dict[Path, DocumentAnalysis] = {}
        for file_path, future in futures.items():
            try:
                analysis = future.result()
            except Exception as e:
                internal_error("Failed to analyze {}: {}", file_path, e)
                continue
            if analysis is not None:
                results[file_path] = analysis

        logger.info(f"Analyzed {len(results)} of {len(file_paths)} files")
        return results

    def _read_and_analyze(self, file_path: Path) -> Optional[DocumentAnalysis]:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read {file_path}: {e}")
            return None
        return self.analyze_file(file_path, content)

    def get_analysis(self, uri: str) -> Optional[DocumentAnalysis]:
        with self._analysis_lock:
            return self.document_analyses.get(uri)

    def invalidate_document(self, uri: str) -> bool:
        """Drop the analysis for a document. Returns whether one was cached."""
        with self._analysis_lock:
            return self.document_analyses.pop(uri, None) is not None

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)


# Export main classes
__all__ = [
    "DocumentAnalysis",
    "WorkspaceAnalysis",
    "RutileError",
    "RutileErrorKind",
    "DiagnosticCollector",
]
