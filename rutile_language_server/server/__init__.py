"""
LSP server implementation for the Rutile Language Server.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import logging
from typing import Dict, List, Optional

from pygls.server import LanguageServer
from pygls.workspace import PositionCodec
from lsprotocol.types import (
    INITIALIZE,
    TEXT_DOCUMENT_DEFINITION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DOCUMENT_SYMBOL,
    TEXT_DOCUMENT_FOLDING_RANGE,
    TEXT_DOCUMENT_HOVER,
    TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL,
    DefinitionParams,
    Diagnostic as LspDiagnostic,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DocumentSymbol as LspDocumentSymbol,
    DocumentSymbolParams,
    FoldingRange as LspFoldingRange,
    FoldingRangeParams,
    Hover as LspHover,
    HoverParams,
    InitializeParams,
    Location as LspLocation,
    Position as LspPosition,
    SemanticTokens,
    SemanticTokensParams,
    TextDocumentSyncKind,
)

from .. import __version__
from ..config import Config
from ..analysis import DocumentAnalysis, WorkspaceAnalysis
from ..analysis.parsing import Word
from ..lsp_data import (
    SEMANTIC_TOKEN_LEGEND,
    SERVER_NAME,
    PositionEncoder,
    RutileLocation,
    uri_to_path,
    lsp_position_to_zero_indexed,
)

logger = logging.getLogger(__name__)


class RutileLanguageServer(LanguageServer):
    """Rutile Language Server implementation."""

    def __init__(self, config: Optional[Config] = None):
        super().__init__(SERVER_NAME, __version__, text_document_sync_kind=TextDocumentSyncKind.Full)

        self.config = config or Config()
        self.analysis_engine = WorkspaceAnalysis(self.config)

        # Track open documents
        self.open_documents: Dict[str, str] = {}

        # Register LSP handlers
        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register LSP message handlers."""

        # Runs after the built-in initialize handler, which answers the request.
        @self.feature(INITIALIZE)
        def initialize(params: InitializeParams) -> None:
            self.apply_initialize_params(params)

        @self.feature(TEXT_DOCUMENT_DID_OPEN)
        def did_open(params: DidOpenTextDocumentParams) -> None:
            """Handle document open."""
            uri = params.text_document.uri
            self.open_documents[uri] = params.text_document.text
            self._publish(uri)

        @self.feature(TEXT_DOCUMENT_DID_CHANGE)
        def did_change(params: DidChangeTextDocumentParams) -> None:
            """Handle document change."""
            uri = params.text_document.uri

            # Full sync: the last change carries the whole text
            if params.content_changes:
                self.open_documents[uri] = params.content_changes[-1].text
                self._publish(uri)

        @self.feature(TEXT_DOCUMENT_DID_CLOSE)
        def did_close(params: DidCloseTextDocumentParams) -> None:
            """Handle document close."""
            uri = params.text_document.uri
            self.close_document(uri)
            self.publish_diagnostics(uri, [])

        @self.feature(TEXT_DOCUMENT_DOCUMENT_SYMBOL)
        def document_symbol(params: DocumentSymbolParams) -> List[LspDocumentSymbol]:
            """Handle document symbol request."""
            try:
                return self.document_symbols(params.text_document.uri)
            except Exception as e:
                logger.error(f"Error in document symbol: {e}")
                return []

        @self.feature(TEXT_DOCUMENT_FOLDING_RANGE)
        def folding_range(params: FoldingRangeParams) -> List[LspFoldingRange]:
            try:
                return self.folding_ranges(params.text_document.uri)
            except Exception as e:
                logger.error(f"Error in folding range: {e}")
                return []

        @self.feature(TEXT_DOCUMENT_SEMANTIC_TOKENS_FULL, SEMANTIC_TOKEN_LEGEND)
        def semantic_tokens_full(params: SemanticTokensParams) -> SemanticTokens:
            try:
                return self.semantic_tokens(params.text_document.uri)
            except Exception as e:
                logger.error(f"Error in semantic tokens: {e}")
                return SemanticTokens(data=[])

        @self.feature(TEXT_DOCUMENT_HOVER)
        def hover(params: HoverParams) -> Optional[LspHover]:
            """Handle hover request."""
            try:
                return self.hover(params.text_document.uri, params.position)
            except Exception as e:
                logger.error(f"Error in hover: {e}")
                return None

        @self.feature(TEXT_DOCUMENT_DEFINITION)
        def definition(params: DefinitionParams) -> Optional[LspLocation]:
            """Handle go-to-definition request."""
            try:
                return self.definition(params.text_document.uri, params.position)
            except Exception as e:
                logger.error(f"Error in definition: {e}")
                return None

    def apply_initialize_params(self, params: InitializeParams) -> None:
        """Take the workspace root and initialization options from the client."""
        logger.info("Initializing Rutile Language Server")

        if params.root_uri:
            try:
                self.config.workspace_root = uri_to_path(params.root_uri)
            except ValueError as e:
                logger.warning(f"Ignoring workspace root: {e}")

        if isinstance(params.initialization_options, dict):
            self.config.set_initialization_options(params.initialization_options)

    def analyze_document(self, uri: str, content: str) -> List[LspDiagnostic]:
        """
        Analyze a document and return its diagnostics.

        The result is capped at ``max_diagnostics_per_file``.
        """
        analysis = self.analysis_engine.analyze_document(uri, content)
        encoder = self._encoder(analysis)
        diagnostics = [diagnostic.to_lsp_diagnostic(encoder) for diagnostic in analysis.get_diagnostics()]

        # Limit diagnostics per file
        max_diagnostics = self.config.get_max_diagnostics_per_file()
        if len(diagnostics) > max_diagnostics:
            logger.debug(f"Dropping {len(diagnostics) - max_diagnostics} diagnostics for {uri}")
            diagnostics = diagnostics[:max_diagnostics]

        return diagnostics

    def close_document(self, uri: str) -> None:
        self.open_documents.pop(uri, None)
        self.analysis_engine.invalidate_document(uri)

    def get_document_analysis(self, uri: str) -> Optional[DocumentAnalysis]:
        """The analysis for an open document, analyzing it first if needed."""
        analysis = self.analysis_engine.get_analysis(uri)
        if analysis is None and uri in self.open_documents:
            analysis = self.analysis_engine.analyze_document(uri, self.open_documents[uri])
        return analysis

    def document_symbols(self, uri: str) -> List[LspDocumentSymbol]:
        analysis = self.get_document_analysis(uri)
        if analysis is None:
            return []
        encoder = self._encoder(analysis)
        return [symbol.to_lsp_document_symbol(encoder) for symbol in analysis.get_symbols()]

    def folding_ranges(self, uri: str) -> List[LspFoldingRange]:
        analysis = self.get_document_analysis(uri)
        if analysis is None:
            return []
        return [region.to_lsp_folding_range() for region in analysis.get_folding_ranges()]

    def semantic_tokens(self, uri: str) -> SemanticTokens:
        analysis = self.get_document_analysis(uri)
        if analysis is None:
            return SemanticTokens(data=[])
        return analysis.get_semantic_tokens(self._position_codec())

    def hover(self, uri: str, position: LspPosition) -> Optional[LspHover]:
        analysis = self.get_document_analysis(uri)
        if analysis is None:
            return None

        encoder = self._encoder(analysis)
        hover = analysis.get_hover(lsp_position_to_zero_indexed(position, encoder))
        return hover.to_lsp_hover(encoder) if hover else None

    def definition(self, uri: str, position: LspPosition) -> Optional[LspLocation]:
        """Find the definition of the word under the cursor in the same document."""
        analysis = self.get_document_analysis(uri)
        if analysis is None:
            return None

        encoder = self._encoder(analysis)
        node = analysis.get_node_at_position(lsp_position_to_zero_indexed(position, encoder))
        if not isinstance(node, Word):
            return None

        word_definition = analysis.find_definition(node.name)
        if word_definition is None:
            return None
        return RutileLocation(word_definition.name.span).to_lsp_location(uri, encoder)

    def _position_codec(self) -> PositionCodec:
        """The position encoding negotiated with the client, UTF-16 before initialize."""
        try:
            return self.workspace.position_codec
        except RuntimeError:
            return PositionCodec()

    def _encoder(self, analysis: DocumentAnalysis) -> PositionEncoder:
        return PositionEncoder(analysis.content, self._position_codec())

    def _publish(self, uri: str) -> None:
        """Analyze a document and publish diagnostics."""
        try:
            diagnostics = self.analyze_document(uri, self.open_documents[uri])
            self.publish_diagnostics(uri, diagnostics)
        except Exception as e:
            logger.error(f"Error analyzing document {uri}: {e}")


def run_server(config: Optional[Config] = None) -> int:
    """
    Run the Rutile Language Server on stdio.

    Returns:
        Exit code
    """
    try:
        server = RutileLanguageServer(config)
        server.start_io()
        return 0
    except Exception as e:
        logger.error(f"Server error: {e}")
        return 1


# Export main functions
__all__ = [
    "RutileLanguageServer",
    "run_server"
]
