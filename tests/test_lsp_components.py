"""
Tests for the analysis cache, LSP conversions and server handlers,
exercised directly without starting the LSP transport.

© 2024 Intel Corporation
SPDX-License-Identifier: Apache-2.0 and MIT
"""

import logging

import pytest
from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    ClientCapabilities,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    FoldingRangeKind,
    InitializeParams,
    Position as LspPosition,
    PositionEncodingKind,
    SymbolKind,
    TextDocumentContentChangeEvent_Type2,
    TextDocumentIdentifier,
    TextDocumentItem,
    VersionedTextDocumentIdentifier,
)
from pygls.workspace import PositionCodec

from rutile_language_server.config import Config
from rutile_language_server.file_management import FileManager
from rutile_language_server.analysis import DocumentAnalysis, WorkspaceAnalysis
from rutile_language_server.analysis.parsing import (
    NumberLiteral, Quotation, SourceFile, Word, WordDefinition,
)
from rutile_language_server.lsp_data import (
    Classification,
    FoldKind,
    FoldRegion,
    HighlightCategory,
    SEMANTIC_TOKEN_LEGEND,
    PositionEncoder,
    document_path,
    encode_semantic_tokens,
    lsp_position_to_zero_indexed,
    path_to_uri,
    uri_to_path,
)
from rutile_language_server.server import RutileLanguageServer
from rutile_language_server.span import Position


DOCUMENT = """\
: sq dup * ;
: quad
  sq sq ;
[ 2 quad ] @hooks.report
"""


@pytest.fixture
def analysis(tmp_path):
    return DocumentAnalysis(tmp_path / "doc.rt", DOCUMENT)


class TestDocumentAnalysis:
    """Test analysis of a single document."""

    def test_clean_document(self, analysis):
        assert analysis.errors == []
        assert analysis.get_diagnostics() == []
        assert len(analysis.tree.items) == 4

    def test_diagnostics(self, tmp_path):
        doc = DocumentAnalysis(tmp_path / "bad.rt", "[ 1 2 ")
        (diagnostic,) = doc.get_diagnostics()
        assert diagnostic.code == "unterminated-quotation"
        assert diagnostic.span.start == Position(0, 0)

    def test_symbols_and_folding(self, analysis):
        assert [symbol.name for symbol in analysis.get_symbols()] == ["sq", "quad"]
        assert analysis.get_folding_ranges() == [FoldRegion(1, 2, FoldKind.REGION)]

    def test_trivia_follows_config(self, tmp_path):
        content = "(\n comment\n)"
        assert len(DocumentAnalysis(tmp_path / "a.rt", content).trivia) == 1

        config = Config()
        config.set_initialization_options({"retain_trivia": False})
        doc = DocumentAnalysis(tmp_path / "a.rt", content, config)
        assert doc.trivia == []
        assert doc.get_folding_ranges() == []

    def test_nesting_depth_from_config(self, tmp_path):
        config = Config()
        config.set_initialization_options({"max_nesting_depth": 1})
        doc = DocumentAnalysis(tmp_path / "a.rt", "[ [ ] ]", config)
        assert [error.code for error in doc.errors] == ["nesting-too-deep"]

    def test_find_definition(self, analysis):
        definition = analysis.find_definition("sq")
        assert isinstance(definition, WordDefinition)
        assert definition.span.start.line == 0
        assert analysis.find_definition("dup") is None

    def test_find_definition_prefers_the_latest(self, tmp_path):
        doc = DocumentAnalysis(tmp_path / "a.rt", ": f 1 ;\n: f 2 ;")
        assert len(doc.find_definitions("f")) == 2
        assert doc.find_definition("f").span.start.line == 1

    def test_node_at_position(self, analysis):
        node = analysis.get_node_at_position(Position(2, 3))
        assert isinstance(node, Word) and node.name == "sq"

        node = analysis.get_node_at_position(Position(3, 2))
        assert isinstance(node, NumberLiteral)

        node = analysis.get_node_at_position(Position(3, 1))
        assert isinstance(node, Quotation)

    def test_node_at_position_between_items(self, analysis):
        assert isinstance(analysis.get_node_at_position(Position(4, 0)), SourceFile)
        assert analysis.get_node_at_position(Position(9, 0)) is None

    def test_hover(self, analysis):
        hover = analysis.get_hover(Position(2, 2))
        assert "**word** `sq`" in hover.content
        assert "Defined on line 1" in hover.content

        hover = analysis.get_hover(Position(0, 3))
        assert "**word definition** `sq`" in hover.content
        assert "2 items" in hover.content

        hover = analysis.get_hover(Position(3, 15))
        assert hover.content == "**webhook** `@hooks.report`"

        assert analysis.get_hover(Position(4, 0)) is None


class TestWorkspaceAnalysis:
    """Test the thread-safe analysis cache."""

    def test_analyze_and_invalidate(self, tmp_path):
        engine = WorkspaceAnalysis(Config())
        path = tmp_path / "a.rt"
        uri = path_to_uri(path)

        analysis = engine.analyze_file(path, "[ 1")
        assert engine.get_analysis(uri) is analysis
        assert analysis.file_path == path.resolve()
        assert len(analysis.get_diagnostics()) == 1

        assert engine.invalidate_document(uri) is True
        assert engine.get_analysis(uri) is None
        assert engine.invalidate_document(uri) is False
        engine.shutdown()

    def test_reanalysis_replaces_entry(self, tmp_path):
        engine = WorkspaceAnalysis(Config())
        path = tmp_path / "a.rt"
        engine.analyze_file(path, "[")
        engine.analyze_file(path, "[ ]")
        assert engine.get_analysis(path_to_uri(path)).get_diagnostics() == []
        engine.shutdown()

    def test_unsaved_documents_are_keyed_by_uri(self):
        engine = WorkspaceAnalysis(Config())
        analysis = engine.analyze_document("untitled:Untitled-1", "[ 1 2")
        assert analysis.file_path == "untitled:Untitled-1"
        assert [d.code for d in analysis.get_diagnostics()] == ["unterminated-quotation"]
        assert engine.get_analysis("untitled:Untitled-1") is analysis
        engine.shutdown()

    def test_huge_nesting_limit_does_not_abort(self):
        config = Config()
        config.set_initialization_options({"max_nesting_depth": 5000})
        analysis = DocumentAnalysis("x.rt", "[" * 2000, config)
        assert "nesting-too-deep" in [d.code for d in analysis.get_diagnostics()]

    def test_analyze_files(self, tmp_path, caplog):
        good = tmp_path / "good.rt"
        good.write_text(": a ;")
        bad = tmp_path / "bad.rt"
        bad.write_text("{")
        binary = tmp_path / "binary.rt"
        binary.write_bytes(b"\xff\xfe\x00")
        missing = tmp_path / "missing.rt"

        engine = WorkspaceAnalysis(Config(), max_workers=2)
        with caplog.at_level(logging.ERROR):
            results = engine.analyze_files([good, bad, binary, missing])
        engine.shutdown()

        assert set(results) == {good, bad}
        assert results[good].errors == []
        assert len(results[bad].errors) == 1
        assert "Failed to read" in caplog.text


class TestFileManager:
    """Test source file discovery."""

    def test_discover_source_files(self, tmp_path):
        (tmp_path / "a.rt").write_text("")
        (tmp_path / "notes.txt").write_text("")
        nested = tmp_path / "lib"
        nested.mkdir()
        (nested / "b.rutile").write_text("")

        manager = FileManager(Config())
        names = [path.name for path in manager.discover_source_files(tmp_path)]
        assert sorted(names) == ["a.rt", "b.rutile"]

        names = [path.name for path in manager.discover_source_files(tmp_path, recursive=False)]
        assert names == ["a.rt"]

    def test_discover_missing_directory(self, tmp_path):
        assert FileManager(Config()).discover_source_files(tmp_path / "nope") == []

    def test_collect_paths(self, tmp_path):
        (tmp_path / "a.rt").write_text("")
        explicit = tmp_path / "script.txt"
        explicit.write_text("")

        files, missing = FileManager(Config()).collect_paths(
            [tmp_path, explicit, tmp_path / "a.rt", tmp_path / "gone.rt"]
        )
        assert [path.name for path in files] == ["a.rt", "script.txt"]
        assert missing == [tmp_path / "gone.rt"]


class TestLspConversions:
    """Test conversion of internal data to LSP types."""

    def test_diagnostic_conversion(self, tmp_path):
        doc = DocumentAnalysis(tmp_path / "a.rt", "\n  ]")
        lsp_diagnostic = doc.get_diagnostics()[0].to_lsp_diagnostic()
        assert lsp_diagnostic.severity == DiagnosticSeverity.Error
        assert lsp_diagnostic.code == "unexpected-token"
        assert lsp_diagnostic.source == "rutile-language-server"
        assert (lsp_diagnostic.range.start.line, lsp_diagnostic.range.start.character) == (1, 2)
        assert (lsp_diagnostic.range.end.line, lsp_diagnostic.range.end.character) == (1, 3)

    def test_cli_format_is_one_based(self, tmp_path):
        path = tmp_path / "a.rt"
        doc = DocumentAnalysis(path, "\n  ]")
        line = doc.get_diagnostics()[0].format_for_cli(path)
        assert line.startswith(f"{path}:2:3: error: ")
        assert line.endswith("[unexpected-token]")

    def test_document_symbol_conversion(self, analysis):
        symbol = analysis.get_symbols()[0].to_lsp_document_symbol()
        assert symbol.name == "sq"
        assert symbol.kind == SymbolKind.Function
        assert symbol.children is None
        assert symbol.selection_range.start.character == 2

    def test_folding_range_conversion(self):
        folding = FoldRegion(3, 7, FoldKind.COMMENT).to_lsp_folding_range()
        assert (folding.start_line, folding.end_line) == (3, 7)
        assert folding.kind == FoldingRangeKind.Comment

    def test_semantic_tokens(self, tmp_path):
        doc = DocumentAnalysis(tmp_path / "a.rt", ": sq dup * ;")
        assert doc.get_semantic_tokens().data == [
            0, 2, 2, 0, 0b11,
            0, 3, 3, 0, 0,
            0, 4, 1, 1, 0,
        ]

    def test_multiline_token_split_per_line(self, tmp_path):
        content = "(a\nbc)"
        doc = DocumentAnalysis(tmp_path / "a.rt", content)
        comment = SEMANTIC_TOKEN_LEGEND.token_types.index("comment")
        assert doc.get_semantic_tokens().data == [
            0, 0, 2, comment, 0,
            1, 0, 3, comment, 0,
        ]

    def test_empty_classifications(self):
        assert encode_semantic_tokens([], "").data == []

    def test_classification_category_encoding(self, tmp_path):
        doc = DocumentAnalysis(tmp_path / "a.rt", '@hook "s"')
        assert [c.category for c in doc.get_classifications()] == [
            HighlightCategory.WEBHOOK, HighlightCategory.STRING,
        ]
        assert all(isinstance(c, Classification) for c in doc.get_classifications())

    def test_uri_round_trip(self, tmp_path):
        path = tmp_path / "dir with space" / "a.rt"
        uri = path_to_uri(path)
        assert uri.startswith("file://")
        assert uri_to_path(uri) == path.resolve()

    def test_non_file_uri(self):
        with pytest.raises(ValueError):
            uri_to_path("untitled:Untitled-1")

    def test_positions_are_zero_based(self):
        assert lsp_position_to_zero_indexed(LspPosition(line=0, character=4)) == Position(0, 4)

    def test_document_path(self, tmp_path):
        assert document_path(path_to_uri(tmp_path / "a.rt")) == (tmp_path / "a.rt").resolve()
        assert document_path("untitled:Untitled-1") == "untitled:Untitled-1"


class TestClientPositionEncoding:
    """Columns count code points internally and UTF-16 units on the wire."""

    CONTENT = '"\U0001F60B" ]\n# \U0001F60B\nx'

    def test_diagnostic_after_astral_character(self, tmp_path):
        doc = DocumentAnalysis(tmp_path / "a.rt", self.CONTENT)
        diagnostic = doc.get_diagnostics()[0]
        assert diagnostic.span.start.column == 4

        lsp_range = diagnostic.to_lsp_diagnostic(PositionEncoder(self.CONTENT)).range
        assert (lsp_range.start.character, lsp_range.end.character) == (5, 6)

    def test_semantic_tokens_use_utf16_units(self, tmp_path):
        doc = DocumentAnalysis(tmp_path / "a.rt", self.CONTENT)
        string = SEMANTIC_TOKEN_LEGEND.token_types.index("string")
        comment = SEMANTIC_TOKEN_LEGEND.token_types.index("comment")
        function = SEMANTIC_TOKEN_LEGEND.token_types.index("function")
        assert doc.get_semantic_tokens().data == [
            0, 0, 4, string, 0,
            1, 0, 4, comment, 0,
            1, 0, 1, function, 0,
        ]

    def test_utf32_codec_keeps_code_points(self, tmp_path):
        doc = DocumentAnalysis(tmp_path / "a.rt", self.CONTENT)
        codec = PositionCodec(encoding=PositionEncodingKind.Utf32)
        assert doc.get_semantic_tokens(codec).data[:3] == [0, 0, 3]

    def test_client_position_to_code_points(self):
        encoder = PositionEncoder(self.CONTENT)
        assert encoder.from_client(LspPosition(line=0, character=5)) == Position(0, 4)
        assert encoder.to_client(Position(0, 4)) == LspPosition(line=0, character=5)
        assert lsp_position_to_zero_indexed(LspPosition(line=2, character=0), encoder) == Position(2, 0)


class TestLanguageServer:
    """Test the server's handlers without a client connection."""

    @pytest.fixture
    def server(self):
        return RutileLanguageServer()

    @pytest.fixture
    def uri(self, tmp_path):
        return path_to_uri(tmp_path / "doc.rt")

    def test_initialize_options(self, server, tmp_path):
        params = InitializeParams(
            capabilities=ClientCapabilities(),
            process_id=None,
            root_uri=path_to_uri(tmp_path),
            initialization_options={"max_diagnostics_per_file": 2, "log_level": "info"},
        )
        server.apply_initialize_params(params)
        assert server.config.workspace_root == tmp_path.resolve()
        assert server.config.get_max_diagnostics_per_file() == 2

    def test_diagnostics_are_capped(self, server, uri):
        server.config.set_initialization_options({"max_diagnostics_per_file": 2})
        diagnostics = server.analyze_document(uri, "] ] ] ]")
        assert len(diagnostics) == 2
        assert all(d.code == "unexpected-token" for d in diagnostics)

    def test_document_views(self, server, uri):
        server.open_documents[uri] = DOCUMENT

        symbols = server.document_symbols(uri)
        assert [symbol.name for symbol in symbols] == ["sq", "quad"]

        folds = server.folding_ranges(uri)
        assert [(f.start_line, f.end_line) for f in folds] == [(1, 2)]

        assert server.semantic_tokens(uri).data

    def test_hover(self, server, uri):
        server.open_documents[uri] = DOCUMENT
        hover = server.hover(uri, LspPosition(line=3, character=3))
        assert "number literal" in hover.contents.value
        assert server.hover(uri, LspPosition(line=4, character=0)) is None

    def test_definition(self, server, uri):
        server.open_documents[uri] = DOCUMENT
        location = server.definition(uri, LspPosition(line=2, character=6))
        assert location.uri == uri
        assert (location.range.start.line, location.range.start.character) == (0, 2)

        # Not a word: a number
        assert server.definition(uri, LspPosition(line=3, character=2)) is None
        # A word without a definition
        assert server.definition(uri, LspPosition(line=0, character=6)) is None

    def test_unknown_document(self, server, uri):
        assert server.document_symbols(uri) == []
        assert server.folding_ranges(uri) == []
        assert server.semantic_tokens(uri).data == []
        assert server.hover(uri, LspPosition(line=0, character=0)) is None

    def test_close_document(self, server, uri):
        server.open_documents[uri] = "[ x ]"
        server.analyze_document(uri, "[ x ]")
        server.close_document(uri)
        assert uri not in server.open_documents
        assert server.analysis_engine.get_analysis(uri) is None

    def test_close_non_file_document(self, server):
        server.open_documents["untitled:1"] = ""
        server.close_document("untitled:1")
        assert "untitled:1" not in server.open_documents


class TestDocumentNotifications:
    """Test the registered document notification handlers."""

    @pytest.fixture
    def server(self):
        return RutileLanguageServer()

    @pytest.fixture
    def published(self, server, monkeypatch):
        calls = []

        def publish_diagnostics(uri, diagnostics=None, version=None, **kwargs):
            calls.append((uri, diagnostics))

        monkeypatch.setattr(server, "publish_diagnostics", publish_diagnostics)
        return calls

    @staticmethod
    def notify(server, method, params):
        server.lsp.fm.features[method](params)

    def open(self, server, uri, text):
        self.notify(server, TEXT_DOCUMENT_DID_OPEN, DidOpenTextDocumentParams(
            text_document=TextDocumentItem(uri=uri, language_id="rutile", version=1, text=text)
        ))

    def test_open_publishes_diagnostics(self, server, published, tmp_path):
        uri = path_to_uri(tmp_path / "doc.rt")
        self.open(server, uri, "[ 1 2")

        [(published_uri, diagnostics)] = published
        assert published_uri == uri
        assert [d.code for d in diagnostics] == ["unterminated-quotation"]
        assert server.open_documents[uri] == "[ 1 2"

    def test_unsaved_buffer(self, server, published):
        uri = "untitled:Untitled-1"
        self.open(server, uri, ": sq dup * ;\n[ 1 2")

        [(published_uri, diagnostics)] = published
        assert published_uri == uri
        assert [d.code for d in diagnostics] == ["unterminated-quotation"]
        assert [symbol.name for symbol in server.document_symbols(uri)] == ["sq"]
        assert server.semantic_tokens(uri).data
        hover = server.hover(uri, LspPosition(line=0, character=5))
        assert hover.contents.value == "**word** `dup`"

    def test_change_uses_last_full_text(self, server, published, tmp_path):
        uri = path_to_uri(tmp_path / "doc.rt")
        self.open(server, uri, "[ 1 2")
        self.notify(server, TEXT_DOCUMENT_DID_CHANGE, DidChangeTextDocumentParams(
            text_document=VersionedTextDocumentIdentifier(uri=uri, version=2),
            content_changes=[
                TextDocumentContentChangeEvent_Type2(text="{"),
                TextDocumentContentChangeEvent_Type2(text="[ 1 2 ]"),
            ],
        ))

        assert server.open_documents[uri] == "[ 1 2 ]"
        assert published[-1] == (uri, [])

    def test_change_without_content_is_ignored(self, server, published, tmp_path):
        uri = path_to_uri(tmp_path / "doc.rt")
        self.open(server, uri, "[")
        self.notify(server, TEXT_DOCUMENT_DID_CHANGE, DidChangeTextDocumentParams(
            text_document=VersionedTextDocumentIdentifier(uri=uri, version=2),
            content_changes=[],
        ))
        assert len(published) == 1
        assert server.open_documents[uri] == "["

    def test_close_clears_diagnostics(self, server, published):
        uri = "untitled:Untitled-2"
        self.open(server, uri, "]")
        self.notify(server, TEXT_DOCUMENT_DID_CLOSE, DidCloseTextDocumentParams(
            text_document=TextDocumentIdentifier(uri=uri)
        ))

        assert published[-1] == (uri, [])
        assert uri not in server.open_documents
        assert server.analysis_engine.get_analysis(uri) is None

    def test_published_ranges_use_utf16(self, server, published):
        self.open(server, "untitled:emoji", '"\U0001F60B" ]')
        [(_, [diagnostic])] = published
        assert diagnostic.range.start.character == 5
