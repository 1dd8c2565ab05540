"""Minimal LSP server for Burro: diagnostics only."""

from __future__ import annotations

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from burro import __version__
from burro.errors import BurroError
from burro.fonts import FontMap
from burro.layout import LayoutEngine
from burro.parser import parse
from burro.tokens import Span

server = LanguageServer("burro-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full)


def _range(span: Span | None) -> Range:
    if span is None:
        return Range(start=Position(line=0, character=0), end=Position(line=0, character=0))
    end_col = span.end.column - 1
    if span.start == span.end:
        end_col += 1
    return Range(
        start=Position(line=span.start.line - 1, character=span.start.column - 1),
        end=Position(line=span.end.line - 1, character=end_col),
    )


def collect_diagnostics(source: str, filename: str) -> list[Diagnostic]:
    """Run the Burro pipeline (with built-in fonts) and report what went wrong."""
    diagnostics: list[Diagnostic] = []
    try:
        layout = LayoutEngine(FontMap()).build(parse(source, filename))
    except BurroError as exc:
        diagnostics.append(
            Diagnostic(
                range=_range(exc.span),
                message=exc.message,
                severity=DiagnosticSeverity.Error,
                source="burro",
            )
        )
        return diagnostics

    for warning in layout.warnings:
        diagnostics.append(
            Diagnostic(
                range=_range(warning.span),
                message=f"{warning.message} (page {warning.page + 1})",
                severity=DiagnosticSeverity.Warning,
                source="burro",
            )
        )
    return diagnostics


def _validate(ls: LanguageServer, uri: str) -> None:
    """Run the Burro pipeline and publish diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    filename = uri.rsplit("/", 1)[-1] if "/" in uri else uri
    diagnostics = collect_diagnostics(doc.source, filename)
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


def main() -> None:
    server.start_io()
