"""pygls LSP server for cellint.

Documents are treated as percent-format notebooks: ``# %%`` lines split
the text into cells, which are linted together so names defined in one
cell are known in the cells below it.
"""

from lsprotocol import types
from pygls.lsp import server as pygls_server

from cellint import config as cellint_config
from cellint import engine as cellint_engine
from cellint import notebook
from cellint import rules
from cellint.rules import base

server = pygls_server.LanguageServer("cellint", "v0.1.0")

_SEVERITY_MAP: dict[base.Severity, types.DiagnosticSeverity] = {
    base.Severity.ERROR: types.DiagnosticSeverity.Error,
    base.Severity.WARNING: types.DiagnosticSeverity.Warning,
    base.Severity.INFO: types.DiagnosticSeverity.Information,
}


def _build_engine() -> tuple[cellint_engine.LintEngine, base.Severity]:
    cfg = cellint_config.load_config()
    active_rules = cellint_config.filter_rules(rules.default_rules(), cfg)
    active_rules = cellint_config.configure_rules(active_rules, cfg)
    return cellint_engine.LintEngine(rules=active_rules), cfg.min_severity


def _to_lsp(diag: base.Diagnostic, start_lines: list[int]) -> types.Diagnostic:
    """Convert a cellint Diagnostic to an LSP Diagnostic on its document line."""
    cell_start = start_lines[diag.cell_index] if diag.cell_index is not None else 0
    cell_line = diag.cell_line if diag.cell_line is not None else diag.line
    line = cell_start + cell_line - 1
    character = diag.column - 1 if diag.column is not None else 0
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=line, character=character),
            end=types.Position(line=line, character=character + 1),
        ),
        message=f"{diag.rule_name} {diag.message}",
        severity=_SEVERITY_MAP[diag.severity],
        source="cellint",
    )


def lint_document(source: str) -> list[types.Diagnostic]:
    """Lint percent-format *source* and return LSP diagnostics."""
    lint_engine, min_severity = _build_engine()
    chunks = notebook.split_percent_cells(source)
    cells = [
        cellint_engine.SourceCell(text=text, index=idx)
        for idx, (_, text) in enumerate(chunks)
    ]
    diagnostics = cellint_engine.filter_by_severity(
        lint_engine.lint_notebook(cells), min_severity
    )
    start_lines = [start for start, _ in chunks]
    return [_to_lsp(diag, start_lines) for diag in diagnostics]


def _publish(ls: pygls_server.LanguageServer, uri: str) -> None:
    """Analyze a document and publish diagnostics to the client."""
    source = ls.workspace.get_text_document(uri).source
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=uri, diagnostics=lint_document(source))
    )


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
def did_open(
    ls: pygls_server.LanguageServer,
    params: types.DidOpenTextDocumentParams,
) -> None:
    """Analyze a newly opened document."""
    _publish(ls, params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(
    ls: pygls_server.LanguageServer,
    params: types.DidChangeTextDocumentParams,
) -> None:
    """Re-analyze a document after every change."""
    _publish(ls, params.text_document.uri)


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
def did_close(
    ls: pygls_server.LanguageServer,
    params: types.DidCloseTextDocumentParams,
) -> None:
    """Clear diagnostics when a document is closed."""
    ls.text_document_publish_diagnostics(
        types.PublishDiagnosticsParams(uri=params.text_document.uri, diagnostics=[])
    )


def start() -> None:
    """Start the LSP server over stdio."""
    server.start_io()
