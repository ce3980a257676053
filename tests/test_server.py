"""Tests for the LSP diagnostic conversion in cellint.server."""

import pathlib

import pytest
from lsprotocol import types

from cellint import server


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)


class TestLintDocument:
    def test_clean_document(self) -> None:
        assert server.lint_document("# %%\nx = 1\n# %%\nprint(x)") == []

    def test_names_carry_across_cells(self) -> None:
        source = "# %%\nimport os\nos.getcwd()\n# %%\nprint(missing)"
        diags = server.lint_document(source)
        assert [(diag.range.start.line, diag.range.start.character) for diag in diags] == [
            (4, 6)
        ]
        assert diags[0].message == "undefined_variables Undefined variable 'missing'"
        assert diags[0].severity == types.DiagnosticSeverity.Error
        assert diags[0].source == "cellint"

    def test_diagnostic_without_column_starts_at_line_start(self) -> None:
        diags = server.lint_document("x = 1\n# %%\n")
        assert [(diag.range.start.line, diag.range.start.character) for diag in diags] == [
            (2, 0)
        ]
        assert diags[0].severity == types.DiagnosticSeverity.Information
