"""Tests for cellint.notebook: .ipynb and percent-format loading."""

import json
import pathlib

import pytest

from cellint import notebook


def _ipynb(*cells: dict[str, object]) -> dict[str, object]:
    return {"cells": list(cells), "metadata": {}, "nbformat": 4, "nbformat_minor": 5}


# ---------------------------------------------------------------------------
# .ipynb
# ---------------------------------------------------------------------------


class TestIpynb:
    def test_code_cells_only(self) -> None:
        data = _ipynb(
            {"cell_type": "markdown", "source": "# Title"},
            {"cell_type": "code", "source": ["import os\n", "x = 1\n"]},
            {"cell_type": "raw", "source": "raw"},
            {"cell_type": "code", "source": "print(x)"},
        )
        cells = notebook.cells_from_ipynb(data)
        assert [(cell.index, cell.text) for cell in cells] == [
            (0, "import os\nx = 1"),
            (1, "print(x)"),
        ]

    def test_missing_source_is_empty(self) -> None:
        cells = notebook.cells_from_ipynb(_ipynb({"cell_type": "code"}))
        assert [cell.text for cell in cells] == [""]

    def test_missing_cells_list_raises(self) -> None:
        with pytest.raises(notebook.NotebookError):
            notebook.cells_from_ipynb({"metadata": {}})

    def test_non_object_document_raises(self) -> None:
        with pytest.raises(notebook.NotebookError):
            notebook.cells_from_ipynb([1, 2, 3])


# ---------------------------------------------------------------------------
# Percent format
# ---------------------------------------------------------------------------


class TestPercentFormat:
    def test_split_on_markers(self) -> None:
        source = "import os\n# %%\nx = 1\n# %% [markdown] title\ny = 2"
        assert notebook.split_percent_cells(source) == [
            (0, "import os"),
            (2, "x = 1"),
            (4, "y = 2"),
        ]

    def test_blank_preamble_dropped(self) -> None:
        assert notebook.split_percent_cells("\n# %%\nx = 1") == [(2, "x = 1")]

    def test_no_markers_is_one_cell(self) -> None:
        assert notebook.split_percent_cells("x = 1\ny = 2") == [(0, "x = 1\ny = 2")]

    def test_marker_needs_boundary(self) -> None:
        assert notebook.split_percent_cells("# %%time\nx = 1") == [
            (0, "# %%time\nx = 1")
        ]

    def test_cells_from_percent_indices(self) -> None:
        cells = notebook.cells_from_percent("# %%\na = 1\n# %%\nb = a")
        assert [(cell.index, cell.text) for cell in cells] == [(0, "a = 1"), (1, "b = a")]


# ---------------------------------------------------------------------------
# load_cells
# ---------------------------------------------------------------------------


class TestLoadCells:
    def test_loads_ipynb(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "analysis.ipynb"
        path.write_text(json.dumps(_ipynb({"cell_type": "code", "source": "x = 1"})))
        assert [cell.text for cell in notebook.load_cells(path)] == ["x = 1"]

    def test_loads_percent_script(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "analysis.py"
        path.write_text("# %%\nx = 1\n# %%\nprint(x)")
        assert [cell.text for cell in notebook.load_cells(path)] == ["x = 1", "print(x)"]

    def test_invalid_json_raises(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "broken.ipynb"
        path.write_text("{not json")
        with pytest.raises(notebook.NotebookError, match="invalid notebook JSON"):
            notebook.load_cells(path)

    def test_missing_file_raises(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(notebook.NotebookError, match="cannot read"):
            notebook.load_cells(tmp_path / "missing.ipynb")
