"""Read notebook cells from .ipynb files and percent-format scripts."""

import json
import pathlib
import re

from cellint import engine

# Matches ``# %%`` cell markers, optionally followed by a title or tags.
_PERCENT_MARKER_PAT = re.compile(r"^#\s*%%(?:\s|$)")


class NotebookError(Exception):
    """Raised when a notebook file cannot be read or understood."""


def _source_text(raw: object) -> str:
    if isinstance(raw, list):
        return "".join(part for part in raw if isinstance(part, str))
    if isinstance(raw, str):
        return raw
    return ""


def cells_from_ipynb(data: object) -> list[engine.SourceCell]:
    """Return the code cells of a decoded ``.ipynb`` document.

    Markdown and raw cells are dropped; the index of a code cell is its
    position among the code cells. A trailing newline is removed so the
    cell's line count matches what the editor shows.

    Args:
        data: The JSON document, already decoded.

    Returns:
        One SourceCell per code cell, in notebook order.

    Raises:
        NotebookError: If *data* has no ``cells`` list.
    """
    cells = data.get("cells") if isinstance(data, dict) else None
    if not isinstance(cells, list):
        msg = "notebook has no 'cells' list"
        raise NotebookError(msg)
    code_cells = [
        cell
        for cell in cells
        if isinstance(cell, dict) and cell.get("cell_type") == "code"
    ]
    return [
        engine.SourceCell(text=_source_text(cell.get("source")).removesuffix("\n"), index=idx)
        for idx, cell in enumerate(code_cells)
    ]


def split_percent_cells(source: str) -> list[tuple[int, str]]:
    """Split percent-format text on ``# %%`` marker lines.

    Marker lines belong to no cell. Text before the first marker is a cell
    only if it is not blank.

    Args:
        source: Text of a ``.py`` file using ``# %%`` markers.

    Returns:
        ``(start_line, text)`` pairs where ``start_line`` is the 0-based line
        of the document on which the cell's first line sits.
    """
    lines = source.split("\n")
    chunks: list[tuple[int, list[str]]] = [(0, [])]
    for idx, line in enumerate(lines):
        if _PERCENT_MARKER_PAT.match(line):
            chunks.append((idx + 1, []))
        else:
            chunks[-1][1].append(line)

    preamble = "\n".join(chunks[0][1])
    if len(chunks) > 1 and not preamble.strip():
        chunks = chunks[1:]
    return [(start, "\n".join(body)) for start, body in chunks]


def cells_from_percent(source: str) -> list[engine.SourceCell]:
    """Return the cells of a percent-format script.

    Line offsets are not set here; the engine derives them from cell order.
    """
    return [
        engine.SourceCell(text=text, index=idx)
        for idx, (_, text) in enumerate(split_percent_cells(source))
    ]


def load_cells(path: pathlib.Path) -> list[engine.SourceCell]:
    """Read the cells of the notebook at *path*.

    ``.ipynb`` files are decoded as Jupyter JSON; any other file is read as
    a percent-format script.

    Raises:
        NotebookError: If the file cannot be read or is not valid JSON.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"cannot read {path}: {e}"
        raise NotebookError(msg) from e

    if path.suffix != ".ipynb":
        return cells_from_percent(text)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"invalid notebook JSON in {path}: {e}"
        raise NotebookError(msg) from e
    try:
        return cells_from_ipynb(data)
    except NotebookError as e:
        msg = f"{path}: {e}"
        raise NotebookError(msg) from e
