"""Entry point: cellint [check <path>... | serve]."""

import enum
import json
import logging
import pathlib
import typing

import typer

from cellint.rules import base as rules_base

app = typer.Typer()


class OutputFormat(str, enum.Enum):
    """Report formats for ``cellint check``."""

    TEXT = "text"
    JSON = "json"


# Directories that are never interesting to analyse.
_SKIP_DIRS: frozenset[str] = frozenset(
    {
        ".venv",
        "venv",
        "__pycache__",
        ".git",
        "node_modules",
        "build",
        "dist",
        ".tox",
        ".ipynb_checkpoints",
    }
)


def _collect_notebooks(root: pathlib.Path) -> list[pathlib.Path]:
    """Recursively find .ipynb files under root, skipping non-source directories."""
    return sorted(
        notebook_file
        for notebook_file in root.rglob("*.ipynb")
        if not any(part in _SKIP_DIRS for part in notebook_file.parts)
    )


def _resolve_files(paths: list[pathlib.Path] | None) -> list[pathlib.Path]:
    """Expand directories into a deduplicated list of notebook files."""
    candidates: list[pathlib.Path] = []
    for raw_path in paths or []:
        if raw_path.is_dir():
            candidates.extend(_collect_notebooks(raw_path))
        else:
            candidates.append(raw_path)
    seen: set[pathlib.Path] = set()
    unique: list[pathlib.Path] = []
    for file_path in candidates:
        resolved = file_path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique.append(file_path)
    return unique


def _format_text(file_path: pathlib.Path, diag: rules_base.Diagnostic) -> str:
    return (
        f"{file_path}:cell {diag.cell_index}:line {diag.cell_line}:"
        f" {diag.rule_name} {diag.severity.label} {diag.message}"
    )


@app.command(no_args_is_help=True)
def check(  # noqa: PLR0913
    paths: typing.Annotated[
        list[pathlib.Path] | None,
        typer.Argument(help="Notebooks (.ipynb or # %% scripts) or directories."),
    ] = None,
    min_severity: typing.Annotated[
        str | None,
        typer.Option(
            "--min-severity",
            help="Least severe level to report: error, warning or info.",
        ),
    ] = None,
    output_format: typing.Annotated[
        OutputFormat,
        typer.Option("--format", help="Report format."),
    ] = OutputFormat.TEXT,
    stats: typing.Annotated[  # noqa: FBT002
        bool,
        typer.Option("--stats", help="Print diagnostic counts after the report."),
    ] = False,
    verbose: typing.Annotated[  # noqa: FBT002
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr."),
    ] = False,
) -> None:
    """Check notebooks for cross-cell issues.

    Raises:
        typer.BadParameter: If --min-severity is not a severity name.
        typer.Exit: With code 1 if any diagnostics are reported.
    """
    from cellint import config as cellint_config  # noqa: PLC0415
    from cellint import engine as cellint_engine  # noqa: PLC0415
    from cellint import notebook  # noqa: PLC0415
    from cellint import rules  # noqa: PLC0415

    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    cfg = cellint_config.load_config()
    threshold = cfg.min_severity
    if min_severity is not None:
        try:
            threshold = rules_base.Severity.from_label(min_severity)
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--min-severity") from e

    active_rules = cellint_config.filter_rules(rules.default_rules(), cfg)
    active_rules = cellint_config.configure_rules(active_rules, cfg)
    lint_engine = cellint_engine.LintEngine(rules=active_rules)

    found_any = False
    reported: list[rules_base.Diagnostic] = []
    json_report: dict[str, list[dict[str, object]]] = {}

    for file_path in _resolve_files(paths):
        try:
            cells = notebook.load_cells(file_path)
        except notebook.NotebookError as e:
            typer.echo(f"error: {e}", err=True)
            continue

        diagnostics = cellint_engine.filter_by_severity(
            lint_engine.lint_notebook(cells), threshold
        )
        reported.extend(diagnostics)
        if output_format is OutputFormat.JSON:
            json_report[str(file_path)] = [diag.to_dict() for diag in diagnostics]
        else:
            for diag in diagnostics:
                typer.echo(_format_text(file_path, diag))
        if diagnostics:
            found_any = True

    summary = lint_engine.get_stats(reported)
    if output_format is OutputFormat.JSON:
        payload: dict[str, object] = {"files": json_report}
        if stats:
            payload["stats"] = summary.to_dict()
        typer.echo(json.dumps(payload, indent=2))
    elif stats:
        by_severity = ", ".join(
            f"{count} {label}" for label, count in summary.by_severity.items()
        )
        typer.echo(f"{summary.total} diagnostics ({by_severity})")
        for rule_name, count in sorted(summary.by_rule.items()):
            typer.echo(f"  {rule_name}: {count}")

    if found_any:
        raise typer.Exit(code=1)


@app.command()
def serve() -> None:
    """Run the LSP server over stdio."""
    from cellint import server  # noqa: PLC0415

    server.start()


def main() -> None:
    """Dispatch to CLI check mode or LSP server mode."""
    app()


if __name__ == "__main__":
    main()
