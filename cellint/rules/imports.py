"""Import hygiene rule: import_issues."""

import dataclasses
import re
from collections.abc import Iterator

from cellint import tokens
from cellint.rules import base

_IMPORT_PAT = re.compile(r"^\s*import\s+(.+)$")
_FROM_IMPORT_PAT = re.compile(r"^\s*from\s+(\S+)\s+import\s+(.*)$")
_IMPORT_START_PAT = re.compile(r"^(?:import\s|from\s+\S+\s+import\b)")
_DOTTED_ALIAS_PAT = re.compile(r"^([A-Za-z_][\w.]*)(?:\s+as\s+([A-Za-z_]\w*))?$")
_NAME_ALIAS_PAT = re.compile(r"^([A-Za-z_]\w*)(?:\s+as\s+([A-Za-z_]\w*))?$")

# Imports that change compiler behaviour rather than bind something to use.
_UNUSED_EXEMPT_MODULES: frozenset[str] = frozenset({"__future__"})


@dataclasses.dataclass(frozen=True)
class ImportBinding:
    """A name bound by an import statement.

    ``name`` is ``"*"`` for wildcard imports.
    """

    name: str
    module: str
    line: int  # 1-indexed, cell-local

    @property
    def is_wildcard(self) -> bool:
        """True for ``from module import *``."""
        return self.name == "*"


def _split_aliases(body: str) -> list[str]:
    return [part.strip() for part in body.replace("(", " ").replace(")", " ").split(",")]


def _from_import_body(lines: list[str], idx: int, body: str) -> str:
    """Join a parenthesized or backslash-continued from-import into one string."""
    if body.lstrip().startswith("(") and ")" not in body:
        parts = [body]
        for follow in lines[idx + 1 :]:
            parts.append(follow)
            if ")" in follow:
                break
        return " ".join(parts)
    parts = [body]
    cursor = idx
    while parts[-1].rstrip().endswith("\\") and cursor + 1 < len(lines):
        parts[-1] = parts[-1].rstrip()[:-1]
        cursor += 1
        parts.append(lines[cursor])
    return " ".join(parts)


def iter_import_bindings(source: str) -> Iterator[ImportBinding]:
    """Yield every name bound by an import statement in *source*.

    ``import a.b`` binds ``a``; ``import a.b as c`` binds ``c``;
    ``from m import x as y`` binds ``y``. Parenthesized multi-line
    from-imports are followed to their closing parenthesis.

    Args:
        source: Cell text; literals and comments are blanked before scanning.

    Yields:
        One ImportBinding per bound name, in source order.
    """
    raw_lines = source.split("\n")
    lines = tokens.strip_literals(source).split("\n")
    for idx, line in enumerate(lines):
        if tokens.is_directive(raw_lines[idx]):
            continue
        lineno = idx + 1

        from_match = _FROM_IMPORT_PAT.match(line)
        if from_match:
            module = from_match.group(1)
            body = _from_import_body(lines, idx, from_match.group(2))
            for part in _split_aliases(body):
                if part == "*":
                    yield ImportBinding(name="*", module=module, line=lineno)
                    continue
                alias_match = _NAME_ALIAS_PAT.match(part)
                if alias_match:
                    name = alias_match.group(2) or alias_match.group(1)
                    yield ImportBinding(name=name, module=module, line=lineno)
            continue

        import_match = _IMPORT_PAT.match(line)
        if import_match:
            for part in _split_aliases(import_match.group(1)):
                alias_match = _DOTTED_ALIAS_PAT.match(part)
                if not alias_match:
                    continue
                dotted, alias = alias_match.group(1), alias_match.group(2)
                yield ImportBinding(
                    name=alias or dotted.split(".")[0], module=dotted, line=lineno
                )


def _top_level_statements(source: str) -> Iterator[tuple[int, str]]:
    """Yield ``(lineno, stripped_text)`` for each unindented logical line.

    Lines that continue a bracketed or backslash-continued statement, lines
    inside multi-line literals, directives and bare literal lines (such as a
    docstring) are skipped.
    """
    raw_lines = source.split("\n")
    lines = tokens.strip_literals(source).split("\n")
    interior = tokens.string_interior_lines(source)
    depth = 0
    continued = False
    for idx, line in enumerate(lines):
        starts_inside = depth > 0 or continued or idx in interior
        if not tokens.is_directive(raw_lines[idx]):
            depth = max(depth + tokens.bracket_delta(line), 0)
            continued = tokens.ends_with_continuation(line)
        if starts_inside or tokens.is_directive(raw_lines[idx]):
            continue
        text = line.strip()
        if not text or not text.strip("\"' "):
            continue
        if tokens.indent_width(line) > 0:
            continue
        yield idx + 1, text


class ImportIssues(base.Rule):
    """Flag misplaced, wildcard, duplicate and unused imports within a cell.

    Flagged:
        x = 1
        import os                   # info: import after code
        from math import *          # warning: wildcard import
        import numpy as np
        import numpy as np          # warning: duplicate import
        import json                 # info: never used in the cell

    Unused-import reports can be disabled with the ``report_unused`` option,
    which is useful for notebooks that keep all imports in a first cell.
    """

    name = "import_issues"

    def __init__(self, *, report_unused: bool = True) -> None:
        """Initialise the rule.

        Args:
            report_unused: Whether to report imports unused within the cell.
        """
        self._report_unused = report_unused

    def configure(self, options: dict[str, int | str | bool]) -> base.Rule:
        """Return a new ImportIssues with options applied.

        Args:
            options: Recognises ``report_unused`` (bool).

        Returns:
            A configured instance, or self if the option is absent or invalid.
        """
        report_unused = options.get("report_unused", self._report_unused)
        if isinstance(report_unused, bool):
            return ImportIssues(report_unused=report_unused)
        return self

    def _misplaced(self, source: str, line_offset: int) -> list[base.Diagnostic]:
        statements = list(_top_level_statements(source))
        first_code = next(
            (lineno for lineno, text in statements if not _IMPORT_START_PAT.match(text)),
            None,
        )
        if first_code is None:
            return []
        return [
            base.Diagnostic(
                rule_name=self.name,
                message="Import statement should be at the top of the cell",
                line=lineno + line_offset,
                severity=base.Severity.INFO,
            )
            for lineno, text in statements
            if lineno > first_code and _IMPORT_START_PAT.match(text)
        ]

    def check(
        self,
        source: str,
        line_offset: int,
        context: base.AnalysisContext,
    ) -> list[base.Diagnostic]:
        """Return diagnostics for every import hygiene problem in the cell."""
        diagnostics = self._misplaced(source, line_offset)
        bindings = list(iter_import_bindings(source))

        first_seen: dict[str, ImportBinding] = {}
        for binding in bindings:
            if binding.is_wildcard:
                diagnostics.append(
                    base.Diagnostic(
                        rule_name=self.name,
                        message="Wildcard import 'from X import *' is discouraged",
                        line=binding.line + line_offset,
                        severity=base.Severity.WARNING,
                    )
                )
                continue
            if binding.name in first_seen:
                first_line = first_seen[binding.name].line + line_offset
                diagnostics.append(
                    base.Diagnostic(
                        rule_name=self.name,
                        message=(
                            f"Duplicate import of '{binding.name}'"
                            f" (first imported at line {first_line})"
                        ),
                        line=binding.line + line_offset,
                        severity=base.Severity.WARNING,
                    )
                )
                continue
            first_seen[binding.name] = binding

        if self._report_unused:
            used = _used_names(source)
            diagnostics.extend(
                base.Diagnostic(
                    rule_name=self.name,
                    message=f"Imported '{name}' is unused",
                    line=binding.line + line_offset,
                    severity=base.Severity.INFO,
                )
                for name, binding in first_seen.items()
                if name not in used and binding.module not in _UNUSED_EXEMPT_MODULES
            )
        return diagnostics


def _used_names(source: str) -> frozenset[str]:
    """Return identifiers appearing outside import statements and literals."""
    raw_lines = source.split("\n")
    lines = tokens.strip_literals(source).split("\n")
    import_lines = {binding.line for binding in iter_import_bindings(source)}
    used: set[str] = set()
    in_from_block = False
    for idx, line in enumerate(lines):
        if tokens.is_directive(raw_lines[idx]):
            continue
        if idx + 1 in import_lines:
            in_from_block = "(" in line and ")" not in line
            continue
        if in_from_block:
            in_from_block = ")" not in line
            continue
        used.update(name for name, _ in tokens.identifiers(line))
    return frozenset(used)
