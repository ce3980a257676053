"""Structure rules: indentation_errors, unclosed_brackets, empty_cells."""

import dataclasses

from cellint import tokens
from cellint.rules import base

_DEFAULT_TAB_WIDTH: int = 4


def _leading_whitespace(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def _dominant_indent(lines: list[str], skipped: set[int]) -> str | None:
    """Return ``"tabs"`` or ``"spaces"`` if the cell mixes both, else None.

    The class used by more indented lines wins; ties go to spaces.
    """
    tab_lines = space_lines = 0
    for idx, line in enumerate(lines):
        if idx in skipped:
            continue
        leading = _leading_whitespace(line)
        if "\t" in leading and " " not in leading:
            tab_lines += 1
        elif " " in leading and "\t" not in leading:
            space_lines += 1
    if not tab_lines or not space_lines:
        return None
    return "tabs" if tab_lines > space_lines else "spaces"


class IndentationErrors(base.Rule):
    """Validate block structure with an explicit stack of indent levels.

    After a line ending in a block-opening colon the next logical line must
    be indented further; otherwise a deeper indent is unexpected and a
    shallower indent must match an enclosing level. Lines that continue an
    open bracket or a trailing backslash are not checked, nor are lines
    inside multi-line literals. Tabs count as ``tab_width`` columns.

    Also reported: tabs and spaces mixed on one line (error), lines whose
    indent character differs from the cell's dominant one (warning), and
    odd space counts (warning).

    Allowed:
        if ready:
            total = compute(
                first,
              second,
            )

    Flagged:
        if ready:
        total = 1           # expected an indented block
    """

    name = "indentation_errors"

    def __init__(self, tab_width: int = _DEFAULT_TAB_WIDTH) -> None:
        """Initialise with the number of columns a tab stands for.

        Args:
            tab_width: Width used when comparing tab and space indents.
        """
        self._tab_width = tab_width

    def configure(self, options: dict[str, int | str | bool]) -> base.Rule:
        """Return a new IndentationErrors with options applied.

        Args:
            options: Recognises ``tab_width`` (int).

        Returns:
            A configured instance, or self if the option is absent or invalid.
        """
        tab_width = options.get("tab_width", self._tab_width)
        if isinstance(tab_width, int) and not isinstance(tab_width, bool) and tab_width > 0:
            return IndentationErrors(tab_width=tab_width)
        return self

    def _diagnostic(
        self, lineno: int, message: str, severity: base.Severity
    ) -> base.Diagnostic:
        return base.Diagnostic(
            rule_name=self.name, message=message, line=lineno, severity=severity
        )

    def check(  # noqa: C901, PLR0912
        self,
        source: str,
        line_offset: int,
        context: base.AnalysisContext,
    ) -> list[base.Diagnostic]:
        """Return indentation diagnostics for every logical line of the cell."""
        raw_lines = source.split("\n")
        clean_lines = tokens.strip_literals(source).split("\n")
        interior = tokens.string_interior_lines(source)
        skipped = {
            idx
            for idx, clean in enumerate(clean_lines)
            if idx in interior
            or not clean.strip()
            or tokens.is_directive(raw_lines[idx])
        }
        dominant = _dominant_indent(raw_lines, skipped)

        diagnostics: list[base.Diagnostic] = []
        stack = [0]
        expects_block = False
        depth = 0
        continued = False

        for idx, raw in enumerate(raw_lines):
            clean = clean_lines[idx]
            lineno = idx + 1 + line_offset

            if idx in interior:
                # The closing part of a multi-line literal only moves state.
                depth = max(depth + tokens.bracket_delta(clean), 0)
                continued = tokens.ends_with_continuation(clean)
                expects_block = clean.rstrip().endswith(":")
                continue
            if idx in skipped:
                continue

            leading = _leading_whitespace(raw)
            has_tabs = "\t" in leading
            has_spaces = " " in leading
            if has_tabs and has_spaces:
                diagnostics.append(
                    self._diagnostic(
                        lineno,
                        "Mixed tabs and spaces in indentation",
                        base.Severity.ERROR,
                    )
                )
            elif has_tabs and dominant == "spaces":
                diagnostics.append(
                    self._diagnostic(
                        lineno,
                        "Inconsistent indentation: file uses spaces elsewhere"
                        " but this line uses tabs",
                        base.Severity.WARNING,
                    )
                )
            elif has_spaces and dominant == "tabs":
                diagnostics.append(
                    self._diagnostic(
                        lineno,
                        "Inconsistent indentation: file uses tabs elsewhere"
                        " but this line uses spaces",
                        base.Severity.WARNING,
                    )
                )

            indent = tokens.indent_width(raw, self._tab_width)
            suspended = depth > 0 or continued
            depth = max(depth + tokens.bracket_delta(clean), 0)
            continued = tokens.ends_with_continuation(clean)
            ends_with_colon = clean.rstrip().endswith(":")
            if suspended:
                expects_block = ends_with_colon
                continue

            if expects_block:
                if indent <= stack[-1]:
                    diagnostics.append(
                        self._diagnostic(
                            lineno,
                            "Expected indented block after colon",
                            base.Severity.ERROR,
                        )
                    )
                else:
                    stack.append(indent)
            elif indent > stack[-1]:
                diagnostics.append(
                    self._diagnostic(lineno, "Unexpected indent", base.Severity.ERROR)
                )
                stack.append(indent)
            elif indent < stack[-1]:
                while len(stack) > 1 and stack[-1] > indent:
                    stack.pop()
                if stack[-1] != indent:
                    diagnostics.append(
                        self._diagnostic(
                            lineno,
                            "Unindent does not match any outer indentation level",
                            base.Severity.ERROR,
                        )
                    )
            expects_block = ends_with_colon

            space_count = leading.count(" ")
            if space_count % 2:
                diagnostics.append(
                    self._diagnostic(
                        lineno,
                        f"Inconsistent indentation: {space_count} spaces"
                        f" (expected multiple of 2 or 4)",
                        base.Severity.WARNING,
                    )
                )
        return diagnostics


# ---------------------------------------------------------------------------
# unclosed_brackets
# ---------------------------------------------------------------------------

_PAIRS: dict[str, str] = {"(": ")", "[": "]", "{": "}"}
_CLOSING: frozenset[str] = frozenset(_PAIRS.values())


@dataclasses.dataclass(frozen=True)
class _OpenBracket:
    char: str
    line: int  # 1-indexed, cell-local
    column: int  # 1-indexed

    @property
    def expected(self) -> str:
        return _PAIRS[self.char]


def _blank_strings_and_comments(source: str) -> str:
    """Stream over *source* replacing literal and comment text with spaces.

    Only delimiters outside literals and comments survive; every other
    character of a literal or comment becomes a space and newlines are kept,
    so line and column positions line up with the input.
    """
    out: list[str] = []
    idx = 0
    length = len(source)
    quote: str | None = None
    in_comment = False

    while idx < length:
        char = source[idx]
        if in_comment:
            in_comment = char != "\n"
            out.append(char if char == "\n" else " ")
            idx += 1
        elif quote is not None:
            if char == "\\" and idx + 1 < length:
                out.append(" ")
                out.append("\n" if source[idx + 1] == "\n" else " ")
                idx += 2
            elif source.startswith(quote, idx):
                out.append(" " * len(quote))
                idx += len(quote)
                quote = None
            elif char == "\n":
                out.append("\n")
                if len(quote) == 1:
                    quote = None
                idx += 1
            else:
                out.append(" ")
                idx += 1
        elif char == "#":
            in_comment = True
            out.append(" ")
            idx += 1
        elif source.startswith(('"""', "'''"), idx):
            quote = source[idx : idx + 3]
            out.append("   ")
            idx += 3
        elif char in "\"'":
            quote = char
            out.append(" ")
            idx += 1
        else:
            out.append(char)
            idx += 1
    return "".join(out)


class UnclosedBrackets(base.Rule):
    """Flag unclosed, unmatched and mismatched brackets.

    A closer that does not match the innermost opener is reported without
    popping the opener, so a single stray bracket does not cascade into
    reports for every bracket after it.

    Flagged:
        total = (1 + 2          # Unclosed '(' (opened at column 9)
        items = [1, 2)          # Mismatched bracket
        value = 3)              # Unmatched closing ')'
    """

    name = "unclosed_brackets"

    def check(
        self,
        source: str,
        line_offset: int,
        context: base.AnalysisContext,
    ) -> list[base.Diagnostic]:
        """Return a diagnostic for every bracket that does not pair up."""
        diagnostics: list[base.Diagnostic] = []
        stack: list[_OpenBracket] = []
        lines = _blank_strings_and_comments(source).split("\n")

        for idx, line in enumerate(lines):
            lineno = idx + 1
            for col, char in enumerate(line, start=1):
                if char in _PAIRS:
                    stack.append(_OpenBracket(char=char, line=lineno, column=col))
                    continue
                if char not in _CLOSING:
                    continue
                if not stack:
                    message = f"Unmatched closing '{char}'"
                elif stack[-1].expected != char:
                    message = (
                        f"Mismatched bracket: expected '{stack[-1].expected}'"
                        f" but found '{char}'"
                    )
                else:
                    stack.pop()
                    continue
                diagnostics.append(
                    base.Diagnostic(
                        rule_name=self.name,
                        message=message,
                        line=lineno + line_offset,
                        column=col,
                        severity=base.Severity.ERROR,
                    )
                )

        diagnostics.extend(
            base.Diagnostic(
                rule_name=self.name,
                message=f"Unclosed '{bracket.char}' (opened at column {bracket.column})",
                line=bracket.line + line_offset,
                column=bracket.column,
                severity=base.Severity.ERROR,
            )
            for bracket in stack
        )
        return diagnostics


# ---------------------------------------------------------------------------
# empty_cells
# ---------------------------------------------------------------------------


class EmptyCells(base.Rule):
    """Flag cells that contain nothing worth running.

    Reported on the cell's first line, as info: empty cells, cells with only
    comments, cells with only ``pass``, and cells with only ``...``.
    """

    name = "empty_cells"

    def check(
        self,
        source: str,
        line_offset: int,
        context: base.AnalysisContext,
    ) -> list[base.Diagnostic]:
        """Return at most one diagnostic describing why the cell is trivial."""
        statements = [
            line.strip()
            for line in source.split("\n")
            if line.strip() and not line.strip().startswith("#")
        ]
        if not source.strip():
            message = "Cell is empty"
        elif not statements:
            message = "Cell contains only comments"
        elif all(statement == "pass" for statement in statements):
            message = "Cell contains only 'pass' statements"
        elif all(statement == "..." for statement in statements):
            message = "Cell contains only ellipsis (...)"
        else:
            return []
        return [
            base.Diagnostic(
                rule_name=self.name,
                message=message,
                line=line_offset + 1,
                severity=base.Severity.INFO,
            )
        ]
