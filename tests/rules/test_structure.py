"""Tests for the indentation_errors, unclosed_brackets and empty_cells rules."""

import textwrap

from cellint.rules import base, structure


def _indentation(source: str, tab_width: int = 4) -> list[str]:
    rule = structure.IndentationErrors(tab_width=tab_width)
    return [diag.message for diag in rule.check(source, 0, base.AnalysisContext())]


def _brackets(source: str) -> list[str]:
    rule = structure.UnclosedBrackets()
    return [diag.message for diag in rule.check(source, 0, base.AnalysisContext())]


def _empty(source: str) -> list[str]:
    rule = structure.EmptyCells()
    return [diag.message for diag in rule.check(source, 0, base.AnalysisContext())]


# ---------------------------------------------------------------------------
# indentation_errors
# ---------------------------------------------------------------------------


class TestIndentationErrors:
    def test_consistent_blocks_ok(self) -> None:
        source = textwrap.dedent("""\
            def f(x):
                if x:
                    return 1
                return 0
        """)
        assert _indentation(source) == []

    def test_missing_block_flagged(self) -> None:
        assert _indentation("if True:\nx = 1") == ["Expected indented block after colon"]

    def test_missing_block_reported_on_following_line(self) -> None:
        rule = structure.IndentationErrors()
        diags = rule.check("if True:\nx = 1", 7, base.AnalysisContext())
        assert [(diag.line, diag.severity) for diag in diags] == [
            (9, base.Severity.ERROR)
        ]

    def test_unexpected_indent_flagged(self) -> None:
        assert _indentation("x = 1\n    y = 2") == ["Unexpected indent"]

    def test_unindent_mismatch_flagged(self) -> None:
        source = "if x:\n        y = 1\n    z = 2"
        assert _indentation(source) == [
            "Unindent does not match any outer indentation level"
        ]

    def test_dedent_to_outer_level_ok(self) -> None:
        source = "for a in b:\n    if a:\n        pass\nprint(a)"
        assert _indentation(source) == []

    def test_bracket_continuation_not_checked(self) -> None:
        source = "total = compute(\n    first,\n  second,\n)"
        assert _indentation(source) == []

    def test_backslash_continuation_not_checked(self) -> None:
        source = "total = 1 + \\\n      2\nprint(total)"
        assert _indentation(source) == []

    def test_multiline_string_not_checked(self) -> None:
        source = 'text = """\nnot indented\n        weird\n"""\ny = 1'
        assert _indentation(source) == []

    def test_checking_resumes_after_triple_quoted_argument(self) -> None:
        source = 'q = run("""\n    SELECT 1\n    """)\nif True:\nx = 1'
        assert _indentation(source) == ["Expected indented block after colon"]

    def test_colon_in_fstring_format_spec_does_not_open_block(self) -> None:
        assert _indentation('label = f"{value:>8}"\ny = 2') == []

    def test_colon_in_comment_does_not_open_block(self) -> None:
        assert _indentation("x = 1  # note:\ny = 2") == []

    def test_colon_inside_brackets_does_not_open_block(self) -> None:
        assert _indentation("d = {'a': 1}\ne = 2") == []

    def test_blank_and_comment_lines_ignored(self) -> None:
        source = "if x:\n\n    # comment\n    y = 1\n"
        assert _indentation(source) == []

    def test_mixed_tabs_and_spaces_flagged(self) -> None:
        assert _indentation("if x:\n\t    y = 1") == [
            "Mixed tabs and spaces in indentation"
        ]

    def test_minority_tab_indent_warned(self) -> None:
        source = "if a:\n    x = 1\nif b:\n    y = 2\nif c:\n\tz = 3"
        rule = structure.IndentationErrors()
        diags = rule.check(source, 0, base.AnalysisContext())
        assert [(diag.line, diag.message, diag.severity) for diag in diags] == [
            (
                6,
                "Inconsistent indentation: file uses spaces elsewhere"
                " but this line uses tabs",
                base.Severity.WARNING,
            )
        ]

    def test_minority_space_indent_warned(self) -> None:
        source = "if a:\n\tx = 1\nif b:\n\ty = 2\nif c:\n    z = 3"
        assert _indentation(source) == [
            "Inconsistent indentation: file uses tabs elsewhere"
            " but this line uses spaces"
        ]

    def test_odd_space_indent_warned(self) -> None:
        assert _indentation("if x:\n   y = 1") == [
            "Inconsistent indentation: 3 spaces (expected multiple of 2 or 4)"
        ]

    def test_two_space_indent_ok(self) -> None:
        assert _indentation("if x:\n  y = 1\n  if y:\n    z = 2") == []

    def test_tab_width_option(self) -> None:
        # The tab lines up with the four-space block only when a tab is four columns.
        source = "if a:\n    if b:\n        pass\n\tprint(b)"
        warning = (
            "Inconsistent indentation: file uses spaces elsewhere"
            " but this line uses tabs"
        )
        assert _indentation(source) == [warning]
        assert _indentation(source, tab_width=2) == [
            warning,
            "Unindent does not match any outer indentation level",
        ]

    def test_configure_tab_width(self) -> None:
        rule = structure.IndentationErrors()
        configured = rule.configure({"tab_width": 8})
        assert isinstance(configured, structure.IndentationErrors)
        assert configured is not rule

    def test_configure_rejects_invalid_tab_width(self) -> None:
        rule = structure.IndentationErrors()
        assert rule.configure({"tab_width": 0}) is rule
        assert rule.configure({"tab_width": True}) is rule


# ---------------------------------------------------------------------------
# unclosed_brackets
# ---------------------------------------------------------------------------


class TestUnclosedBrackets:
    def test_balanced_ok(self) -> None:
        assert _brackets("x = [(1, 2), {3: 4}]") == []

    def test_multiline_balanced_ok(self) -> None:
        assert _brackets("f(\n    1,\n    [2],\n)") == []

    def test_unclosed_paren_flagged_with_column(self) -> None:
        rule = structure.UnclosedBrackets()
        diags = rule.check("x = (1 + 2", 0, base.AnalysisContext())
        assert [(diag.message, diag.line, diag.column) for diag in diags] == [
            ("Unclosed '(' (opened at column 5)", 1, 5)
        ]

    def test_unmatched_closer_flagged(self) -> None:
        rule = structure.UnclosedBrackets()
        diags = rule.check("value = 3)", 0, base.AnalysisContext())
        assert [(diag.message, diag.column) for diag in diags] == [
            ("Unmatched closing ')'", 10)
        ]

    def test_mismatched_closer_does_not_pop(self) -> None:
        assert _brackets("items = [1, 2)") == [
            "Mismatched bracket: expected ']' but found ')'",
            "Unclosed '[' (opened at column 9)",
        ]

    def test_brackets_in_strings_ignored(self) -> None:
        assert _brackets("s = \"(\" + ')' + '''[\n{'''") == []

    def test_brackets_in_comments_ignored(self) -> None:
        assert _brackets("x = 1  # (unbalanced") == []

    def test_escaped_quote_in_string(self) -> None:
        assert _brackets('s = "a \\" (" + ")"') == []

    def test_unterminated_string_ends_at_newline(self) -> None:
        assert _brackets("s = 'abc\nx = (1") == ["Unclosed '(' (opened at column 5)"]

    def test_line_offset_applied(self) -> None:
        rule = structure.UnclosedBrackets()
        diags = rule.check("a = 1\nb = (2", 4, base.AnalysisContext())
        assert [diag.line for diag in diags] == [6]


# ---------------------------------------------------------------------------
# empty_cells
# ---------------------------------------------------------------------------


class TestEmptyCells:
    def test_code_ok(self) -> None:
        assert _empty("x = 1") == []

    def test_empty_cell_flagged(self) -> None:
        assert _empty("") == ["Cell is empty"]

    def test_whitespace_cell_flagged(self) -> None:
        assert _empty("  \n\t\n") == ["Cell is empty"]

    def test_comment_only_cell_flagged(self) -> None:
        assert _empty("# TODO: load data\n# later") == ["Cell contains only comments"]

    def test_pass_only_cell_flagged(self) -> None:
        assert _empty("pass\n\npass") == ["Cell contains only 'pass' statements"]

    def test_ellipsis_only_cell_flagged(self) -> None:
        assert _empty("...") == ["Cell contains only ellipsis (...)"]

    def test_pass_with_comment_flagged(self) -> None:
        assert _empty("# placeholder\npass") == ["Cell contains only 'pass' statements"]

    def test_reported_on_first_line_as_info(self) -> None:
        diags = structure.EmptyCells().check("", 7, base.AnalysisContext())
        assert [(diag.line, diag.severity) for diag in diags] == [
            (8, base.Severity.INFO)
        ]
