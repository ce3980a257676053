"""Tests for the undefined_variables and capitalization_typos rules."""

import textwrap

from cellint.rules import base, names


def _undefined(source: str, known: frozenset[str] = frozenset()) -> list[str]:
    context = base.AnalysisContext(defined_names=known)
    rule = names.UndefinedVariables()
    return [diag.message for diag in rule.check(textwrap.dedent(source), 0, context)]


def _typos(source: str, known: frozenset[str] = frozenset()) -> list[str]:
    context = base.AnalysisContext(defined_names=known)
    rule = names.CapitalizationTypos()
    return [diag.message for diag in rule.check(textwrap.dedent(source), 0, context)]


# ---------------------------------------------------------------------------
# undefined_variables
# ---------------------------------------------------------------------------


class TestUndefinedVariables:
    def test_clean_cell_ok(self) -> None:
        source = """\
            import numpy as np
            values = np.arange(10)
            total = sum(v for v in values)
            print(total)
        """
        assert _undefined(source) == []

    def test_undefined_name_flagged(self) -> None:
        assert _undefined("result = undefined_thing + 1") == [
            "Undefined variable 'undefined_thing'"
        ]

    def test_column_is_one_indexed(self) -> None:
        diags = names.UndefinedVariables().check("x = y + 1", 0, base.AnalysisContext())
        assert [(diag.line, diag.column) for diag in diags] == [(1, 5)]

    def test_line_offset_applied(self) -> None:
        diags = names.UndefinedVariables().check(
            "x = 1\nprint(y)", 10, base.AnalysisContext()
        )
        assert [diag.line for diag in diags] == [12]

    def test_reported_once_per_line(self) -> None:
        assert _undefined("z = w + w * w") == ["Undefined variable 'w'"]

    def test_reported_again_on_another_line(self) -> None:
        assert _undefined("a = w\nb = w") == ["Undefined variable 'w'"] * 2

    def test_name_from_context_ok(self) -> None:
        assert _undefined("print(df.head())", known=frozenset({"df"})) == []

    def test_name_missing_from_context_flagged(self) -> None:
        assert _undefined("print(df.head())") == ["Undefined variable 'df'"]

    def test_string_contents_ignored(self) -> None:
        assert _undefined('print("missing name here")  # and another') == []

    def test_attribute_access_ignored(self) -> None:
        assert _undefined("items = []\nitems.append(1)") == []

    def test_keyword_argument_ignored(self) -> None:
        assert _undefined('print("x", end="")') == []

    def test_multiline_keyword_argument_ignored(self) -> None:
        source = """\
            settings = dict(
                alpha=1,
                beta=2,
            )
        """
        assert _undefined(source) == []

    def test_assignment_after_closed_triple_quoted_argument(self) -> None:
        source = (
            'df = read_sql("""\n    SELECT *\n    """, con)\n'
            "total = 1\nprint(total)"
        )
        assert _undefined(source, known=frozenset({"read_sql", "con"})) == []

    def test_fstring_field_name_flagged(self) -> None:
        assert _undefined('print(f"{undefined_xyz}")') == [
            "Undefined variable 'undefined_xyz'"
        ]

    def test_fstring_text_and_format_spec_ignored(self) -> None:
        assert _undefined('width = 8\nprint(f"total {width:>{width}} done")') == []

    def test_function_parameters_defined(self) -> None:
        source = """\
            def scale(value, *args, factor: float = 2.0, **kwargs):
                return value * factor, args, kwargs
        """
        assert _undefined(source) == []

    def test_multiline_signature_parameters_defined(self) -> None:
        source = """\
            async def fetch(
                url,
                timeout=10,
            ):
                return url, timeout
        """
        assert _undefined(source) == []

    def test_self_and_cls_known(self) -> None:
        source = """\
            class Counter:
                def bump(self):
                    self.count = 1

                @classmethod
                def make(cls):
                    return cls()
        """
        assert _undefined(source) == []

    def test_tuple_and_starred_assignment(self) -> None:
        assert _undefined("first, *rest = [1, 2, 3]\nprint(first, rest)") == []

    def test_chained_assignment(self) -> None:
        assert _undefined("a = b = 0\nprint(a, b)") == []

    def test_annotated_assignment(self) -> None:
        assert _undefined("limit: int = 5\nprint(limit)") == []

    def test_walrus_target(self) -> None:
        assert _undefined("if (n := 10) > 5:\n    print(n)") == []

    def test_comprehension_target(self) -> None:
        assert _undefined("squares = [n * n for n in range(3)]") == []

    def test_with_and_except_aliases(self) -> None:
        source = """\
            with open("data.txt") as handle:
                text = handle.read()
            try:
                pass
            except ValueError as err:
                print(err)
        """
        assert _undefined(source) == []

    def test_lambda_parameters(self) -> None:
        assert _undefined("add = lambda a, b: a + b") == []

    def test_parenthesized_import(self) -> None:
        source = """\
            from os.path import (
                join,
                exists,
            )
            print(join, exists)
        """
        assert _undefined(source) == []

    def test_common_alias_allowed_by_default(self) -> None:
        assert _undefined("frame = pd.DataFrame()") == []

    def test_common_alias_flagged_when_disabled(self) -> None:
        rule = names.UndefinedVariables().configure({"allow_common_aliases": False})
        diags = rule.check("frame = pd.DataFrame()", 0, base.AnalysisContext())
        assert [diag.message for diag in diags] == ["Undefined variable 'pd'"]

    def test_notebook_builtins_known(self) -> None:
        assert _undefined("display(get_ipython())") == []

    def test_shell_and_magic_lines_ignored(self) -> None:
        source = """\
            !pip install some_package
            %matplotlib inline
            x = 1
        """
        assert _undefined(source) == []

    def test_cell_magic_not_checked(self) -> None:
        assert _undefined("%%time\nprint(missing)") == []

    def test_cell_magic_still_defines_names(self) -> None:
        rule = names.UndefinedVariables()
        assert "x" in rule.defined_names("%%time\nx = 1")

    def test_severity_is_error(self) -> None:
        diags = names.UndefinedVariables().check("print(y)", 0, base.AnalysisContext())
        assert diags[0].severity == base.Severity.ERROR


class TestExtractDefinedNames:
    def test_collects_definitions(self) -> None:
        source = """\
            import pandas as pd
            from math import sqrt as root
            def helper(arg):
                global counter
            class Model:
                pass
            for i, j in pairs:
                pass
        """
        defined = names.extract_defined_names(textwrap.dedent(source))
        assert {"pd", "root", "helper", "arg", "counter", "Model", "i", "j"} <= defined

    def test_assignment_after_closed_triple_quoted_argument(self) -> None:
        source = 'df = read_sql("""\n    SELECT *\n    """, con)\ntotal = 1'
        assert "total" in names.extract_defined_names(source)

    def test_comparison_is_not_assignment(self) -> None:
        assert "x" not in names.extract_defined_names("if x == 1:\n    pass")

    def test_keyword_arguments_are_not_assignments(self) -> None:
        defined = names.extract_defined_names("result = f(\n    alpha=1,\n)")
        assert "alpha" not in defined
        assert "result" in defined

    def test_bare_annotation_defines_name(self) -> None:
        assert "field" in names.extract_defined_names("field: int")


# ---------------------------------------------------------------------------
# capitalization_typos
# ---------------------------------------------------------------------------


class TestCapitalizationTypos:
    def test_lowercase_true_flagged(self) -> None:
        assert _typos("flag = true") == [
            "Possible capitalization typo: 'true' should be 'True'"
        ]

    def test_each_constant_occurrence_flagged(self) -> None:
        assert len(_typos("values = [true, false, none, true]")) == 4  # noqa: PLR2004

    def test_correct_constants_ok(self) -> None:
        assert _typos("values = [True, False, None]") == []

    def test_builtin_typo_flagged(self) -> None:
        assert _typos('Print("hello")') == [
            "Possible capitalization typo: 'Print' should be 'print'"
        ]

    def test_exception_typo_flagged(self) -> None:
        assert _typos('raise valueerror("bad input")') == [
            "Possible capitalization typo: 'valueerror' should be 'ValueError'"
        ]

    def test_module_typo_flagged(self) -> None:
        assert _typos("values = Numpy.zeros(3)") == [
            "Possible capitalization typo: 'Numpy' should be 'numpy'"
        ]

    def test_cell_definition_typo_flagged(self) -> None:
        source = """\
            def load_data():
                return []
            rows = Load_Data()
        """
        assert _typos(source) == [
            "Possible capitalization typo: 'Load_Data' should be 'load_data'"
        ]

    def test_typing_names_ok(self) -> None:
        assert _typos("from typing import List, Dict, Set\nx: List[int] = []") == []

    def test_attribute_ignored(self) -> None:
        assert _typos("frame.Sum()") == []

    def test_context_name_ok(self) -> None:
        assert _typos("print(Print)", known=frozenset({"Print"})) == []

    def test_all_caps_constant_ok(self) -> None:
        assert _typos("LEN = 3") == []

    def test_all_caps_definition_of_constant_name_ok(self) -> None:
        assert _typos("NONE = 1\nprint(NONE)") == []

    def test_mixed_case_constant_flagged(self) -> None:
        assert _typos("flag = tRUE") == [
            "Possible capitalization typo: 'tRUE' should be 'True'"
        ]

    def test_lowercase_constant_flagged_even_when_assigned(self) -> None:
        assert _typos("none = 0") == [
            "Possible capitalization typo: 'none' should be 'None'"
        ]

    def test_string_contents_ignored(self) -> None:
        assert _typos('print("true or false")') == []

    def test_column_and_severity(self) -> None:
        diags = names.CapitalizationTypos().check(
            "x = true", 3, base.AnalysisContext()
        )
        assert [(diag.line, diag.column, diag.severity) for diag in diags] == [
            (4, 5, base.Severity.WARNING)
        ]
