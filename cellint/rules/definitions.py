"""Definition rules: duplicate_functions and redefined_variables."""

import re
from collections.abc import Iterator

from cellint import tokens
from cellint.rules import base

_NAME = r"[A-Za-z_]\w*"

_DEF_PAT = re.compile(rf"^\s*(async\s+)?def\s+({_NAME})\s*\(")
_CLASS_PAT = re.compile(rf"^\s*class\s+({_NAME})\s*[(:]")
_DECORATOR_PAT = re.compile(r"^\s*@\s*([\w.]+)")

# Decorators that legitimately reuse a name already defined in the scope.
_REDEFINING_DECORATOR_SUFFIXES: tuple[str, ...] = (".setter", ".getter", ".deleter")
_OVERLOAD_DECORATORS: frozenset[str] = frozenset({"overload", "typing.overload"})


def _logical_lines(source: str) -> Iterator[tuple[int, str, bool]]:
    """Yield ``(lineno, stripped_line, inside_brackets)`` for scannable lines.

    Blank lines, comment-only lines, directives and lines inside multi-line
    literals are skipped. ``inside_brackets`` is True when the line continues
    a bracketed expression opened on an earlier line. Line numbers are
    1-indexed and cell-local.
    """
    raw_lines = source.split("\n")
    interior = tokens.string_interior_lines(source)
    depth = 0
    for idx, line in enumerate(tokens.strip_literals(source).split("\n")):
        if tokens.is_directive(raw_lines[idx]):
            continue
        inside_brackets = depth > 0
        depth = max(depth + tokens.bracket_delta(line), 0)
        if idx in interior or not line.strip():
            continue
        yield idx + 1, line, inside_brackets


def _reuses_name(decorators: list[str]) -> bool:
    return any(
        decorator.endswith(_REDEFINING_DECORATOR_SUFFIXES)
        or decorator in _OVERLOAD_DECORATORS
        for decorator in decorators
    )


def iter_definitions(source: str) -> Iterator[tuple[tuple[str, ...], base.Definition]]:
    """Yield function and class definitions with the scope that encloses them.

    The scope is the tuple of enclosing def/class names, derived from
    indentation. Definitions decorated as property accessors or overloads
    are skipped because they are meant to share a name.
    """
    scope: list[tuple[int, str]] = []
    decorators: list[str] = []
    for lineno, line, inside_brackets in _logical_lines(source):
        if inside_brackets:
            continue
        indent = tokens.indent_width(line)
        while scope and scope[-1][0] >= indent:
            scope.pop()

        decorator_match = _DECORATOR_PAT.match(line)
        if decorator_match:
            decorators.append(decorator_match.group(1))
            continue

        def_match = _DEF_PAT.match(line)
        class_match = _CLASS_PAT.match(line)
        definition: base.Definition | None = None
        if def_match:
            definition = base.Definition(
                name=def_match.group(2),
                line=lineno,
                kind=base.DefinitionKind.FUNCTION,
                is_async=def_match.group(1) is not None,
            )
        elif class_match:
            definition = base.Definition(
                name=class_match.group(1),
                line=lineno,
                kind=base.DefinitionKind.CLASS,
            )

        if definition is not None:
            if not _reuses_name(decorators):
                yield tuple(name for _, name in scope), definition
            scope.append((indent, definition.name))
        decorators = []


class DuplicateFunctions(base.Rule):
    """Flag functions and classes defined more than once in the same scope.

    Methods of different classes may share names, and property setters and
    ``@overload`` stubs are expected to repeat a name, so neither is flagged.

    Allowed:
        class A:
            def run(self): ...
        class B:
            def run(self): ...

    Flagged:
        def load(): ...
        def load(): ...     # duplicate of line 1
    """

    name = "duplicate_functions"

    def check(
        self,
        source: str,
        line_offset: int,
        context: base.AnalysisContext,
    ) -> list[base.Diagnostic]:
        """Return a diagnostic for every repeated definition after the first."""
        first_seen: dict[tuple[tuple[str, ...], str], base.Definition] = {}
        diagnostics: list[base.Diagnostic] = []
        for scope, definition in iter_definitions(source):
            key = (scope, definition.name)
            first = first_seen.get(key)
            if first is None:
                first_seen[key] = definition
                continue
            diagnostics.append(
                base.Diagnostic(
                    rule_name=self.name,
                    message=(
                        f"Duplicate {definition.label} name '{definition.name}'"
                        f" (first defined at line {first.line + line_offset})"
                    ),
                    line=definition.line + line_offset,
                    severity=base.Severity.WARNING,
                )
            )
        return diagnostics


# ---------------------------------------------------------------------------
# redefined_variables
# ---------------------------------------------------------------------------

_SHADOWABLE_BUILTINS: frozenset[str] = frozenset(
    {
        "list",
        "dict",
        "set",
        "tuple",
        "str",
        "int",
        "float",
        "bool",
        "type",
        "object",
        "len",
        "range",
        "print",
        "input",
        "open",
        "id",
        "hash",
        "map",
        "filter",
        "zip",
        "enumerate",
        "sorted",
        "reversed",
        "sum",
        "min",
        "max",
        "abs",
        "round",
        "all",
        "any",
        "format",
        "repr",
        "ascii",
        "chr",
        "ord",
        "bin",
        "oct",
        "hex",
        "iter",
        "next",
        "slice",
        "super",
        "classmethod",
        "staticmethod",
        "property",
        "getattr",
        "setattr",
        "hasattr",
        "delattr",
        "isinstance",
        "issubclass",
        "callable",
        "compile",
        "eval",
        "exec",
        "globals",
        "locals",
        "vars",
        "dir",
        "help",
        "memoryview",
        "bytearray",
        "bytes",
        "complex",
        "divmod",
        "pow",
        "frozenset",
    }
)

_ASSIGN_PAT = re.compile(rf"^\s*({_NAME})\s*=(?!=)")
_FOR_PAT = re.compile(r"^\s*(?:async\s+)?for\s+(.+?)\s+in\b")


class RedefinedVariables(base.Rule):
    """Flag names that shadow builtins or turn a variable into a function.

    Checked bindings are top-of-line assignments, function and class names,
    and loop variables. A def or class that reuses the name of a variable
    assigned earlier in the same cell is also reported.

    Allowed:
        items = [1, 2, 3]
        for item in items: ...

    Flagged:
        list = [1, 2, 3]
        def max(values): ...
        for id in ids: ...
    """

    name = "redefined_variables"

    def _warn(self, lineno: int, message: str) -> base.Diagnostic:
        return base.Diagnostic(
            rule_name=self.name,
            message=message,
            line=lineno,
            severity=base.Severity.WARNING,
        )

    def check(
        self,
        source: str,
        line_offset: int,
        context: base.AnalysisContext,
    ) -> list[base.Diagnostic]:
        """Return a diagnostic for every shadowing or rebinding definition."""
        diagnostics: list[base.Diagnostic] = []
        assignments: dict[str, base.Definition] = {}
        for lineno, line, inside_brackets in _logical_lines(source):
            if inside_brackets:
                continue
            global_line = lineno + line_offset

            assign_match = _ASSIGN_PAT.match(line)
            if assign_match:
                name = assign_match.group(1)
                if name in _SHADOWABLE_BUILTINS:
                    diagnostics.append(
                        self._warn(global_line, f"Redefining built-in name '{name}'")
                    )
                assignments.setdefault(
                    name,
                    base.Definition(
                        name=name, line=lineno, kind=base.DefinitionKind.ASSIGNMENT
                    ),
                )

            def_match = _DEF_PAT.match(line)
            class_match = _CLASS_PAT.match(line)
            defined: tuple[str, str] | None = None
            if def_match:
                defined = (def_match.group(2), "Function")
            elif class_match:
                defined = (class_match.group(1), "Class")
            if defined is not None:
                name, title = defined
                if name in _SHADOWABLE_BUILTINS:
                    diagnostics.append(
                        self._warn(global_line, f"{title} name '{name}' shadows built-in")
                    )
                previous = assignments.get(name)
                if previous is not None:
                    diagnostics.append(
                        self._warn(
                            global_line,
                            f"{title} '{name}' redefines variable"
                            f" (previously at line {previous.line + line_offset})",
                        )
                    )

            for_match = _FOR_PAT.match(line)
            if for_match:
                diagnostics.extend(
                    self._warn(global_line, f"Loop variable '{name}' shadows built-in")
                    for name, _ in tokens.identifiers(for_match.group(1))
                    if name in _SHADOWABLE_BUILTINS
                )
        return diagnostics
