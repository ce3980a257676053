"""Function rules: missing_return."""

import dataclasses
import re

from cellint import tokens
from cellint.rules import base

_DEF_PAT = re.compile(r"^(\s*)(?:async\s+)?def\s+([A-Za-z_]\w*)\s*\(")
_DECORATOR_PAT = re.compile(r"^\s*@\s*([A-Za-z_][\w.]*)")
_INLINE_BODY_PAT = re.compile(r"\)\s*(?:->[^:]*)?:(.*)$")
_RETURN_PAT = re.compile(r"^\s*return\b")
_YIELD_PAT = re.compile(r"\byield\b")

# Assignments suggesting the function computes something it should hand back.
# The patterns match substrings on purpose (``my_result =`` counts).
_COMPUTATION_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        r"result\s*=",
        r"total\s*=",
        r"sum\s*=",
        r"count\s*=",
        r"output\s*=",
        r"value\s*=",
        r"answer\s*=",
        r"res\s*=",
        r"ret\s*=",
        r"data\s*=",
        r"\+=|-=|\*=|/=",
    )
)

_COMPUTING_PREFIXES: tuple[str, ...] = (
    "get_",
    "calculate_",
    "compute_",
    "find_",
    "create_",
    "build_",
    "make_",
    "generate_",
    "parse_",
    "convert_",
    "transform_",
    "extract_",
    "fetch_",
    "load_",
    "read_",
)

_NO_RETURN_EXPECTED: frozenset[str] = frozenset(
    {
        "__init__",
        "__del__",
        "__setattr__",
        "__delattr__",
        "__setitem__",
        "__delitem__",
        "__enter__",
        "__exit__",
        "setUp",
        "tearDown",
        "setUpClass",
        "tearDownClass",
        "setup",
        "teardown",
        "main",
    }
)

_STUB_STATEMENTS: frozenset[str] = frozenset({"pass", "..."})


@dataclasses.dataclass
class _Function:
    name: str
    line: int  # 1-indexed, cell-local
    decorators: list[str]
    body: list[str]

    @property
    def has_return(self) -> bool:
        return any(
            _RETURN_PAT.match(line) or _YIELD_PAT.search(line) for line in self.body
        )

    @property
    def is_stub(self) -> bool:
        """True if the body only documents, passes or raises."""
        for line in self.body:
            statement = line.strip()
            if not statement.strip("\"' "):
                continue
            if statement in _STUB_STATEMENTS or statement.startswith("raise"):
                continue
            return False
        return True

    @property
    def is_property_setter(self) -> bool:
        return any(decorator.endswith(".setter") for decorator in self.decorators)

    @property
    def looks_non_void(self) -> bool:
        text = "\n".join(self.body)
        if any(pattern.search(text) for pattern in _COMPUTATION_PATTERNS):
            return True
        return self.name.startswith(_COMPUTING_PREFIXES)


def _extract_functions(source: str) -> list[_Function]:
    """Collect every def in *source* with its decorators and body lines.

    The body is every line after the signature that is blank or indented
    deeper than the ``def``. Nested functions appear both on their own and
    inside their parent's body.
    """
    lines = tokens.strip_literals(source).split("\n")
    functions: list[_Function] = []
    decorators: list[str] = []

    for idx, line in enumerate(lines):
        decorator_match = _DECORATOR_PAT.match(line)
        if decorator_match:
            decorators.append(decorator_match.group(1))
            continue
        def_match = _DEF_PAT.match(line)
        if not def_match:
            if line.strip():
                decorators = []
            continue

        indent = tokens.indent_width(def_match.group(1))
        header_end = idx
        depth = tokens.bracket_delta(line)
        while depth > 0 and header_end + 1 < len(lines):
            header_end += 1
            depth += tokens.bracket_delta(lines[header_end])

        body: list[str] = []
        inline = _INLINE_BODY_PAT.search(lines[header_end])
        if inline and inline.group(1).strip():
            body.append(inline.group(1))
        for follow in lines[header_end + 1 :]:
            if follow.strip() and tokens.indent_width(follow) <= indent:
                break
            body.append(follow)

        functions.append(
            _Function(
                name=def_match.group(2),
                line=idx + 1,
                decorators=decorators,
                body=body,
            )
        )
        decorators = []
    return functions


class MissingReturn(base.Rule):
    """Flag functions that appear to compute a value but never return it.

    A function "looks non-void" when its body assigns to a result-like name
    (``result``, ``total``, ``count`` ...), uses augmented assignment, or
    its name starts with a computing verb (``get_``, ``calculate_`` ...).
    Such a function is reported when its body contains neither ``return``
    nor ``yield``. Special methods, test fixtures, ``main``, property setters
    and stub bodies are exempt. The heuristic is deliberately loose: setter-
    like functions with computing names are reported too.

    Allowed:
        def get_total(values):
            return sum(values)

    Flagged:
        def calculate_mean(values):
            result = sum(values) / len(values)
    """

    name = "missing_return"

    def check(
        self,
        source: str,
        line_offset: int,
        context: base.AnalysisContext,
    ) -> list[base.Diagnostic]:
        """Return a diagnostic for every value-computing function with no return."""
        return [
            base.Diagnostic(
                rule_name=self.name,
                message=(
                    f"Function '{func.name}' appears to compute a value"
                    f" but has no return statement"
                ),
                line=func.line + line_offset,
                severity=base.Severity.WARNING,
            )
            for func in _extract_functions(source)
            if func.name not in _NO_RETURN_EXPECTED
            and not func.is_property_setter
            and not func.is_stub
            and not func.has_return
            and func.looks_non_void
        ]
