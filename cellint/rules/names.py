"""Name rules: undefined_variables and capitalization_typos."""

import builtins
import keyword
import re

from cellint import tokens
from cellint.rules import base, imports

_NAME = r"[A-Za-z_]\w*"

_IMPLICIT_NAMES: frozenset[str] = frozenset({"self", "cls"})

_BUILTIN_NAMES: frozenset[str] = frozenset(dir(builtins)) | frozenset(
    {"__file__", "__annotations__", "__builtins__", "__cached__"}
)

# Injected into every IPython kernel namespace.
_NOTEBOOK_NAMES: frozenset[str] = frozenset({"display", "get_ipython", "In", "Out"})

# Aliases and modules a notebook cell commonly uses without importing them in
# the same cell.
_COMMON_ALIASES: frozenset[str] = frozenset(
    {
        "pd",
        "np",
        "plt",
        "sns",
        "tf",
        "torch",
        "sklearn",
        "scipy",
        "cv2",
        "PIL",
        "os",
        "sys",
        "re",
        "json",
        "csv",
        "math",
        "random",
        "datetime",
        "time",
        "collections",
        "itertools",
        "functools",
        "pathlib",
        "glob",
        "shutil",
        "pickle",
        "warnings",
        "logging",
        "tqdm",
        "requests",
        "bs4",
        "selenium",
        "keras",
        "xgboost",
        "lightgbm",
        "catboost",
        "gc",
        "copy",
        "io",
        "struct",
        "typing",
        "subprocess",
        "threading",
        "multiprocessing",
        "queue",
        "asyncio",
    }
)

_KEYWORDS: frozenset[str] = frozenset(keyword.kwlist) | frozenset(keyword.softkwlist)

_CONDITIONAL_PREFIX_PAT = re.compile(r"^\s*(?:if|elif|while|for|with|except|assert|return)\b")
_DEF_START_PAT = re.compile(rf"^[ \t]*(?:async[ \t]+)?def[ \t]+({_NAME})[ \t]*\(", re.MULTILINE)
_CLASS_PAT = re.compile(rf"^\s*class\s+({_NAME})")
_TARGETS = rf"\(?\s*\*?{_NAME}(?:\s*,\s*\*?{_NAME})*\s*,?\s*\)?"
_ASSIGN_PAT = re.compile(rf"\s*({_TARGETS})\s*=(?!=)")
_ANNOTATION_PAT = re.compile(rf"^\s*({_NAME})\s*:(?!=)\s*\S")
_WALRUS_PAT = re.compile(rf"({_NAME})\s*:=")
_FOR_TARGET_PAT = re.compile(r"\bfor\s+(.+?)\s+in\b")
_WITH_START_PAT = re.compile(r"^\s*(?:async\s+)?with\b")
_AS_PAT = re.compile(rf"\bas\s+({_NAME})")
_EXCEPT_AS_PAT = re.compile(rf"^\s*except\b.*?\bas\s+({_NAME})")
_LAMBDA_PAT = re.compile(r"\blambda\b([^:]*):")
_SCOPE_DECL_PAT = re.compile(r"^\s*(?:global|nonlocal)\s+(.+)")
_IMPORT_LINE_PAT = re.compile(r"^\s*(?:import|from)\s")
_KWARG_TAIL_PAT = re.compile(r"\s*=(?!=)")


def _split_top_level(text: str) -> list[str]:
    """Split *text* on commas that are not nested inside brackets."""
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char in "([{":
            depth += 1
        elif char in ")]}":
            depth -= 1
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def _parameter_names(params: str) -> set[str]:
    """Return names declared by a parameter list, without annotations or defaults."""
    names: set[str] = set()
    for param in _split_top_level(params):
        name = param.split("=")[0].split(":")[0].strip().lstrip("*").strip()
        if re.fullmatch(_NAME, name) and name not in _IMPLICIT_NAMES:
            names.add(name)
    return names


def _function_signatures(text: str) -> list[tuple[str, str]]:
    """Return ``(name, parameter_text)`` for every def, following nested brackets."""
    signatures: list[tuple[str, str]] = []
    for match in _DEF_START_PAT.finditer(text):
        depth = 1
        end = match.end()
        while end < len(text) and depth:
            if text[end] in "([{":
                depth += 1
            elif text[end] in ")]}":
                depth -= 1
            end += 1
        signatures.append((match.group(1), text[match.end() : end - 1]))
    return signatures


def _bare_names(text: str) -> set[str]:
    return {name for name, _ in tokens.identifiers(text) if name not in _KEYWORDS}


def _assignment_targets(line: str) -> set[str]:
    """Return names bound by a (possibly chained or tuple) assignment on *line*."""
    names: set[str] = set()
    pos = 0
    while True:
        match = _ASSIGN_PAT.match(line, pos)
        if not match:
            break
        names.update(_bare_names(match.group(1)))
        pos = match.end()
    annotated = _ANNOTATION_PAT.match(line)
    if annotated and annotated.group(1) not in _KEYWORDS:
        names.add(annotated.group(1))
    return names


def extract_defined_names(source: str) -> frozenset[str]:
    """Return every name *source* binds at any scope.

    Recognises function and class definitions (including parameters),
    assignment targets, loop and comprehension targets, ``with``/``except``
    aliases, imports, lambda parameters, walrus targets and ``global`` or
    ``nonlocal`` declarations. Shell and magic lines are ignored.

    Args:
        source: Raw cell text.

    Returns:
        The set of bound names.
    """
    raw_lines = source.split("\n")
    text = tokens.strip_literals(source)
    lines = text.split("\n")
    defined: set[str] = set()

    for func_name, params in _function_signatures(text):
        defined.add(func_name)
        defined.update(_parameter_names(params))
    defined.update(binding.name for binding in imports.iter_import_bindings(source))
    defined.discard("*")

    depth = 0
    for idx, line in enumerate(lines):
        if tokens.is_directive(raw_lines[idx]):
            continue
        inside_brackets = depth > 0
        depth = max(depth + tokens.bracket_delta(line), 0)

        class_match = _CLASS_PAT.match(line)
        if class_match:
            defined.add(class_match.group(1))
        if not inside_brackets and not _CONDITIONAL_PREFIX_PAT.match(line):
            defined.update(_assignment_targets(line))
        defined.update(_WALRUS_PAT.findall(line))
        for targets in _FOR_TARGET_PAT.findall(line):
            defined.update(_bare_names(targets))
        if _WITH_START_PAT.match(line):
            defined.update(_AS_PAT.findall(line))
        except_match = _EXCEPT_AS_PAT.match(line)
        if except_match:
            defined.add(except_match.group(1))
        for params in _LAMBDA_PAT.findall(line):
            defined.update(_parameter_names(params))
        scope_match = _SCOPE_DECL_PAT.match(line)
        if scope_match:
            defined.update(_bare_names(scope_match.group(1)))

    return frozenset(defined - _KEYWORDS)


def _is_attribute(line: str, start: int) -> bool:
    return line[:start].rstrip().endswith(".")


def extract_used_names(source: str) -> list[tuple[str, int, int]]:
    """Return ``(name, line, column)`` for every identifier read in *source*.

    Lines and columns are 1-indexed and cell-local. Attribute names, keyword
    argument names, keywords, import statements and notebook directives are
    skipped.
    """
    raw_lines = source.split("\n")
    lines = tokens.strip_literals(source).split("\n")
    used: list[tuple[str, int, int]] = []
    depth = 0
    in_import = False

    for idx, line in enumerate(lines):
        if tokens.is_directive(raw_lines[idx]):
            continue
        line_depth = depth
        depth = max(depth + tokens.bracket_delta(line), 0)

        if _IMPORT_LINE_PAT.match(line) and line_depth == 0:
            in_import = depth > 0
            continue
        if in_import:
            in_import = depth > 0
            continue

        for name, start in tokens.identifiers(line):
            if name in _KEYWORDS or _is_attribute(line, start):
                continue
            end = start + len(name)
            if _KWARG_TAIL_PAT.match(line, end) and (
                line_depth + tokens.bracket_delta(line[:start]) > 0
            ):
                continue
            used.append((name, idx + 1, start + 1))
    return used


class UndefinedVariables(base.Rule):
    """Flag names that are read but never defined.

    A name counts as defined if the cell binds it anywhere, an earlier cell
    bound it, it is a Python builtin, or it is one of the module aliases
    notebooks habitually rely on (``pd``, ``np``, ``plt`` ...). Cells that
    open with a ``%%`` cell magic are not checked, but their definitions are
    still passed on to later cells.

    Allowed:
        import numpy as np
        values = np.arange(10)
        total = sum(v for v in values)

    Flagged:
        result = undefined_thing + 1
    """

    name = "undefined_variables"

    def __init__(self, *, allow_common_aliases: bool = True) -> None:
        """Initialise the rule.

        Args:
            allow_common_aliases: Treat common data-science aliases as defined.
        """
        self._allow_common_aliases = allow_common_aliases

    def configure(self, options: dict[str, int | str | bool]) -> base.Rule:
        """Return a new UndefinedVariables with options applied.

        Args:
            options: Recognises ``allow_common_aliases`` (bool).

        Returns:
            A configured instance, or self if the option is absent or invalid.
        """
        allow = options.get("allow_common_aliases", self._allow_common_aliases)
        if isinstance(allow, bool):
            return UndefinedVariables(allow_common_aliases=allow)
        return self

    def defined_names(self, source: str) -> frozenset[str]:
        """Return every name the cell binds, for use by later cells."""
        return extract_defined_names(source)

    def check(
        self,
        source: str,
        line_offset: int,
        context: base.AnalysisContext,
    ) -> list[base.Diagnostic]:
        """Return one diagnostic per undefined name per line."""
        if tokens.is_cell_magic(source):
            return []

        known = (
            _BUILTIN_NAMES
            | _NOTEBOOK_NAMES
            | _IMPLICIT_NAMES
            | extract_defined_names(source)
            | context.defined_names
        )
        if self._allow_common_aliases:
            known |= _COMMON_ALIASES

        diagnostics: list[base.Diagnostic] = []
        reported: set[tuple[str, int]] = set()
        for name, lineno, column in extract_used_names(source):
            if name in known or (name, lineno) in reported:
                continue
            reported.add((name, lineno))
            diagnostics.append(
                base.Diagnostic(
                    rule_name=self.name,
                    message=f"Undefined variable '{name}'",
                    line=lineno + line_offset,
                    column=column,
                    severity=base.Severity.ERROR,
                )
            )
        return diagnostics


# ---------------------------------------------------------------------------
# capitalization_typos
# ---------------------------------------------------------------------------

_CONSTANT_SPELLINGS: dict[str, str] = {"true": "True", "false": "False", "none": "None"}

_KNOWN_SPELLINGS: dict[str, str] = {
    proper.lower(): proper
    for proper in (
        "print",
        "len",
        "range",
        "list",
        "dict",
        "set",
        "tuple",
        "str",
        "int",
        "float",
        "bool",
        "type",
        "isinstance",
        "hasattr",
        "getattr",
        "setattr",
        "enumerate",
        "zip",
        "map",
        "filter",
        "sorted",
        "reversed",
        "sum",
        "min",
        "max",
        "abs",
        "round",
        "open",
        "ValueError",
        "TypeError",
        "KeyError",
        "IndexError",
        "AttributeError",
        "ImportError",
        "NameError",
        "RuntimeError",
        "FileNotFoundError",
        "ZeroDivisionError",
        "AssertionError",
        "NotImplementedError",
        "StopIteration",
        "numpy",
        "pandas",
        "matplotlib",
        "tensorflow",
        "sklearn",
        "scipy",
        "seaborn",
    )
}

# Intentionally capitalized typing names that collide with builtins.
_TYPING_NAMES: frozenset[str] = frozenset(
    {
        "List",
        "Dict",
        "Set",
        "Tuple",
        "Optional",
        "Union",
        "Any",
        "Callable",
        "Sequence",
        "Iterable",
        "Mapping",
        "Type",
        "ClassVar",
        "Final",
        "Literal",
        "TypeVar",
        "Generic",
        "Protocol",
    }
)

_DEF_OR_CLASS_PAT = re.compile(rf"^\s*(?:async\s+)?(?:def|class)\s+({_NAME})")
_SIMPLE_ASSIGN_PAT = re.compile(rf"^\s*({_NAME})\s*=(?!=)")


def _cell_definitions(source: str) -> list[str]:
    """Return names the cell defines via def, class, assignment or import."""
    names: list[str] = []
    for line in tokens.strip_literals(source).split("\n"):
        match = _DEF_OR_CLASS_PAT.match(line) or _SIMPLE_ASSIGN_PAT.match(line)
        if match and match.group(1) not in _KEYWORDS:
            names.append(match.group(1))
    names.extend(
        binding.name
        for binding in imports.iter_import_bindings(source)
        if not binding.is_wildcard
    )
    return names


class CapitalizationTypos(base.Rule):
    """Flag identifiers that differ from a known name only by capitalization.

    ``true``, ``false`` and ``none`` are always reported. Other names are
    compared against builtins, common exceptions and modules, and names the
    cell itself defines. Names defined exactly as written (in this cell or
    an earlier one), attribute accesses, typing aliases such as ``List`` and
    ALL-CAPS constants are left alone.

    Allowed:
        flag = True
        NONE = "n/a"
        from typing import List

    Flagged:
        flag = true
        Print("hello")
        raise valueerror("bad input")
    """

    name = "capitalization_typos"

    def check(
        self,
        source: str,
        line_offset: int,
        context: base.AnalysisContext,
    ) -> list[base.Diagnostic]:
        """Return one diagnostic per suspicious identifier occurrence."""
        raw_lines = source.split("\n")
        lines = tokens.strip_literals(source).split("\n")
        defined = _cell_definitions(source)
        cell_spellings: dict[str, str] = {}
        for defined_name in defined:
            cell_spellings.setdefault(defined_name.lower(), defined_name)
        exact = set(defined) | context.defined_names

        diagnostics: list[base.Diagnostic] = []
        for idx, line in enumerate(lines):
            if tokens.is_directive(raw_lines[idx]):
                continue
            for name, start in tokens.identifiers(line):
                if _is_attribute(line, start) or name in _TYPING_NAMES:
                    continue
                correct = _suggest(name, cell_spellings, exact)
                if correct is None:
                    continue
                diagnostics.append(
                    base.Diagnostic(
                        rule_name=self.name,
                        message=(
                            f"Possible capitalization typo: '{name}'"
                            f" should be '{correct}'"
                        ),
                        line=idx + 1 + line_offset,
                        column=start + 1,
                        severity=base.Severity.WARNING,
                    )
                )
        return diagnostics


def _suggest(
    name: str,
    cell_spellings: dict[str, str],
    exact: set[str] | frozenset[str],
) -> str | None:
    """Return the spelling *name* should have, or None if it looks intended."""
    lower = name.lower()
    constant = _CONSTANT_SPELLINGS.get(lower)
    if constant is not None and name == lower:
        return constant
    if name in exact:
        return None
    correct = cell_spellings.get(lower)
    if correct is None and not (name.isupper() and len(name) > 1):
        correct = constant or _KNOWN_SPELLINGS.get(lower)
    if correct is None or correct == name:
        return None
    return correct
