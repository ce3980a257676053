"""Runs rules over notebook cells, threading defined names between them."""

import collections
import dataclasses
import logging
import re
from collections.abc import Iterable

from cellint import context as cellint_context
from cellint import tokens
from cellint.rules import base

logger = logging.getLogger(__name__)

# Matches:  # cellint: noqa                     (suppress all rules on this line)
#           # cellint: noqa: import_issues      (suppress specific rules on this line)
_LINE_NOQA_PAT = re.compile(
    r"#\s*cellint:\s*noqa(?::\s*([a-z_][a-z0-9_,\s]*))?",
    re.IGNORECASE,
)

# Matches:  # cellint: disable-cell                 (suppress all rules in this cell)
#           # cellint: disable-cell: empty_cells    (suppress specific rules in this cell)
_CELL_DISABLE_PAT = re.compile(
    r"#\s*cellint:\s*disable-cell(?::\s*([a-z_][a-z0-9_,\s]*))?",
    re.IGNORECASE,
)


def _rule_names(raw: str | None) -> frozenset[str] | None:
    """Parse rule names from a suppression comment capture group.

    Returns None to indicate all rules are suppressed, or a frozenset of
    specific lowercased rule names.
    """
    if not raw or not raw.strip():
        return None
    names = frozenset(part.strip().lower() for part in raw.split(",") if part.strip())
    return names or None


def _covers(suppressed: frozenset[str] | None, rule_name: str) -> bool:
    """Return True if rule_name falls within the suppression set.

    None means all rules are suppressed.
    """
    return suppressed is None or rule_name in suppressed


def _apply_suppressions(
    diagnostics: list[base.Diagnostic],
    source: str,
    line_offset: int,
) -> list[base.Diagnostic]:
    """Remove diagnostics covered by inline cellint suppression comments.

    Only real comments count; a suppression marker quoted inside a string
    literal is ignored.
    """
    cell_sup_active = False
    cell_sup_rules: frozenset[str] | None = None
    line_sups: dict[int, frozenset[str] | None] = {}

    for idx, comment in sorted(tokens.line_comments(source).items()):
        cell_match = _CELL_DISABLE_PAT.search(comment)
        if cell_match:
            cell_sup_active = True
            cell_sup_rules = _rule_names(cell_match.group(1))

        line_match = _LINE_NOQA_PAT.search(comment)
        if line_match:
            line_sups[idx + 1 + line_offset] = _rule_names(line_match.group(1))

    if not cell_sup_active and not line_sups:
        return diagnostics
    return [
        diag
        for diag in diagnostics
        if not (
            (cell_sup_active and _covers(cell_sup_rules, diag.rule_name))
            or (
                diag.line in line_sups
                and _covers(line_sups[diag.line], diag.rule_name)
            )
        )
    ]


@dataclasses.dataclass(frozen=True)
class SourceCell:
    """One cell of a notebook.

    Attributes:
        text: Raw cell source.
        index: Position of the cell in the notebook, if known.
        line_offset: Lines in all earlier cells; recomputed by
            :meth:`LintEngine.lint_notebook`.
    """

    text: str
    index: int | None = None
    line_offset: int = 0

    @property
    def line_count(self) -> int:
        """Number of lines this cell occupies in the concatenated notebook."""
        return _text(self.text).count("\n") + 1


@dataclasses.dataclass(frozen=True)
class CellResult:
    """Diagnostics for a single cell plus the names the cell defines."""

    diagnostics: list[base.Diagnostic]
    defined_names: frozenset[str]


@dataclasses.dataclass(frozen=True)
class Stats:
    """Diagnostic counts for a lint run."""

    total: int
    by_severity: dict[str, int]
    by_rule: dict[str, int]

    def to_dict(self) -> dict[str, object]:
        """Return the JSON-ready form shared with other lint engines."""
        return {
            "total": self.total,
            "bySeverity": dict(self.by_severity),
            "byRule": dict(self.by_rule),
        }


def _text(source: object) -> str:
    return source if isinstance(source, str) else ""


def _explicit_index(cell: SourceCell) -> int | None:
    # bool is an int subclass, but never a meaningful cell index.
    if isinstance(cell.index, int) and not isinstance(cell.index, bool):
        return cell.index
    return None


def _order_cells(cells: Iterable[SourceCell]) -> list[tuple[int, SourceCell]]:
    """Return ``(cell_index, cell)`` pairs in notebook order.

    Cells sort by their explicit index; a cell without one sorts by its
    input position. Explicit indices are reported as given. A cell without
    one is reported under its position in the sorted order, moved up to the
    next integer no explicit index uses, so it never shares a ``cell_index``
    with another cell.
    """
    keyed = []
    for position, cell in enumerate(cells):
        explicit = _explicit_index(cell)
        keyed.append((position if explicit is None else explicit, explicit, cell))
    keyed.sort(key=lambda item: item[0])

    taken = {explicit for _, explicit, _ in keyed if explicit is not None}
    ordered: list[tuple[int, SourceCell]] = []
    for position, (_, explicit, cell) in enumerate(keyed):
        if explicit is not None:
            ordered.append((explicit, cell))
            continue
        cell_index = position
        while cell_index in taken:
            cell_index += 1
        taken.add(cell_index)
        ordered.append((cell_index, cell))
    return ordered


def assign_line_offsets(cells: Iterable[SourceCell]) -> list[SourceCell]:
    """Return *cells* with ``line_offset`` set to the lines of all earlier cells."""
    result: list[SourceCell] = []
    offset = 0
    for cell in cells:
        result.append(dataclasses.replace(cell, line_offset=offset))
        offset += cell.line_count
    return result


class LintEngine:
    """Runs a list of rules over single cells or whole notebooks.

    Each engine owns one :class:`~cellint.context.ContextAccumulator`, so a
    single engine must not lint two notebooks at the same time.
    """

    def __init__(self, rules: Iterable[base.Rule]) -> None:
        """Initialize with the rules to run.

        Args:
            rules: Rule instances to run on every cell, in reporting order.
        """
        self.rules: list[base.Rule] = list(rules)
        self._context = cellint_context.ContextAccumulator()

    @property
    def rule_names(self) -> list[str]:
        """Names of the registered rules, in registration order."""
        return [rule.name for rule in self.rules]

    def register_rule(self, rule: base.Rule) -> None:
        """Append *rule* to the rules run on every cell.

        Registering a rule whose name is already present is allowed; both
        instances run.
        """
        self.rules.append(rule)

    def lint_cell(
        self,
        source: str,
        line_offset: int = 0,
        context: base.AnalysisContext | None = None,
        cell_index: int | None = None,
    ) -> CellResult:
        """Run every rule against one cell.

        A rule that raises is logged and skipped; the remaining rules still
        run. Every diagnostic is tagged with the name of the rule that
        produced it, whatever the rule itself put there.

        Args:
            source: Cell text. Anything other than a string is linted as an
                empty cell.
            line_offset: Lines in all earlier cells.
            context: Names defined by earlier cells. Defaults to none.
            cell_index: Index recorded on each diagnostic.

        Returns:
            The cell's diagnostics with suppressions applied, and the names
            the cell makes visible to later cells.
        """
        text = _text(source)
        snapshot = context if context is not None else base.AnalysisContext()
        diagnostics: list[base.Diagnostic] = []
        defined: set[str] = set()

        for rule in self.rules:
            try:
                found = [
                    dataclasses.replace(
                        diag,
                        rule_name=rule.name,
                        cell_index=cell_index,
                        cell_line=diag.line - line_offset,
                    )
                    for diag in rule.check(text, line_offset, snapshot)
                ]
                names = rule.defined_names(text)
            except Exception:
                logger.exception(
                    "Rule %s failed on cell %s", getattr(rule, "name", rule), cell_index
                )
                continue
            diagnostics.extend(found)
            defined.update(names)

        return CellResult(
            diagnostics=_apply_suppressions(diagnostics, text, line_offset),
            defined_names=frozenset(defined),
        )

    def lint_code(self, source: str, line_offset: int = 0) -> list[base.Diagnostic]:
        """Lint *source* as a standalone cell with no earlier context."""
        return self.lint_cell(source, line_offset=line_offset).diagnostics

    def lint_notebook(self, cells: Iterable[SourceCell]) -> list[base.Diagnostic]:
        """Lint cells in notebook order, carrying defined names forward.

        Cells are ordered by ``index``; cells without an integer index keep
        their input position and get a ``cell_index`` no other cell uses.
        Line offsets are recomputed from that order.

        Args:
            cells: The notebook's cells.

        Returns:
            All diagnostics sorted by severity (errors first), then line.
        """
        positioned = _order_cells(cells)
        ordered = assign_line_offsets(cell for _, cell in positioned)

        self._context.reset()
        diagnostics: list[base.Diagnostic] = []
        for (cell_index, _), cell in zip(positioned, ordered, strict=True):
            result = self.lint_cell(
                cell.text,
                line_offset=cell.line_offset,
                context=self._context.snapshot(),
                cell_index=cell_index,
            )
            diagnostics.extend(result.diagnostics)
            self._context.add(result.defined_names)
            logger.debug(
                "Cell %d: %d diagnostics, %d known names",
                cell_index,
                len(result.diagnostics),
                len(self._context),
            )

        return sorted(diagnostics, key=lambda diag: (diag.severity.value, diag.line))

    def get_stats(self, diagnostics: Iterable[base.Diagnostic]) -> Stats:
        """Count *diagnostics* by severity and by rule."""
        diagnostics = list(diagnostics)
        by_severity = {severity.label: 0 for severity in base.Severity}
        by_severity.update(
            collections.Counter(diag.severity.label for diag in diagnostics)
        )
        by_rule = collections.Counter(diag.rule_name for diag in diagnostics)
        return Stats(
            total=len(diagnostics),
            by_severity=by_severity,
            by_rule=dict(by_rule),
        )


def filter_by_severity(
    diagnostics: Iterable[base.Diagnostic],
    min_severity: base.Severity,
) -> list[base.Diagnostic]:
    """Return diagnostics at least as severe as *min_severity*.

    ``Severity.WARNING`` keeps errors and warnings and drops info.
    """
    return [diag for diag in diagnostics if diag.severity.value <= min_severity.value]


def group_by_cell(
    diagnostics: Iterable[base.Diagnostic],
) -> dict[int | None, list[base.Diagnostic]]:
    """Group diagnostics by ``cell_index``, preserving their order."""
    groups: dict[int | None, list[base.Diagnostic]] = {}
    for diag in diagnostics:
        groups.setdefault(diag.cell_index, []).append(diag)
    return groups


def group_by_rule(
    diagnostics: Iterable[base.Diagnostic],
) -> dict[str, list[base.Diagnostic]]:
    """Group diagnostics by rule name, preserving their order."""
    groups: dict[str, list[base.Diagnostic]] = {}
    for diag in diagnostics:
        groups.setdefault(diag.rule_name, []).append(diag)
    return groups
