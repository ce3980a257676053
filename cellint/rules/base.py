"""Base abstractions for cellint rules."""

import dataclasses
import enum
from abc import ABC, abstractmethod
from typing import ClassVar


class Severity(enum.Enum):
    """Diagnostic severity; the value doubles as the sort rank."""

    ERROR = 1
    WARNING = 2
    INFO = 3

    @property
    def label(self) -> str:
        """Lowercase name used in reports and in the wire format."""
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "Severity":
        """Parse a severity label such as ``"warning"``.

        Args:
            label: Severity name, case-insensitive.

        Returns:
            The matching Severity.

        Raises:
            ValueError: If *label* names no severity.
        """
        try:
            return cls[label.strip().upper()]
        except KeyError:
            valid = ", ".join(member.label for member in cls)
            msg = f"Unknown severity {label!r}; expected one of {valid}"
            raise ValueError(msg) from None


@dataclasses.dataclass(frozen=True)
class Diagnostic:
    """A single diagnostic emitted by a rule.

    ``line`` is notebook-global. ``cell_index`` and ``cell_line`` are filled
    in by the engine once it knows which cell the diagnostic belongs to.
    """

    rule_name: str
    message: str
    line: int  # 1-indexed
    severity: Severity
    column: int | None = None  # 1-indexed
    cell_index: int | None = None
    cell_line: int | None = None

    def to_dict(self) -> dict[str, object]:
        """Return the JSON-ready form shared with other lint engines."""
        return {
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "severity": self.severity.label,
            "rule": self.rule_name,
            "cellIndex": self.cell_index,
            "cellLine": self.cell_line,
        }


@dataclasses.dataclass(frozen=True)
class AnalysisContext:
    """Names made visible by earlier cells of the same notebook run."""

    defined_names: frozenset[str] = frozenset()


class DefinitionKind(enum.Enum):
    """What introduced a name inside a cell."""

    ASSIGNMENT = "assignment"
    FUNCTION = "function"
    CLASS = "class"


@dataclasses.dataclass(frozen=True)
class Definition:
    """A name bound at a cell-local line, tracked while a rule runs."""

    name: str
    line: int
    kind: DefinitionKind
    is_async: bool = False

    @property
    def label(self) -> str:
        """Human-readable kind, e.g. ``"async function"``."""
        if self.is_async:
            return f"async {self.kind.value}"
        return self.kind.value


class Rule(ABC):
    """Abstract base class for all cellint rules."""

    name: ClassVar[str]

    @abstractmethod
    def check(
        self,
        source: str,
        line_offset: int,
        context: AnalysisContext,
    ) -> list[Diagnostic]:
        """Analyze one cell and return any diagnostics.

        Args:
            source: The raw text of the cell.
            line_offset: Number of notebook lines before this cell; added to
                every cell-local line number.
            context: Names defined by earlier cells.

        Returns:
            A list of Diagnostic instances with notebook-global line numbers.
        """

    def defined_names(self, source: str) -> frozenset[str]:  # noqa: ARG002
        """Return names this cell makes visible to later cells.

        Most rules do not track definitions and keep the empty default.
        """
        return frozenset()

    def configure(self, options: dict[str, int | str | bool]) -> "Rule":  # noqa: ARG002
        """Return a rule with *options* applied; the default ignores them."""
        return self
