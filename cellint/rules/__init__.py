"""All cellint rules."""

from cellint.rules import base, definitions, functions, imports, names, structure


def default_rules() -> list[base.Rule]:
    """Return fresh instances of every built-in rule, in reporting order."""
    return [
        names.UndefinedVariables(),
        names.CapitalizationTypos(),
        definitions.DuplicateFunctions(),
        structure.EmptyCells(),
        imports.ImportIssues(),
        structure.IndentationErrors(),
        functions.MissingReturn(),
        definitions.RedefinedVariables(),
        structure.UnclosedBrackets(),
    ]


__all__ = ["default_rules"]
