"""Load cellint configuration from pyproject.toml."""

from __future__ import annotations

import dataclasses
import logging
import pathlib
import tomllib
import typing

from cellint.rules import base

if typing.TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Config:
    """Resolved cellint configuration.

    Attributes:
        select: Rule names to run. ``None`` means all registered rules are active.
        ignore: Rule names to exclude from the active set.
        min_severity: Least severe level still reported.
        rule_options: Per-rule option overrides keyed by rule name.
    """

    select: frozenset[str] | None = None
    ignore: frozenset[str] = frozenset()
    min_severity: base.Severity = base.Severity.INFO
    rule_options: dict[str, dict[str, int | str | bool]] = dataclasses.field(
        default_factory=dict, hash=False
    )


def _find_pyproject(start: pathlib.Path) -> pathlib.Path | None:
    """Walk up from *start* to find the nearest pyproject.toml."""
    for directory in [start, *start.parents]:
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def _rule_set(raw: Iterable[str]) -> frozenset[str]:
    return frozenset(name.strip().lower() for name in raw)


def _min_severity(raw: object) -> base.Severity:
    if not isinstance(raw, str):
        return base.Severity.INFO
    try:
        return base.Severity.from_label(raw)
    except ValueError:
        logger.warning("Ignoring invalid min_severity %r", raw)
        return base.Severity.INFO


def load_config(start: pathlib.Path | None = None) -> Config:
    """Return the Config from the nearest pyproject.toml, or defaults.

    Reads ``[tool.cellint]`` from the first ``pyproject.toml`` found by
    walking up from *start* (defaults to ``Path.cwd()``). Returns a
    default Config (all rules active, none ignored, every severity shown)
    if no file is found, the file cannot be read, or the section is absent.

    Args:
        start: Directory to begin the upward search. Defaults to cwd.

    Returns:
        A Config reflecting ``select``, ``ignore``, ``min_severity`` and
        ``rules`` tables, if present.
    """
    search_root = start if start is not None else pathlib.Path.cwd()
    pyproject = _find_pyproject(search_root)
    if pyproject is None:
        return Config()

    try:
        with pyproject.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Could not read %s: %s", pyproject, e)
        return Config()

    section = data.get("tool", {}).get("cellint", {})
    select_raw: list[str] | None = section.get("select")
    ignore_raw: list[str] = section.get("ignore", [])
    rules_raw: dict[str, object] = section.get("rules", {})

    rule_options: dict[str, dict[str, int | str | bool]] = {
        rule_name.lower(): {
            opt_key: opt_val
            for opt_key, opt_val in opts.items()
            if isinstance(opt_val, int | str | bool)
        }
        for rule_name, opts in rules_raw.items()
        if isinstance(opts, dict)
    }
    return Config(
        select=_rule_set(select_raw) if select_raw is not None else None,
        ignore=_rule_set(ignore_raw),
        min_severity=_min_severity(section.get("min_severity")),
        rule_options=rule_options,
    )


def configure_rules(
    active_rules: list[base.Rule],
    config: Config,
) -> list[base.Rule]:
    """Return rules with per-rule options from config applied.

    For each rule whose name appears in ``config.rule_options``, calls
    ``rule.configure(opts)`` and uses the returned instance. Rules with no
    matching options are returned unchanged.

    Args:
        active_rules: The filtered list of rules to configure.
        config: The active configuration.

    Returns:
        List of rules with options applied, preserving order.
    """
    result: list[base.Rule] = []
    for rule in active_rules:
        opts = config.rule_options.get(rule.name, {})
        result.append(rule.configure(opts) if opts else rule)
    return result


def filter_rules(
    all_rules: list[base.Rule],
    config: Config,
) -> list[base.Rule]:
    """Return the subset of *all_rules* allowed by *config*.

    ``select`` is applied first (restricting to that set), then ``ignore``
    removes any listed names.

    Args:
        all_rules: Full list of available rule instances.
        config: The active configuration.

    Returns:
        Filtered list preserving the input order.
    """
    active = all_rules
    if config.select is not None:
        active = [rule for rule in active if rule.name in config.select]
    if config.ignore:
        active = [rule for rule in active if rule.name not in config.ignore]
    return active
