"""Lexical helpers shared by the rules.

Rules never parse Python. Instead they scan text that has been passed
through :func:`strip_literals`, which blanks the inside of every string
literal and comment while keeping line breaks and column positions intact,
so regular expressions and bracket counters do not misfire on quoted text.
The expressions inside f-string replacement fields are kept, because they
read names like any other code.
"""

import re
from collections.abc import Iterator

_PREFIX_CHARS: frozenset[str] = frozenset("rRbBfFuU")
_TRIPLE_QUOTES: tuple[str, str] = ('"""', "'''")

_IDENTIFIER_PAT = re.compile(r"\b[A-Za-z_]\w*\b")
_SHELL_PAT = re.compile(r"^\s*!")
_MAGIC_PAT = re.compile(r"^\s*%%?[A-Za-z]")

_OPENERS: frozenset[str] = frozenset("([{")
_CLOSERS: frozenset[str] = frozenset(")]}")


def _is_word_char(char: str) -> bool:
    return char.isalnum() or char == "_"


def _blank_prefix(source: str, out: list[str], quote_at: int) -> str:
    """Blank a string prefix such as ``rb`` that sits right before a quote.

    Returns:
        The prefix that was blanked, or an empty string if there was none.
    """
    start = quote_at
    while (
        start > 0
        and quote_at - start < 2  # noqa: PLR2004
        and source[start - 1] in _PREFIX_CHARS
    ):
        start -= 1
    if start == quote_at:
        return ""
    if start > 0 and _is_word_char(source[start - 1]):
        # Part of a longer identifier (``bar"x"``); not a prefix.
        return ""
    for idx in range(start, quote_at):
        out[idx] = " "
    return source[start:quote_at]


def _scan_replacement_field(
    source: str, out: list[str], start: int, *, single_line: bool
) -> int:
    """Keep the expression of an f-string field and blank everything else.

    The braces, a ``!r`` style conversion, the format spec and the contents
    of strings nested in the expression are blanked.

    Args:
        source: The text being scanned.
        out: Output characters, modified in place.
        start: Index of the field's opening brace.
        single_line: True inside a single-quoted literal, where a line break
            ends the field.

    Returns:
        The index just past the closing brace, or of the line break that cut
        the field short.
    """
    out[start] = " "
    depth = 0
    inner_quote: str | None = None
    spec_depth: int | None = None
    idx = start + 1
    length = len(source)

    while idx < length:
        char = source[idx]
        if char == "\n":
            if single_line:
                return idx
            idx += 1
            continue

        if spec_depth is not None:
            out[idx] = " "
            if char == "{":
                spec_depth += 1
            elif char == "}":
                if spec_depth == 0:
                    return idx + 1
                spec_depth -= 1
        elif inner_quote is not None:
            if char == inner_quote:
                inner_quote = None
            else:
                out[idx] = " "
        elif char in "\"'":
            inner_quote = char
        elif char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            if depth == 0:
                out[idx] = " "
                return idx + 1
            depth -= 1
        elif char in ":!" and depth == 0 and source[idx + 1 : idx + 2] != "=":
            out[idx] = " "
            spec_depth = 0
        idx += 1
    return idx


def _scan(  # noqa: C901, PLR0912
    source: str,
) -> tuple[str, frozenset[int], dict[int, str]]:
    """Blank literal interiors and comments.

    Returns:
        The blanked text, the 0-based indices of lines that begin inside
        a literal spanning several lines, and the text of each comment
        keyed by the 0-based index of its line.
    """
    out = list(source)
    interior: set[int] = set()
    comments: dict[int, str] = {}
    quote: str | None = None
    formatted = False
    line = 0
    idx = 0
    length = len(source)

    while idx < length:
        char = source[idx]

        if quote is None:
            if char == "\n":
                line += 1
            elif char == "#":
                start = idx
                while idx < length and source[idx] != "\n":
                    out[idx] = " "
                    idx += 1
                comments[line] = source[start:idx]
                continue
            elif char in "\"'":
                formatted = "f" in _blank_prefix(source, out, idx).lower()
                triple = source[idx : idx + 3]
                quote = triple if triple in _TRIPLE_QUOTES else char
                idx += len(quote)
                continue
            idx += 1
            continue

        if char == "\\" and idx + 1 < length:
            out[idx] = " "
            if source[idx + 1] == "\n":
                line += 1
                interior.add(line)
            else:
                out[idx + 1] = " "
            idx += 2
            continue

        if source.startswith(quote, idx):
            idx += len(quote)
            quote = None
            continue

        if char == "\n":
            line += 1
            if len(quote) == 1:
                # Single-quoted literals cannot span lines; stop at the break.
                quote = None
            else:
                interior.add(line)
            idx += 1
            continue

        if formatted and char in "{}":
            if source.startswith(char * 2, idx):
                # ``{{`` and ``}}`` are escaped braces, not fields.
                out[idx] = out[idx + 1] = " "
                idx += 2
                continue
            if char == "{":
                end = _scan_replacement_field(
                    source, out, idx, single_line=len(quote) == 1
                )
                for _ in range(source.count("\n", idx, end)):
                    line += 1
                    interior.add(line)
                idx = end
                continue

        out[idx] = " "
        idx += 1

    return "".join(out), frozenset(interior), comments


def strip_literals(source: str) -> str:
    """Return *source* with literal contents and comments replaced by spaces.

    Quote characters are kept so a blanked literal still reads as a value,
    but literal prefixes (``r``, ``f``, ``b``, ``u`` and their two-letter
    combinations) are blanked so they are not mistaken for identifiers.
    In f-strings the expression of each replacement field is kept in place
    while its braces, conversion and format spec are blanked, so
    ``f"{total:>8}"`` still reads ``total``.
    The result has the same length and the same line breaks as the input.

    Args:
        source: Python source, one line or a whole cell.

    Returns:
        The blanked text.
    """
    return _scan(source)[0]


def string_interior_lines(source: str) -> frozenset[int]:
    """Return 0-based indices of lines that start inside a multi-line literal."""
    return _scan(source)[1]


def line_comments(source: str) -> dict[int, str]:
    """Return the comment on each line, keyed by 0-based line index.

    Each value runs from the ``#`` to the end of its line. A ``#`` inside a
    string literal does not start a comment.
    """
    return _scan(source)[2]


def bracket_delta(clean: str) -> int:
    """Return the net number of brackets *clean* leaves open.

    *clean* must already be :func:`strip_literals` output. It is counted as
    is: stripping it again would pair the kept quote characters of a literal
    that closes on this line (``''', con)``) into a new literal and hide
    the brackets after it. A negative result means the line closes brackets
    opened earlier.
    """
    delta = 0
    for char in clean:
        if char in _OPENERS:
            delta += 1
        elif char in _CLOSERS:
            delta -= 1
    return delta


def ends_with_continuation(clean: str) -> bool:
    """Return True if stripped text *clean* ends with a backslash."""
    return clean.rstrip().endswith("\\")


def is_shell_command(line: str) -> bool:
    """Return True for ``!command`` lines."""
    return _SHELL_PAT.match(line) is not None


def is_magic_command(line: str) -> bool:
    """Return True for ``%magic`` and ``%%magic`` lines."""
    return _MAGIC_PAT.match(line) is not None


def is_directive(line: str) -> bool:
    """Return True for lines that are notebook directives rather than Python."""
    return is_shell_command(line) or is_magic_command(line)


def is_cell_magic(source: str) -> bool:
    """Return True if the first non-blank line of *source* is a ``%%`` magic."""
    for line in source.split("\n"):
        stripped = line.strip()
        if stripped:
            return stripped.startswith("%%")
    return False


def identifiers(line: str) -> Iterator[tuple[str, int]]:
    """Yield ``(name, start)`` for every identifier-shaped token on *line*."""
    for match in _IDENTIFIER_PAT.finditer(line):
        yield match.group(0), match.start()


def indent_width(line: str, tab_width: int = 4) -> int:
    """Return the width of the leading whitespace, with tabs expanded."""
    leading = line[: len(line) - len(line.lstrip(" \t"))]
    return len(leading.replace("\t", " " * tab_width))
