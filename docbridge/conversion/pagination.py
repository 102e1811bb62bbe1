"""Word wrapping and page splitting for extracted text."""

from __future__ import annotations

from typing import Iterable

TABLE_LINE_PREFIXES = ("|", "+-")


def is_table_line(line: str) -> bool:
    return line.lstrip().startswith(TABLE_LINE_PREFIXES)


def wrap_line(line: str, max_chars: int) -> list[str]:
    """Greedy word wrap of one logical line.

    Table rows are returned untouched, blank lines stay blank, and a single
    word longer than ``max_chars`` is truncated rather than dropped.

    Examples:
        >>> wrap_line("Hello world", 5)
        ['Hello', 'world']
    """

    if max_chars < 1:
        raise ValueError("max_chars must be at least 1")
    if is_table_line(line):
        return [line]
    if not line.strip():
        return [""]

    wrapped: list[str] = []
    current = ""
    for word in line.split():
        word = word[:max_chars]
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_chars:
            current = candidate
        else:
            wrapped.append(current)
            current = word
    if current:
        wrapped.append(current)
    return wrapped


def wrap_lines(lines: Iterable[str], max_chars: int) -> list[str]:
    flat: list[str] = []
    for line in lines:
        flat.extend(wrap_line(line, max_chars))
    return flat


def paginate(
    lines: Iterable[str],
    max_chars: int,
    max_lines: int,
    *,
    label_pages: bool = False,
) -> list[list[str]]:
    """Wrap ``lines`` and split them into pages of at most ``max_lines``.

    With ``label_pages`` a document spanning more than one page gets a
    ``Page i of n`` heading on every page, taken out of the line budget.
    An empty input still yields one (empty) page.
    """

    if max_lines < 1:
        raise ValueError("max_lines must be at least 1")

    flat = wrap_lines(lines, max_chars)
    if not flat:
        return [[]]
    if not label_pages or len(flat) <= max_lines or max_lines < 2:
        return _chunk(flat, max_lines)

    pages = _chunk(flat, max_lines - 1)
    total = len(pages)
    return [[f"Page {number} of {total}", *page] for number, page in enumerate(pages, start=1)]


def _chunk(lines: list[str], size: int) -> list[list[str]]:
    return [lines[start : start + size] for start in range(0, len(lines), size)]


__all__ = ["TABLE_LINE_PREFIXES", "is_table_line", "wrap_line", "wrap_lines", "paginate"]
