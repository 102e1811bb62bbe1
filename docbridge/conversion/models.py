"""Data structures passed between extraction, pagination and PDF assembly."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DocumentType(str, Enum):
    PDF = "pdf"
    DOCX = "docx"
    EXCEL = "excel"
    CSV = "csv"
    UNKNOWN = "unknown"

    @property
    def is_tabular(self) -> bool:
        return self in (DocumentType.EXCEL, DocumentType.CSV)


@dataclass(slots=True)
class ExtractedDocument:
    """Plain-text lines recovered from a source document.

    ``line_width_hint`` is the widest fixed-width line the extractor produced
    (tables only); the renderer uses it to shrink the font so rows are not
    clipped. ``title`` is printed above the content on the first page.
    """

    lines: list[str] = field(default_factory=list)
    line_width_hint: int | None = None
    title: str | None = None

    def display_lines(self) -> list[str]:
        if not self.title:
            return list(self.lines)
        return [self.title, "", *self.lines]


__all__ = ["DocumentType", "ExtractedDocument"]
