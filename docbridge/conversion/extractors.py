"""Recover plain text and fixed-width tables from office documents."""

from __future__ import annotations

import csv
import io
import re
import zipfile
from typing import Any, Protocol, Sequence

import polars as pl
from loguru import logger

from .models import DocumentType, ExtractedDocument

DOCX_BODY_PART = "word/document.xml"

CELL_WIDTH = 20
MAX_CELL_CHARS = 18
TRUNCATED_CELL_CHARS = 15

_MARKUP = re.compile(
    r"<w:t(?:\s[^>]*)?>(?P<text>[^<]*)</w:t>"
    r"|(?P<paragraph><w:p(?:\s[^>]*)?>)"
    r"|(?P<newline><w:(?:br|cr)(?:\s[^>]*)?/?>)"
    r"|(?P<tab><w:tab(?:\s[^>]*)?/>)"
)
_ANY_TAG = re.compile(r"<[^>]+>")
_ENTITY = re.compile(r"&(lt|gt|amp|quot|apos);")
_ENTITIES = {"lt": "<", "gt": ">", "amp": "&", "quot": '"', "apos": "'"}
_HORIZONTAL_SPACE = re.compile(r"[ \t\f\v]+")
_BLANK_RUN = re.compile(r"\n{3,}")
_LINE_BREAKS = re.compile(r"[\r\n]+")


class FormatError(RuntimeError):
    """Raised when a document cannot be parsed into text."""


class TextExtractor(Protocol):
    def extract(self, data: bytes, filename: str = "") -> ExtractedDocument:
        """Return the text content of ``data``."""


def decode_entities(text: str) -> str:
    """Decode the five predefined XML entities in a single pass."""

    return _ENTITY.sub(lambda match: _ENTITIES[match.group(1)], text)


class DocxExtractor:
    """Pull paragraph text out of the main part of a DOCX package."""

    def __init__(self, *, min_chars: int = 50) -> None:
        self.min_chars = max(min_chars, 0)

    def extract(self, data: bytes, filename: str = "") -> ExtractedDocument:
        xml = _read_document_part(data)
        text = _paragraph_text(xml)
        if len(text) < self.min_chars:
            crude = _stripped_text(xml)
            logger.debug(
                "DOCX paragraph pass yielded {} chars (< {}); tag stripping yielded {}",
                len(text),
                self.min_chars,
                len(crude),
            )
            if len(crude) > len(text):
                text = crude
        if not text:
            raise FormatError("No text content found in DOCX file")
        return ExtractedDocument(lines=text.split("\n"), title=None)


def _read_document_part(data: bytes) -> str:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            raw = archive.read(DOCX_BODY_PART)
    except zipfile.BadZipFile as exc:
        raise FormatError("Invalid DOCX file format: not a ZIP archive") from exc
    except KeyError as exc:
        raise FormatError(f"Could not find {DOCX_BODY_PART} in DOCX file") from exc
    return raw.decode("utf-8", errors="replace")


def _paragraph_text(xml: str) -> str:
    pieces: list[str] = []
    for match in _MARKUP.finditer(xml):
        if match.group("text") is not None:
            pieces.append(match.group("text"))
        elif match.group("tab"):
            pieces.append(" ")
        else:
            pieces.append("\n")
    text = decode_entities("".join(pieces))

    lines = [_HORIZONTAL_SPACE.sub(" ", line).strip() for line in text.split("\n")]
    return _BLANK_RUN.sub("\n\n", "\n".join(lines)).strip("\n")


def _stripped_text(xml: str) -> str:
    text = _ANY_TAG.sub(" ", xml)
    return " ".join(decode_entities(text).split())


# ----------------------------------------------------------------------
# Spreadsheets


def format_cell(value: Any) -> str:
    text = "" if value is None else _LINE_BREAKS.sub(" ", str(value)).strip()
    if len(text) > MAX_CELL_CHARS:
        text = text[:TRUNCATED_CELL_CHARS] + "..."
    return text.ljust(CELL_WIDTH)


def table_separator(columns: int) -> str:
    return "+-" + "+-".join("-" * CELL_WIDTH for _ in range(columns)) + "+"


def render_table(rows: Sequence[Sequence[Any]], *, max_columns: int = 6) -> list[str]:
    """Render ``rows`` as fixed-width text; the first row is the header."""

    if not rows:
        return []
    columns = min(max(len(row) for row in rows), max_columns)
    separator = table_separator(columns)
    lines: list[str] = []
    for index, row in enumerate(rows):
        cells = [format_cell(row[column] if column < len(row) else None) for column in range(columns)]
        lines.append("| " + "| ".join(cells) + "|")
        if index == 0:
            lines.append(separator)
    if len(rows) > 1:
        lines.append(separator)
    return lines


class SpreadsheetExtractor:
    """Render CSV and Excel workbooks as fixed-width text tables."""

    def __init__(self, *, max_columns: int = 6, delimited: bool = False) -> None:
        if max_columns < 1:
            raise ValueError("max_columns must be at least 1")
        self.max_columns = max_columns
        self.delimited = delimited

    def extract(self, data: bytes, filename: str = "") -> ExtractedDocument:
        sheets = self.read_sheets(data, filename)
        populated = [(name, rows) for name, rows in sheets if rows]
        if not populated:
            raise FormatError("No data found in file")

        lines: list[str] = []
        width = 0
        for name, rows in populated:
            table = render_table(rows, max_columns=self.max_columns)
            width = max(width, max(len(line) for line in table))
            if len(populated) > 1:
                if lines:
                    lines.append("")
                lines.extend([f"=== Sheet: {name} ===", ""])
            lines.extend(table)

        logger.debug("Rendered {} sheet(s) from {} into {} lines", len(populated), filename or "<bytes>", len(lines))
        return ExtractedDocument(
            lines=lines,
            line_width_hint=width,
            title=f"Excel/CSV Table: {filename or 'Converted File'}",
        )

    def read_sheets(self, data: bytes, filename: str = "") -> list[tuple[str, list[tuple[Any, ...]]]]:
        if not data:
            raise FormatError("No data found in file")
        if self.delimited or filename.lower().endswith(".csv"):
            return [("Sheet1", self._read_csv(data))]
        return self._read_workbook(data)

    def _read_csv(self, data: bytes) -> list[tuple[Any, ...]]:
        # polars sizes the frame from the first line; size it from the widest row instead
        width = _delimited_width(data)
        if width == 0:
            raise FormatError("No data found in file")
        try:
            frame = pl.read_csv(
                io.BytesIO(data),
                has_header=False,
                schema={f"column_{index}": pl.String for index in range(1, width + 1)},
                truncate_ragged_lines=True,
                encoding="utf8-lossy",
            )
        except pl.exceptions.NoDataError as exc:
            raise FormatError("No data found in file") from exc
        except pl.exceptions.PolarsError as exc:
            raise FormatError(f"Could not parse CSV data: {exc}") from exc
        return _non_blank_rows(frame)

    def _read_workbook(self, data: bytes) -> list[tuple[str, list[tuple[Any, ...]]]]:
        try:
            workbook = pl.read_excel(
                io.BytesIO(data),
                sheet_id=0,
                has_header=False,
                raise_if_empty=False,
            )
        except Exception as exc:  # fastexcel raises its own hierarchy
            raise FormatError(f"Could not read workbook: {exc}") from exc
        return [(name, _non_blank_rows(frame)) for name, frame in workbook.items()]


def _delimited_width(data: bytes) -> int:
    text = data.decode("utf-8", errors="replace")
    return max((len(row) for row in csv.reader(io.StringIO(text, newline=""))), default=0)


def _non_blank_rows(frame: pl.DataFrame) -> list[tuple[Any, ...]]:
    if frame.width == 0:
        return []
    frame = frame.select(pl.all().cast(pl.String))
    return [row for row in frame.rows() if any(cell not in (None, "") for cell in row)]


def extractor_for(
    document_type: DocumentType,
    *,
    max_columns: int = 6,
    min_docx_chars: int = 50,
) -> TextExtractor:
    if document_type is DocumentType.DOCX:
        return DocxExtractor(min_chars=min_docx_chars)
    if document_type.is_tabular:
        return SpreadsheetExtractor(
            max_columns=max_columns,
            delimited=document_type is DocumentType.CSV,
        )
    raise FormatError(f"Unsupported file type: {document_type.value}")


__all__ = [
    "FormatError",
    "TextExtractor",
    "DocxExtractor",
    "SpreadsheetExtractor",
    "decode_entities",
    "extractor_for",
    "format_cell",
    "render_table",
    "table_separator",
]
