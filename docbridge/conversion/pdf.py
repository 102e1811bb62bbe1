"""Minimal PDF 1.4 writer for text-only pages.

Objects are laid out as catalog (1), page tree (2) and then one page /
content-stream pair per page (3/4, 5/6, ...). Every page carries its own
Type1 font resource so the writer never needs shared resource objects.

The file is produced in two passes: :meth:`PdfDocument.layout` serialises
each object once and records the offset it will occupy, and
:meth:`PdfDocument.to_bytes` concatenates them while checking each object
lands exactly where the cross-reference table says it does.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Sequence

from loguru import logger

if TYPE_CHECKING:
    from docbridge.config.conversion import LayoutConfig

PDF_HEADER = b"%PDF-1.4\n"
PDF_TRAILER_END = b"%%EOF\n"
CATALOG_ID = 1
PAGES_ID = 2
FONT_ALIAS = "F1"
MIN_FONT_SIZE = 5.0

# Courier advances 0.6 em per glyph; Helvetica averages a little less.
_CHAR_WIDTH_EM = {"Courier": 0.6, "Helvetica": 0.5}

_STREAM_PATTERN = re.compile(rb"^<<\n/Length (\d+)\n>>\nstream\n(.*)\nendstream$", re.DOTALL)


class AssemblyError(RuntimeError):
    """Raised when the serialised document would violate the PDF structure."""


def format_number(value: float) -> str:
    """Render a coordinate without a trailing ``.0`` or float noise."""

    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")


def sanitize_text(text: str, max_chars: int) -> str:
    """Keep printable ASCII (plus CR/LF) and cap the length."""

    text = text.replace("\t", "    ")
    cleaned = "".join(ch if " " <= ch <= "~" or ch in "\r\n" else " " for ch in text)
    return cleaned[:max_chars]


def escape_text(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace("(", "\\(")
        .replace(")", "\\)")
        .replace("\r", "\\r")
        .replace("\n", "\\n")
    )


@dataclass(frozen=True, slots=True)
class PageGeometry:
    width: float = 595.28
    height: float = 841.89
    margin: float = 50
    font_size: float = 12
    line_height: float = 14
    max_chars: int = 75
    font: str = "Helvetica"

    def __post_init__(self) -> None:
        if self.max_chars < 1:
            raise ValueError("max_chars must be at least 1")
        if self.line_height <= 0 or self.font_size <= 0:
            raise ValueError("font_size and line_height must be positive")
        if self.height - 2 * self.margin < self.line_height:
            raise ValueError("Margins leave no room for a single line of text")

    @classmethod
    def from_layout(cls, layout: "LayoutConfig") -> "PageGeometry":
        return cls(
            width=layout.page_width,
            height=layout.page_height,
            margin=layout.margin,
            font_size=layout.font_size,
            line_height=layout.line_height,
            max_chars=layout.max_chars_per_line,
            font=layout.font,
        )

    @property
    def lines_per_page(self) -> int:
        return max(1, int((self.height - 2 * self.margin) // self.line_height))

    @property
    def text_origin(self) -> tuple[float, float]:
        return self.margin, self.height - self.margin - self.font_size

    def fit_width(self, chars: int | None) -> "PageGeometry":
        """Shrink the font so ``chars`` columns fit the printable width.

        Returns ``self`` unchanged when the lines already fit or when the
        font would drop below :data:`MIN_FONT_SIZE`.
        """

        if not chars or chars <= self.max_chars:
            return self
        printable = self.width - 2 * self.margin
        em = _CHAR_WIDTH_EM.get(self.font, 0.6)
        font_size = min(self.font_size, math.floor(printable / (chars * em) * 100) / 100)
        if font_size < MIN_FONT_SIZE:
            logger.debug("Lines of {} chars cannot fit at >= {}pt; keeping layout", chars, MIN_FONT_SIZE)
            return self
        scale = font_size / self.font_size
        return replace(
            self,
            font_size=font_size,
            line_height=round(self.line_height * scale, 2),
            max_chars=chars,
        )


@dataclass(slots=True)
class PdfObject:
    id: int
    body: bytes
    byte_offset: int = -1

    def serialise(self) -> bytes:
        return f"{self.id} 0 obj\n".encode("ascii") + self.body + b"\nendobj\n"


def dictionary(*entries: str) -> bytes:
    return ("<<\n" + "".join(f"{entry}\n" for entry in entries) + ">>").encode("ascii")


def stream(content: bytes) -> bytes:
    return f"<<\n/Length {len(content)}\n>>\nstream\n".encode("ascii") + content + b"\nendstream"


@dataclass(slots=True)
class PdfDocument:
    objects: list[PdfObject] = field(default_factory=list)
    trailer_root_id: int = CATALOG_ID

    def layout(self) -> int:
        """Assign every object its byte offset; return the xref offset."""

        offset = len(PDF_HEADER)
        for obj in self.objects:
            obj.byte_offset = offset
            offset += len(obj.serialise())
        return offset

    def to_bytes(self) -> bytes:
        self._check_structure()
        xref_offset = self.layout()

        buffer = bytearray(PDF_HEADER)
        for obj in self.objects:
            if len(buffer) != obj.byte_offset:
                raise AssemblyError(
                    f"Object {obj.id} written at byte {len(buffer)}, expected {obj.byte_offset}"
                )
            buffer += obj.serialise()
        if len(buffer) != xref_offset:
            raise AssemblyError(f"xref written at byte {len(buffer)}, expected {xref_offset}")

        size = len(self.objects) + 1
        buffer += f"xref\n0 {size}\n".encode("ascii")
        buffer += b"0000000000 65535 f \n"
        for obj in self.objects:
            buffer += f"{obj.byte_offset:010d} 00000 n \n".encode("ascii")
        buffer += (
            f"trailer\n<<\n/Size {size}\n/Root {self.trailer_root_id} 0 R\n>>\n"
            f"startxref\n{xref_offset}\n"
        ).encode("ascii")
        buffer += PDF_TRAILER_END
        return bytes(buffer)

    def _check_structure(self) -> None:
        ids = [obj.id for obj in self.objects]
        if ids != list(range(1, len(ids) + 1)):
            raise AssemblyError(f"Object ids must be sequential from 1, got {ids}")
        if self.trailer_root_id != CATALOG_ID:
            raise AssemblyError("Trailer /Root must reference the catalog (object 1)")
        for obj in self.objects:
            match = _STREAM_PATTERN.match(obj.body)
            if match and int(match.group(1)) != len(match.group(2)):
                raise AssemblyError(
                    f"Object {obj.id} declares /Length {match.group(1)} but holds {len(match.group(2))} bytes"
                )


class PdfAssembler:
    """Turn paginated lines into PDF bytes using one :class:`PageGeometry`."""

    def __init__(self, geometry: PageGeometry | None = None) -> None:
        self.geometry = geometry or PageGeometry()

    def build(self, pages: Sequence[Sequence[str]]) -> PdfDocument:
        pages = list(pages) or [[]]
        page_ids = [3 + 2 * index for index in range(len(pages))]
        kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)

        objects = [
            PdfObject(CATALOG_ID, dictionary("/Type /Catalog", f"/Pages {PAGES_ID} 0 R")),
            PdfObject(PAGES_ID, dictionary("/Type /Pages", f"/Kids [{kids}]", f"/Count {len(pages)}")),
        ]
        for page_id, lines in zip(page_ids, pages):
            objects.append(PdfObject(page_id, self._page_dictionary(page_id + 1)))
            objects.append(PdfObject(page_id + 1, stream(self.content_stream(lines))))
        return PdfDocument(objects=objects, trailer_root_id=CATALOG_ID)

    def assemble(self, pages: Sequence[Sequence[str]]) -> bytes:
        document = self.build(pages)
        data = document.to_bytes()
        logger.debug(
            "Assembled PDF: {} page(s), {} objects, {} bytes",
            max(len(pages), 1),
            len(document.objects),
            len(data),
        )
        return data

    def content_stream(self, lines: Sequence[str]) -> bytes:
        geometry = self.geometry
        x, y = geometry.text_origin
        parts = [
            "BT",
            f"/{FONT_ALIAS} {format_number(geometry.font_size)} Tf",
            f"{format_number(x)} {format_number(y)} Td",
        ]
        step = f"0 -{format_number(geometry.line_height)} Td"
        for line in lines:
            parts.append(f"({escape_text(sanitize_text(line, geometry.max_chars))}) Tj")
            parts.append(step)
        parts.append("ET")
        return "\n".join(parts).encode("ascii")

    def _page_dictionary(self, contents_id: int) -> bytes:
        geometry = self.geometry
        return dictionary(
            "/Type /Page",
            f"/Parent {PAGES_ID} 0 R",
            f"/MediaBox [0 0 {format_number(geometry.width)} {format_number(geometry.height)}]",
            "/Resources <<",
            "/Font <<",
            f"/{FONT_ALIAS} <<",
            "/Type /Font",
            "/Subtype /Type1",
            f"/BaseFont /{geometry.font}",
            ">>",
            ">>",
            ">>",
            f"/Contents {contents_id} 0 R",
        )


__all__ = [
    "AssemblyError",
    "PageGeometry",
    "PdfAssembler",
    "PdfDocument",
    "PdfObject",
    "escape_text",
    "format_number",
    "sanitize_text",
]
