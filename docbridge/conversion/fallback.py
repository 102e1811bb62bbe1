"""Diagnostic PDFs returned when a document cannot be converted."""

from __future__ import annotations

from loguru import logger

from .models import DocumentType
from .pagination import paginate
from .pdf import PageGeometry, PdfAssembler

# Hand-written single page document, used only when the assembler itself
# fails. Offsets in the xref table are the exact byte positions of each object.
MINIMAL_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj\n<<\n/Type /Catalog\n/Pages 2 0 R\n>>\nendobj\n"
    b"2 0 obj\n<<\n/Type /Pages\n/Kids [3 0 R]\n/Count 1\n>>\nendobj\n"
    b"3 0 obj\n<<\n/Type /Page\n/Parent 2 0 R\n/MediaBox [0 0 595.28 841.89]\n"
    b"/Resources <<\n/Font <<\n/F1 <<\n/Type /Font\n/Subtype /Type1\n/BaseFont /Helvetica\n>>\n>>\n>>\n"
    b"/Contents 4 0 R\n>>\nendobj\n"
    b"4 0 obj\n<<\n/Length 57\n>>\nstream\n"
    b"BT\n/F1 12 Tf\n50 750 Td\n(Document Conversion Failed) Tj\nET"
    b"\nendstream\nendobj\n"
    b"xref\n0 5\n"
    b"0000000000 65535 f \n"
    b"0000000009 00000 n \n"
    b"0000000058 00000 n \n"
    b"0000000115 00000 n \n"
    b"0000000296 00000 n \n"
    b"trailer\n<<\n/Size 5\n/Root 1 0 R\n>>\n"
    b"startxref\n403\n"
    b"%%EOF\n"
)

_CAUSES: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.DOCX: (
        "Complex formatting or embedded objects",
        "Password-protected files",
        "Corrupted documents",
    ),
    DocumentType.EXCEL: (
        "Complex Excel formulas",
        "Large files with many columns",
        "Corrupted spreadsheet files",
        "Unsupported Excel features",
    ),
    DocumentType.CSV: (
        "Unusual delimiters or quoting",
        "Files that are not valid text",
        "Empty files",
    ),
}
_DEFAULT_CAUSES = ("Unsupported file type", "Corrupted or incomplete file")

_REMEDIES: dict[DocumentType, tuple[str, ...]] = {
    DocumentType.DOCX: (
        "Converting the document to PDF manually",
        "Using simpler formatting",
        "Checking the original file opens correctly",
    ),
    DocumentType.EXCEL: (
        "Converting the workbook to PDF manually",
        "Using a simpler Excel/CSV format",
        "Reducing the file size",
        "Checking the original file opens correctly",
    ),
}
_DEFAULT_REMEDIES = (
    "Converting the file to PDF manually",
    "Checking the original file opens correctly",
)


class FallbackPdfFactory:
    """Build a readable PDF explaining why conversion did not succeed."""

    def __init__(self, geometry: PageGeometry | None = None) -> None:
        self.geometry = geometry or PageGeometry()

    def describe(
        self,
        error_message: str,
        filename: str = "",
        document_type: DocumentType | None = None,
    ) -> list[str]:
        kind = document_type or DocumentType.UNKNOWN
        causes = _CAUSES.get(kind, _DEFAULT_CAUSES)
        remedies = _REMEDIES.get(kind, _REMEDIES[DocumentType.EXCEL] if kind.is_tabular else _DEFAULT_REMEDIES)

        lines = [
            "Document Conversion Failed",
            "",
            f"File: {filename or 'Unknown file'}",
            f"Type: {kind.value.upper()}",
            f"Error: {error_message or 'Unknown error'}",
            "",
            "The document could not be converted to PDF for viewing.",
            "",
            "This may happen with:",
            *(f"- {cause}" for cause in causes),
            "",
            "Please try:",
            *(f"- {remedy}" for remedy in remedies),
        ]
        return lines

    def create(
        self,
        error_message: str,
        filename: str = "",
        document_type: DocumentType | None = None,
    ) -> bytes:
        lines = self.describe(error_message, filename, document_type)
        try:
            pages = paginate(lines, self.geometry.max_chars, self.geometry.lines_per_page)
            return PdfAssembler(self.geometry).assemble(pages)
        except Exception as exc:
            logger.error("Diagnostic PDF assembly failed ({}); returning minimal PDF", exc)
            return MINIMAL_PDF


__all__ = ["FallbackPdfFactory", "MINIMAL_PDF"]
