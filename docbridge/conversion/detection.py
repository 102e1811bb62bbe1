"""File type detection from names and magic bytes."""

from __future__ import annotations

from pathlib import PurePosixPath

from .models import DocumentType

PDF_SIGNATURE = b"%PDF"

_EXTENSIONS: dict[str, DocumentType] = {
    ".pdf": DocumentType.PDF,
    ".docx": DocumentType.DOCX,
    ".doc": DocumentType.DOCX,
    ".xlsx": DocumentType.EXCEL,
    ".xls": DocumentType.EXCEL,
    ".csv": DocumentType.CSV,
}


def is_pdf(data: bytes | None) -> bool:
    """Return ``True`` when ``data`` carries the PDF signature."""

    return bool(data) and data.lstrip(b"\x00\t\r\n ")[:4] == PDF_SIGNATURE


def detect_document_type(filename: str, data: bytes | None = None) -> DocumentType:
    """Classify a document by extension; PDF bytes always win."""

    if data is not None and is_pdf(data):
        return DocumentType.PDF
    suffix = PurePosixPath(filename.strip()).suffix.lower()
    return _EXTENSIONS.get(suffix, DocumentType.UNKNOWN)


__all__ = ["PDF_SIGNATURE", "detect_document_type", "is_pdf"]
