"""Text extraction and PDF synthesis."""

from __future__ import annotations

from .detection import detect_document_type, is_pdf
from .extractors import DocxExtractor, FormatError, SpreadsheetExtractor, extractor_for, render_table
from .fallback import MINIMAL_PDF, FallbackPdfFactory
from .models import DocumentType, ExtractedDocument
from .pagination import paginate, wrap_line, wrap_lines
from .pdf import AssemblyError, PageGeometry, PdfAssembler, PdfDocument, PdfObject

__all__ = [
    "AssemblyError",
    "DocumentType",
    "DocxExtractor",
    "ExtractedDocument",
    "FallbackPdfFactory",
    "FormatError",
    "MINIMAL_PDF",
    "PageGeometry",
    "PdfAssembler",
    "PdfDocument",
    "PdfObject",
    "SpreadsheetExtractor",
    "detect_document_type",
    "extractor_for",
    "is_pdf",
    "paginate",
    "render_table",
    "wrap_line",
    "wrap_lines",
]
