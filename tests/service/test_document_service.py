from __future__ import annotations

import pytest

from docbridge.config import ConversionConfig
from docbridge.conversion import DocumentType
from docbridge.service import DocumentService
from docbridge.storage import AllStrategiesFailedError, AuthError, ProgressEvent, RetrievalCoordinator
from tests.utils import SAMPLE_PDF, FakeTransport, error, make_app_config, make_docx, make_xlsx, ok, parse_xref

PARAGRAPH = "Quarterly revenue grew in every region, driven by strong demand for widgets."


@pytest.fixture()
def service() -> DocumentService:
    return DocumentService(conversion=ConversionConfig())


def _service_with(transport: FakeTransport, *, key: str = "reports/Quarterly Report (Q3).docx") -> DocumentService:
    return DocumentService.from_config(make_app_config(key=key), transport=transport, sleep=lambda _: None)


def test_pdf_bytes_pass_through_unchanged(service: DocumentService) -> None:
    result = service.convert_bytes(SAMPLE_PDF, "paper.pdf")

    assert result.pdf is SAMPLE_PDF
    assert result.document_type is DocumentType.PDF
    assert result.converted is False
    assert result.diagnostic is False


def test_pdf_extension_with_bad_bytes_yields_diagnostic(service: DocumentService) -> None:
    result = service.convert_bytes(b"<html>not a pdf</html>", "paper.pdf")

    assert result.diagnostic is True
    assert b"Downloaded file is not a valid PDF" in result.pdf


def test_docx_is_converted(service: DocumentService) -> None:
    result = service.convert_bytes(make_docx([PARAGRAPH, "Outlook remains positive."]), "report.docx")

    assert result.converted is True
    assert result.diagnostic is False
    assert result.document_type is DocumentType.DOCX
    assert b"(Outlook remains positive.) Tj" in result.pdf
    assert b"/BaseFont /Helvetica" in result.pdf
    parse_xref(result.pdf)


def test_spreadsheet_uses_landscape_courier_layout(service: DocumentService) -> None:
    data = make_xlsx({"Sheet1": [["Region", "Total"], ["North", "10"]]})

    result = service.convert_bytes(data, "totals.xlsx")

    assert result.diagnostic is False
    assert b"/MediaBox [0 0 842 595]" in result.pdf
    assert b"/BaseFont /Courier" in result.pdf
    assert b"(Excel/CSV Table: totals.xlsx) Tj" in result.pdf


def test_long_csv_gets_page_labels(service: DocumentService) -> None:
    rows = "\n".join(f"item{index},{index}" for index in range(110))
    result = service.convert_bytes(f"name,qty\n{rows}\n".encode(), "items.csv")

    assert b"(Page 1 of 3) Tj" in result.pdf
    assert b"/Count 3" in result.pdf


def test_empty_docx_yields_single_page_diagnostic(service: DocumentService) -> None:
    result = service.convert_bytes(make_docx([]), "empty.docx")

    assert result.diagnostic is True
    assert result.converted is True
    assert b"/Count 1" in result.pdf
    assert b"(Document Conversion Failed) Tj" in result.pdf


def test_unknown_type_yields_diagnostic(service: DocumentService) -> None:
    result = service.convert_bytes(b"plain text", "notes.txt")

    assert result.diagnostic is True
    assert result.document_type is DocumentType.UNKNOWN
    assert b"Unsupported file type" in result.pdf


def test_unexpected_extractor_error_still_returns_pdf(
    service: DocumentService,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def explode(*_: object, **__: object) -> None:
        raise KeyError("boom")

    monkeypatch.setattr("docbridge.service.extractor_for", explode)

    result = service.convert_bytes(b"PK", "report.docx")

    assert result.diagnostic is True
    assert result.pdf.startswith(b"%PDF-1.4\n")


def test_fetch_pdf_downloads_and_converts() -> None:
    transport = FakeTransport([ok(make_docx([PARAGRAPH]), "application/octet-stream")])
    events: list[ProgressEvent] = []

    result = _service_with(transport).fetch_pdf(on_progress=events.append)

    assert result.filename == "Quarterly Report (Q3).docx"
    assert result.download is not None and result.download.strategy == "presigned-url"
    assert result.converted is True
    assert "/reports/Quarterly%20Report%20%28Q3%29.docx?" in transport.requests[0].url
    percentages = [event.percentage for event in events]
    assert percentages == sorted(percentages)
    assert max(event.percentage for event in events if event.message == "Download completed") == 60
    assert percentages[-1] == 100
    assert result.as_dict()["strategy"] == "presigned-url"
    assert len(result.request_id) == 32


def test_fetch_pdf_propagates_auth_errors() -> None:
    transport = FakeTransport([error(403)])

    with pytest.raises(AuthError):
        _service_with(transport).fetch_pdf()
    assert len(transport.requests) == 1


def test_fetch_pdf_reports_all_failures() -> None:
    transport = FakeTransport([error(404)])

    with pytest.raises(AllStrategiesFailedError) as excinfo:
        _service_with(transport).fetch_pdf()
    assert len(excinfo.value.attempts) == 3


def test_locator_for_overrides_key() -> None:
    service = _service_with(FakeTransport([ok(b"")]))

    locator = service.locator_for("/other/file.csv")

    assert locator.key == "other/file.csv"
    assert locator.bucket == "example-documents"
    with pytest.raises(ValueError):
        service.locator_for("/")


def test_service_without_storage_refuses_to_fetch(service: DocumentService) -> None:
    with pytest.raises(RuntimeError, match="Storage is not configured"):
        service.fetch_pdf()


def test_from_config_builds_coordinator_with_retrieval_settings() -> None:
    service = _service_with(FakeTransport([ok(b"")]))

    assert isinstance(service.coordinator, RetrievalCoordinator)
    assert service.coordinator.max_attempts == 2
    assert service.coordinator.timeout == 5.0
    assert [strategy.name for strategy in service.coordinator.strategies] == [
        "presigned-url",
        "signed-headers",
        "basic-auth",
    ]


def test_presign_uses_configured_expiry() -> None:
    service = _service_with(FakeTransport([ok(b"")]))

    assert "X-Amz-Expires=3600" in service.presign().url
    assert "X-Amz-Expires=120" in service.presign(expires=120).url
