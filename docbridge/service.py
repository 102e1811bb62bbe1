"""End-to-end document delivery: download, convert and always return a PDF."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable
from uuid import uuid4

from loguru import logger

from docbridge.config import AppConfig, ConversionConfig, mask_secret
from docbridge.conversion import (
    AssemblyError,
    DocumentType,
    FallbackPdfFactory,
    FormatError,
    PageGeometry,
    PdfAssembler,
    detect_document_type,
    extractor_for,
    is_pdf,
    paginate,
)
from docbridge.storage import (
    CancellationToken,
    ConnectionCheck,
    CredentialSigner,
    DownloadResult,
    HttpTransport,
    ObjectLocator,
    ProgressEvent,
    ProgressReporter,
    RetrievalCoordinator,
    SignedRequest,
    default_strategies,
)

# Share of the progress bar given to the download; conversion fills the rest.
DOWNLOAD_PROGRESS_END = 60


@dataclass(frozen=True, slots=True)
class ConversionResult:
    pdf: bytes = field(repr=False)
    filename: str
    document_type: DocumentType
    converted: bool
    diagnostic: bool = False
    download: DownloadResult | None = None
    request_id: str = ""

    def as_dict(self) -> dict[str, object]:
        summary: dict[str, object] = {
            "request_id": self.request_id,
            "filename": self.filename,
            "document_type": self.document_type.value,
            "converted": self.converted,
            "diagnostic": self.diagnostic,
            "pdf_bytes": len(self.pdf),
        }
        if self.download is not None:
            summary["strategy"] = self.download.strategy
            summary["content_type"] = self.download.content_type
            summary["downloaded_bytes"] = self.download.size_bytes
        return summary


class DocumentService:
    """Single entry point wiring retrieval, extraction and PDF synthesis.

    The service holds configuration only; every call builds its own signed
    requests and intermediate documents, so one instance can serve many
    documents (and threads) at once.
    """

    def __init__(
        self,
        coordinator: RetrievalCoordinator | None = None,
        conversion: ConversionConfig | None = None,
        *,
        default_locator: ObjectLocator | None = None,
        presign_expires: int = 3600,
    ) -> None:
        self.coordinator = coordinator
        self.conversion = conversion or ConversionConfig()
        self.default_locator = default_locator
        self.presign_expires = presign_expires
        self.document_geometry = PageGeometry.from_layout(self.conversion.document)
        self.spreadsheet_geometry = PageGeometry.from_layout(self.conversion.spreadsheet)
        self.fallback = FallbackPdfFactory(self.document_geometry)

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        transport: HttpTransport | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> "DocumentService":
        coordinator: RetrievalCoordinator | None = None
        locator: ObjectLocator | None = None
        storage = config.storage
        if storage is not None:
            credentials = storage.credentials()
            logger.info(
                "Using access key {} for s3://{} in {}",
                mask_secret(credentials.access_key_id),
                storage.bucket,
                storage.region,
            )
            signer = CredentialSigner(credentials, storage.region)
            coordinator = RetrievalCoordinator(
                signer,
                transport,
                strategies=default_strategies(presign_expires=config.retrieval.presign_expires),
                max_attempts=config.retrieval.max_attempts,
                backoff_seconds=config.retrieval.backoff_seconds,
                timeout=config.retrieval.timeout,
                sleep=sleep,
            )
            locator = storage.locator()
        return cls(
            coordinator,
            config.conversion,
            default_locator=locator,
            presign_expires=config.retrieval.presign_expires,
        )

    # ------------------------------------------------------------------
    def locator_for(self, key: str | None = None) -> ObjectLocator:
        if self.default_locator is None:
            raise RuntimeError("Storage is not configured; add a [storage] section to the configuration")
        if key is None:
            return self.default_locator
        stripped = key.lstrip("/")
        if not stripped:
            raise ValueError("Object key must not be empty")
        return replace(self.default_locator, key=stripped)

    def fetch_pdf(
        self,
        locator: ObjectLocator | None = None,
        *,
        on_progress: Callable[[ProgressEvent], None] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ConversionResult:
        """Download ``locator`` and return it as PDF bytes.

        Retrieval failures propagate as :class:`~docbridge.storage.RetrievalError`;
        anything that goes wrong after the bytes arrive yields a diagnostic PDF
        instead.
        """

        coordinator = self._require_coordinator()
        target = locator or self.locator_for()
        request_id = uuid4().hex
        progress = ProgressReporter(on_progress)

        logger.info("[{}] Fetching {}", request_id, target)
        download = coordinator.download(
            target,
            on_progress=progress.scoped(0, DOWNLOAD_PROGRESS_END),
            cancel_token=cancel_token,
        )
        return self.convert_bytes(
            download.body,
            target.filename,
            progress=progress,
            download=download,
            request_id=request_id,
        )

    def convert_bytes(
        self,
        data: bytes,
        filename: str,
        *,
        progress: ProgressReporter | None = None,
        download: DownloadResult | None = None,
        request_id: str | None = None,
    ) -> ConversionResult:
        """Turn raw document bytes into PDF bytes; never raises for bad input."""

        request_id = request_id or uuid4().hex
        progress = progress or ProgressReporter()
        document_type = detect_document_type(filename, data)
        progress.emit(70, "Processing file...")

        def finish(pdf: bytes, *, converted: bool, diagnostic: bool = False) -> ConversionResult:
            progress.emit(100, "Ready")
            return ConversionResult(
                pdf=pdf,
                filename=filename,
                document_type=document_type,
                converted=converted,
                diagnostic=diagnostic,
                download=download,
                request_id=request_id,
            )

        if document_type is DocumentType.PDF:
            if is_pdf(data):
                logger.info("[{}] {} is already a PDF ({} bytes)", request_id, filename, len(data))
                return finish(data, converted=False)
            return finish(
                self._diagnostic(request_id, "Downloaded file is not a valid PDF", filename, document_type),
                converted=False,
                diagnostic=True,
            )

        progress.emit(75, f"Converting {document_type.value.upper()} to PDF...")
        try:
            pdf = self._synthesise(data, filename, document_type)
        except (FormatError, AssemblyError) as exc:
            logger.warning("[{}] Conversion of {} failed: {}", request_id, filename, exc)
            pdf = self._diagnostic(request_id, str(exc), filename, document_type)
            return finish(pdf, converted=True, diagnostic=True)
        except Exception as exc:
            logger.exception("[{}] Unexpected error while converting {}", request_id, filename)
            pdf = self._diagnostic(request_id, f"Unexpected error: {exc}", filename, document_type)
            return finish(pdf, converted=True, diagnostic=True)

        logger.info("[{}] Converted {} ({}) into {} bytes of PDF", request_id, filename, document_type.value, len(pdf))
        return finish(pdf, converted=True)

    def presign(self, locator: ObjectLocator | None = None, *, expires: int | None = None) -> SignedRequest:
        coordinator = self._require_coordinator()
        return coordinator.signer.presign(locator or self.locator_for(), expires=expires or self.presign_expires)

    def check_connection(self) -> ConnectionCheck:
        coordinator = self._require_coordinator()
        locator = self.locator_for()
        return coordinator.check_connection(locator.bucket, locator.region)

    def close(self) -> None:
        """Release the HTTP session held by the retrieval coordinator."""

        if self.coordinator is not None:
            self.coordinator.close()

    # ------------------------------------------------------------------
    def _synthesise(self, data: bytes, filename: str, document_type: DocumentType) -> bytes:
        extractor = extractor_for(
            document_type,
            max_columns=self.conversion.max_columns,
            min_docx_chars=self.conversion.min_docx_chars,
        )
        extracted = extractor.extract(data, filename)
        base = self.spreadsheet_geometry if document_type.is_tabular else self.document_geometry
        geometry = base.fit_width(extracted.line_width_hint)
        pages = paginate(
            extracted.display_lines(),
            geometry.max_chars,
            geometry.lines_per_page,
            label_pages=document_type.is_tabular,
        )
        return PdfAssembler(geometry).assemble(pages)

    def _diagnostic(
        self,
        request_id: str,
        message: str,
        filename: str,
        document_type: DocumentType,
    ) -> bytes:
        logger.info("[{}] Returning diagnostic PDF for {}", request_id, filename)
        return self.fallback.create(message, filename, document_type)

    def _require_coordinator(self) -> RetrievalCoordinator:
        if self.coordinator is None:
            raise RuntimeError("Storage is not configured; add a [storage] section to the configuration")
        return self.coordinator


__all__ = ["ConversionResult", "DocumentService", "DOWNLOAD_PROGRESS_END"]
