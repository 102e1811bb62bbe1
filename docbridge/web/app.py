"""FastAPI application factory serving converted documents."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from loguru import logger

from docbridge.config.app import AppConfig
from docbridge.service import DocumentService
from docbridge.storage import AuthError, RetrievalError


def create_app(service: DocumentService, config: AppConfig | None = None) -> FastAPI:
    """Creates the PDF delivery API around an existing :class:`DocumentService`."""
    app = FastAPI(
        title="DocBridge API",
        description="Fetches documents from S3 and always answers with a PDF.",
        version="0.1.0",
    )

    @app.get("/health", summary="Health Check", tags=["Monitoring"])
    async def health_check() -> dict[str, Any]:
        """Check if the API is running."""
        return {
            "status": "ok",
            "storage_configured": service.default_locator is not None,
            "logging_level": config.logging_level if config else None,
        }

    @app.get(
        "/document",
        summary="Fetch a document as PDF",
        tags=["Documents"],
        response_class=Response,
    )
    async def get_document(
        key: str | None = Query(None, description="Object key; defaults to the configured key"),
    ) -> Response:
        """Download the object and return it (or a diagnostic) as ``application/pdf``."""
        try:
            locator = service.locator_for(key)
        except RuntimeError as exc:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

        try:
            result = await run_in_threadpool(service.fetch_pdf, locator)
        except RetrievalError as exc:
            code = status.HTTP_403_FORBIDDEN if isinstance(exc, AuthError) else status.HTTP_502_BAD_GATEWAY
            logger.warning("Retrieval of {} failed with {}: {}", locator, code, exc)
            return JSONResponse(status_code=code, content=_error_body(exc))

        return Response(
            content=result.pdf,
            media_type="application/pdf",
            headers={
                "Content-Disposition": f'inline; filename="{_pdf_name(result.filename)}"',
                "X-DocBridge-Converted": str(result.converted).lower(),
                "X-DocBridge-Diagnostic": str(result.diagnostic).lower(),
                "X-DocBridge-Request-Id": result.request_id,
            },
        )

    return app


def _error_body(exc: RetrievalError) -> dict[str, Any]:
    return {
        "message": exc.message,
        "troubleshooting": list(exc.troubleshooting),
        "attempts": [attempt.as_dict() for attempt in exc.attempts],
    }


def _pdf_name(filename: str) -> str:
    stem = filename.rsplit(".", 1)[0] if "." in filename else filename
    safe = "".join(ch if ch.isascii() and ch.isprintable() and ch not in '"\\' else "_" for ch in stem)
    return f"{safe or 'document'}.pdf"
