"""Core package for retrieving stored documents and delivering them as PDFs.

The public surface is :class:`docbridge.service.DocumentService`; the CLI and
the HTTP service are thin wrappers around it.
"""

__all__: list[str] = []
