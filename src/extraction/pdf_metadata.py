# src/extraction/pdf_metadata.py — v1
"""Coarse PDF metadata via PyMuPDF (fitz): page count, title, author, date.

Best effort: any read failure degrades to defaults instead of raising.
"""

from __future__ import annotations

import logging
from pathlib import Path

from scanflow.core.models import DocumentMetadata

logger = logging.getLogger(__name__)


def _clean(value: object) -> str:
    text = str(value).strip() if value else ""
    return text or "N/A"


def read_document_metadata(path: Path) -> DocumentMetadata:
    """Read metadata for one document.

    Raises:
        FileNotFoundError: If the file does not exist (metadata of a missing
            document is meaningless; the caller treats it as an I/O race).
    """
    path = Path(path)
    size_bytes = path.stat().st_size
    base = DocumentMetadata(
        file_name=path.name,
        location=str(path.absolute()),
        base_folder=path.parent.name,
        size_bytes=size_bytes,
    )

    try:
        import fitz  # PyMuPDF

        with fitz.open(str(path)) as doc:
            info = doc.metadata or {}
            return base.model_copy(
                update={
                    "page_count": doc.page_count,
                    "title": _clean(info.get("title")),
                    "author": _clean(info.get("author")),
                    "created_at": _clean(info.get("creationDate")),
                }
            )
    except Exception as e:
        logger.warning("PDF metadata unavailable for %s: %s", path.name, e)
        return base
