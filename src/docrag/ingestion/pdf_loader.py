"""PDF text extraction using PyMuPDF (fitz)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import fitz  # PyMuPDF

from docrag.errors import ExtractionFailed
from docrag.utils.text import normalize_whitespace

LOGGER = logging.getLogger(__name__)


def iter_text_parts(path: Path) -> Iterator[str]:
    """Yield normalized text from a PDF file page by page."""
    try:
        doc = fitz.open(path)
    except Exception as exc:
        raise ExtractionFailed(f"Failed to open PDF {path}: {exc}") from exc

    try:
        for index in range(len(doc)):
            try:
                text = doc[index].get_text() or ""
            except Exception as exc:
                raise ExtractionFailed(f"Failed to read page {index} of {path}: {exc}") from exc
            normalized = normalize_whitespace(text.splitlines())
            if normalized:
                yield normalized
    finally:
        doc.close()


def extract_pdf_text(path: Path) -> str:
    """Return the text of every page, pages separated by a newline."""
    pages = list(iter_text_parts(path))
    LOGGER.debug("Extracted %d non-empty pages from %s", len(pages), path)
    return "\n".join(pages)
