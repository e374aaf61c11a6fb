"""Dispatch text extraction by file type."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict

from docrag.errors import ExtractionFailed, UnsupportedFormat
from docrag.ingestion.docx_loader import extract_docx_text
from docrag.ingestion.pdf_loader import extract_pdf_text

PLAIN_TEXT_SUFFIXES = frozenset({".txt", ".md", ".rst", ".csv", ".log"})


def extract_plain_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ExtractionFailed(f"{path} is not valid UTF-8 text") from exc
    except OSError as exc:
        raise ExtractionFailed(f"Failed to read {path}: {exc}") from exc


EXTRACTORS: Dict[str, Callable[[Path], str]] = {
    **{suffix: extract_plain_text for suffix in PLAIN_TEXT_SUFFIXES},
    ".pdf": extract_pdf_text,
    ".docx": extract_docx_text,
}

SUPPORTED_SUFFIXES = frozenset(EXTRACTORS)


def extract_text(path: Path) -> str:
    """Return the plain text of ``path``.

    Raises:
        UnsupportedFormat: the suffix has no extractor.
        ExtractionFailed: the file is missing or cannot be read.
    """
    path = Path(path)
    extractor = EXTRACTORS.get(path.suffix.lower())
    if extractor is None:
        raise UnsupportedFormat(f"Unsupported file type: {path.suffix or path.name}")
    if not path.is_file():
        raise ExtractionFailed(f"File not found: {path}")
    return extractor(path)
