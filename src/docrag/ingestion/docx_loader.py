"""Word document text extraction using python-docx."""

from __future__ import annotations

from pathlib import Path
from zipfile import BadZipFile

from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError

from docrag.errors import ExtractionFailed


def extract_docx_text(path: Path) -> str:
    """Return paragraph text followed by table cell text."""
    try:
        doc = DocxDocument(str(path))
    except (PackageNotFoundError, BadZipFile, ValueError, KeyError, OSError) as exc:
        raise ExtractionFailed(f"Failed to open Word document {path}: {exc}") from exc

    parts = [paragraph.text for paragraph in doc.paragraphs if paragraph.text]
    for table in doc.tables:
        for row in table.rows:
            for cell in row.cells:
                if cell.text:
                    parts.append(cell.text)
    return "\n".join(parts).strip()
