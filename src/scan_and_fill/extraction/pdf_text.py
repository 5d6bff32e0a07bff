"""Embedded text extraction with pdfplumber."""

from pathlib import Path

import pdfplumber

from scan_and_fill.errors import DocumentUnreadableError


def extract_text(path: str | Path) -> str:
    """Extract all embedded text from a PDF, pages joined by newlines.

    Raises DocumentUnreadableError when the file is missing or not a readable PDF.
    """
    try:
        with pdfplumber.open(path) as pdf:
            pages = []
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    pages.append(text)
            return "\n".join(pages)
    except Exception as exc:
        raise DocumentUnreadableError(f"Cannot read {Path(path).name}: {exc}") from exc
