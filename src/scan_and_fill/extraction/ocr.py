"""OCR fallback for scanned PDFs: poppler rasterization + Tesseract.

Requires: pytesseract, Pillow, pdf2image (install with `pip install scan-and-fill[ocr]`)
plus the poppler and tesseract binaries.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Protocol

from scan_and_fill.config import OCR_DPI, OCR_LANGUAGES, OCR_TIMEOUT
from scan_and_fill.errors import OCRFailureError, RunCancelledError

logger = logging.getLogger(__name__)


class Rasterizer(Protocol):
    def rasterize(self, path: Path) -> list[Any]:
        """Render each page of a document to an image, in page order."""


class Recognizer(Protocol):
    def recognize(self, image: Any, languages: str) -> str:
        """Return the text recognised in one page image."""


class PopplerRasterizer:
    def __init__(self, dpi: int = OCR_DPI, timeout: int = OCR_TIMEOUT) -> None:
        self.dpi = dpi
        self.timeout = timeout

    def rasterize(self, path: Path) -> list[Any]:
        from pdf2image import convert_from_path

        return convert_from_path(str(path), dpi=self.dpi, timeout=self.timeout)


class TesseractRecognizer:
    def __init__(self, timeout: int = OCR_TIMEOUT) -> None:
        self.timeout = timeout

    def recognize(self, image: Any, languages: str) -> str:
        import pytesseract

        return pytesseract.image_to_string(image, lang=languages, timeout=self.timeout)


class OcrEngine:
    """Runs a rasterizer and a recognizer page by page."""

    def __init__(
        self,
        rasterizer: Rasterizer | None = None,
        recognizer: Recognizer | None = None,
        languages: str = OCR_LANGUAGES,
    ) -> None:
        self.rasterizer = rasterizer or PopplerRasterizer()
        self.recognizer = recognizer or TesseractRecognizer()
        self.languages = languages

    def run(self, path: str | Path, cancel: threading.Event | None = None) -> str:
        path = Path(path)
        try:
            images = self.rasterizer.rasterize(path)
        except Exception as exc:
            raise OCRFailureError(f"Rasterization of {path.name} failed: {exc}") from exc

        logger.info("Running OCR on %d page(s) of %s", len(images), path.name)
        pages = []
        for number, image in enumerate(images, start=1):
            if cancel is not None and cancel.is_set():
                raise RunCancelledError(f"OCR of {path.name} cancelled")
            try:
                text = self.recognizer.recognize(image, self.languages)
            except Exception as exc:
                raise OCRFailureError(
                    f"OCR of page {number} of {path.name} failed: {exc}"
                ) from exc
            logger.debug("OCR page %d/%d: %d characters", number, len(images), len(text))
            pages.append(text)

        full_text = "\n".join(pages)
        logger.info("OCR completed for %s: %d characters", path.name, len(full_text))
        return full_text
