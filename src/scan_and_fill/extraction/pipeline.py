"""Two-step extraction: obtain the text (pdfplumber, OCR fallback), then classify it."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from scan_and_fill.config import MIN_TEXT_LENGTH
from scan_and_fill.errors import DocumentUnreadableError, OCRFailureError
from scan_and_fill.extraction.classifier import DEFAULT_RULES, ClassifierRules, find_amount_in_text
from scan_and_fill.extraction.ocr import OcrEngine
from scan_and_fill.extraction.pdf_text import extract_text
from scan_and_fill.models.extraction import ExtractionResult, file_hash
from scan_and_fill.storage.caches import OcrCache

logger = logging.getLogger(__name__)


class Extractor:
    def __init__(
        self,
        ocr_cache: OcrCache,
        ocr_engine: OcrEngine | None = None,
        min_text_length: int = MIN_TEXT_LENGTH,
        rules: ClassifierRules = DEFAULT_RULES,
    ) -> None:
        self.ocr_cache = ocr_cache
        self.ocr_engine = ocr_engine or OcrEngine()
        self.min_text_length = min_text_length
        self.rules = rules

    def ocr_text(self, path: Path, cancel: threading.Event | None = None) -> str:
        """OCR text of a document, served from the content-hash cache when possible."""
        try:
            digest = file_hash(path)
        except OSError as exc:
            raise DocumentUnreadableError(f"Cannot read {path.name}: {exc}") from exc

        cached = self.ocr_cache.get(digest)
        if cached is not None:
            logger.info("Using cached OCR result for %s (%d characters)", path.name, len(cached))
            return cached

        text = self.ocr_engine.run(path, cancel=cancel)
        self.ocr_cache.put(digest, path.name, text)
        return text

    def acquire_text(self, path: str | Path, cancel: threading.Event | None = None) -> str:
        path = Path(path)
        text = extract_text(path)
        if len(text.strip()) < self.min_text_length:
            logger.info(
                "Embedded text of %s too short (%d characters), falling back to OCR",
                path.name, len(text.strip()),
            )
            text = self.ocr_text(path, cancel=cancel)
        return text

    def extract_amount(
        self,
        path: str | Path,
        pattern: str | None = None,
        cancel: threading.Event | None = None,
    ) -> ExtractionResult:
        """Extract the total of one document. Per-file problems become ``failed``."""
        path = Path(path)
        try:
            text = self.acquire_text(path, cancel=cancel)
        except (DocumentUnreadableError, OCRFailureError) as exc:
            logger.warning("Extraction failed for %s: %s", path.name, exc)
            return ExtractionResult.failed(str(exc))

        result = find_amount_in_text(text, pattern, self.rules)
        logger.debug(
            "%s: %s %s (%d candidates)",
            path.name, result.status.value, result.amount, len(result.candidates),
        )
        return result
