"""OCR, manual-entry and per-project extraction caches.

The OCR and manual-entry caches are keyed by the SHA-256 of the document
bytes, so they survive moves and renames and go stale the moment the content
changes. The extraction cache is keyed by project and path and is only valid
while the file's modification time is unchanged.

Cache failures never break a run: reads degrade to a miss and writes to a
no-op, both logged.
"""

from __future__ import annotations

import datetime as _dt
import logging
import os
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from scan_and_fill.config import DATA_DIR, EXTRACTION_CACHE_DIR, PDF_CACHE_DIR
from scan_and_fill.models.extraction import ExtractionStatus, file_hash
from scan_and_fill.storage.local_json import JsonDirectoryStore, JsonFileStore

logger = logging.getLogger(__name__)

_CACHE_ERRORS = (OSError, ValueError, ValidationError)


class OcrRecord(BaseModel):
    file_name: str
    timestamp: _dt.datetime = Field(default_factory=_dt.datetime.now)
    text: str


class ManualEntry(BaseModel):
    file_name: str
    amount: Decimal
    timestamp: _dt.datetime = Field(default_factory=_dt.datetime.now)


class ExtractionCacheEntry(BaseModel):
    amount: Decimal
    status: ExtractionStatus = ExtractionStatus.SUCCESS
    mtime_ns: int


class OcrCache:
    def __init__(self, directory: Path | None = None) -> None:
        self.store = JsonDirectoryStore(directory or PDF_CACHE_DIR / "ocr")

    def get(self, digest: str) -> str | None:
        try:
            record = self.store.get(digest)
            if record is None:
                return None
            text = OcrRecord.model_validate(record).text
        except _CACHE_ERRORS as exc:
            logger.warning("Failed to read OCR cache for %s: %s", digest[:12], exc)
            return None
        logger.debug("OCR cache hit for %s", digest[:12])
        return text

    def put(self, digest: str, file_name: str, text: str) -> None:
        try:
            record = OcrRecord(file_name=file_name, text=text)
            self.store.put(digest, record.model_dump(mode="json"))
        except _CACHE_ERRORS as exc:
            logger.warning("Failed to save OCR cache for %s: %s", file_name, exc)
            return
        logger.debug("OCR result cached for %s", file_name)

    def clear(self) -> int:
        try:
            count = self.store.clear()
        except OSError as exc:
            logger.warning("Failed to clear OCR cache: %s", exc)
            return 0
        logger.info("Cleared %d OCR cache entries", count)
        return count

    def count(self) -> int:
        return len(self.store)


class ManualEntryCache:
    """Amounts typed in by the operator, keyed by document content."""

    def __init__(self, path: Path | None = None) -> None:
        self.store = JsonFileStore(path or PDF_CACHE_DIR / "manual-entries.json")

    def get(self, path: str | Path) -> ManualEntry | None:
        try:
            record = self.store.get(file_hash(path))
            return ManualEntry.model_validate(record) if record else None
        except _CACHE_ERRORS as exc:
            logger.warning("Failed to read manual entry for %s: %s", path, exc)
            return None

    def put(self, path: str | Path, amount: Decimal) -> None:
        path = Path(path)
        try:
            entry = ManualEntry(file_name=path.name, amount=amount)
            self.store.put(file_hash(path), entry.model_dump(mode="json"))
        except _CACHE_ERRORS as exc:
            logger.warning("Failed to save manual entry for %s: %s", path.name, exc)
            return
        logger.info("Manual entry saved for %s: %s", path.name, amount)

    def clear(self) -> int:
        try:
            return self.store.clear()
        except OSError as exc:
            logger.warning("Failed to clear manual entries: %s", exc)
            return 0

    def count(self) -> int:
        return len(self.store)


class ExtractionCache:
    """Last successful amount per (project, path), validated by mtime."""

    def __init__(self, directory: Path | None = None) -> None:
        self.directory = Path(directory or EXTRACTION_CACHE_DIR)

    def _store(self, project_id: str) -> JsonFileStore:
        return JsonFileStore(self.directory / f"cache-{project_id}.json")

    def get_valid_entry(self, project_id: str, path: str | Path) -> ExtractionCacheEntry | None:
        try:
            record = self._store(project_id).get(str(path))
            if record is None:
                return None
            entry = ExtractionCacheEntry.model_validate(record)
            if entry.status != ExtractionStatus.SUCCESS:
                return None
            if os.stat(path).st_mtime_ns != entry.mtime_ns:
                logger.debug("Cache entry for %s is stale", path)
                return None
        except _CACHE_ERRORS as exc:
            logger.debug("No usable cache entry for %s: %s", path, exc)
            return None
        return entry

    def update_entry(
        self,
        project_id: str,
        path: str | Path,
        amount: Decimal,
        status: ExtractionStatus = ExtractionStatus.SUCCESS,
    ) -> None:
        try:
            entry = ExtractionCacheEntry(
                amount=amount, status=status, mtime_ns=os.stat(path).st_mtime_ns
            )
            self._store(project_id).put(str(path), entry.model_dump(mode="json"))
        except _CACHE_ERRORS as exc:
            logger.warning("Failed to update extraction cache for %s: %s", path, exc)

    def clear(self, project_id: str) -> int:
        try:
            count = self._store(project_id).clear()
        except OSError as exc:
            logger.warning("Failed to clear extraction cache of %s: %s", project_id, exc)
            return 0
        logger.info("Cleared extraction cache of project %s (%d entries)", project_id, count)
        return count

    def clear_all(self) -> int:
        if not self.directory.exists():
            return 0
        count = 0
        for cache_file in sorted(self.directory.glob("cache-*.json")):
            count += self.clear(cache_file.stem[len("cache-"):])
        return count

    def count(self) -> int:
        if not self.directory.exists():
            return 0
        return sum(
            len(JsonFileStore(p)) for p in self.directory.glob("cache-*.json")
        )


class Caches:
    """The three caches of one data directory, built explicitly and passed around."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self.data_dir = Path(data_dir or DATA_DIR)
        pdf_cache = self.data_dir / "pdf-cache"
        self.ocr = OcrCache(pdf_cache / "ocr")
        self.manual = ManualEntryCache(pdf_cache / "manual-entries.json")
        self.extraction = ExtractionCache(self.data_dir / "extraction-cache")

    def stats(self) -> dict[str, object]:
        return {
            "ocr_cache_count": self.ocr.count(),
            "manual_entry_count": self.manual.count(),
            "extraction_entry_count": self.extraction.count(),
            "cache_dir": str(self.data_dir),
        }
