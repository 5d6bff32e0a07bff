"""Tests for the JSON stores and the three caches."""

import os
from decimal import Decimal
from pathlib import Path

import pytest

from scan_and_fill.models.extraction import ExtractionStatus, file_hash
from scan_and_fill.storage.caches import Caches
from scan_and_fill.storage.local_json import JsonDirectoryStore, JsonFileStore


@pytest.fixture
def document(tmp_path: Path) -> Path:
    path = tmp_path / "invoice.pdf"
    path.write_bytes(b"%PDF-1.4 invoice 1")
    return path


class TestJsonFileStore:
    def test_put_get_delete(self, tmp_path: Path):
        store = JsonFileStore(tmp_path / "store.json")
        store.put("a", {"value": 1})
        store.put("b", {"value": 2})

        assert store.get("a") == {"value": 1}
        assert store.keys() == ["a", "b"]
        assert len(store) == 2
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("a") is None

    def test_write_leaves_no_temp_files(self, tmp_path: Path):
        store = JsonFileStore(tmp_path / "store.json")
        store.put("a", {"value": 1})
        assert sorted(p.name for p in tmp_path.iterdir()) == ["store.json", "store.json.lock"]

    def test_corrupt_file_reads_as_empty(self, tmp_path: Path):
        path = tmp_path / "store.json"
        path.write_text("{not json")
        store = JsonFileStore(path)
        assert store.get("a") is None
        store.put("a", {"value": 1})
        assert store.get("a") == {"value": 1}

    def test_clear(self, tmp_path: Path):
        store = JsonFileStore(tmp_path / "store.json")
        store.put("a", {})
        store.put("b", {})
        assert store.clear() == 2
        assert len(store) == 0


class TestJsonDirectoryStore:
    def test_one_file_per_key(self, tmp_path: Path):
        store = JsonDirectoryStore(tmp_path / "records")
        store.put("abc", {"text": "hello"})
        assert (tmp_path / "records" / "abc.json").exists()
        assert store.get("abc") == {"text": "hello"}
        assert store.keys() == ["abc"]

    def test_missing_directory(self, tmp_path: Path):
        store = JsonDirectoryStore(tmp_path / "nowhere")
        assert store.get("abc") is None
        assert store.keys() == []
        assert store.clear() == 0


class TestOcrCache:
    def test_round_trip_by_digest(self, caches: Caches, document: Path):
        digest = file_hash(document)
        assert caches.ocr.get(digest) is None

        caches.ocr.put(digest, document.name, "Total TTC 12,00")

        assert caches.ocr.get(digest) == "Total TTC 12,00"
        assert caches.ocr.count() == 1

    def test_empty_text_is_a_hit(self, caches: Caches):
        caches.ocr.put("d" * 64, "blank.pdf", "")
        assert caches.ocr.get("d" * 64) == ""

    def test_corrupt_record_is_a_miss(self, caches: Caches):
        caches.ocr.put("e" * 64, "x.pdf", "text")
        (caches.ocr.store.directory / f"{'e' * 64}.json").write_text("[]")
        assert caches.ocr.get("e" * 64) is None

    def test_clear(self, caches: Caches):
        caches.ocr.put("a" * 64, "a.pdf", "a")
        caches.ocr.put("b" * 64, "b.pdf", "b")
        assert caches.ocr.clear() == 2
        assert caches.ocr.count() == 0


class TestManualEntryCache:
    def test_follows_content_across_renames(self, caches: Caches, document: Path, tmp_path: Path):
        caches.manual.put(document, Decimal("19.90"))

        moved = tmp_path / "elsewhere.pdf"
        document.rename(moved)

        entry = caches.manual.get(moved)
        assert entry.amount == Decimal("19.90")
        assert entry.file_name == "invoice.pdf"

    def test_changed_content_misses(self, caches: Caches, document: Path):
        caches.manual.put(document, Decimal("19.90"))
        document.write_bytes(b"%PDF-1.4 invoice 1 corrected")
        assert caches.manual.get(document) is None

    def test_missing_file_is_a_miss(self, caches: Caches, tmp_path: Path):
        assert caches.manual.get(tmp_path / "gone.pdf") is None


class TestExtractionCache:
    def test_valid_while_mtime_unchanged(self, caches: Caches, document: Path):
        caches.extraction.update_entry("acme", document, Decimal("50.00"))

        entry = caches.extraction.get_valid_entry("acme", document)

        assert entry.amount == Decimal("50.00")
        assert entry.mtime_ns == os.stat(document).st_mtime_ns

    def test_touching_the_file_invalidates(self, caches: Caches, document: Path):
        caches.extraction.update_entry("acme", document, Decimal("50.00"))
        stat = os.stat(document)
        os.utime(document, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))

        assert caches.extraction.get_valid_entry("acme", document) is None

    def test_only_success_entries_are_served(self, caches: Caches, document: Path):
        caches.extraction.update_entry(
            "acme", document, Decimal("0"), status=ExtractionStatus.AMBIGUOUS
        )
        assert caches.extraction.get_valid_entry("acme", document) is None

    def test_entries_are_per_project(self, caches: Caches, document: Path):
        caches.extraction.update_entry("acme", document, Decimal("50.00"))
        assert caches.extraction.get_valid_entry("other", document) is None

    def test_deleted_file_is_a_miss(self, caches: Caches, document: Path):
        caches.extraction.update_entry("acme", document, Decimal("50.00"))
        document.unlink()
        assert caches.extraction.get_valid_entry("acme", document) is None

    def test_clear_and_clear_all(self, caches: Caches, document: Path, tmp_path: Path):
        other = tmp_path / "other.pdf"
        other.write_bytes(b"%PDF other")
        caches.extraction.update_entry("acme", document, Decimal("1"))
        caches.extraction.update_entry("acme", other, Decimal("2"))
        caches.extraction.update_entry("globex", document, Decimal("3"))

        assert caches.extraction.count() == 3
        assert caches.extraction.clear("acme") == 2
        assert caches.extraction.get_valid_entry("globex", document) is not None
        assert caches.extraction.clear_all() == 1
        assert caches.extraction.count() == 0


class TestCaches:
    def test_stats(self, caches: Caches, data_dir: Path, document: Path):
        caches.ocr.put(file_hash(document), document.name, "text")
        caches.manual.put(document, Decimal("5"))
        caches.extraction.update_entry("acme", document, Decimal("5"))

        assert caches.stats() == {
            "ocr_cache_count": 1,
            "manual_entry_count": 1,
            "extraction_entry_count": 1,
            "cache_dir": str(data_dir),
        }

    def test_empty_stats(self, caches: Caches):
        stats = caches.stats()
        assert stats["ocr_cache_count"] == 0
        assert stats["manual_entry_count"] == 0
        assert stats["extraction_entry_count"] == 0
