"""
Pytest configuration and shared fixtures for scan-and-fill tests.
"""

from decimal import Decimal
from pathlib import Path
from typing import Callable

import pytest

from scan_and_fill.models.extraction import Candidate, ExtractionResult
from scan_and_fill.models.project import Project, SpreadsheetConfig
from scan_and_fill.storage.caches import Caches


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Application data directory for caches and projects."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def caches(data_dir: Path) -> Caches:
    return Caches(data_dir)


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[dict], Path]:
    """Build a project folder tree from {month folder: {category folder: [file names]}}."""

    def _make(layout: dict) -> Path:
        root = tmp_path / "invoices"
        root.mkdir(exist_ok=True)
        for month, categories in layout.items():
            month_dir = root / month
            month_dir.mkdir(exist_ok=True)
            for category, files in categories.items():
                category_dir = month_dir / category
                category_dir.mkdir(exist_ok=True)
                for name in files:
                    # Distinct bytes per file so content hashes differ
                    (category_dir / name).write_bytes(f"%PDF-1.4 {month}/{category}/{name}".encode())
        return root

    return _make


class FakeOcrEngine:
    """Stands in for poppler + tesseract."""

    def __init__(self, text: str = "", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[Path] = []

    def run(self, path, cancel=None) -> str:
        self.calls.append(Path(path))
        if self.error:
            raise self.error
        return self.text


@pytest.fixture
def fake_ocr() -> FakeOcrEngine:
    return FakeOcrEngine(text="FACTURE\nTotal TTC : 42,00 €\n")


class FakeExtractor:
    """Returns scripted results keyed by file name; records every call."""

    def __init__(self, results: dict[str, ExtractionResult]) -> None:
        self.results = results
        self.calls: list[str] = []

    def extract_amount(self, path, pattern=None, cancel=None) -> ExtractionResult:
        name = Path(path).name
        self.calls.append(name)
        return self.results.get(name, ExtractionResult.failed("not scripted"))


def success(amount: str) -> ExtractionResult:
    value = Decimal(amount)
    return ExtractionResult.success(value, [Candidate(amount=value, tier=3, priority=4)])


def ambiguous(*amounts: str) -> ExtractionResult:
    return ExtractionResult.ambiguous([Candidate(amount=Decimal(a), tier=2) for a in amounts])


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Project]:
    def _make(root: Path, **overrides) -> Project:
        fields = {
            "id": "acme",
            "name": "ACME",
            "root_path": str(root),
            "spreadsheet": SpreadsheetConfig(
                file_path=str(tmp_path / "budget.xlsx"),
                sheet_name="2026",
                category_rows={"Fuel": 2, "Food": 3},
            ),
        }
        fields.update(overrides)
        return Project(**fields)

    return _make
